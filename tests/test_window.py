import unittest

from io import BytesIO, RawIOBase, StringIO, UnsupportedOperation
from os import SEEK_CUR, SEEK_END

from atmfjstc.lib.wz_archive.window import BoundedWindow, END_OF_WINDOW
from atmfjstc.lib.wz_archive.errors import WindowConstructionError, WindowSeekOutOfRangeError, \
    WindowUnsupportedOperationError


DATA = bytes(range(100))


class _NonSeekable(RawIOBase):
    def readable(self):
        return True

    def seekable(self):
        return False


class _FailingBacking(BytesIO):
    def readinto(self, buffer):
        self.read(1)
        raise OSError("disk error")


class ConstructionTest(unittest.TestCase):
    def test_valid(self):
        window = BoundedWindow(BytesIO(DATA), 10, 20)

        self.assertEqual(window.origin, 10)
        self.assertEqual(window.length, 20)
        self.assertEqual(window.end, 30)
        self.assertEqual(window.position, 0)

    def test_up_to_end(self):
        window = BoundedWindow(BytesIO(DATA), 90, 10)

        self.assertEqual(window.read(), DATA[90:])

    def test_start_at_end(self):
        with self.assertRaises(WindowConstructionError):
            BoundedWindow(BytesIO(DATA), 100, 0)

    def test_past_end(self):
        with self.assertRaises(WindowConstructionError):
            BoundedWindow(BytesIO(DATA), 90, 11)

    def test_negative(self):
        with self.assertRaises(WindowConstructionError):
            BoundedWindow(BytesIO(DATA), -1, 10)
        with self.assertRaises(WindowConstructionError):
            BoundedWindow(BytesIO(DATA), 0, -1)

    def test_not_seekable(self):
        with self.assertRaises(WindowConstructionError):
            BoundedWindow(_NonSeekable(), 0, 0)

    def test_closed_backing(self):
        backing = BytesIO(DATA)
        backing.close()

        with self.assertRaises(WindowConstructionError):
            BoundedWindow(backing, 0, 1)

    def test_text_fileobj(self):
        with self.assertRaises(WindowConstructionError):
            BoundedWindow(StringIO('abc'), 0, 1)

    def test_construction_preserves_backing_position(self):
        backing = BytesIO(DATA)
        backing.seek(42)

        BoundedWindow(backing, 10, 20)

        self.assertEqual(backing.tell(), 42)


class SeekTest(unittest.TestCase):
    def setUp(self):
        self.window = BoundedWindow(BytesIO(DATA), 10, 20)

    def test_seek_then_read_byte(self):
        self.assertEqual(self.window.seek(5), 0)
        self.assertEqual(self.window.position, 5)

        self.assertEqual(self.window.read_byte(), 15)
        self.assertEqual(self.window.position, 6)

    def test_seek_returns_previous(self):
        self.window.seek(7)

        self.assertEqual(self.window.seek(3), 7)
        self.assertEqual(self.window.tell(), 3)

    def test_seek_cur(self):
        self.window.seek(5)
        self.window.seek(-2, SEEK_CUR)

        self.assertEqual(self.window.position, 3)

    def test_seek_end(self):
        self.window.seek(-1, SEEK_END)

        self.assertEqual(self.window.position, 19)
        self.assertEqual(self.window.read_byte(), 29)

    def test_out_of_range(self):
        self.window.seek(4)

        for offset, whence in [(20, 0), (-1, 0), (0, SEEK_END), (-5, SEEK_CUR), (16, SEEK_CUR)]:
            with self.assertRaises(WindowSeekOutOfRangeError):
                self.window.seek(offset, whence)

            self.assertEqual(self.window.position, 4)

    def test_out_of_range_is_value_error(self):
        with self.assertRaises(ValueError):
            self.window.seek(100)

    def test_bad_whence(self):
        with self.assertRaises(ValueError):
            self.window.seek(0, 7)

    def test_position_setter(self):
        self.window.position = 20

        self.assertEqual(self.window.read_byte(), END_OF_WINDOW)

        with self.assertRaises(WindowSeekOutOfRangeError):
            self.window.position = 21

        self.assertEqual(self.window.position, 20)


class ReadTest(unittest.TestCase):
    def setUp(self):
        self.backing = BytesIO(DATA)
        self.window = BoundedWindow(self.backing, 10, 20)

    def test_read_all(self):
        self.assertEqual(self.window.read(), DATA[10:30])
        self.assertEqual(self.window.position, 20)
        self.assertEqual(self.window.read(), b'')

    def test_read_clamped(self):
        self.window.seek(15)

        self.assertEqual(self.window.read(100), DATA[25:30])

    def test_readinto(self):
        buffer = bytearray(4)

        self.assertEqual(self.window.readinto(buffer), 4)
        self.assertEqual(bytes(buffer), DATA[10:14])
        self.assertEqual(self.window.position, 4)

    def test_readinto_at_end(self):
        self.window.position = 20

        self.assertEqual(self.window.readinto(bytearray(4)), 0)

    def test_read_byte_at_end(self):
        self.window.seek(-1, SEEK_END)

        self.assertEqual(self.window.read_byte(), 29)
        self.assertEqual(self.window.read_byte(), END_OF_WINDOW)
        self.assertEqual(self.window.position, 20)

    def test_backing_position_restored(self):
        self.backing.seek(50)

        self.window.read(3)
        self.window.read_byte()

        self.assertEqual(self.backing.tell(), 50)

    def test_interleaved_with_backing_reads(self):
        self.window.read(2)
        self.backing.seek(0)
        self.backing.read(7)

        self.assertEqual(self.window.read(2), DATA[12:14])
        self.assertEqual(self.backing.read(1), DATA[7:8])

    def test_failed_read_restores_positions(self):
        backing = _FailingBacking(DATA)
        backing.seek(50)

        window = BoundedWindow(backing, 10, 20)
        window.seek(3)

        with self.assertRaises(OSError):
            window.read(4)

        self.assertEqual(backing.tell(), 50)
        self.assertEqual(window.position, 3)

    def test_nested_window(self):
        inner = BoundedWindow(self.window, 5, 10)

        self.assertEqual(inner.read(), DATA[15:25])
        self.assertEqual(self.window.position, 0)

    def test_nested_window_bounds(self):
        with self.assertRaises(WindowConstructionError):
            BoundedWindow(self.window, 15, 10)

    def test_close_leaves_backing_open(self):
        self.window.close()

        self.assertFalse(self.backing.closed)

        with self.assertRaises(ValueError):
            self.window.read()


class ReadOnlyTest(unittest.TestCase):
    def setUp(self):
        self.window = BoundedWindow(BytesIO(DATA), 10, 20)

    def test_write(self):
        with self.assertRaises(WindowUnsupportedOperationError):
            self.window.write(b'abc')

    def test_truncate(self):
        with self.assertRaises(UnsupportedOperation):
            self.window.truncate(5)

    def test_flags(self):
        self.assertTrue(self.window.readable())
        self.assertTrue(self.window.seekable())
        self.assertFalse(self.window.writable())


if __name__ == '__main__':
    unittest.main()
