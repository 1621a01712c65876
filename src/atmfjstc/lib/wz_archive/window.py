"""
This module provides `BoundedWindow`, a read-only file object restricted to a region of a larger file object.
"""

from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional, Union
from os import SEEK_SET, SEEK_CUR, SEEK_END
from io import BufferedIOBase, IOBase, TextIOBase

from atmfjstc.lib.file_utils.fileobj import get_fileobj_size as file_utils_get_fileobj_size

from .errors import WindowConstructionError, WindowSeekOutOfRangeError, WindowUnsupportedOperationError


END_OF_WINDOW = -1
"""
Returned by `BoundedWindow.read_byte` when there are no more bytes in the window.
"""


class BoundedWindow(BufferedIOBase):
    """
    A virtual file object that reads within a region ("window") of another file object's data.

    The window has a fixed start (`origin`) and `length` in the backing file object, and its own cursor. Positions
    are always reported and accepted relative to the start of the window.

    Caveats:

    - Every read saves the backing file object's position, repositions it to the window's cursor, reads, and then
      restores the saved position. Thus, the backing file object may be freely used by other readers in between calls,
      but NOT while a call is in progress (e.g. from another thread). Use external locking or separate file handles
      if windows are to be read concurrently.
    - Unlike with regular file objects, `seek` is strict: it is not possible to seek outside of ``[0, length)``, and
      it returns the *previous* position rather than the new one.
    - Closing the backing file object renders the window unusable. Closing the window has no effect on the backing.
    """

    _backing: BinaryIO

    _origin: int
    _length: int
    _end: int
    _cursor: int

    def __init__(self, backing: BinaryIO, start: int, length: int):
        """
        Constructor.

        Args:
            backing: The underlying file object. It must be binary and seekable.
            start: The absolute offset of the window within the backing file object. It must point inside the data.
            length: The length of the window. The window must not extend past the end of the backing data.

        Raises:
            WindowConstructionError: If any of the above conditions are not met.
        """
        if (not isinstance(backing, IOBase)) or isinstance(backing, TextIOBase):
            raise WindowConstructionError("The backing of a window must be a binary file object")
        if backing.closed:
            raise WindowConstructionError("The backing of a window must be open")
        if not backing.seekable():
            raise WindowConstructionError("The backing of a window must be seekable")
        if (start < 0) or (length < 0):
            raise WindowConstructionError(f"Window start and length must be non-negative (are: {start}, {length})")

        total_size = get_fileobj_size(backing)

        if start >= total_size:
            raise WindowConstructionError(f"Window start {start} falls outside the backing data (size {total_size})")
        if start + length > total_size:
            raise WindowConstructionError(
                f"Window [{start}, {start + length}) extends past the end of the backing data (size {total_size})"
            )

        self._backing = backing
        self._origin = start
        self._length = length
        self._end = start + length
        self._cursor = start

    @property
    def origin(self) -> int:
        return self._origin

    @property
    def length(self) -> int:
        return self._length

    @property
    def end(self) -> int:
        return self._end

    @property
    def position(self) -> int:
        return self._cursor - self._origin

    @position.setter
    def position(self, value: int):
        if not (0 <= value <= self._length):
            raise WindowSeekOutOfRangeError(value, self._length)

        self._cursor = self._origin + value

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    def seek(self, offset: int, whence: int = SEEK_SET) -> int:
        """
        Moves the cursor within the window.

        Args:
            offset: The offset relative to the point indicated by `whence`. Can be negative.
            whence: `SEEK_SET` for the start of the window, `SEEK_CUR` for the cursor, `SEEK_END` for the end.

        Returns:
            The position BEFORE the seek, relative to the window start.

        Raises:
            WindowSeekOutOfRangeError: If the target is outside of the window. The cursor is not moved.
        """
        self._check_not_closed()

        if whence == SEEK_SET:
            target = self._origin + offset
        elif whence == SEEK_CUR:
            target = self._cursor + offset
        elif whence == SEEK_END:
            target = self._end + offset
        else:
            raise ValueError("whence should be os.SEEK_{SET|CUR|END}")

        if not (self._origin <= target < self._end):
            raise WindowSeekOutOfRangeError(target - self._origin, self._length)

        previous = self.position
        self._cursor = target

        return previous

    def tell(self) -> int:
        self._check_not_closed()

        return self.position

    def readinto(self, buffer: Union[bytearray, memoryview]) -> int:
        self._check_not_closed()

        view = memoryview(buffer).cast('B')
        count = min(len(view), max(0, self._end - self._cursor))

        if count == 0:
            return 0

        with _preserve_position(self._backing):
            set_fileobj_position(self._backing, self._cursor)
            n_read = self._backing.readinto(view[:count]) or 0
            self._cursor += n_read

            assert self._backing.tell() == self._cursor

        return n_read

    def readinto1(self, buffer: Union[bytearray, memoryview]) -> int:
        return self.readinto(buffer)

    def read(self, size: Optional[int] = -1) -> bytes:
        self._check_not_closed()

        remaining = max(0, self._end - self._cursor)
        if (size is None) or (size < 0):
            size = remaining

        data = bytearray(min(size, remaining))
        total_read = 0

        while total_read < len(data):
            n_read = self.readinto(memoryview(data)[total_read:])
            if n_read == 0:
                break

            total_read += n_read

        return bytes(data[:total_read])

    def read1(self, size: int = -1) -> bytes:
        return self.read(size)

    def read_byte(self) -> int:
        """
        Reads a single byte.

        Returns:
            The byte value (0-255), or `END_OF_WINDOW` if the cursor is at the end of the window.
        """
        self._check_not_closed()

        if self._cursor >= self._end:
            return END_OF_WINDOW

        with _preserve_position(self._backing):
            set_fileobj_position(self._backing, self._cursor)
            data = self._backing.read(1)

            if len(data) == 0:
                return END_OF_WINDOW

            self._cursor += 1

            assert self._backing.tell() == self._cursor

        return data[0]

    def write(self, data) -> int:
        raise WindowUnsupportedOperationError("A window is not writable")

    def truncate(self, size: Optional[int] = None) -> int:
        raise WindowUnsupportedOperationError("A window cannot be resized")

    def _check_not_closed(self):
        if self.closed:
            raise ValueError("I/O operation on closed window")


def set_fileobj_position(fileobj: BinaryIO, position: int):
    """
    Sets the absolute position of a file object. Unlike a plain `seek`, this also works for a `BoundedWindow` whose
    position is to be set to the end of the window (which is a valid place for the cursor, but not a valid seek target).
    """
    if isinstance(fileobj, BoundedWindow):
        fileobj.position = position
    else:
        fileobj.seek(position, SEEK_SET)


def get_fileobj_size(fileobj: BinaryIO) -> int:
    """
    Gets the total size of a seekable file object. Its position is restored when the function returns.
    """
    if isinstance(fileobj, BoundedWindow):
        return fileobj.length

    return file_utils_get_fileobj_size(fileobj)


@contextmanager
def _preserve_position(fileobj: BinaryIO) -> Iterator[int]:
    original_pos = fileobj.tell()

    try:
        yield original_pos
    finally:
        set_fileobj_position(fileobj, original_pos)
