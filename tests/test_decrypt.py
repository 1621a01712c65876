import unittest

from atmfjstc.lib.wz_archive.decrypt import WZStringDecryptor, XorKeystreamDecryptor
from atmfjstc.lib.wz_archive.errors import WZKeystreamTooShortError


def _encrypt_ascii(text: str, keystream: bytes = b'') -> bytes:
    key = keystream or bytes(len(text))
    return bytes(ord(c) ^ ((0xAA + i) & 0xFF) ^ key[i] for i, c in enumerate(text))


def _encrypt_unicode(text: str) -> list:
    return [ord(c) ^ ((0xAAAA + i) & 0xFFFF) for i, c in enumerate(text)]


class XorKeystreamDecryptorTest(unittest.TestCase):
    def test_ascii_plain(self):
        self.assertEqual(XorKeystreamDecryptor().decrypt_ascii(b'Property', False), 'Property')

    def test_ascii_zero_key(self):
        self.assertEqual(XorKeystreamDecryptor().decrypt_ascii(_encrypt_ascii('Property'), True), 'Property')

    def test_ascii_with_keystream(self):
        keystream = bytes([0x13, 0x37, 0xC0, 0xDE, 0x00, 0xFF])

        decryptor = XorKeystreamDecryptor(keystream)

        self.assertEqual(decryptor.decrypt_ascii(_encrypt_ascii('Map', keystream), True), 'Map')

    def test_ascii_mask_wraps(self):
        text = 'x' * 300

        self.assertEqual(XorKeystreamDecryptor().decrypt_ascii(_encrypt_ascii(text), True), text)

    def test_unicode_plain(self):
        self.assertEqual(XorKeystreamDecryptor().decrypt_unicode([0x41, 0x20AC], False), 'A€')

    def test_unicode_zero_key(self):
        self.assertEqual(XorKeystreamDecryptor().decrypt_unicode(_encrypt_unicode('메이플'), True),
                         '메이플')

    def test_unicode_with_keystream(self):
        keystream = bytes([0x01, 0x02, 0x03, 0x04])
        units = [0x41 ^ 0xAAAA ^ 0x0201, 0x42 ^ 0xAAAB ^ 0x0403]

        self.assertEqual(XorKeystreamDecryptor(keystream).decrypt_unicode(units, True), 'AB')

    def test_keystream_too_short(self):
        decryptor = XorKeystreamDecryptor(b'\x01\x02')

        with self.assertRaises(WZKeystreamTooShortError):
            decryptor.decrypt_ascii(b'abc', True)
        with self.assertRaises(WZKeystreamTooShortError):
            decryptor.decrypt_unicode([1, 2], True)

    def test_short_keystream_irrelevant_when_plain(self):
        self.assertEqual(XorKeystreamDecryptor(b'\x01').decrypt_ascii(b'abc', False), 'abc')

    def test_interface_is_abstract(self):
        with self.assertRaises(TypeError):
            WZStringDecryptor()


if __name__ == '__main__':
    unittest.main()
