"""
String decryption for WZ archives.

Strings in a WZ archive are stored XOR-ed with a keystream (derived from an AES key and IV specific to the game
region) and an incrementing mask. Deriving the keystream is outside the scope of this package; the reader only
interacts with the `WZStringDecryptor` interface, and `XorKeystreamDecryptor` is provided for callers who already
have the keystream bytes.
"""

import struct

from abc import ABCMeta, abstractmethod
from typing import Sequence

from .errors import WZKeystreamTooShortError


class WZStringDecryptor(metaclass=ABCMeta):
    """
    Converts the raw data of a WZ string into text, decrypting it if necessary.

    Implementations should be pure functions of their arguments and the key material they hold.
    """

    @abstractmethod
    def decrypt_unicode(self, raw_units: Sequence[int], encrypted: bool) -> str:
        """
        Args:
            raw_units: The raw 16-bit code units, as read from the archive.
            encrypted: Whether the string is encrypted.
        """
        raise NotImplementedError

    @abstractmethod
    def decrypt_ascii(self, raw_bytes: bytes, encrypted: bool) -> str:
        """
        Args:
            raw_bytes: The raw single-byte characters, as read from the archive.
            encrypted: Whether the string is encrypted.
        """
        raise NotImplementedError


class XorKeystreamDecryptor(WZStringDecryptor):
    """
    Decrypts strings given a precomputed keystream.

    For encrypted strings, each element is XOR-ed with the corresponding keystream element and with a mask that
    starts at 0xAA (0xAAAA for code units) and is incremented after every element. Unencrypted strings are returned
    as-is. An empty keystream is appropriate for archives whose key is all zeros.

    Single-byte strings are interpreted as Latin-1.
    """

    _keystream: bytes

    def __init__(self, keystream: bytes = b''):
        self._keystream = bytes(keystream)

    @property
    def keystream(self) -> bytes:
        return self._keystream

    def decrypt_unicode(self, raw_units: Sequence[int], encrypted: bool) -> str:
        units = list(raw_units)

        if encrypted:
            key_units = self._key_units(len(units))
            mask = 0xAAAA

            for i in range(len(units)):
                units[i] ^= mask ^ key_units[i]
                mask = (mask + 1) & 0xFFFF

        return struct.pack(f'<{len(units)}H', *units).decode('utf-16-le', errors='surrogatepass')

    def decrypt_ascii(self, raw_bytes: bytes, encrypted: bool) -> str:
        data = bytearray(raw_bytes)

        if encrypted:
            key_bytes = self._key_bytes(len(data))
            mask = 0xAA

            for i in range(len(data)):
                data[i] ^= mask ^ key_bytes[i]
                mask = (mask + 1) & 0xFF

        return data.decode('latin-1')

    def _key_bytes(self, count: int) -> bytes:
        if len(self._keystream) == 0:
            return bytes(count)
        if len(self._keystream) < count:
            raise WZKeystreamTooShortError(count, len(self._keystream))

        return self._keystream[:count]

    def _key_units(self, count: int) -> Sequence[int]:
        return struct.unpack(f'<{count}H', self._key_bytes(count * 2))
