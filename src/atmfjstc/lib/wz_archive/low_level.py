"""
Constants, enums and pure functions describing the primitive encodings of WZ archives.

These are useful for the reader in this package but rarely needed directly otherwise.
"""

from enum import Enum, IntEnum
from typing import Optional


COMPACT_INT_ESCAPE = -128
"""
Signed byte value that, in place of a compact int, signals that a full 32-bit signed int follows.
"""

WIDE_LENGTH_ESCAPE = 127
NARROW_LENGTH_ESCAPE = -128

DEFAULT_OFFSET_KEY = 0x581C3F6D
"""
The constant subtracted during offset de-obfuscation by practically all known archives.
"""

UINT32_MASK = 0xFFFFFFFF


class StringBlockTag(IntEnum):
    """
    The tag byte preceding a string block. Inline tags are followed by an encoded string, offset tags by the 32-bit
    absolute offset of an encoded string stored elsewhere in the archive.
    """

    INLINE = 0x00
    OFFSET = 0x01
    OFFSET_ALT = 0x1B
    INLINE_ALT = 0x73

    @property
    def is_offset(self) -> bool:
        return self in (StringBlockTag.OFFSET, StringBlockTag.OFFSET_ALT)

    @classmethod
    def from_byte(cls, value: int) -> Optional['StringBlockTag']:
        try:
            return cls(value)
        except ValueError:
            return None


class StringEncoding(Enum):
    EMPTY = 'empty'
    WIDE = 'wide'
    NARROW = 'narrow'


def classify_length_prefix(prefix: int) -> StringEncoding:
    """
    Determines the encoding of a WZ string from the sign of its (signed byte) length prefix.

    Positive values denote UTF-16 code units, negative ones denote single-byte characters (the count being the
    magnitude), and zero an empty string.
    """
    if prefix == 0:
        return StringEncoding.EMPTY

    return StringEncoding.WIDE if prefix > 0 else StringEncoding.NARROW


def rotate_left_32(value: int, amount: int) -> int:
    """
    Rotates a 32-bit unsigned value left by `amount` bits. Only the low 5 bits of `amount` are considered, thus a
    rotation by a multiple of 32 (including 0) leaves the value unchanged.
    """
    value &= UINT32_MASK
    amount &= 31

    if amount == 0:
        return value

    return ((value << amount) | (value >> (32 - amount))) & UINT32_MASK


def deobfuscate_offset(
    position: int, section_start: int, version_hash: int, stored: int, offset_key: int = DEFAULT_OFFSET_KEY
) -> int:
    """
    Recovers an offset stored in obfuscated form in a WZ archive.

    All arithmetic is performed modulo 2^32, exactly as the archive format requires.

    Args:
        position: The absolute position in the archive where the obfuscated field starts.
        section_start: The absolute position of the start of the archive's data section (i.e. right after the header).
        version_hash: The hash derived from the archive's version.
        stored: The 4-byte obfuscated field, read as an unsigned little-endian int.
        offset_key: The offset key constant.

    Returns:
        The actual absolute offset, as a 32-bit unsigned int.
    """

    key = ((position - section_start) & UINT32_MASK) ^ UINT32_MASK
    key = (key * version_hash) & UINT32_MASK
    key = (key - offset_key) & UINT32_MASK
    key = rotate_left_32(key, key & 31)

    return ((key ^ stored) + section_start * 2) & UINT32_MASK
