"""
This module contains the `WZReader` class, a wrapper for binary I/O streams that offers functions for extracting the
primitive values a WZ archive is made of: little-endian ints, compact ints, encrypted strings and obfuscated offsets.
"""

import logging
import struct

from contextlib import contextmanager
from typing import Union, BinaryIO, Optional, Callable, Iterator, TypeVar
from io import BytesIO, IOBase, TextIOBase
from os import SEEK_SET, SEEK_CUR, SEEK_END

from .decrypt import WZStringDecryptor
from .errors import WZMissingDataError, WZReadPastEndError, WZNullStrReadPastEndError, WZNullStrTooLongError, \
    WZUnknownStringBlockTagError, WZNegativeStringLengthError
from .low_level import COMPACT_INT_ESCAPE, WIDE_LENGTH_ESCAPE, NARROW_LENGTH_ESCAPE, DEFAULT_OFFSET_KEY, UINT32_MASK, \
    StringBlockTag, StringEncoding, classify_length_prefix, deobfuscate_offset
from .window import set_fileobj_position, get_fileobj_size


LOG = logging.getLogger(__name__)

T = TypeVar('T')


class WZReader:
    """
    This class wraps a seekable binary file object and offers functions for extracting the values stored in a WZ
    archive.

    Besides the file object, the reader holds the decryptor used for strings and the archive's version hash, which is
    needed for decoding offsets. The version hash can be changed at any time (e.g. while trying out candidate
    versions for an archive); every subsequent offset decode uses the new value.

    The reader does not take ownership of the file object and never closes it. To read a region of an archive with
    positions relative to the start of the region, wrap the file object in a `BoundedWindow` first.
    """

    _fileobj: BinaryIO
    _decryptor: WZStringDecryptor
    _version_hash: int
    _offset_key: int

    def __init__(
        self, data_or_fileobj: Union[bytes, BinaryIO], decryptor: WZStringDecryptor, version_hash: int = 0,
        offset_key: int = DEFAULT_OFFSET_KEY
    ):
        """
        Constructor.

        Args:
            data_or_fileobj: Either the archive data as a `bytes` object, or a binary, seekable file object.
            decryptor: The decryptor that will be used for the WZ-encoded strings.
            version_hash: The initial version hash, used for decoding offsets.
            offset_key: The offset key constant, used for decoding offsets. Almost all archives use the default.
        """
        self._fileobj = _parse_main_input_arg(data_or_fileobj)
        self._decryptor = decryptor
        self._version_hash = version_hash & UINT32_MASK
        self._offset_key = offset_key & UINT32_MASK

    @property
    def decryptor(self) -> WZStringDecryptor:
        return self._decryptor

    @property
    def offset_key(self) -> int:
        return self._offset_key

    @property
    def version_hash(self) -> int:
        return self._version_hash

    @version_hash.setter
    def version_hash(self, value: int):
        value &= UINT32_MASK

        if value != self._version_hash:
            LOG.debug("Version hash changed from 0x%08x to 0x%08x", self._version_hash, value)

        self._version_hash = value

    def tell(self) -> int:
        return self._fileobj.tell()

    def seek(self, offset: int, whence: int = SEEK_SET) -> 'WZReader':
        self.jump(offset, whence)

        return self

    def jump(self, offset: int, whence: int = SEEK_SET) -> int:
        """
        Moves to a new position in the underlying stream.

        Args:
            offset: The offset to move to, relative to the point indicated by `whence`.
            whence: `SEEK_SET` (the default) for the start of the data, `SEEK_CUR` for the current position, `SEEK_END`
                for the end.

        Returns:
            The absolute position before the jump.
        """

        original_pos = self.tell()

        if whence == SEEK_SET:
            target = offset
        elif whence == SEEK_CUR:
            target = original_pos + offset
        elif whence == SEEK_END:
            target = self.total_size() + offset
        else:
            raise ValueError("whence should be os.SEEK_{SET|CUR|END}")

        if target < 0:
            raise ValueError(f"Cannot jump to negative position {target}")

        set_fileobj_position(self._fileobj, target)

        return original_pos

    def skip(self, n_bytes: int):
        """
        Advances the position by `n_bytes` without reading anything. No check is made that the data is actually there.
        """
        self.jump(n_bytes, SEEK_CUR)

    @contextmanager
    def peek(self) -> Iterator[int]:
        """
        Context manager that restores the reader's position once the context closes, even if an exception occurred.

        Example use::

            with reader.peek():
                reader.jump(header_offset)
                header = reader.read_struct('IIQ')

            # the position is now back where it was

        Returns:
            The context manager returns the original position.
        """

        original_pos = self.tell()

        try:
            yield original_pos
        finally:
            set_fileobj_position(self._fileobj, original_pos)

    def peek_for(self, func: Callable[..., T], *args, **kwargs) -> T:
        """
        Calls `func` with the given arguments, then restores the reader's position. Returns whatever `func` returned.
        """
        with self.peek():
            return func(*args, **kwargs)

    def total_size(self) -> int:
        return get_fileobj_size(self._fileobj)

    def bytes_remaining(self) -> int:
        return max(0, self.total_size() - self.tell())

    def eof(self) -> bool:
        return self.bytes_remaining() == 0

    def read_at_most(self, n_bytes: int) -> bytes:
        """
        Try to read `n_bytes` of data, returning fewer only if the data is exhausted. Short reads are handled.
        """

        if n_bytes < 0:
            raise ValueError("The number of bytes to read cannot be negative")
        if n_bytes == 0:
            return b''

        data = self._fileobj.read(n_bytes)

        while len(data) < n_bytes:
            new_data = self._fileobj.read(n_bytes - len(data))

            if len(new_data) == 0:
                break

            data += new_data

        return data

    def read_amount(self, n_bytes: int, meaning: Optional[str] = None) -> bytes:
        """
        Reads exactly `n_bytes` from the underlying stream.

        Args:
            n_bytes: The amount of bytes to read.
            meaning: An indication as to the meaning of the data being read (e.g. "entry count"). It is used in the
                text of any exceptions that may be thrown.

        Raises:
            WZMissingDataError: If we are at the end of the stream and no bytes are left at all.
            WZReadPastEndError: If we read some bytes, but reached the end of the data before we got the full
                `n_bytes`.
        """

        if n_bytes == 0:
            return b''

        original_pos = self.tell()

        data = self.read_at_most(n_bytes)

        if len(data) == 0:
            raise WZMissingDataError(original_pos, n_bytes, meaning)
        if len(data) < n_bytes:
            raise WZReadPastEndError(original_pos, n_bytes, len(data), meaning)

        return data

    def read_struct(self, struct_format: str, meaning: Optional[str] = None) -> tuple:
        """
        Reads structured data from the underlying stream.

        Args:
            struct_format: The format of the structured data, as per the Python `struct` package. Little-endian order
                is assumed unless the format specifies otherwise.
            meaning: An indication as to the meaning of the data being read. It is used in the text of any exceptions
                that may be thrown.
        """

        if struct_format == '':
            return ()
        if struct_format[0] not in '@=<>!':
            struct_format = '<' + struct_format

        meaning = meaning or f"struct ({struct_format})"

        data = self.read_amount(struct.calcsize(struct_format), meaning)

        return struct.unpack(struct_format, data)

    def read_fixed_size_int(self, n_bytes: int, meaning: Optional[str] = None, signed: bool = False) -> int:
        """
        Reads a little-endian integer stored in a given number of bytes.
        """

        if n_bytes < 1:
            raise ValueError("Number of bytes in int must be at least 1")

        return int.from_bytes(self.read_amount(n_bytes, meaning=meaning or 'int'), byteorder='little', signed=signed)

    def read_int8(self, meaning: Optional[str] = None) -> int:
        return self.read_fixed_size_int(1, meaning, signed=True)

    def read_uint8(self, meaning: Optional[str] = None) -> int:
        return self.read_fixed_size_int(1, meaning)

    def read_int16(self, meaning: Optional[str] = None) -> int:
        return self.read_fixed_size_int(2, meaning, signed=True)

    def read_uint16(self, meaning: Optional[str] = None) -> int:
        return self.read_fixed_size_int(2, meaning)

    def read_int32(self, meaning: Optional[str] = None) -> int:
        return self.read_fixed_size_int(4, meaning, signed=True)

    def read_uint32(self, meaning: Optional[str] = None) -> int:
        return self.read_fixed_size_int(4, meaning)

    def read_int64(self, meaning: Optional[str] = None) -> int:
        return self.read_fixed_size_int(8, meaning, signed=True)

    def read_uint64(self, meaning: Optional[str] = None) -> int:
        return self.read_fixed_size_int(8, meaning)

    def read_float32(self, meaning: Optional[str] = None) -> float:
        return self.read_struct('f', meaning or 'float')[0]

    def read_float64(self, meaning: Optional[str] = None) -> float:
        return self.read_struct('d', meaning or 'double')[0]

    def read_null_terminated_bytes(
        self, meaning: Optional[str] = None, safety_limit: Optional[int] = 65536, buffer_size: int = 4096
    ) -> bytes:
        """
        Reads a null-terminated byte string. The data is read in blocks of `buffer_size`, and the position is then
        moved to right after the null terminator.

        Args:
            meaning: An indication as to the meaning of the data being read (e.g. "copyright notice"). It is used in the
                text of any exceptions that may be thrown.
            safety_limit: The maximum expected size of the string, including the null terminator, or None to disable
                the check. This prevents loading huge amounts of data into memory if the string is corrupt.
            buffer_size: The size of the chunks the string is read in.

        Returns:
            The byte string, without the null terminator.

        Raises:
            WZNullStrTooLongError: If the string is clearly longer than the `safety_limit`.
            WZNullStrReadPastEndError: If we reached the end of the data without encountering the null terminator.
            WZMissingDataError: If we are at the end of the stream and no bytes are left at all.
        """

        if (safety_limit is not None) and safety_limit < 1:
            raise ValueError(f"safety_limit must be strictly positive! (is: {safety_limit})")
        if buffer_size < 1:
            raise ValueError(f"buffer_size must be strictly positive! (is: {buffer_size})")

        original_pos = self.tell()

        data_parts = []
        total_length = 0

        while True:
            data = self.read_at_most(buffer_size)

            if len(data) == 0:
                if len(data_parts) == 0:
                    raise WZMissingDataError(original_pos, 1, meaning or 'null-terminated string')

                raise WZNullStrReadPastEndError(original_pos, meaning)

            null_pos = data.find(b'\x00')
            if null_pos != -1:
                data_parts.append(data[:null_pos])
                total_length += null_pos + 1
                break

            data_parts.append(data)
            total_length += len(data)
            if (safety_limit is not None) and (total_length > safety_limit):
                break

        if (safety_limit is not None) and (total_length > safety_limit):
            raise WZNullStrTooLongError(original_pos, safety_limit, meaning)

        data = b''.join(data_parts)

        self.jump(original_pos + len(data) + 1)

        return data

    def read_ascii_string(self, length: int, meaning: Optional[str] = None) -> str:
        """
        Reads an unencrypted single-byte string of a fixed length (e.g. the archive signature).
        """
        return self.read_amount(length, meaning or 'ASCII string').decode('ascii', errors='replace')

    def read_ascii_z_string(self, meaning: Optional[str] = None, safety_limit: Optional[int] = 65536) -> str:
        """
        Reads an unencrypted, null-terminated single-byte string (e.g. the archive copyright notice).
        """
        return self.read_null_terminated_bytes(meaning, safety_limit=safety_limit).decode('latin-1')

    def read_compact_int(self, meaning: Optional[str] = None) -> int:
        """
        Reads a WZ compact int: a signed byte, or, if that byte is -128, the signed 32-bit int following it.
        """
        value = self.read_int8(meaning or 'compact int')

        return self.read_int32(meaning or 'compact int') if value == COMPACT_INT_ESCAPE else value

    def read_wz_string(self, encrypted: bool = True) -> str:
        """
        Reads a string encoded in WZ format.

        The string starts with a signed byte. If positive, it gives the number of UTF-16 code units that follow (127
        meaning that the actual count follows as a 32-bit int). If negative, its magnitude gives the number of
        single-byte characters that follow (-128 meaning that the actual count follows as a 32-bit int). A zero
        denotes an empty string.

        Args:
            encrypted: Whether the string data is encrypted. It is passed on to the decryptor.

        Returns:
            The decoded string.

        Raises:
            WZNegativeStringLengthError: If an overriding length is negative.
            WZEndOfStreamError: If the data ends before the whole string could be read.
        """

        original_pos = self.tell()

        prefix = self.read_int8('string length')
        encoding = classify_length_prefix(prefix)

        if encoding == StringEncoding.EMPTY:
            return ''

        if encoding == StringEncoding.WIDE:
            length = self.read_int32('string length') if prefix == WIDE_LENGTH_ESCAPE else prefix
        else:
            length = self.read_int32('string length') if prefix == NARROW_LENGTH_ESCAPE else -prefix

        if length == 0:
            return ''
        if length < 0:
            raise WZNegativeStringLengthError(original_pos, length)

        if encoding == StringEncoding.WIDE:
            units = struct.unpack(f'<{length}H', self.read_amount(length * 2, 'string data'))
            return self._decryptor.decrypt_unicode(units, encrypted)

        return self._decryptor.decrypt_ascii(self.read_amount(length, 'string data'), encrypted)

    def read_wz_string_at_offset(self, offset: int, encrypted: bool = True) -> str:
        """
        Reads a WZ string located at a given absolute offset, then returns to the original position (even if reading
        the string failed).
        """
        with self.peek():
            self.jump(offset)
            return self.read_wz_string(encrypted)

    def read_string_block(self, encrypted: bool = True) -> str:
        """
        Reads a string block, i.e. a tag byte followed by either an inline WZ string, or the absolute offset of a WZ
        string stored elsewhere (through which the archive deduplicates commonly used strings).

        When reading an image through a `BoundedWindow`, offsets are relative to the start of the image, as the
        format requires.

        Raises:
            WZUnknownStringBlockTagError: If the tag is not recognized. The parse cannot reasonably continue after this.
        """

        original_pos = self.tell()

        raw_tag = self.read_uint8('string block tag')
        tag = StringBlockTag.from_byte(raw_tag)

        if tag is None:
            raise WZUnknownStringBlockTagError(original_pos, raw_tag)

        if tag.is_offset:
            offset = self.read_int32('string block offset')
            LOG.debug("String block at %d refers to string at offset %d", original_pos, offset)
            return self.read_wz_string_at_offset(offset, encrypted)

        return self.read_wz_string(encrypted)

    def read_obfuscated_offset(self, section_start: int) -> int:
        """
        Reads a 4-byte obfuscated offset and returns the actual offset it points to.

        The decoding depends on the current position and on the reader's current version hash.

        Args:
            section_start: The absolute position of the start of the archive's data section.
        """

        position = self.tell() & UINT32_MASK
        stored = self.read_uint32('obfuscated offset')

        return deobfuscate_offset(position, section_start, self._version_hash, stored, self._offset_key)


def _parse_main_input_arg(input_: Union[bytes, BinaryIO]) -> BinaryIO:
    if isinstance(input_, (bytes, bytearray)):
        return BytesIO(input_)

    if not isinstance(input_, IOBase):
        raise TypeError("Input to WZReader must be either bytes or a file object")
    if isinstance(input_, TextIOBase):
        raise TypeError("WZReader works on binary, not text file objects")
    if not input_.seekable():
        raise ValueError("WZReader requires a seekable file object")

    return input_
