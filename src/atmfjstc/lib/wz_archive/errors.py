from io import UnsupportedOperation
from typing import Optional


class WindowConstructionError(ValueError):
    """
    Raised when a `BoundedWindow` is created over an unsuitable backing file object, or with bounds that fall outside
    of it.
    """


class WindowSeekOutOfRangeError(ValueError):
    window_length: int
    target: int

    def __init__(self, target: int, window_length: int):
        self.target = target
        self.window_length = window_length

        super().__init__(f"Cannot seek to position {target}, outside of the window [0, {window_length})")


class WindowUnsupportedOperationError(UnsupportedOperation):
    """
    Raised for any attempt to write to or resize a `BoundedWindow`, which is read-only and fixed-length.
    """


class WZKeystreamTooShortError(ValueError):
    required_length: int
    keystream_length: int

    def __init__(self, required_length: int, keystream_length: int):
        self.required_length = required_length
        self.keystream_length = keystream_length

        super().__init__(
            f"Decrypting this string requires {required_length} bytes of keystream, but only {keystream_length} "
            f"are available"
        )


class WZFormatError(Exception):
    """
    Base class for all situations where the archive data does not match the expected format.
    """


class WZEndOfStreamError(WZFormatError):
    """
    Raised when the data ends before a fixed-size value could be read in full.
    """


class WZReadPastEndError(WZEndOfStreamError):
    position: int
    expected_length: int
    actual_length: int
    meaning: Optional[str]

    def __init__(self, position: int, expected_length: int, actual_length: int, meaning: Optional[str]):
        self.position = position
        self.expected_length = expected_length
        self.actual_length = actual_length
        self.meaning = meaning

        super().__init__(
            f"At position {position}, expected {expected_length} "
            f"bytes{f' for {meaning}' if meaning is not None else ''}"
            f", but only {actual_length} were found"
        )


class WZMissingDataError(WZEndOfStreamError):
    position: int
    expected_length: int
    meaning: Optional[str]

    def __init__(self, position: int, expected_length: int, meaning: Optional[str]):
        self.position = position
        self.expected_length = expected_length
        self.meaning = meaning

        super().__init__(
            f"At position {position}, expected {expected_length} "
            f"bytes{f' for {meaning}' if meaning is not None else ''}"
            f", but the data ends"
        )


class WZUnknownStringBlockTagError(WZFormatError):
    position: int
    tag: int

    def __init__(self, position: int, tag: int):
        self.position = position
        self.tag = tag

        super().__init__(f"At position {position}, found unknown string block tag 0x{tag:02x}")


class WZNegativeStringLengthError(WZFormatError):
    position: int
    length: int

    def __init__(self, position: int, length: int):
        self.position = position
        self.length = length

        super().__init__(f"At position {position}, string length override is negative ({length})")


class WZNullStrReadPastEndError(WZFormatError):
    position: int
    meaning: Optional[str]

    def __init__(self, position: int, meaning: Optional[str]):
        self.position = position
        self.meaning = meaning

        super().__init__(
            f"At position {position}, null-terminated string{f' for {meaning}' if meaning is not None else ''} "
            f"starts but end of the data occurs without the null terminator being found"
        )


class WZNullStrTooLongError(WZFormatError):
    position: int
    max_length: int
    meaning: Optional[str]

    def __init__(self, position: int, max_length: int, meaning: Optional[str]):
        self.position = position
        self.max_length = max_length
        self.meaning = meaning

        super().__init__(
            f"At position {position}, null-terminated string{f' for {meaning}' if meaning is not None else ''} "
            f"exceeds maximum length of {max_length}, possibly due to corrupt data"
        )
