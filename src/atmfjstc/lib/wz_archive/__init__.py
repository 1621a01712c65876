"""
Low-level decoding utilities for WZ archives.

This package does not parse the directory or property tree of an archive. Rather, it provides the building blocks
such parsing relies on:

- `BoundedWindow` (in `.window`): a read-only, seekable file object restricted to a region of a larger file object, so
  that nested parts of an archive can be read independently without copying data
- `WZReader` (in `.WZReader`): a reader for the archive's primitive encodings, i.e. compact ints, dual-encoded strings
  (with offset-based deduplication) and obfuscated offsets
- `WZStringDecryptor` (in `.decrypt`): the interface through which string data is decrypted. The key material itself
  must be supplied by the caller.

Note that owing to the interpreted nature of Python, these utilities are not particularly fast. Archives with hundreds
of thousands of entries will take a while to traverse.
"""


__version__ = '1.0.0'
