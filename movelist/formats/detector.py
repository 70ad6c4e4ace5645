"""
File format detection.

Sniffs the header of a buffer and tells which of the three move-list
encodings it holds. Detection never raises; an unknown buffer is reported
as UNRECOGNIZED and the caller turns that into a load failure.
"""

from enum import Enum

from movelist.formats.binary import BufferReader

NATIVE_MAGIC = b"Hantei6DataFile"
PACKED_MAGIC = b"Hantei4"
STRING_TABLE_TAG = b"_STR"
PATTERN_START_TAG = b"PSTR"

NATIVE_HEADER_SIZE = 0x20
PACKED_HEADER_SIZE = 64
LEGACY_HEADER_OFFSETS = (0x00, 0x10, 0x20)
SCAN_LIMIT = 256


class FileFormat(Enum):
    """On-disk encodings."""
    NATIVE_TAG = "native_tag"
    LEGACY_TAG = "legacy_tag"
    LEGACY_PACKED = "legacy_packed"
    UNRECOGNIZED = "unrecognized"


def detect_format(data, byte_length: int = None) -> FileFormat:
    """
    Identify the encoding of a buffer.

    Args:
        data: Raw file contents (bytes-like)
        byte_length: Logical length; defaults to len(data)

    Returns:
        FileFormat tag
    """
    reader = data if isinstance(data, BufferReader) else BufferReader(data, byte_length)
    size = reader.length

    # Packed magic is decisive; a short packed file is not retried as a tag format
    if reader.matches(0, PACKED_MAGIC):
        if size > PACKED_HEADER_SIZE:
            return FileFormat.LEGACY_PACKED
        return FileFormat.UNRECOGNIZED

    if reader.matches(0, NATIVE_MAGIC):
        return FileFormat.NATIVE_TAG

    if size > 32:
        for offset in LEGACY_HEADER_OFFSETS:
            if reader.matches(offset, STRING_TABLE_TAG):
                return FileFormat.LEGACY_TAG

    # Last resort: look for a pattern-start tag near the top of the file
    for offset in range(0, min(size, SCAN_LIMIT), 4):
        if reader.matches(offset, PATTERN_START_TAG):
            if offset >= NATIVE_HEADER_SIZE and reader.matches(0, NATIVE_MAGIC):
                return FileFormat.NATIVE_TAG
            return FileFormat.LEGACY_TAG

    return FileFormat.UNRECOGNIZED


def find_string_table(data, fmt: FileFormat, byte_length: int = None) -> int:
    """
    Offset of the "_STR" tag that opens a tag-format file, or -1.

    Native files carry it right after the 32-byte header; legacy files at
    one of the known header sizes.
    """
    reader = data if isinstance(data, BufferReader) else BufferReader(data, byte_length)

    if fmt == FileFormat.NATIVE_TAG:
        return NATIVE_HEADER_SIZE if reader.matches(NATIVE_HEADER_SIZE, STRING_TABLE_TAG) else -1

    if fmt == FileFormat.LEGACY_TAG:
        for offset in LEGACY_HEADER_OFFSETS:
            if reader.matches(offset, STRING_TABLE_TAG):
                return offset
    return -1


def find_pattern_start(data, byte_length: int = None) -> int:
    """Offset of the first "PSTR" tag in the scanned header area, or -1."""
    reader = data if isinstance(data, BufferReader) else BufferReader(data, byte_length)
    for offset in range(0, min(reader.length, SCAN_LIMIT), 4):
        if reader.matches(offset, PATTERN_START_TAG):
            return offset
    return -1
