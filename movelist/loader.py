"""
Move-list loading entry points.

decode() sniffs the encoding of a buffer, dispatches to the matching
decoder and fills a SequenceTable. It never raises for malformed input:
fatal problems come back as success=False with the reason in the
diagnostics, everything else is logged and defaulted.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from movelist.config import LoaderConfig, get_config
from movelist.diagnostics import DecodeLog
from movelist.errors import FatalFormatError
from movelist.formats.assembler import TagFileDecoder
from movelist.formats.binary import BufferReader
from movelist.formats.detector import (
    FileFormat,
    NATIVE_HEADER_SIZE,
    detect_format,
    find_string_table,
    find_pattern_start,
)
from movelist.formats.frame_tags import TagDialect
from movelist.formats.packed import BinaryPackedDecoder
from movelist.formats.strings import StringTableDecoder
from movelist.model import SequenceTable, MergeMode

UTF8_HEADER_FLAG = 0xFF


@dataclass
class DecodeResult:
    """Outcome of one decode call."""
    success: bool
    table: SequenceTable
    format: FileFormat
    diagnostics: DecodeLog
    embedded_image: Optional[bytes] = None
    name: str = ""
    sequences_decoded: int = 0
    info: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Summary for serialization (the table itself is not included)."""
        return {
            'name': self.name,
            'success': self.success,
            'format': self.format.value,
            'sequences_decoded': self.sequences_decoded,
            'sequences_loaded': self.table.loaded_count(),
            'table_size': len(self.table),
            'embedded_image_size': len(self.embedded_image) if self.embedded_image else 0,
            'diagnostics': len(self.diagnostics),
        }


def _string_decoder(reader: BufferReader, fmt: FileFormat, config: LoaderConfig,
                    log: DecodeLog) -> StringTableDecoder:
    encoding = config.text.legacy_encoding
    if fmt == FileFormat.NATIVE_TAG and reader.has(NATIVE_HEADER_SIZE - 1, 1):
        flag, _ = reader.read_uint8(NATIVE_HEADER_SIZE - 1)
        if flag == UTF8_HEADER_FLAG:
            encoding = 'utf-8'
    return StringTableDecoder(encoding, log=log)


def _decode_tag_file(reader: BufferReader, fmt: FileFormat, table: SequenceTable,
                     merge: MergeMode, config: LoaderConfig, log: DecodeLog) -> int:
    dialect = TagDialect.NATIVE if fmt == FileFormat.NATIVE_TAG else TagDialect.LEGACY
    strings = _string_decoder(reader, fmt, config, log)
    decoder = TagFileDecoder(reader, dialect, strings, log=log,
                             max_sequences=config.table.max_sequences)

    start = find_string_table(reader, fmt)
    if start != -1:
        return decoder.decode(table, start, merge)

    if fmt == FileFormat.NATIVE_TAG:
        raise FatalFormatError("Native header not followed by a sequence count tag")

    # Header relocated or missing: start at the first PSTR with a default-sized table
    start = find_pattern_start(reader)
    if start == -1:
        raise FatalFormatError("No sequence count tag or pattern start found")
    log.info(f"No sequence count tag; decoding from PSTR at 0x{start:X}")
    return decoder.decode(table, start, merge, count=config.table.default_size)


def decode(buffer, byte_length: Optional[int] = None, merge: MergeMode = MergeMode.REPLACE,
           table: Optional[SequenceTable] = None, config: Optional[LoaderConfig] = None,
           logger=None) -> DecodeResult:
    """
    Decode a move-list file held in memory.

    Args:
        buffer: File contents (bytes-like)
        byte_length: Logical length, if smaller than the buffer
        merge: REPLACE clears the table first; EXTEND keeps existing slots
        table: Destination table (a new one is created if None)
        config: Loader settings (global config if None)
        logger: Optional logger mirrored by the diagnostics

    Returns:
        DecodeResult
    """
    config = config or get_config()
    log = DecodeLog(logger, config.logging.max_entries, config.logging.verbose)
    if table is None:
        table = SequenceTable(config.table.default_size)

    reader = BufferReader(buffer, byte_length)
    fmt = detect_format(reader)
    result = DecodeResult(False, table, fmt, log)
    log.debug(f"Detected {fmt.value} ({reader.length} bytes)")

    try:
        if fmt == FileFormat.UNRECOGNIZED:
            raise FatalFormatError("Unrecognized file format")

        if fmt == FileFormat.LEGACY_PACKED:
            strings = StringTableDecoder(config.text.legacy_encoding, log=log)
            decoder = BinaryPackedDecoder(reader, config.packed, strings, log=log)
            result.sequences_decoded = decoder.decode(table, merge)
            result.embedded_image = decoder.embedded_image
            result.info['version'] = int(decoder.header['version'])
        else:
            result.sequences_decoded = _decode_tag_file(reader, fmt, table, merge, config, log)

    except FatalFormatError as e:
        log.fatal(str(e))
        return result

    table.clear_modified()
    result.success = True
    return result


class FrameDataLoader:
    """
    Reader object for move-list files.

    Usage:
        loader = FrameDataLoader(logger=logger)
        result = loader.load("character.ha6")
        for i, seq in enumerate(result.table):
            ...
    """

    def __init__(self, config: Optional[LoaderConfig] = None, logger=None):
        self.config = config
        self.logger = logger
        self.table: Optional[SequenceTable] = None

    def load(self, path: str, merge: MergeMode = MergeMode.REPLACE) -> DecodeResult:
        """
        Load a move-list file from disk.

        Raises:
            FileNotFoundError: If path does not exist
        """
        if not os.path.exists(path):
            raise FileNotFoundError(f"File not found: {path}")

        with open(path, 'rb') as f:
            data = f.read()

        return self.load_bytes(data, os.path.basename(path), merge)

    def load_bytes(self, data: bytes, name: str = "", merge: MergeMode = MergeMode.REPLACE) -> DecodeResult:
        """
        Decode a move-list file from bytes.

        With MergeMode.EXTEND the previously loaded table is decoded into.
        """
        table = self.table if merge == MergeMode.EXTEND else None
        result = decode(data, merge=merge, table=table, config=self.config, logger=self.logger)
        result.name = name
        if result.success:
            self.table = result.table
        return result
