"""
Tests for bounds-checked reads and legacy string decoding
"""

import pytest
import struct
import sys
import os

# Add the parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from movelist.errors import TruncatedDataError, RecoverableFieldError
from movelist.diagnostics import DecodeLog, KIND_RECOVERABLE
from movelist.formats.binary import BufferReader
from movelist.formats.strings import (
    StringTableDecoder,
    default_name,
    NAME_RECORD_SIZE,
)


class TestBufferReader:
    """Test BufferReader reads."""

    def test_read_values(self):
        """Test reading each primitive type."""
        data = struct.pack('<hHiIf', -2, 65535, -7, 0xDEADBEEF, 1.5) + b"\x09"
        reader = BufferReader(data)

        value, offset = reader.read_int16(0)
        assert (value, offset) == (-2, 2)
        value, offset = reader.read_uint16(offset)
        assert value == 65535
        value, offset = reader.read_int32(offset)
        assert value == -7
        value, offset = reader.read_uint32(offset)
        assert value == 0xDEADBEEF
        value, offset = reader.read_float(offset)
        assert value == 1.5
        value, offset = reader.read_uint8(offset)
        assert (value, offset) == (9, len(data))

    def test_read_past_end_raises(self):
        """Test that a read past the end raises TruncatedDataError."""
        reader = BufferReader(b"\x01\x02\x03")
        with pytest.raises(TruncatedDataError):
            reader.read_int32(0)

    def test_truncated_is_recoverable(self):
        """Test that truncation is part of the recoverable family."""
        reader = BufferReader(b"")
        with pytest.raises(RecoverableFieldError) as exc:
            reader.read_tag(0)
        assert exc.value.offset == 0

    def test_logical_length(self):
        """Test that the logical length hides trailing bytes."""
        reader = BufferReader(b"ABCDEFGH", length=4)
        assert len(reader) == 4
        assert reader.matches(0, b"ABCD")
        assert not reader.matches(4, b"EFGH")
        with pytest.raises(TruncatedDataError):
            reader.read_tag(4)

    def test_negative_offset(self):
        """Test that negative offsets are rejected."""
        reader = BufferReader(b"\x00" * 8)
        assert not reader.has(-1, 2)
        with pytest.raises(TruncatedDataError):
            reader.read_int16(-1)

    def test_int32_array(self):
        """Test array reads."""
        reader = BufferReader(struct.pack('<3i', 1, -2, 3))
        values, offset = reader.read_int32_array(0, 3)
        assert values == [1, -2, 3]
        assert offset == 12
        with pytest.raises(TruncatedDataError):
            reader.read_int32_array(0, 4)

    def test_find(self):
        """Test searching inside a range."""
        reader = BufferReader(b"xxxxMAGICxxxx")
        assert reader.find(b"MAGIC", 0, 13) == 4
        assert reader.find(b"MAGIC", 5, 13) == -1
        assert reader.find(b"MAGIC", 0, 6) == -1
        assert reader.find(b"MAGIC", 20, 30) == -1


class TestStringTableDecoder:
    """Test legacy-codepage name decoding."""

    def test_decode_cp932(self):
        """Test Shift-JIS decoding."""
        strings = StringTableDecoder()
        assert strings.decode("立ち".encode('cp932')) == "立ち"

    def test_decode_stops_at_nul(self):
        """Test that text ends at the first NUL."""
        strings = StringTableDecoder()
        assert strings.decode(b"Jab\x00garbage") == "Jab"

    def test_decode_strips_trailing_whitespace(self):
        """Test that trailing spaces (including full-width) are removed."""
        strings = StringTableDecoder()
        raw = "技　".encode('cp932') + b"  "
        assert strings.decode(raw) == "技"

    def test_invalid_bytes_replaced_and_logged(self):
        """Test that undecodable bytes do not raise."""
        log = DecodeLog()
        strings = StringTableDecoder(log=log)
        text = strings.decode(b"A\x81")
        assert text.startswith("A")
        assert log.count(KIND_RECOVERABLE) == 1

    def test_decode_fixed(self):
        """Test fixed-width records."""
        strings = StringTableDecoder()
        record = b"Name".ljust(NAME_RECORD_SIZE, b"\x00")
        assert strings.decode_fixed(record) == "Name"

    def test_length_prefixed(self):
        """Test a length-prefixed string."""
        reader = BufferReader(struct.pack('<I', 3) + b"abc" + b"rest")
        strings = StringTableDecoder()
        text, offset = strings.decode_length_prefixed(reader, 0)
        assert text == "abc"
        assert offset == 7

    def test_length_prefixed_too_long(self):
        """Test that long strings are skipped but consumed."""
        raw = b"x" * 64
        reader = BufferReader(struct.pack('<I', len(raw)) + raw)
        strings = StringTableDecoder()
        text, offset = strings.decode_length_prefixed(reader, 0)
        assert text is None
        assert offset == 68

    def test_length_prefixed_truncated(self):
        """Test that a length past the end raises TruncatedDataError."""
        reader = BufferReader(struct.pack('<I', 10) + b"abc")
        strings = StringTableDecoder()
        with pytest.raises(TruncatedDataError):
            strings.decode_length_prefixed(reader, 0)

    def test_read_name_table_whole_records_only(self):
        """Test that a partial trailing record is not yielded."""
        data = b"One".ljust(64, b"\x00") + b"Two".ljust(64, b"\x00") + b"Par"
        reader = BufferReader(data)
        strings = StringTableDecoder()
        names = list(strings.read_name_table(reader, 0, 3))
        assert names == [(0, "One"), (1, "Two")]

    def test_utf8_encoding(self):
        """Test the UTF-8 variant used by flagged native files."""
        strings = StringTableDecoder('utf-8')
        assert strings.decode("しゃがみ".encode('utf-8')) == "しゃがみ"


class TestDefaultNames:
    """Test the built-in name table."""

    def test_known_index(self):
        """Test a known default."""
        assert default_name(0) == "立ち"
        assert default_name(52) == "勝ちモーション"

    def test_gap_index(self):
        """Test that indices without a default give an empty string."""
        assert default_name(20) == ""
        assert default_name(999) == ""
