"""
Tests for the generic tag-stream cursor
"""

import pytest
import sys
import os

# Add the parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from movelist.diagnostics import DecodeLog, KIND_UNKNOWN_TAG, KIND_RECOVERABLE
from movelist.formats.binary import BufferReader
from movelist.formats.tag_stream import TagStreamParser, StopReason
from builders import tag, text_tag


def make_parser(data: bytes, log=None):
    """Parser recording ONEA/ONEB values and FAM? tags, ending on DONE."""
    reader = BufferReader(data)
    seen = []

    def one_int(t, offset):
        value, offset = reader.read_int32(offset)
        seen.append((t, value))
        return offset

    def family(t, offset):
        seen.append((t, None))
        return offset

    parser = TagStreamParser(reader, len(data), "test", log=log)
    parser.on(b"ONEA", one_int)
    parser.on(b"ONEB", one_int)
    parser.on_prefix(b"FAM", family)
    parser.skip_prefix(b"PT")
    parser.terminate_on(b"DONE")
    return parser, seen


class TestTagStreamParser:
    """Test dispatch and stop reasons."""

    def test_dispatch_until_terminator(self):
        """Test that handlers run in order and the terminator stops the block."""
        data = tag(b"ONEA", 5) + tag(b"ONEB", -1) + b"DONE" + tag(b"ONEA", 9)
        parser, seen = make_parser(data)
        result = parser.run(0)

        assert result.reason == StopReason.TERMINATOR
        assert result.terminated
        assert result.offset == 20
        assert seen == [(b"ONEA", 5), (b"ONEB", -1)]

    def test_prefix_family(self):
        """Test that 3-byte prefix handlers catch the whole family."""
        data = b"FAM1" + b"FAMX" + b"DONE"
        parser, seen = make_parser(data)
        parser.run(0)
        assert seen == [(b"FAM1", None), (b"FAMX", None)]

    def test_exact_tag_wins_over_prefix(self):
        """Test that an exact handler is preferred to a prefix handler."""
        reader = BufferReader(b"FAMEDONE")
        hits = []
        parser = TagStreamParser(reader, 8, "test")
        parser.on(b"FAME", lambda t, o: hits.append("exact") or o)
        parser.on_prefix(b"FAM", lambda t, o: hits.append("prefix") or o)
        parser.terminate_on(b"DONE")
        parser.run(0)
        assert hits == ["exact"]

    def test_unknown_tag_stops_block(self):
        """Test that an unknown tag stops the block and is logged."""
        log = DecodeLog()
        data = tag(b"ONEA", 1) + b"WHAT" + tag(b"ONEA", 2) + b"DONE"
        parser, seen = make_parser(data, log)
        result = parser.run(0)

        assert result.reason == StopReason.UNKNOWN_TAG
        assert result.tag == b"WHAT"
        assert result.offset == 12
        assert seen == [(b"ONEA", 1)]
        assert log.count(KIND_UNKNOWN_TAG) == 1

    def test_skip_rule_steps_over_length_prefixed(self):
        """Test that a PT?? tag with no handler is skipped by its length."""
        data = text_tag(b"PTXX", b"hello") + tag(b"ONEA", 3) + b"DONE"
        parser, seen = make_parser(data)
        result = parser.run(0)
        assert result.reason == StopReason.TERMINATOR
        assert seen == [(b"ONEA", 3)]

    def test_truncated_payload(self):
        """Test that a payload past the end stops with TRUNCATED."""
        log = DecodeLog()
        data = tag(b"ONEA", 1) + b"ONEA" + b"\x01\x00"
        parser, seen = make_parser(data, log)
        result = parser.run(0)

        assert result.reason == StopReason.TRUNCATED
        assert result.offset == len(data)
        assert log.count(KIND_RECOVERABLE) == 1

    def test_end_of_data(self):
        """Test running out of data without a terminator."""
        data = tag(b"ONEA", 1) + b"\x00\x00"
        parser, seen = make_parser(data)
        result = parser.run(0)
        assert result.reason == StopReason.END_OF_DATA
        assert result.offset == 8

    def test_end_bound_is_respected(self):
        """Test that the parser never reads beyond its end bound."""
        data = tag(b"ONEA", 1) + tag(b"ONEA", 2) + b"DONE"
        reader = BufferReader(data)
        parser = TagStreamParser(reader, 8, "test")
        parser.on(b"ONEA", lambda t, o: reader.read_int32(o)[1])
        result = parser.run(0)
        assert result.reason == StopReason.END_OF_DATA
        assert result.offset == 8
