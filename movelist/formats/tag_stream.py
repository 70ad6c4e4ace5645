"""
Generic tag-stream cursor.

Both self-describing encodings are a flat stream of 4-byte tags, each
followed by a payload whose shape is fixed per tag and known only to the
code handling that tag. A TagStreamParser walks one nesting level of such
a stream: read tag, dispatch to its handler, repeat until the level's
terminator tag.

A tag with no handler can only be stepped over when its length is knowable
from context (prefix rules, e.g. length-prefixed string tags). Any other
unknown tag stops the current block; the parent level then carries on.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Optional

from movelist.errors import RecoverableFieldError, UnknownTagError, format_tag
from movelist.formats.binary import BufferReader

# handler(tag, offset_after_tag) -> offset_after_payload
TagHandler = Callable[[bytes, int], int]


class StopReason(Enum):
    """Why a block stopped."""
    TERMINATOR = "terminator"
    END_OF_DATA = "end_of_data"
    UNKNOWN_TAG = "unknown_tag"
    TRUNCATED = "truncated"


@dataclass
class TagStreamResult:
    """Where a block stopped and why."""
    offset: int
    reason: StopReason
    tags_read: int = 0
    tag: Optional[bytes] = None

    @property
    def terminated(self) -> bool:
        return self.reason == StopReason.TERMINATOR


def skip_length_prefixed(reader: BufferReader, offset: int) -> int:
    """Skip a uint32 length and that many payload bytes."""
    length, offset = reader.read_uint32(offset)
    reader.require(offset, length)
    return offset + length


class TagStreamParser:
    """
    Walks one nesting level of a tag stream.

    Usage:
        parser = TagStreamParser(reader, end, "frame", log=log)
        parser.on(b"HRNM", handle_box)
        parser.on_prefix(b"AFD", handle_duration)
        parser.terminate_on(b"FEND")
        result = parser.run(offset)
    """

    def __init__(self, reader: BufferReader, end: int, block: str, log=None):
        self.reader = reader
        self.end = min(end, reader.length)
        self.block = block
        self._log = log
        self._handlers: Dict[bytes, TagHandler] = {}
        self._prefix_handlers: Dict[bytes, TagHandler] = {}
        self._skip_rules: Dict[bytes, Callable[[BufferReader, int], int]] = {}
        self._terminators = set()

    def on(self, tag: bytes, handler: TagHandler) -> 'TagStreamParser':
        """Register a handler for an exact 4-byte tag."""
        self._handlers[tag] = handler
        return self

    def on_many(self, tags: Iterable[bytes], handler: TagHandler) -> 'TagStreamParser':
        for tag in tags:
            self._handlers[tag] = handler
        return self

    def on_prefix(self, prefix: bytes, handler: TagHandler) -> 'TagStreamParser':
        """Register a handler for a tag family sharing a 3-byte prefix."""
        self._prefix_handlers[prefix] = handler
        return self

    def skip_prefix(self, prefix: bytes,
                    rule: Callable[[BufferReader, int], int] = skip_length_prefixed) -> 'TagStreamParser':
        """Allow unknown tags starting with prefix to be stepped over by rule."""
        self._skip_rules[prefix] = rule
        return self

    def terminate_on(self, *tags: bytes) -> 'TagStreamParser':
        self._terminators.update(tags)
        return self

    def _lookup(self, tag: bytes) -> Optional[TagHandler]:
        handler = self._handlers.get(tag)
        if handler is None:
            handler = self._prefix_handlers.get(tag[:3])
        return handler

    def _skip_rule(self, tag: bytes):
        for prefix, rule in self._skip_rules.items():
            if tag.startswith(prefix):
                return rule
        return None

    def run(self, offset: int) -> TagStreamResult:
        """
        Parse tags from offset until the terminator, the end, or an error.

        Returns:
            TagStreamResult; offset is just past the last consumed tag/payload
        """
        count = 0

        while offset + 4 <= self.end:
            tag_offset = offset
            tag, offset = self.reader.read_tag(offset)
            count += 1

            if tag in self._terminators:
                return TagStreamResult(offset, StopReason.TERMINATOR, count, tag)

            handler = self._lookup(tag)
            try:
                if handler is not None:
                    offset = handler(tag, offset)
                    continue

                rule = self._skip_rule(tag)
                if rule is not None:
                    offset = rule(self.reader, offset)
                    if self._log is not None:
                        self._log.debug(
                            f"Skipped {self.block} tag {format_tag(tag)} at 0x{tag_offset:X}"
                        )
                    continue

                raise UnknownTagError(tag, tag_offset, self.block)

            except UnknownTagError as e:
                if self._log is not None:
                    self._log.unknown_tag(f"{e}; {self.block} block stopped")
                return TagStreamResult(offset, StopReason.UNKNOWN_TAG, count, tag)

            except RecoverableFieldError as e:
                if self._log is not None:
                    self._log.recoverable(
                        f"Truncated {self.block} tag {format_tag(tag)} at 0x{tag_offset:X}: {e}"
                    )
                return TagStreamResult(self.end, StopReason.TRUNCATED, count, tag)

            if offset > self.end:
                if self._log is not None:
                    self._log.recoverable(
                        f"{self.block} tag {format_tag(tag)} at 0x{tag_offset:X} runs past end of block"
                    )
                return TagStreamResult(self.end, StopReason.TRUNCATED, count, tag)

        return TagStreamResult(offset, StopReason.END_OF_DATA, count)
