"""
Sequence assembly for the tag formats.

SequenceAssembler turns one PSTR..PEND block into a Sequence: allocation
(PDS2), metadata, frames, and the hitbox aliases that can only be resolved
once every frame of the sequence has been read.

TagFileDecoder drives the top level of a tag file: the "_STR" sequence
count followed by PSTR blocks up to "_END".
"""

from typing import Optional

from movelist.errors import FatalFormatError, TruncatedDataError
from movelist.formats.binary import BufferReader
from movelist.formats.detector import STRING_TABLE_TAG, PATTERN_START_TAG
from movelist.formats.frame_tags import (
    FrameTagDecoder,
    PendingAlias,
    SequenceContext,
    TagDialect,
)
from movelist.formats.strings import StringTableDecoder
from movelist.formats.tag_stream import TagStreamParser, TagStreamResult, StopReason
from movelist.model import Frame, Sequence, SequenceTable, MergeMode

ALLOCATION_BLOCK_SIZE = 32


class SequenceAssembler:
    """
    Decodes one sequence body (the tags after "PSTR id").

    Usage:
        assembler = SequenceAssembler(reader, end, TagDialect.LEGACY, strings, log)
        result = assembler.decode(offset, sequence)
    """

    def __init__(self, reader: BufferReader, end: int, dialect: TagDialect,
                 strings: StringTableDecoder, log=None):
        self.reader = reader
        self.end = end
        self.dialect = dialect
        self.strings = strings
        self._log = log
        self.frames = FrameTagDecoder(reader, end, dialect, log=log)

    def decode(self, offset: int, seq: Sequence, index: int = -1) -> TagStreamResult:
        """
        Decode tags into seq until PEND.

        Hitbox aliases are resolved whenever the block ends, including when
        it stops early on an unknown tag or truncated data.
        """
        reader = self.reader
        strings = self.strings
        log = self._log
        context = SequenceContext()
        decoded = [0]
        declared = [0]

        def code_name(tag, offset):
            text, offset = strings.decode_length_prefixed(reader, offset)
            if text is not None:
                seq.code_name = text
            return offset

        def title(tag, offset):
            text, offset = strings.decode_length_prefixed(reader, offset)
            if text is not None:
                seq.name = text
            return offset

        def int_field(attr):
            def handler(tag, offset):
                value, offset = reader.read_int32(offset)
                setattr(seq, attr, value)
                return offset
            return handler

        def allocation(tag, offset):
            size, offset = reader.read_uint32(offset)
            reader.require(offset, size)
            block_end = offset + size

            if size != ALLOCATION_BLOCK_SIZE:
                if log is not None:
                    log.recoverable(f"Allocation block of size {size} in sequence {index} ignored")
                return block_end
            if seq.initialized:
                if log is not None:
                    log.debug(f"Repeated allocation block in sequence {index} ignored")
                return block_end

            words, _ = reader.read_uint32_array(offset, ALLOCATION_BLOCK_SIZE // 4)
            nframes = words[0]
            if nframes > self.end - block_end:
                if log is not None:
                    log.recoverable(
                        f"Sequence {index} declares {nframes} frames, more than the data can hold"
                    )
                return block_end

            seq.allocate(nframes)
            declared[0] = nframes
            context.box_capacity = words[1]
            context.state_capacity = words[6]
            return block_end

        def frame_start(tag, offset):
            if seq.initialized and decoded[0] < declared[0]:
                context.frame_index = decoded[0]
                frame = seq.frames[decoded[0]]
                decoded[0] += 1
            else:
                if log is not None:
                    log.recoverable(
                        f"Frame at 0x{offset - 4:X} in sequence {index} has no allocated slot, dropped"
                    )
                context.frame_index = -1
                frame = Frame()
            return self.frames.decode_frame(offset, frame, context).offset

        parser = TagStreamParser(reader, self.end, "sequence", log=log)
        parser.on(b"PTCN", code_name)
        parser.on(b"PTT2", title)
        parser.on(b"PSTS", int_field('psts'))
        parser.on(b"PLVL", int_field('level'))
        parser.on(b"PFLG", int_field('flag'))
        parser.on(b"PDS2", allocation)
        parser.on(b"FSTR", frame_start)
        parser.skip_prefix(b"PT")
        parser.terminate_on(b"PEND")

        result = parser.run(offset)
        self.resolve_aliases(seq, context, index)

        if seq.initialized and decoded[0] != declared[0] and log is not None:
            log.recoverable(
                f"Sequence {index} declares {declared[0]} frames but {decoded[0]} were decoded"
            )
        return result

    def resolve_aliases(self, seq: Sequence, context: SequenceContext, index: int = -1):
        """Copy each aliased box from its source reference."""
        for alias in context.pending:
            source = self._alias_source(alias, context)
            if source is None:
                if self._log is not None:
                    self._log.recoverable(
                        f"Unresolved hitbox reference {alias.source_ref} in sequence {index}, "
                        f"frame {alias.target_frame}"
                    )
                continue
            seq.frames[alias.target_frame].hitboxes[alias.target_slot] = source.copy()
        context.pending.clear()

    @staticmethod
    def _alias_source(alias: PendingAlias, context: SequenceContext):
        if alias.source_ref >= len(context.box_refs):
            return None
        frame, slot = context.box_refs[alias.source_ref]
        return frame.hitboxes.get(slot)


class TagFileDecoder:
    """
    Top-level loop of a tag-format file.

    Usage:
        decoder = TagFileDecoder(reader, TagDialect.NATIVE, strings, log=log)
        decoder.decode(table, string_table_offset, MergeMode.REPLACE)
    """

    def __init__(self, reader: BufferReader, dialect: TagDialect,
                 strings: StringTableDecoder, log=None, max_sequences: int = 4096):
        self.reader = reader
        self.dialect = dialect
        self.strings = strings
        self.max_sequences = max_sequences
        self._log = log
        self.assembler = SequenceAssembler(reader, reader.length, dialect, strings, log=log)

    def read_sequence_count(self, offset: int):
        """
        Read the "_STR" tag and its sequence count.

        Raises:
            FatalFormatError: Missing tag, truncated count, or a count over the limit
        """
        if not self.reader.matches(offset, STRING_TABLE_TAG):
            raise FatalFormatError(f"No sequence count tag at 0x{offset:X}")
        try:
            count, offset = self.reader.read_uint32(offset + 4)
        except TruncatedDataError as e:
            raise FatalFormatError(f"Sequence count truncated: {e}")
        if count > self.max_sequences:
            raise FatalFormatError(f"Sequence count {count} exceeds limit {self.max_sequences}")
        return count, offset

    def decode(self, table: SequenceTable, offset: int, merge: MergeMode = MergeMode.REPLACE,
               count: Optional[int] = None) -> int:
        """
        Decode every PSTR block into table.

        Args:
            table: Destination table
            offset: Offset of "_STR", or of the first PSTR when count is given
            merge: Table merge policy
            count: Sequence count when the file has no "_STR" tag

        Returns:
            Number of sequences decoded
        """
        if count is None:
            count, offset = self.read_sequence_count(offset)
        table.prepare(count, merge)

        reader = self.reader
        log = self._log
        decoded = 0

        while offset + 4 <= reader.length:
            tag, offset = reader.read_tag(offset)

            if tag == b"_END":
                break
            if tag != PATTERN_START_TAG:
                # Anything between sequences is skipped word by word
                continue

            try:
                seq_id, offset = reader.read_uint32(offset)
            except TruncatedDataError:
                if log is not None:
                    log.recoverable(f"Sequence id truncated at 0x{offset:X}")
                break

            if reader.matches(offset, b"PEND"):
                offset += 4
                continue

            if seq_id < count:
                seq = Sequence()
                seq.empty = False
                table.sequences[seq_id] = seq
                decoded += 1
            else:
                if log is not None:
                    log.recoverable(f"Sequence id {seq_id} outside table of {count}, dropped")
                seq = Sequence()

            result = self.assembler.decode(offset, seq, seq_id)
            offset = result.offset
            if result.reason == StopReason.TRUNCATED:
                break

        table.loaded = True
        if log is not None:
            log.info(f"Decoded {decoded} sequences ({self.dialect.value} tag format)")
        return decoded


__all__ = [
    'SequenceAssembler',
    'TagFileDecoder',
    'TagDialect',
    'PendingAlias',
    'ALLOCATION_BLOCK_SIZE',
]
