"""
Decoder for the packed legacy format (.DAT, "Hantei4" magic).

Layout:
    0x0000  64-byte file header (sizes of the animation and image blobs)
    0x0040  256 x int32 absolute sequence offsets (-1 or 0 = absent)
    ...     sequences: 68-byte header, 216-byte frames, then hitbox,
            effect, condition and vector arrays addressed by per-frame indices
    anim    embedded image blob (image_size bytes)
    +image  64-byte cp932 sequence names

Frames reference shared records by index; every index is checked against
the extent of the section it points into before it is expanded.
"""

from typing import Optional, Tuple

import numpy as np

from movelist.config import PackedConfig
from movelist.errors import FatalFormatError
from movelist.formats.binary import BufferReader
from movelist.formats.detector import PACKED_MAGIC
from movelist.formats.packed_layout import (
    FILE_HEADER_DTYPE,
    FILE_HEADER_SIZE,
    OFFSET_TABLE_OFFSET,
    OFFSET_TABLE_ENTRIES,
    OFFSET_TABLE_SIZE,
    SEQUENCE_HEADER_DTYPE,
    SEQUENCE_HEADER_SIZE,
    FRAME_DTYPE,
    HITBOX_DTYPE,
    RECORD_DTYPE,
    VECTOR_DTYPE,
    ABSENT,
    SectionLayout,
)
from movelist.formats.strings import StringTableDecoder, NAME_RECORD_SIZE, default_name
from movelist.model import (
    Frame,
    Sequence,
    SequenceTable,
    MergeMode,
    Hitbox,
    Effect,
    Condition,
    FlowType,
    CONDITION_PARAM_COUNT,
)

IMAGE_MAGIC = b"BMP Cutter3"
NO_LANDING = 0xFF
MOVEMENT_FLAG_MASK = 0x01 | 0x02 | 0x10 | 0x20


class BinaryPackedDecoder:
    """
    Expands a packed file into a SequenceTable.

    Usage:
        decoder = BinaryPackedDecoder(reader, config.packed, strings, log=log)
        count = decoder.decode(table, MergeMode.REPLACE)
        image = decoder.embedded_image
    """

    def __init__(self, reader: BufferReader, config: Optional[PackedConfig] = None,
                 strings: Optional[StringTableDecoder] = None, log=None):
        self.reader = reader
        self.config = config or PackedConfig()
        self.strings = strings or StringTableDecoder(log=log)
        self._log = log
        self.header = None
        self.offsets = None
        self.embedded_image: Optional[bytes] = None

    # ------------------------------------------------------------------
    # Header and offset table
    # ------------------------------------------------------------------

    def read_header(self):
        """
        Read the file header and sequence offset table.

        Raises:
            FatalFormatError: Bad magic or a buffer too short for either structure
        """
        reader = self.reader
        if not reader.matches(0, PACKED_MAGIC):
            raise FatalFormatError("Missing Hantei4 magic")
        if not reader.has(0, FILE_HEADER_SIZE):
            raise FatalFormatError("File too small for header")
        if not reader.has(OFFSET_TABLE_OFFSET, OFFSET_TABLE_SIZE):
            raise FatalFormatError("File too small for sequence offset table")

        self.header = np.frombuffer(reader.slice(0, FILE_HEADER_SIZE), dtype=FILE_HEADER_DTYPE)[0]
        self.offsets = np.frombuffer(
            reader.slice(OFFSET_TABLE_OFFSET, OFFSET_TABLE_SIZE),
            dtype='<i4', count=OFFSET_TABLE_ENTRIES,
        )

        if self._log is not None:
            present = int(np.count_nonzero((self.offsets != ABSENT) & (self.offsets != 0)))
            self._log.info(
                f"Packed file version {int(self.header['version'])}, "
                f"anim {int(self.header['anim_size'])} bytes, "
                f"image {int(self.header['image_size'])} bytes, {present} sequences"
            )
        return self.header

    @property
    def anim_end(self) -> int:
        return min(int(self.header['anim_size']), self.reader.length)

    def sequence_extents(self):
        """
        Yield (table_index, offset, size) for each present sequence.

        A sequence runs to the next greater declared offset or to the end of
        the animation data.
        """
        present = [int(o) for o in self.offsets if o != ABSENT and o != 0]
        anim_end = self.anim_end

        for i, raw in enumerate(self.offsets):
            offset = int(raw)
            if offset == ABSENT or offset == 0:
                continue
            following = [o for o in present if o > offset]
            end = min(min(following), anim_end) if following else anim_end
            yield i, offset, end - offset

    # ------------------------------------------------------------------
    # Decode
    # ------------------------------------------------------------------

    def decode(self, table: SequenceTable, merge: MergeMode = MergeMode.REPLACE) -> int:
        """
        Decode every present sequence into table.

        Returns:
            Number of sequences with frames
        """
        if self.header is None:
            self.read_header()

        table.prepare(OFFSET_TABLE_ENTRIES, merge)
        log = self._log
        decoded = 0
        pattern = 0

        for i, offset, size in self.sequence_extents():
            index = pattern if self.config.compact_sequence_indices else i
            pattern += 1
            if index >= len(table):
                break

            if size < SEQUENCE_HEADER_SIZE or not self.reader.has(offset, size):
                if log is not None:
                    log.recoverable(
                        f"Sequence {index} at 0x{offset:X} ({size} bytes) lies outside the data, skipped"
                    )
                continue

            seq = Sequence()
            table.sequences[index] = seq
            if self.decode_sequence(offset, size, seq, index):
                decoded += 1

        self.apply_names(table)
        self.embedded_image = self.find_embedded_image()
        table.loaded = True

        if log is not None:
            log.semantic_gap("Packed format carries no attack blocks; frame attack left unset")
            log.info(f"Decoded {decoded} packed sequences")
        return decoded

    def decode_sequence(self, offset: int, size: int, seq: Sequence, index: int) -> bool:
        """Decode one sequence. Returns False when it has no usable frames."""
        log = self._log
        data = self.reader.slice(offset, size)
        header = np.frombuffer(data[:SEQUENCE_HEADER_SIZE], dtype=SEQUENCE_HEADER_DTYPE)[0]

        frame_count = int(header['frame_count'])
        seq.opaque['flag1'] = int(header['flag1'])
        seq.opaque['flag2'] = int(header['flag2'])

        if frame_count == 0:
            return False
        if frame_count > self.config.max_frames_per_sequence:
            if log is not None:
                log.recoverable(
                    f"Sequence {index} declares {frame_count} frames "
                    f"(limit {self.config.max_frames_per_sequence}), skipped"
                )
            return False

        layout = SectionLayout.compute(header, size)
        for name, bad in layout.invalid.items():
            if log is not None:
                log.recoverable(f"Sequence {index}: {name} offset {bad} outside sequence, ignored")

        seq.allocate(frame_count)
        seq.code_name = str(index)

        available = min(frame_count, layout.frames.count)
        if available < frame_count and log is not None:
            log.recoverable(
                f"Sequence {index}: only {available} of {frame_count} frames fit, rest left default"
            )

        if available > 0:
            frames = np.frombuffer(data, dtype=FRAME_DTYPE, count=available,
                                   offset=layout.frames.offset)
        else:
            frames = np.empty(0, dtype=FRAME_DTYPE)
        tables = {
            name: self._section_array(data, layout, name, dtype)
            for name, dtype in (('hitboxes', HITBOX_DTYPE), ('effects', RECORD_DTYPE),
                                ('conditions', RECORD_DTYPE), ('vectors', VECTOR_DTYPE))
        }
        csel = int(header['frame_data']) == ABSENT

        for n, record in enumerate(frames):
            frame = seq.frames[n]
            self._convert_display(record, frame, csel)
            self._convert_state(record, frame)
            self._expand_indices(record, frame, tables, index, n)
        return True

    @staticmethod
    def _section_array(data, layout: SectionLayout, name: str, dtype):
        section = layout.get(name)
        if section is None or section.count == 0:
            return np.empty(0, dtype=dtype)
        return np.frombuffer(data, dtype=dtype, count=section.count, offset=section.offset)

    # ------------------------------------------------------------------
    # Frame conversion
    # ------------------------------------------------------------------

    def _convert_display(self, record, frame: Frame, csel: bool):
        af = frame.display
        raw = int(record['sprite'])
        base = self.config.csel_sprite_base

        if csel:
            af.sprite_id = raw - base if raw >= base else raw
        elif raw >= base:
            af.use_pattern = True
            af.sprite_id = raw - base
        else:
            af.sprite_id = raw

        af.offset_x = int(record['x'])
        af.offset_y = int(record['y'])
        af.duration = int(record['duration'])
        af.priority = int(record['priority'])

        flow = int(record['flow'])
        jump_word = int(record['jump'])
        landing = (jump_word >> 8) & 0xFF
        target = jump_word if jump_word != -1 else 0
        land_target = landing if landing != NO_LANDING else -1

        if flow == 0:
            af.ani_type, af.jump = FlowType.END, target
        elif flow == 2:
            af.ani_type, af.jump = FlowType.JUMP, target
        elif flow == 3:
            af.ani_type, af.jump, af.land_jump = FlowType.NEXT, -1, land_target
        elif flow == 4:
            af.ani_type, af.jump, af.land_jump = FlowType.JUMP, target, land_target
        else:
            # 1 = next, 5 = loop check
            af.ani_type, af.jump = FlowType.NEXT, -1
        af.ani_flag = flow

        rotation_flip = int(record['rotation_flip'])
        af.rotation[0] = 0.5 if rotation_flip & 0x01 else 0.0
        af.rotation[1] = 0.5 if rotation_flip & 0x02 else 0.0

        arithmetic_op = int(record['arithmetic_op'])
        if arithmetic_op:
            frame.opaque['arithmetic_op'] = arithmetic_op

    @staticmethod
    def _convert_state(record, frame: Frame):
        state = frame.state
        flags1 = int(record['flags1'])
        flags2 = int(record['flags2'])

        state.speed = [int(record['vel_x']), int(record['vel_y'])]
        state.accel = [int(record['accel_x']), int(record['accel_y'])]
        state.stance_state = int(record['stance'])
        state.cancel_normal = int(record['cancel_normal'])
        state.cancel_special = int(record['cancel_special'])
        state.can_move = 1 if record['can_move'] else 0
        state.movement_flags = flags1 & MOVEMENT_FLAG_MASK
        state.invincibility = (flags2 >> 16) & 0x0F
        state.counter_type = (flags2 >> 20) & 0x0F
        state.status_flags = [flags1, flags2]

    def _expand_indices(self, record, frame: Frame, tables, index: int, n: int):
        log = self._log
        where = f"sequence {index} frame {n}"

        hitboxes = tables['hitboxes']
        hitbox_index = int(record['hitbox'])
        if hitbox_index != ABSENT:
            if 0 <= hitbox_index < len(hitboxes):
                box = hitboxes[hitbox_index]
                attack = int(box['type']) >= self.config.attack_box_type_threshold
                x, y = int(box['x']), int(box['y'])
                self._place(frame, Hitbox(x, y, x + int(box['w']), y + int(box['h'])), attack, where)
            elif log is not None:
                log.recoverable(f"Hitbox index {hitbox_index} out of range in {where}")

        effects = tables['effects']
        for ef_index in record['effects']:
            ef_index = int(ef_index)
            if ef_index == ABSENT:
                continue
            if 0 <= ef_index < len(effects):
                ef = effects[ef_index]
                frame.effects.append(Effect(
                    type=int(ef['type']),
                    number=int(ef['number']),
                    params=[int(v) for v in ef['params']],
                ))
            elif log is not None:
                log.recoverable(f"Effect index {ef_index} out of range in {where}")

        conditions = tables['conditions']
        for if_index in record['conditions']:
            if_index = int(if_index)
            if if_index == ABSENT:
                continue
            if 0 <= if_index < len(conditions):
                cond = conditions[if_index]
                frame.conditions.append(Condition(
                    type=int(cond['type']),
                    params=[int(v) for v in cond['params'][:CONDITION_PARAM_COUNT]],
                ))
            elif log is not None:
                log.recoverable(f"Condition index {if_index} out of range in {where}")

        vectors = tables['vectors']
        vector_index = int(record['main_vector'])
        if vector_index != ABSENT:
            if 0 <= vector_index < len(vectors):
                vec = vectors[vector_index]
                box = Hitbox(int(vec['start_x']), int(vec['start_y']),
                             int(vec['end_x']), int(vec['end_y']))
                if box.x2 > box.x1 and box.y2 > box.y1:
                    self._place(frame, box, False, where)
            elif log is not None:
                log.recoverable(f"Vector index {vector_index} out of range in {where}")

        frame.opaque['vector_indices'] = {
            'condition': [int(v) for v in record['condition_vectors']],
            'effect': [int(v) for v in record['effect_vectors']],
            'extra': [int(v) for v in record['extra_vectors']],
        }

    def _place(self, frame: Frame, box: Hitbox, attack: bool, where: str):
        slot = frame.free_slot(attack)
        if slot == -1:
            if self._log is not None:
                self._log.recoverable(f"No free {'attack' if attack else 'hurt'} slot in {where}")
            return
        frame.hitboxes[slot] = box

    # ------------------------------------------------------------------
    # Trailing blobs
    # ------------------------------------------------------------------

    def name_table_offset(self) -> int:
        return int(self.header['anim_size']) + int(self.header['image_size'])

    def apply_names(self, table: SequenceTable):
        """Name each slot from the name table, falling back to built-in names."""
        start = self.name_table_offset()
        remaining = max(self.reader.length - start, 0)
        slots = min(OFFSET_TABLE_ENTRIES, remaining // NAME_RECORD_SIZE)
        names = dict(self.strings.read_name_table(self.reader, start, slots))

        applied = 0
        for i in range(min(OFFSET_TABLE_ENTRIES, len(table))):
            name = names.get(i) or default_name(i)
            if name:
                table[i].name = name
                table[i].code_name = str(i)
                applied += 1

        if self._log is not None:
            self._log.debug(f"Applied {applied} sequence names ({slots} stored)")

    def find_embedded_image(self) -> Optional[bytes]:
        """The image blob between animation data and names, if it is a known container."""
        start = int(self.header['anim_size'])
        size = int(self.header['image_size'])
        if size == 0 or start >= self.reader.length:
            return None

        limit = min(size, self.config.image_search_limit)
        if self.reader.find(IMAGE_MAGIC, start, start + limit) == -1:
            if self._log is not None:
                self._log.debug("No embedded image container found")
            return None

        end = min(start + size, self.reader.length)
        if self._log is not None:
            self._log.info(f"Embedded image container: {end - start} bytes at 0x{start:X}")
        return bytes(self.reader.slice(start, end - start))


def decode_packed(reader: BufferReader, table: SequenceTable, merge: MergeMode = MergeMode.REPLACE,
                  config: Optional[PackedConfig] = None, strings: Optional[StringTableDecoder] = None,
                  log=None) -> Tuple[int, Optional[bytes]]:
    """Decode a packed file; returns (sequences decoded, embedded image or None)."""
    decoder = BinaryPackedDecoder(reader, config, strings, log=log)
    count = decoder.decode(table, merge)
    return count, decoder.embedded_image
