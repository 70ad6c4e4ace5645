"""
Native tag-format writer.

Emits exactly the tag set the native decoder understands, so a native file
decoded, re-encoded and decoded again yields the same table (after hitbox
normalization). Degenerate hitboxes are dropped and inverted ones fixed as
they are written; the table itself is left untouched.
"""

import struct
from typing import List

from movelist.formats.detector import NATIVE_MAGIC, NATIVE_HEADER_SIZE
from movelist.formats.strings import MAX_TAG_STRING
from movelist.model import (
    Frame,
    Display,
    State,
    Attack,
    Effect,
    Condition,
    Sequence,
    SequenceTable,
    FlowType,
    ATTACKBOX_BASE,
    EFFECT_PARAM_COUNT,
    CONDITION_PARAM_COUNT,
)

UTF8_HEADER_FLAG = 0xFF

_WORD = struct.Struct('<I')
_FLOAT = struct.Struct('<f')
_HALF = struct.Struct('<H')


class NativeTagWriter:
    """
    Accumulates a native tag stream.

    Usage:
        writer = NativeTagWriter()
        data = writer.encode(table)
    """

    def __init__(self, encoding: str = "cp932"):
        self.encoding = encoding
        self._out = bytearray()

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def tag(self, tag: bytes, *values: int):
        self._out += tag
        for value in values:
            self._out += _WORD.pack(int(value) & 0xFFFFFFFF)

    def floats(self, tag: bytes, *values: float):
        self._out += tag
        for value in values:
            self._out += _FLOAT.pack(value)

    def text(self, tag: bytes, value: str):
        raw = value.encode(self.encoding, errors='replace')
        if len(raw) >= MAX_TAG_STRING:
            # Cut on a character boundary
            raw = raw[:MAX_TAG_STRING - 1].decode(self.encoding, errors='ignore').encode(self.encoding)
        self.tag(tag, len(raw))
        self._out += raw

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def write_display(self, af: Display):
        self.tag(b"AFST")
        self.tag(b"AFGP", int(af.use_pattern), af.sprite_id)
        self.tag(b"AFOF", af.offset_x, af.offset_y)
        if 0 <= af.duration <= 9:
            self.tag(b"AFD" + str(af.duration).encode())
        else:
            self.tag(b"AFDL", af.duration)
        if af.ani_type in (FlowType.NEXT, FlowType.JUMP):
            self.tag(b"AFF" + str(int(af.ani_type)).encode())
        self.tag(b"AFFE", af.ani_flag)
        self.tag(b"AFAL", af.blend_mode, round(af.rgba[3] * 255))
        self.tag(b"AFRG", *(round(v * 255) for v in af.rgba[:3]))
        self.floats(b"AFAX", af.rotation[0])
        self.floats(b"AFAY", af.rotation[1])
        self.floats(b"AFAZ", af.rotation[2])
        self.floats(b"AFZM", af.scale[0], af.scale[1])
        self.tag(b"AFJP", af.jump)
        self.tag(b"AFHK", af.interpolation_type)
        self.tag(b"AFPR", af.priority)
        self.tag(b"AFCT", af.loop_count)
        self.tag(b"AFLP", af.loop_end)
        self.tag(b"AFJC", af.land_jump)
        self.tag(b"AFRT", int(af.afrt))
        self.tag(b"AFED")

    def write_state(self, state: State):
        self.tag(b"ASST")
        self.tag(b"ASV0", state.movement_flags, *state.speed, *state.accel)
        self.tag(b"ASMV", state.can_move)
        if state.stance_state in (1, 2):
            self.tag(b"ASS" + str(state.stance_state).encode())
        self.tag(b"ASCN", state.cancel_normal)
        self.tag(b"ASCS", state.cancel_special)
        self.tag(b"ASCT", state.counter_type)
        self.tag(b"AST0", state.sine_flags, *state.sine_parameters)
        self._out += _FLOAT.pack(state.sine_phases[0])
        self._out += _FLOAT.pack(state.sine_phases[1])
        self.tag(b"ASMX", state.max_speed_x)
        self.tag(b"ASAA", state.hits_number)
        self.tag(b"ASYS", state.invincibility)
        self.tag(b"ASF0", state.status_flags[0])
        self.tag(b"ASF1", state.status_flags[1])
        self.tag(b"ASED")

    def write_attack(self, attack: Attack):
        self.tag(b"ATST")
        self.tag(b"ATGD", attack.guard_flags)
        self.tag(b"ATHS", attack.correction)
        self._out += b"ATVV"
        for value in (attack.red_damage, attack.damage, attack.guard_damage, attack.meter_gain):
            self._out += _HALF.pack(int(value) & 0xFFFF)
        self.tag(b"ATHT", attack.correction_type)
        self.tag(b"ATGV", 3, *self._vector_words(attack.guard_vector, attack.guard_vector_flags))
        self.tag(b"ATHV", 3, *self._vector_words(attack.hit_vector, attack.hit_vector_flags))
        self.tag(b"ATF1", attack.other_flags)
        self.tag(b"ATHE", attack.hit_effect, attack.sound_effect)
        self.tag(b"ATKK", attack.added_effect)
        self.tag(b"ATNG", attack.hitgrab)
        self.floats(b"ATUH", attack.extra_gravity)
        self.tag(b"ATBT", attack.break_time)
        self.tag(b"ATSN", attack.hit_stop_time)
        self.tag(b"ATSU", attack.untech_time)
        self.tag(b"ATSP", attack.hit_stop)
        self.tag(b"ATGN", attack.block_stop_time)
        self.tag(b"ATED")

    @staticmethod
    def _vector_words(values: List[int], flags: List[int]) -> List[int]:
        return [((f & 0xFFFFFF) << 8) | (v & 0xFF) for v, f in zip(values, flags)]

    def write_effect(self, index: int, ef: Effect):
        self.tag(b"EFST", index)
        self.tag(b"EFTP", ef.type)
        self.tag(b"EFNO", ef.number)
        self.tag(b"EFPR", *_fit(ef.params, EFFECT_PARAM_COUNT))
        self.tag(b"EFED")

    def write_condition(self, index: int, cond: Condition):
        self.tag(b"IFST", index)
        self.tag(b"IFTP", cond.type)
        self.tag(b"IFPR", *_fit(cond.params, CONDITION_PARAM_COUNT))
        self.tag(b"IFED")

    def write_frame(self, frame: Frame):
        self.tag(b"FSTR")
        self.write_display(frame.display)
        self.write_state(frame.state)
        if frame.attack is not None:
            self.write_attack(frame.attack)
        for i, ef in enumerate(frame.effects):
            self.write_effect(i, ef)
        for i, cond in enumerate(frame.conditions):
            self.write_condition(i, cond)
        for slot, box in sorted(frame.hitboxes.items()):
            if box.is_degenerate():
                continue
            box = box.normalized()
            if slot >= ATTACKBOX_BASE:
                self.tag(b"HRAT", slot - ATTACKBOX_BASE, *box.to_list())
            else:
                self.tag(b"HRNM", slot, *box.to_list())
        self.tag(b"FEND")

    def write_sequence(self, index: int, seq: Sequence):
        self.tag(b"PSTR", index)
        if seq.empty:
            self.tag(b"PEND")
            return

        if seq.code_name:
            self.text(b"PTCN", seq.code_name)
        if seq.name:
            self.text(b"PTT2", seq.name)
        self.tag(b"PSTS", seq.psts)
        self.tag(b"PLVL", seq.level)
        self.tag(b"PFLG", seq.flag)

        if seq.initialized:
            boxes = sum(
                1 for frame in seq.frames
                for box in frame.hitboxes.values() if not box.is_degenerate()
            )
            nframes = len(seq.frames)
            self.tag(b"PDS2", 32, nframes, boxes, 0, 0, 0, 0, nframes, 0)
            for frame in seq.frames:
                self.write_frame(frame)
        self.tag(b"PEND")

    def encode(self, table: SequenceTable, modified_only: bool = False) -> bytes:
        """
        Encode a table as a native file.

        Args:
            table: Sequences to write; every slot counts toward the header total
            modified_only: Only write sequences flagged as modified
        """
        self._out = bytearray()
        header = bytearray(NATIVE_HEADER_SIZE)
        header[:len(NATIVE_MAGIC)] = NATIVE_MAGIC
        if self.encoding.replace('-', '').lower() == 'utf8':
            header[NATIVE_HEADER_SIZE - 1] = UTF8_HEADER_FLAG
        self._out += header

        self.tag(b"_STR", len(table))
        for i, seq in enumerate(table):
            if modified_only and not seq.modified:
                continue
            self.write_sequence(i, seq)
        self.tag(b"_END")
        return bytes(self._out)


def _fit(values: List[int], count: int) -> List[int]:
    values = list(values[:count])
    return values + [0] * (count - len(values))


def encode(table: SequenceTable, modified_only: bool = False, encoding: str = "cp932") -> bytes:
    """Encode table in the native tag format."""
    return NativeTagWriter(encoding).encode(table, modified_only)


def save(table: SequenceTable, path: str, modified_only: bool = False, encoding: str = "cp932"):
    """Write table to path in the native tag format."""
    data = encode(table, modified_only, encoding)
    with open(path, 'wb') as f:
        f.write(data)
