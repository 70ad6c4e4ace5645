"""
Frame-level tag tables shared by the native and legacy tag formats.

Each block (AF display, AS state, AT attack, EF effect, IF condition and the
frame block that contains them) is decoded by a TagStreamParser whose
handlers write straight into the canonical model. The two dialects differ
only in how EFST/IFST payloads are laid out: native files always use a
nested tag block, legacy files may instead carry a fixed 52-byte record.
"""

import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from movelist.errors import UnknownTagError
from movelist.formats.binary import BufferReader
from movelist.formats.tag_stream import TagStreamParser, TagStreamResult
from movelist.model import (
    Frame,
    Display,
    State,
    Attack,
    Effect,
    Condition,
    Hitbox,
    ATTACKBOX_BASE,
    MAX_HITBOX_SLOT,
    EFFECT_PARAM_COUNT,
    CONDITION_PARAM_COUNT,
)

# Legacy positional EF/IF record: int16 type, int16 number, 12 x int32
RECORD_SIZE = 52
_RECORD = struct.Struct('<hh12i')


class TagDialect(Enum):
    """Which tag encoding a stream follows."""
    NATIVE = "native"
    LEGACY = "legacy"


@dataclass
class PendingAlias:
    """A hitbox that copies an earlier box once the whole sequence is read."""
    target_frame: int
    target_slot: int
    source_ref: int


@dataclass
class SequenceContext:
    """
    Cross-frame bookkeeping for one sequence.

    box_refs holds (frame, slot) for every directly stored box, in file
    order; aliases point into it by index. states holds decoded state
    blocks that ASSM may copy.
    """
    box_capacity: int = 0
    state_capacity: int = 0
    box_refs: List[Tuple[Frame, int]] = field(default_factory=list)
    states: List[State] = field(default_factory=list)
    pending: List[PendingAlias] = field(default_factory=list)
    frame_index: int = -1


class FrameTagDecoder:
    """
    Decodes FSTR..FEND frame blocks and their nested sub-blocks.

    Usage:
        frames = FrameTagDecoder(reader, end, TagDialect.LEGACY, log=log)
        result = frames.decode_frame(offset, frame, context)
    """

    def __init__(self, reader: BufferReader, end: int, dialect: TagDialect, log=None):
        self.reader = reader
        self.end = end
        self.dialect = dialect
        self._log = log

    def _parser(self, block: str) -> TagStreamParser:
        return TagStreamParser(self.reader, self.end, block, log=self._log)

    def _int_field(self, target, attr: str):
        """Handler storing one int32 payload word into target.attr."""
        def handler(tag, offset):
            value, offset = self.reader.read_int32(offset)
            setattr(target, attr, value)
            return offset
        return handler

    # ------------------------------------------------------------------
    # Frame block
    # ------------------------------------------------------------------

    def decode_frame(self, offset: int, frame: Frame, context: SequenceContext) -> TagStreamResult:
        """Decode one frame body starting just after its FSTR tag."""
        reader = self.reader
        log = self._log

        def direct_box(tag, offset):
            location, offset = reader.read_uint32(offset)
            coords, offset = reader.read_int32_array(offset, 4)
            if tag == b"HRAT":
                location += ATTACKBOX_BASE
            if location > MAX_HITBOX_SLOT:
                if log is not None:
                    log.recoverable(f"Hitbox slot {location} out of range, skipped")
                return offset
            frame.hitboxes[location] = Hitbox(*coords)
            if len(context.box_refs) < context.box_capacity:
                context.box_refs.append((frame, location))
            elif log is not None:
                log.recoverable(f"Hitbox slot {location} exceeds declared reference count")
            return offset

        def alias_box(tag, offset):
            location, offset = reader.read_uint32(offset)
            source, offset = reader.read_uint32(offset)
            if tag == b"HRAS":
                location += ATTACKBOX_BASE
            if location <= MAX_HITBOX_SLOT and context.frame_index >= 0:
                context.pending.append(PendingAlias(context.frame_index, location, source))
            return offset

        def attack(tag, offset):
            frame.attack = Attack()
            return self.decode_attack(offset, frame.attack).offset

        def state(tag, offset):
            result = self.decode_state(offset, frame.state)
            if len(context.states) < context.state_capacity:
                context.states.append(frame.state)
            return result.offset

        def state_ref(tag, offset):
            ref, offset = reader.read_uint32(offset)
            if ref < len(context.states):
                frame.state = context.states[ref].copy()
            elif log is not None:
                log.recoverable(f"State reference {ref} not decoded yet, ignored")
            return offset

        def display(tag, offset):
            frame.display.sprite_id = -1
            return self.decode_display(offset, frame.display).offset

        def effect(tag, offset):
            _, offset = reader.read_uint32(offset)
            ef, offset = self.decode_effect(offset)
            frame.effects.append(ef)
            return offset

        def condition(tag, offset):
            _, offset = reader.read_uint32(offset)
            cond, offset = self.decode_condition(offset)
            frame.conditions.append(cond)
            return offset

        def counts(tag, offset):
            # Highest-slot hints; the model tracks slots itself
            _, offset = reader.read_int32(offset)
            return offset

        parser = self._parser("frame")
        parser.on_many((b"HRNM", b"HRAT"), direct_box)
        parser.on_many((b"HRNS", b"HRAS"), alias_box)
        parser.on(b"ATST", attack)
        parser.on(b"ASST", state)
        parser.on(b"ASSM", state_ref)
        parser.on(b"AFST", display)
        parser.on(b"EFST", effect)
        parser.on(b"IFST", condition)
        parser.on_many((b"FSNA", b"FSNH", b"FSNE", b"FSNI"), counts)
        parser.terminate_on(b"FEND")
        return parser.run(offset)

    # ------------------------------------------------------------------
    # AF: display
    # ------------------------------------------------------------------

    def decode_display(self, offset: int, af: Display) -> TagStreamResult:
        reader = self.reader

        def sprite(tag, offset):
            use_pattern, offset = reader.read_int32(offset)
            af.sprite_id, offset = reader.read_int32(offset)
            af.use_pattern = bool(use_pattern)
            return offset

        def position(tag, offset):
            af.offset_x, offset = reader.read_int32(offset)
            af.offset_y, offset = reader.read_int32(offset)
            return offset

        def duration(tag, offset):
            suffix = tag[3:4]
            if suffix.isdigit():
                af.duration = int(suffix)
                return offset
            if suffix == b"L":
                af.duration, offset = reader.read_int32(offset)
                return offset
            raise UnknownTagError(tag, offset - 4, "AF")

        def y_shorthand(tag, offset):
            suffix = tag[3:4]
            if suffix.isdigit():
                value = int(suffix)
                af.offset_y = value + 10 if value < 4 else value
            elif suffix == b"X":
                af.offset_y = 10
            else:
                raise UnknownTagError(tag, offset - 4, "AF")
            af.offset_x = 0
            return offset

        def flow(tag, offset):
            suffix = tag[3:4]
            if suffix in (b"1", b"2"):
                af.ani_type = int(suffix)
                return offset
            if suffix == b"E":
                af.ani_flag, offset = reader.read_int32(offset)
                return offset
            raise UnknownTagError(tag, offset - 4, "AF")

        def alpha(tag, offset):
            af.blend_mode, offset = reader.read_int32(offset)
            value, offset = reader.read_int32(offset)
            af.rgba[3] = value / 255.0
            return offset

        def color(tag, offset):
            values, offset = reader.read_int32_array(offset, 3)
            af.rgba[0:3] = [v / 255.0 for v in values]
            return offset

        def rotation(axis):
            def handler(tag, offset):
                af.rotation[axis], offset = reader.read_float(offset)
                return offset
            return handler

        def scale(tag, offset):
            af.scale[0], offset = reader.read_float(offset)
            af.scale[1], offset = reader.read_float(offset)
            return offset

        def flip(tag, offset):
            flags, offset = reader.read_int32_array(offset, 2)
            af.rotation[0] = 0.5 if flags[0] else 0.0
            af.rotation[1] = 0.5 if flags[1] else 0.0
            return offset

        def afrt(tag, offset):
            value, offset = reader.read_int32(offset)
            af.afrt = bool(value)
            return offset

        parser = self._parser("AF")
        parser.on(b"AFGP", sprite)
        parser.on(b"AFOF", position)
        parser.on_prefix(b"AFD", duration)
        parser.on_prefix(b"AFY", y_shorthand)
        parser.on_prefix(b"AFF", flow)
        parser.on(b"AFAL", alpha)
        parser.on(b"AFRG", color)
        parser.on(b"AFAX", rotation(0))
        parser.on(b"AFAY", rotation(1))
        parser.on(b"AFAZ", rotation(2))
        parser.on(b"AFZM", scale)
        parser.on(b"AFTN", flip)
        parser.on(b"AFRT", afrt)
        parser.on(b"AFJP", self._int_field(af, 'jump'))
        parser.on(b"AFHK", self._int_field(af, 'interpolation_type'))
        parser.on(b"AFPR", self._int_field(af, 'priority'))
        parser.on(b"AFCT", self._int_field(af, 'loop_count'))
        parser.on(b"AFLP", self._int_field(af, 'loop_end'))
        parser.on(b"AFJC", self._int_field(af, 'land_jump'))
        parser.terminate_on(b"AFED")
        return parser.run(offset)

    # ------------------------------------------------------------------
    # AS: state
    # ------------------------------------------------------------------

    def decode_state(self, offset: int, state: State) -> TagStreamResult:
        reader = self.reader
        log = self._log

        def velocity(tag, offset):
            values, offset = reader.read_int32_array(offset, 5)
            state.movement_flags = values[0]
            state.speed = values[1:3]
            state.accel = values[3:5]
            return offset

        def clear_velocity(tag, offset):
            state.movement_flags = 0x11
            state.speed = [0, 0]
            state.accel = [0, 0]
            return offset

        def stance(tag, offset):
            state.stance_state = int(tag[3:4])
            return offset

        def sine(tag, offset):
            flags, offset = reader.read_int32(offset)
            state.sine_flags = flags & 0xFF
            state.sine_parameters, offset = reader.read_int32_array(offset, 4)
            state.sine_phases[0], offset = reader.read_float(offset)
            state.sine_phases[1], offset = reader.read_float(offset)
            return offset

        def status(tag, offset):
            value, offset = reader.read_uint32(offset)
            suffix = tag[3:4]
            if suffix in (b"0", b"1"):
                state.status_flags[int(suffix)] = value
            elif log is not None:
                log.debug(f"Status flag word {tag!r} ignored")
            return offset

        parser = self._parser("AS")
        parser.on(b"ASV0", velocity)
        parser.on(b"ASVX", clear_velocity)
        parser.on_many((b"ASS1", b"ASS2"), stance)
        parser.on(b"AST0", sine)
        parser.on_prefix(b"ASF", status)
        parser.on(b"ASMV", self._int_field(state, 'can_move'))
        parser.on(b"ASCN", self._int_field(state, 'cancel_normal'))
        parser.on(b"ASCS", self._int_field(state, 'cancel_special'))
        parser.on(b"ASCT", self._int_field(state, 'counter_type'))
        parser.on(b"ASMX", self._int_field(state, 'max_speed_x'))
        parser.on(b"ASAA", self._int_field(state, 'hits_number'))
        parser.on(b"ASYS", self._int_field(state, 'invincibility'))
        parser.terminate_on(b"ASED")
        return parser.run(offset)

    # ------------------------------------------------------------------
    # AT: attack
    # ------------------------------------------------------------------

    def decode_attack(self, offset: int, attack: Attack) -> TagStreamResult:
        reader = self.reader
        attack.correction = 100

        def damage(tag, offset):
            attack.red_damage, offset = reader.read_int16(offset)
            attack.damage, offset = reader.read_int16(offset)
            attack.guard_damage, offset = reader.read_int16(offset)
            attack.meter_gain, offset = reader.read_int16(offset)
            return offset

        def vector(values_attr, flags_attr):
            def handler(tag, offset):
                count, offset = reader.read_uint32(offset)
                words, offset = reader.read_uint32_array(offset, count)
                values = getattr(attack, values_attr)
                flags = getattr(attack, flags_attr)
                for i, word in enumerate(words[:3]):
                    values[i] = word & 0xFF
                    flags[i] = word >> 8
                return offset
            return handler

        def hit_effect(tag, offset):
            attack.hit_effect, offset = reader.read_int32(offset)
            attack.sound_effect, offset = reader.read_int32(offset)
            return offset

        def gravity(tag, offset):
            attack.extra_gravity, offset = reader.read_float(offset)
            return offset

        parser = self._parser("AT")
        parser.on(b"ATVV", damage)
        parser.on(b"ATGV", vector('guard_vector', 'guard_vector_flags'))
        parser.on(b"ATHV", vector('hit_vector', 'hit_vector_flags'))
        parser.on(b"ATHE", hit_effect)
        parser.on(b"ATUH", gravity)
        parser.on(b"ATGD", self._int_field(attack, 'guard_flags'))
        parser.on(b"ATHS", self._int_field(attack, 'correction'))
        parser.on(b"ATHT", self._int_field(attack, 'correction_type'))
        parser.on(b"ATF1", self._int_field(attack, 'other_flags'))
        parser.on(b"ATKK", self._int_field(attack, 'added_effect'))
        parser.on(b"ATNG", self._int_field(attack, 'hitgrab'))
        parser.on(b"ATBT", self._int_field(attack, 'break_time'))
        parser.on(b"ATSN", self._int_field(attack, 'hit_stop_time'))
        parser.on(b"ATSU", self._int_field(attack, 'untech_time'))
        parser.on(b"ATSP", self._int_field(attack, 'hit_stop'))
        parser.on(b"ATGN", self._int_field(attack, 'block_stop_time'))
        parser.terminate_on(b"ATED")
        return parser.run(offset)

    # ------------------------------------------------------------------
    # EF / IF: effects and conditions
    # ------------------------------------------------------------------

    def _read_record(self, offset: int) -> Tuple[tuple, int]:
        return _RECORD.unpack_from(self.reader.slice(offset, RECORD_SIZE)), offset + RECORD_SIZE

    def decode_effect(self, offset: int) -> Tuple[Effect, int]:
        """Decode an EFST payload (after its index word)."""
        ef = Effect()
        if self.dialect == TagDialect.LEGACY and not self.reader.matches(offset, b"EFTP"):
            values, offset = self._read_record(offset)
            ef.type, ef.number = values[0], values[1]
            ef.params = list(values[2:2 + EFFECT_PARAM_COUNT])
            return ef, offset

        reader = self.reader

        def params(tag, offset):
            ef.params, offset = reader.read_int32_array(offset, EFFECT_PARAM_COUNT)
            return offset

        parser = self._parser("EF")
        parser.on(b"EFTP", self._int_field(ef, 'type'))
        parser.on(b"EFNO", self._int_field(ef, 'number'))
        parser.on(b"EFPR", params)
        parser.terminate_on(b"EFED")
        return ef, parser.run(offset).offset

    def decode_condition(self, offset: int) -> Tuple[Condition, int]:
        """Decode an IFST payload (after its index word)."""
        cond = Condition()
        if self.dialect == TagDialect.LEGACY and not self.reader.matches(offset, b"IFTP"):
            values, offset = self._read_record(offset)
            # Second half-word is reserved; only the first 9 params are used
            cond.type = values[0]
            cond.params = list(values[2:2 + CONDITION_PARAM_COUNT])
            return cond, offset

        reader = self.reader

        def params(tag, offset):
            cond.params, offset = reader.read_int32_array(offset, CONDITION_PARAM_COUNT)
            return offset

        parser = self._parser("IF")
        parser.on(b"IFTP", self._int_field(cond, 'type'))
        parser.on(b"IFPR", params)
        parser.terminate_on(b"IFED")
        return cond, parser.run(offset).offset


__all__ = [
    'TagDialect',
    'PendingAlias',
    'SequenceContext',
    'FrameTagDecoder',
    'RECORD_SIZE',
]
