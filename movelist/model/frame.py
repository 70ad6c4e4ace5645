"""
Frame-level data structures of the canonical model.

A Frame is one timestep of a Sequence: display (AF), state (AS) and
attack (AT) blocks, ordered effect (EF) and condition (IF) records, and
a sparse slot -> Hitbox mapping.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any
from enum import IntEnum

# Hitbox slot ranges
HURTBOX_SLOTS = range(0, 25)
ATTACKBOX_SLOTS = range(25, 33)
ATTACKBOX_BASE = 25
MAX_HITBOX_SLOT = 32

EFFECT_PARAM_COUNT = 12
CONDITION_PARAM_COUNT = 9


class FlowType(IntEnum):
    """What happens after a frame's duration runs out."""
    END = 0   # Go to pattern (jump holds a pattern number)
    NEXT = 1  # Advance to the next frame
    JUMP = 2  # Go to frame (jump holds a frame number)


class EffectType(IntEnum):
    """Known effect (EF) type ids."""
    SPAWN_PATTERN = 1
    VARIOUS = 2
    SPAWN_PRESET = 3
    SET_OPPONENT_STATE = 4
    DAMAGE = 5
    VARIOUS_2 = 6
    SPAWN_ACTOR = 8
    PLAY_AUDIO = 9
    SPAWN_RANDOM_PATTERN = 11
    SET_OPPONENT_STATE_RESET = 14
    SPAWN_RELATIVE_PATTERN = 101
    SPAWN_RANDOM_RELATIVE_PATTERN = 111
    SPAWN_AND_FOLLOW = 1000


class ConditionType(IntEnum):
    """Known condition (IF) type ids."""
    DIRECTIONAL_INPUT = 1
    DESPAWN = 2
    BRANCH_ON_HIT = 3
    VECTOR_CHECK = 4
    KO_CHECK = 5
    LEVER_TRIGGER_FRAME = 6
    LEVER_TRIGGER_PATTERN = 7
    RANDOM = 8
    LOOP_COUNTER_SET = 9
    LOOP_COUNTER_CHECK = 10
    COMMAND_INPUT = 11
    OPPONENT_DISTANCE = 12
    SCREEN_CORNER = 13
    BOX_COLLISION = 14
    BOX_COLLISION_CAPTURE = 15
    SCROLLING = 16
    HIT_COUNT = 17
    MAIN_ANIMATION = 18
    REFLECTION = 19
    BOX_COLLISION_2 = 20
    OPPONENT_CHARACTER = 21
    BG_NUMBER = 22
    BG_TYPE = 23
    PROJECTILE_VARIABLE = 24
    VARIABLE_COMPARE = 25
    LEVER_VECTOR = 26
    PARENT_HURT = 27
    KNOCKED_OUT = 28
    SCREEN_X = 29
    FACING = 30
    VARIABLE_ON_INPUT = 31
    CPU_SIDE = 32
    SOUND_PLAYING = 33
    HOMING = 34
    CUSTOM_CANCEL = 35
    METER_MODE = 36
    COLOR_SELECTED = 37
    VARIABLE_ON_HIT = 38
    AFTER_N_FRAMES = 40


def _lookup(enum_cls, value: int):
    try:
        return enum_cls(value)
    except ValueError:
        return None


@dataclass
class Hitbox:
    """Rectangle given by two corners."""
    x1: int = 0
    y1: int = 0
    x2: int = 0
    y2: int = 0

    def is_degenerate(self) -> bool:
        """Zero width or height marks a box as not present."""
        return self.x1 == self.x2 or self.y1 == self.y2

    def normalized(self) -> 'Hitbox':
        """Copy with inverted corners swapped."""
        x1, x2 = sorted((self.x1, self.x2))
        y1, y2 = sorted((self.y1, self.y2))
        return Hitbox(x1, y1, x2, y2)

    def copy(self) -> 'Hitbox':
        return Hitbox(self.x1, self.y1, self.x2, self.y2)

    def to_list(self) -> List[int]:
        return [self.x1, self.y1, self.x2, self.y2]


@dataclass
class Display:
    """Animation/display block (AF)."""
    sprite_id: int = -1
    use_pattern: bool = False
    offset_x: int = 0
    offset_y: int = 0
    duration: int = 0
    ani_type: int = FlowType.END
    ani_flag: int = 0
    jump: int = 0
    land_jump: int = 0
    priority: int = 0
    loop_count: int = 0
    loop_end: int = 0
    interpolation_type: int = 0
    blend_mode: int = 0
    rgba: List[float] = field(default_factory=lambda: [1.0, 1.0, 1.0, 1.0])
    rotation: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    scale: List[float] = field(default_factory=lambda: [1.0, 1.0])
    afrt: bool = False

    @property
    def flow(self) -> Optional[FlowType]:
        return _lookup(FlowType, self.ani_type)


@dataclass
class State:
    """Movement/state block (AS)."""
    movement_flags: int = 0
    speed: List[int] = field(default_factory=lambda: [0, 0])
    accel: List[int] = field(default_factory=lambda: [0, 0])
    can_move: int = 0
    stance_state: int = 0
    cancel_normal: int = 0
    cancel_special: int = 0
    counter_type: int = 0
    sine_flags: int = 0
    sine_parameters: List[int] = field(default_factory=lambda: [0, 0, 0, 0])
    sine_phases: List[float] = field(default_factory=lambda: [0.0, 0.0])
    max_speed_x: int = 0
    hits_number: int = 0
    invincibility: int = 0
    status_flags: List[int] = field(default_factory=lambda: [0, 0])

    def copy(self) -> 'State':
        return State(
            movement_flags=self.movement_flags,
            speed=list(self.speed),
            accel=list(self.accel),
            can_move=self.can_move,
            stance_state=self.stance_state,
            cancel_normal=self.cancel_normal,
            cancel_special=self.cancel_special,
            counter_type=self.counter_type,
            sine_flags=self.sine_flags,
            sine_parameters=list(self.sine_parameters),
            sine_phases=list(self.sine_phases),
            max_speed_x=self.max_speed_x,
            hits_number=self.hits_number,
            invincibility=self.invincibility,
            status_flags=list(self.status_flags),
        )


@dataclass
class Attack:
    """Attack block (AT)."""
    guard_flags: int = 0
    correction: int = 100
    red_damage: int = 0
    damage: int = 0
    guard_damage: int = 0
    meter_gain: int = 0
    correction_type: int = 0
    guard_vector: List[int] = field(default_factory=lambda: [0, 0, 0])
    guard_vector_flags: List[int] = field(default_factory=lambda: [0, 0, 0])
    hit_vector: List[int] = field(default_factory=lambda: [0, 0, 0])
    hit_vector_flags: List[int] = field(default_factory=lambda: [0, 0, 0])
    other_flags: int = 0
    hit_effect: int = 0
    sound_effect: int = 0
    added_effect: int = 0
    hitgrab: int = 0
    extra_gravity: float = 0.0
    break_time: int = 0
    hit_stop_time: int = 0
    untech_time: int = 0
    hit_stop: int = 0
    block_stop_time: int = 0


@dataclass
class Effect:
    """
    Effect (EF) record.

    The meaning of each parameter depends on type; unknown types keep their
    raw parameters untouched.
    """
    type: int = 0
    number: int = 0
    params: List[int] = field(default_factory=lambda: [0] * EFFECT_PARAM_COUNT)

    @property
    def kind(self) -> Optional[EffectType]:
        return _lookup(EffectType, self.type)


@dataclass
class Condition:
    """Condition (IF) record."""
    type: int = 0
    number: int = 0
    params: List[int] = field(default_factory=lambda: [0] * CONDITION_PARAM_COUNT)

    @property
    def kind(self) -> Optional[ConditionType]:
        return _lookup(ConditionType, self.type)


@dataclass
class Frame:
    """One timestep of a sequence."""
    display: Display = field(default_factory=Display)
    state: State = field(default_factory=State)
    attack: Optional[Attack] = None
    effects: List[Effect] = field(default_factory=list)
    conditions: List[Condition] = field(default_factory=list)
    hitboxes: Dict[int, Hitbox] = field(default_factory=dict)
    # Raw numeric payloads with no known meaning yet
    opaque: Dict[str, Any] = field(default_factory=dict)

    def free_slot(self, attack: bool) -> int:
        """First unused hitbox slot in the hurt or attack range, or -1."""
        slots = ATTACKBOX_SLOTS if attack else HURTBOX_SLOTS
        for slot in slots:
            if slot not in self.hitboxes:
                return slot
        return -1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        d = self.display
        s = self.state
        result = {
            'display': {
                'sprite_id': d.sprite_id,
                'use_pattern': d.use_pattern,
                'offset': [d.offset_x, d.offset_y],
                'duration': d.duration,
                'flow': d.flow.name if d.flow is not None else d.ani_type,
                'ani_flag': d.ani_flag,
                'jump': d.jump,
                'land_jump': d.land_jump,
                'priority': d.priority,
                'loop': [d.loop_count, d.loop_end],
                'interpolation_type': d.interpolation_type,
                'blend_mode': d.blend_mode,
                'rgba': list(d.rgba),
                'rotation': list(d.rotation),
                'scale': list(d.scale),
                'afrt': d.afrt,
            },
            'state': {
                'movement_flags': s.movement_flags,
                'speed': list(s.speed),
                'accel': list(s.accel),
                'can_move': s.can_move,
                'stance_state': s.stance_state,
                'cancel': [s.cancel_normal, s.cancel_special],
                'counter_type': s.counter_type,
                'invincibility': s.invincibility,
                'status_flags': list(s.status_flags),
            },
            'effects': [
                {'type': e.type, 'number': e.number, 'params': list(e.params)}
                for e in self.effects
            ],
            'conditions': [
                {'type': c.type, 'params': list(c.params)}
                for c in self.conditions
            ],
            'hitboxes': {
                slot: box.to_list() for slot, box in sorted(self.hitboxes.items())
            },
        }
        if self.attack is not None:
            a = self.attack
            result['attack'] = {
                'guard_flags': a.guard_flags,
                'damage': a.damage,
                'red_damage': a.red_damage,
                'guard_damage': a.guard_damage,
                'meter_gain': a.meter_gain,
                'correction': a.correction,
                'hit_vector': list(a.hit_vector),
                'guard_vector': list(a.guard_vector),
                'hit_stop': a.hit_stop,
            }
        if self.opaque:
            result['opaque'] = dict(self.opaque)
        return result
