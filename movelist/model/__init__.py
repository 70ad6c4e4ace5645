"""
Canonical move-list model.

Every decoder populates these structures; every consumer reads them.
No decoding logic lives here.
"""

from movelist.model.frame import (
    Frame,
    Display,
    State,
    Attack,
    Effect,
    Condition,
    Hitbox,
    FlowType,
    EffectType,
    ConditionType,
    HURTBOX_SLOTS,
    ATTACKBOX_SLOTS,
    ATTACKBOX_BASE,
    MAX_HITBOX_SLOT,
    EFFECT_PARAM_COUNT,
    CONDITION_PARAM_COUNT,
)
from movelist.model.sequence import (
    Sequence,
    SequenceTable,
    MergeMode,
    DEFAULT_TABLE_SIZE,
    normalize_hitboxes,
)

__all__ = [
    'Frame',
    'Display',
    'State',
    'Attack',
    'Effect',
    'Condition',
    'Hitbox',
    'FlowType',
    'EffectType',
    'ConditionType',
    'HURTBOX_SLOTS',
    'ATTACKBOX_SLOTS',
    'ATTACKBOX_BASE',
    'MAX_HITBOX_SLOT',
    'EFFECT_PARAM_COUNT',
    'CONDITION_PARAM_COUNT',
    'Sequence',
    'SequenceTable',
    'MergeMode',
    'DEFAULT_TABLE_SIZE',
    'normalize_hitboxes',
]
