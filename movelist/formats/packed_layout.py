"""
Record layouts of the packed legacy format.

Fixed-size records are described as numpy structured dtypes so whole
arrays can be viewed straight out of the file buffer. SectionLayout turns
a sequence header into explicit (offset, length) extents before any record
is touched.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np

FILE_HEADER_SIZE = 0x40
OFFSET_TABLE_OFFSET = 0x40
OFFSET_TABLE_ENTRIES = 256
OFFSET_TABLE_SIZE = OFFSET_TABLE_ENTRIES * 4

SEQUENCE_HEADER_SIZE = 68
FRAME_RECORD_SIZE = 216
HITBOX_RECORD_SIZE = 88
EFFECT_RECORD_SIZE = 52
CONDITION_RECORD_SIZE = 52
VECTOR_RECORD_SIZE = 8

ABSENT = -1

FILE_HEADER_DTYPE = np.dtype({
    'names': ['version', 'anim_size', 'reserved', 'anim_size2', 'image_size'],
    'formats': ['<u4', '<u4', '<u4', '<u4', '<u4'],
    'offsets': [0x10, 0x14, 0x18, 0x1C, 0x20],
    'itemsize': FILE_HEADER_SIZE,
})

SEQUENCE_HEADER_DTYPE = np.dtype({
    'names': ['frame_count', 'flag1', 'flag2', 'frame_data', 'hitboxes',
              'effects', 'conditions', 'vectors'],
    'formats': ['<u4', '<u4', '<u4', '<i4', '<i4', '<i4', '<i4', '<i4'],
    'offsets': [0x00, 0x04, 0x08, 0x0C, 0x10, 0x14, 0x18, 0x28],
    'itemsize': SEQUENCE_HEADER_SIZE,
})

# 44-byte display region at +0, 56-byte state region at +44, indices at +100.
# The landing target is the high byte of the jump word.
FRAME_DTYPE = np.dtype({
    'names': [
        'sprite', 'x', 'y', 'duration', 'flow', 'jump', 'priority',
        'rotation_flip', 'arithmetic_op',
        'vel_x', 'vel_y', 'accel_x', 'accel_y', 'stance', 'cancel_normal',
        'cancel_special', 'can_move', 'flags1', 'flags2',
        'hitbox', 'effects', 'conditions', 'main_vector',
        'condition_vectors', 'effect_vectors', 'extra_vectors',
    ],
    'formats': [
        '<i2', '<i2', '<i2', '<i2', 'u1', '<i2', 'u1',
        'u1', 'u1',
        '<i2', '<i2', '<i2', '<i2', 'u1', 'u1',
        'u1', 'u1', '<u4', '<u4',
        '<i2', ('<i2', 8), ('<i2', 8), '<i2',
        ('<i2', 8), ('<i2', 16), ('<i2', 8),
    ],
    'offsets': [
        0x00, 0x02, 0x04, 0x06, 0x0B, 0x0C, 0x0E,
        0x10, 0x12,
        44 + 0x08, 44 + 0x0A, 44 + 0x10, 44 + 0x12, 44 + 0x18, 44 + 0x19,
        44 + 0x1A, 44 + 0x1D, 44 + 0x24, 44 + 0x28,
        100, 102, 118, 134,
        136, 152, 184,
    ],
    'itemsize': FRAME_RECORD_SIZE,
})

HITBOX_DTYPE = np.dtype({
    'names': ['type', 'x', 'y', 'w', 'h'],
    'formats': ['<i2', '<i2', '<i2', '<i2', '<i2'],
    'offsets': [0x14, 0x24, 0x26, 0x28, 0x2A],
    'itemsize': HITBOX_RECORD_SIZE,
})

# Effects and conditions share one record shape; conditions use 9 params
RECORD_DTYPE = np.dtype([
    ('type', '<i2'),
    ('number', '<i2'),
    ('params', '<i4', 12),
])

VECTOR_DTYPE = np.dtype([
    ('start_x', '<i2'),
    ('start_y', '<i2'),
    ('end_x', '<i2'),
    ('end_y', '<i2'),
])

# Section name -> (header field, record size)
SECTIONS = {
    'hitboxes': ('hitboxes', HITBOX_RECORD_SIZE),
    'effects': ('effects', EFFECT_RECORD_SIZE),
    'conditions': ('conditions', CONDITION_RECORD_SIZE),
    'vectors': ('vectors', VECTOR_RECORD_SIZE),
}


@dataclass
class Section:
    """A byte extent inside one sequence, relative to the sequence start."""
    offset: int
    length: int
    record_size: int

    @property
    def count(self) -> int:
        """Number of whole records that fit in the extent."""
        return self.length // self.record_size

    def contains(self, index: int) -> bool:
        return 0 <= index < self.count


@dataclass
class SectionLayout:
    """Resolved extents of every section of one sequence."""
    size: int
    frames: Section
    sections: Dict[str, Section] = field(default_factory=dict)
    invalid: Dict[str, int] = field(default_factory=dict)

    def get(self, name: str) -> Optional[Section]:
        return self.sections.get(name)

    @classmethod
    def compute(cls, header, size: int) -> 'SectionLayout':
        """
        Derive every section extent from a sequence header.

        Each section runs to the next greater declared section start, or to
        the end of the sequence. Offsets outside [68, size) are recorded in
        `invalid` and the section is treated as absent.

        Args:
            header: One SEQUENCE_HEADER_DTYPE record (or a mapping with the same keys)
            size: Byte length of the sequence
        """
        starts = {}
        invalid = {}
        for name, (key, _) in SECTIONS.items():
            offset = int(header[key])
            if offset == ABSENT:
                continue
            if offset < SEQUENCE_HEADER_SIZE or offset >= size:
                invalid[name] = offset
                continue
            starts[name] = offset

        boundaries = sorted(set(starts.values()) | {size})

        def extent(offset):
            for boundary in boundaries:
                if boundary > offset:
                    return boundary - offset
            return 0

        frames = Section(SEQUENCE_HEADER_SIZE, extent(SEQUENCE_HEADER_SIZE), FRAME_RECORD_SIZE)
        sections = {
            name: Section(offset, extent(offset), SECTIONS[name][1])
            for name, offset in starts.items()
        }
        return cls(size=size, frames=frames, sections=sections, invalid=invalid)
