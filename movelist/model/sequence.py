"""
Sequence and sequence-table structures of the canonical model.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any
from enum import Enum

from movelist.model.frame import Frame

DEFAULT_TABLE_SIZE = 1000


class MergeMode(Enum):
    """How a decode treats a table that already holds sequences."""
    REPLACE = "replace"  # Clear the table first
    EXTEND = "extend"    # Keep existing slots; decoded slots overwrite


@dataclass
class Sequence:
    """One named animation (pattern)."""
    name: str = ""
    code_name: str = ""
    psts: int = 0
    level: int = 0
    flag: int = 0
    frames: List[Frame] = field(default_factory=list)
    empty: bool = True
    initialized: bool = False
    modified: bool = False
    opaque: Dict[str, Any] = field(default_factory=dict)

    def allocate(self, frame_count: int) -> bool:
        """
        Commit the frame count.

        Returns:
            False if the sequence was already allocated (count is immutable)
        """
        if self.initialized:
            return False
        self.frames = [Frame() for _ in range(frame_count)]
        self.initialized = True
        self.empty = False
        return True

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = {
            'name': self.name,
            'code_name': self.code_name,
            'psts': self.psts,
            'level': self.level,
            'flag': self.flag,
            'frames': [frame.to_dict() for frame in self.frames],
        }
        if self.opaque:
            result['opaque'] = dict(self.opaque)
        return result


class SequenceTable:
    """
    Fixed-size table of sequence slots.

    Unused slots stay in the table marked empty; a slot's index is the
    sequence's identity.
    """

    def __init__(self, size: int = DEFAULT_TABLE_SIZE):
        self.sequences: List[Sequence] = [Sequence() for _ in range(size)]
        self.loaded: bool = False

    def __len__(self):
        return len(self.sequences)

    def __iter__(self):
        return iter(self.sequences)

    def __getitem__(self, index: int) -> Sequence:
        return self.sequences[index]

    def get(self, index: int) -> Optional[Sequence]:
        """Get a sequence by index, or None when out of range."""
        if index < 0 or index >= len(self.sequences):
            return None
        return self.sequences[index]

    def resize(self, size: int):
        """Grow or shrink to exactly size slots."""
        if size < len(self.sequences):
            del self.sequences[size:]
        else:
            self.sequences.extend(Sequence() for _ in range(size - len(self.sequences)))

    def clear(self, size: int = 0):
        """Drop every sequence, leaving size empty slots."""
        self.sequences = [Sequence() for _ in range(size)]
        self.loaded = False

    def prepare(self, count: int, merge: MergeMode):
        """Size the table for a file declaring count sequences."""
        if merge == MergeMode.REPLACE:
            self.clear(count)
        elif count > len(self.sequences):
            self.resize(count)

    def loaded_count(self) -> int:
        """Number of non-empty slots."""
        return sum(1 for seq in self.sequences if not seq.empty)

    def mark_modified(self, index: int):
        seq = self.get(index)
        if seq is not None:
            seq.modified = True

    def clear_modified(self):
        for seq in self.sequences:
            seq.modified = False

    def decorated_name(self, index: int) -> str:
        """Display label: zero-padded index, name, code name, modified marker."""
        seq = self.sequences[index]
        label = f"{index:03d} "

        if not seq.empty:
            no_frames = not seq.frames
            if no_frames:
                label += "〇 "
            if not seq.name and not seq.code_name and not no_frames:
                label += "Untitled"

        label += seq.name
        if seq.code_name:
            label += f" - {seq.code_name}"
        if seq.modified:
            label += " *"
        return label

    def to_dict(self) -> Dict[str, Any]:
        """Convert non-empty sequences to a dictionary keyed by index."""
        return {
            'size': len(self.sequences),
            'sequences': {
                i: seq.to_dict()
                for i, seq in enumerate(self.sequences)
                if not seq.empty
            },
        }


def normalize_hitboxes(table: SequenceTable) -> SequenceTable:
    """
    Drop degenerate hitboxes and fix inverted corners, in place.

    This is what the native writer applies to its output; comparing a
    decoded table against a re-encoded one needs the same treatment.
    """
    for seq in table.sequences:
        for frame in seq.frames:
            frame.hitboxes = {
                slot: box.normalized()
                for slot, box in frame.hitboxes.items()
                if not box.is_degenerate()
            }
    return table
