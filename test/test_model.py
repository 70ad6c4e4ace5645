"""
Tests for the canonical move-list model

Tests for sequence tables, allocation, merge policies and serialization.
"""

import pytest
import sys
import os

# Add the parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from movelist.model import (
    Frame,
    State,
    Hitbox,
    Effect,
    Condition,
    EffectType,
    ConditionType,
    FlowType,
    Sequence,
    SequenceTable,
    MergeMode,
    normalize_hitboxes,
)


class TestHitbox:
    """Test hitbox helpers."""

    def test_degenerate(self):
        """Test that zero width or height is degenerate."""
        assert Hitbox(0, 0, 0, 10).is_degenerate()
        assert Hitbox(0, 5, 10, 5).is_degenerate()
        assert not Hitbox(0, 0, 1, 1).is_degenerate()

    def test_normalized(self):
        """Test that inverted corners are swapped."""
        assert Hitbox(10, 20, -10, -20).normalized() == Hitbox(-10, -20, 10, 20)


class TestFrame:
    """Test frame defaults and slot allocation."""

    def test_defaults(self):
        """Test a fresh frame."""
        f = Frame()
        assert f.display.sprite_id == -1
        assert f.display.flow == FlowType.END
        assert f.attack is None
        assert f.hitboxes == {}

    def test_free_slot(self):
        """Test hurt and attack slot allocation."""
        f = Frame()
        assert f.free_slot(False) == 0
        assert f.free_slot(True) == 25
        f.hitboxes[0] = Hitbox()
        f.hitboxes[25] = Hitbox()
        assert f.free_slot(False) == 1
        assert f.free_slot(True) == 26

    def test_free_slot_full(self):
        """Test that a full range gives -1."""
        f = Frame()
        for slot in range(25, 33):
            f.hitboxes[slot] = Hitbox()
        assert f.free_slot(True) == -1

    def test_state_copy_is_deep(self):
        """Test that copied state lists are independent."""
        s = State(speed=[1, 2])
        c = s.copy()
        c.speed[0] = 9
        assert s.speed == [1, 2]

    def test_known_kinds(self):
        """Test effect and condition type lookup."""
        assert Effect(type=9).kind == EffectType.PLAY_AUDIO
        assert Effect(type=77).kind is None
        assert Condition(type=40).kind == ConditionType.AFTER_N_FRAMES

    def test_to_dict(self):
        """Test frame serialization."""
        f = Frame()
        f.hitboxes[3] = Hitbox(1, 2, 3, 4)
        d = f.to_dict()
        assert d['display']['flow'] == 'END'
        assert d['hitboxes'] == {3: [1, 2, 3, 4]}
        assert 'attack' not in d
        assert 'opaque' not in d


class TestSequence:
    """Test allocation."""

    def test_allocate_once(self):
        """Test that the frame count is committed only once."""
        seq = Sequence()
        assert seq.allocate(3)
        assert seq.frame_count == 3
        assert not seq.empty
        assert not seq.allocate(5)
        assert seq.frame_count == 3

    def test_frames_are_distinct(self):
        """Test that allocated frames are separate objects."""
        seq = Sequence()
        seq.allocate(2)
        assert seq.frames[0] is not seq.frames[1]


class TestSequenceTable:
    """Test the slot table."""

    def setup_method(self):
        """Setup test fixtures."""
        self.table = SequenceTable(4)
        self.table[1].name = "Walk"
        self.table[1].allocate(2)

    def test_get(self):
        """Test bounds-checked access."""
        assert self.table.get(1).name == "Walk"
        assert self.table.get(4) is None
        assert self.table.get(-1) is None

    def test_prepare_replace(self):
        """Test that REPLACE clears and resizes."""
        self.table.prepare(2, MergeMode.REPLACE)
        assert len(self.table) == 2
        assert self.table[1].empty

    def test_prepare_extend(self):
        """Test that EXTEND grows but keeps slots."""
        self.table.prepare(6, MergeMode.EXTEND)
        assert len(self.table) == 6
        assert self.table[1].name == "Walk"

        self.table.prepare(2, MergeMode.EXTEND)
        assert len(self.table) == 6

    def test_loaded_count(self):
        """Test counting non-empty slots."""
        assert self.table.loaded_count() == 1

    def test_decorated_name(self):
        """Test display labels."""
        assert self.table.decorated_name(1) == "001 Walk"
        self.table[2].allocate(0)
        assert self.table.decorated_name(2) == "002 〇 "
        self.table[3].allocate(1)
        assert self.table.decorated_name(3) == "003 Untitled"

        self.table[1].code_name = "66"
        self.table.mark_modified(1)
        assert self.table.decorated_name(1) == "001 Walk - 66 *"
        self.table.clear_modified()
        assert not self.table[1].modified

    def test_to_dict_skips_empty(self):
        """Test that only loaded slots are serialized."""
        d = self.table.to_dict()
        assert d['size'] == 4
        assert list(d['sequences']) == [1]

    def test_normalize_hitboxes(self):
        """Test dropping degenerate boxes and fixing inverted ones."""
        f = self.table[1].frames[0]
        f.hitboxes = {0: Hitbox(5, 5, 0, 0), 1: Hitbox(0, 0, 0, 9)}
        normalize_hitboxes(self.table)
        assert f.hitboxes == {0: Hitbox(0, 0, 5, 5)}
