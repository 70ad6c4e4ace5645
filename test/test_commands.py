"""
Tests for command lists and the sprite atlas contract
"""

import pytest
import sys
import os

# Add the parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from movelist.atlas import SpriteAtlas, missing_sprites
from movelist.commands import (
    Command,
    parse_command_line,
    parse_commands,
    load_commands,
    get_command,
)
from movelist.model import SequenceTable


class FakeAtlas:
    """Atlas holding a fixed number of sprites."""

    def __init__(self, count):
        self.count = count

    def load(self, path):
        return True

    def sprite_count(self):
        return self.count

    def get_sprite(self, sprite_id):
        return None


class TestCommandLines:
    """Test parsing single lines."""

    def test_full_line(self):
        """Test id, input, hex pattern and comment."""
        cmd = parse_command_line("12 236A 1f 0 // Fireball\n")
        assert cmd == Command(12, "236A", 0x1F, "Fireball")

    def test_no_pattern(self):
        """Test a line without a pattern field."""
        cmd = parse_command_line("3 66")
        assert cmd.pattern == -1
        assert cmd.comment == ""

    def test_full_width_space_stripped(self):
        """Test that full-width padding is removed from comments."""
        cmd = parse_command_line("1 5A 0 //　ジャブ　")
        assert cmd.comment == "ジャブ"

    @pytest.mark.parametrize("line", ["", "   \n", "# header", "// note", "x 5A 0", "7"])
    def test_skipped_lines(self, line):
        """Test comments, blanks and malformed lines."""
        assert parse_command_line(line) is None

    def test_bad_pattern(self):
        """Test that a non-hex pattern is treated as absent."""
        assert parse_command_line("1 5A zz").pattern == -1


class TestParseCommands:
    """Test naming sequences from comments."""

    def setup_method(self):
        """Setup test fixtures."""
        self.table = SequenceTable(4)
        self.table[1].allocate(1)
        self.table[2].allocate(1)
        self.table[2].name = "Named"

    def test_names_unnamed_sequences(self):
        """Test that only loaded, unnamed sequences take the comment."""
        lines = [
            "1 5A 1 // Jab",
            "2 5B 2 // Kick",
            "3 5C 3 // Empty slot",
        ]
        commands = parse_commands(lines, self.table)
        assert len(commands) == 3
        assert self.table[1].name == "Jab"
        assert self.table[1].code_name == "Jab"
        assert self.table[2].name == "Named"
        assert self.table[3].name == ""

    def test_get_command(self):
        """Test lookup by id."""
        commands = parse_commands(["5 2C 4", "9 j.C 5"])
        assert get_command(commands, 9).input == "j.C"
        assert get_command(commands, 1) is None

    def test_load_commands(self, tmp_path):
        """Test loading from disk."""
        path = tmp_path / "cmd.txt"
        path.write_text("# list\n1 5A 1 // 弱\n", encoding='utf-8')
        commands = load_commands(str(path), self.table)
        assert commands[0].to_dict() == {'id': 1, 'input': '5A', 'pattern': 1, 'comment': '弱'}
        assert self.table[1].name == "弱"

    def test_load_missing(self, tmp_path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_commands(str(tmp_path / "none.txt"))


class TestSpriteAtlas:
    """Test the atlas protocol."""

    def test_protocol(self):
        """Test that a duck-typed atlas satisfies the protocol."""
        assert isinstance(FakeAtlas(1), SpriteAtlas)
        assert not isinstance(object(), SpriteAtlas)

    def test_missing_sprites(self):
        """Test finding sprite ids beyond the atlas."""
        table = SequenceTable(2)
        table[0].allocate(3)
        table[0].frames[0].display.sprite_id = 4
        table[0].frames[1].display.sprite_id = 10
        table[0].frames[2].display.sprite_id = 50
        table[0].frames[2].display.use_pattern = True
        table[1].allocate(1)

        assert missing_sprites(table, FakeAtlas(5)) == [(0, 1, 10)]
