"""
Tests for the movelist_dump command-line tool
"""

import pytest
import sys
import os

import yaml

# Add the parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from movelist.config import load_config
from movelist.loader import FrameDataLoader
from movelist.tools.dump import main
from builders import (
    tag,
    text_tag,
    legacy_file,
    sequence,
    allocation,
    frame,
    display,
    packed_file,
    packed_sequence,
    packed_frame,
)


class TestDump:
    """Test the CLI entry point."""

    def setup_method(self):
        """Setup test fixtures."""
        self.data = legacy_file(
            sequence(0, text_tag(b"PTT2", b"Stand"), allocation(1), frame(display(b"AFD3")))
            + sequence(1, allocation(1), frame()),
            2,
        )

    def teardown_method(self):
        load_config()

    def write(self, tmp_path, data, name="char.ha4"):
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)

    def test_summary(self, tmp_path, capsys):
        """Test the default summary output."""
        path = self.write(tmp_path, self.data)
        assert main([path]) == 0
        out = capsys.readouterr().out
        assert "Format: legacy_tag" in out
        assert "Sequences: 2 loaded / 2 slots" in out
        assert "000 Stand" in out
        assert "001 Untitled" in out

    def test_yaml_sequence(self, tmp_path, capsys):
        """Test dumping one sequence as YAML."""
        path = self.write(tmp_path, self.data)
        assert main([path, "--yaml", "--sequence", "0"]) == 0
        data = yaml.safe_load(capsys.readouterr().out)
        assert data[0]['name'] == "Stand"
        assert data[0]['frames'][0]['display']['duration'] == 3

    def test_missing_file(self, tmp_path, capsys):
        """Test that a missing file exits with 1."""
        assert main([str(tmp_path / "absent.ha4")]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_undecodable(self, tmp_path, capsys):
        """Test that an unrecognized file exits with 1."""
        path = self.write(tmp_path, b"\x00" * 64)
        assert main([path]) == 1
        assert "could not decode" in capsys.readouterr().err

    def test_commands_name_sequences(self, tmp_path, capsys):
        """Test naming sequences from a command list."""
        path = self.write(tmp_path, self.data)
        commands = tmp_path / "cmd.txt"
        commands.write_text("1 236A 1 // Fireball\n", encoding='utf-8')
        assert main([path, "--commands", str(commands)]) == 0
        assert "001 Fireball - Fireball" in capsys.readouterr().out

    def test_save_native(self, tmp_path):
        """Test converting to the native format."""
        path = self.write(tmp_path, self.data)
        out = tmp_path / "out.ha6"
        assert main([path, "--save", str(out)]) == 0

        result = FrameDataLoader().load(str(out))
        assert result.success
        assert result.format.value == "native_tag"
        assert result.table[0].name == "Stand"

    def test_extract_image(self, tmp_path):
        """Test writing the embedded image of a packed file."""
        image = b"BMP Cutter3" + b"\x07" * 9
        data = packed_file([packed_sequence([packed_frame()])], image=image)
        path = self.write(tmp_path, data, "char.dat")
        out = tmp_path / "cg.bin"
        assert main([path, "--extract-image", str(out)]) == 0
        assert out.read_bytes() == image

    def test_custom_config(self, tmp_path, capsys):
        """Test passing a config file."""
        config = tmp_path / "loader.yaml"
        config.write_text("table:\n  max_sequences: 1\n")
        path = self.write(tmp_path, self.data)
        assert main([path, "--config", str(config)]) == 1
