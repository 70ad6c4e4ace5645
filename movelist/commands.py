"""
Command list files.

A command list is a text file with one move per line:

    <id> <input> <pattern (hex)> [flags...] // <comment>

Lines starting with '#' or '/' are skipped. When the comment names a
pattern that is loaded but has no name yet, the comment becomes its name.
"""

import os
from dataclasses import dataclass
from typing import Iterable, List, Optional

from movelist.model import SequenceTable


@dataclass
class Command:
    """One command list entry."""
    id: int
    input: str
    pattern: int = -1
    comment: str = ""

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'input': self.input,
            'pattern': self.pattern,
            'comment': self.comment,
        }


def parse_command_line(line: str) -> Optional[Command]:
    """Parse one line; returns None for comments, blanks and malformed lines."""
    if not line.strip() or line[0] in '#/':
        return None

    data, _, comment = line.partition('//')
    comment = comment.strip(' \t\r\n　')
    fields = data.split()
    if len(fields) < 2:
        return None

    try:
        command_id = int(fields[0])
    except ValueError:
        return None

    pattern = -1
    if len(fields) > 2:
        try:
            pattern = int(fields[2], 16)
        except ValueError:
            pattern = -1

    return Command(command_id, fields[1], pattern, comment)


def parse_commands(lines: Iterable[str], table: Optional[SequenceTable] = None,
                   logger=None) -> List[Command]:
    """
    Parse command lines, naming unnamed sequences from comments.

    Args:
        lines: Text lines of a command list
        table: Table whose unnamed, non-empty sequences get comment names
        logger: Optional logger
    """
    commands = []
    named = 0

    for line in lines:
        cmd = parse_command_line(line)
        if cmd is None:
            continue
        commands.append(cmd)

        if table is None or not cmd.comment:
            continue
        seq = table.get(cmd.pattern)
        if seq is not None and not seq.empty and not seq.name:
            seq.name = cmd.comment
            seq.code_name = cmd.comment
            named += 1

    if logger:
        logger.info(f"Parsed {len(commands)} commands, named {named} sequences")
    return commands


def load_commands(path: str, table: Optional[SequenceTable] = None,
                  logger=None, encoding: str = 'utf-8') -> List[Command]:
    """
    Load a command list file.

    Raises:
        FileNotFoundError: If path does not exist
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"File not found: {path}")

    with open(path, 'r', encoding=encoding, errors='replace') as f:
        return parse_commands(f, table, logger)


def get_command(commands: List[Command], command_id: int) -> Optional[Command]:
    """Find a command by id."""
    for cmd in commands:
        if cmd.id == command_id:
            return cmd
    return None
