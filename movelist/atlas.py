"""
Sprite atlas contract.

The atlas image codec lives outside this package; decoded frames only
carry sprite ids. Anything that satisfies SpriteAtlas can be used to check
those ids against the sprites an atlas actually holds.
"""

from typing import Any, List, Protocol, Tuple, runtime_checkable

from movelist.model import SequenceTable


@runtime_checkable
class SpriteAtlas(Protocol):
    """Minimal interface of a sprite atlas."""

    def load(self, path: str) -> bool:
        ...

    def sprite_count(self) -> int:
        ...

    def get_sprite(self, sprite_id: int) -> Any:
        ...


def missing_sprites(table: SequenceTable, atlas: SpriteAtlas) -> List[Tuple[int, int, int]]:
    """
    Find frames whose direct sprite id is not in the atlas.

    Pattern references (use_pattern) and frames without a sprite (-1) are
    not checked.

    Returns:
        List of (sequence index, frame index, sprite id)
    """
    count = atlas.sprite_count()
    missing = []
    for i, seq in enumerate(table):
        for n, frame in enumerate(seq.frames):
            display = frame.display
            if display.use_pattern or display.sprite_id < 0:
                continue
            if display.sprite_id >= count:
                missing.append((i, n, display.sprite_id))
    return missing
