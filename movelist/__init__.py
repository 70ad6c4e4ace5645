"""
Move-list Package

Format detection and decoding of fighting-game move lists (sequences of
animation frames with hitboxes, effects and conditions) into one
canonical model.
"""

__version__ = '0.1.0'
__author__ = 'movelist Team'

from movelist.loader import decode, DecodeResult, FrameDataLoader
from movelist.formats.detector import FileFormat, detect_format
from movelist.formats.writer import encode, save
from movelist.model import SequenceTable, Sequence, Frame, MergeMode

__all__ = [
    'decode',
    'DecodeResult',
    'FrameDataLoader',
    'FileFormat',
    'detect_format',
    'encode',
    'save',
    'SequenceTable',
    'Sequence',
    'Frame',
    'MergeMode',
    '__version__',
]
