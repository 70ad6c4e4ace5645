"""
Move-list file formats

Decoders for the three on-disk encodings of a character's move list, and
the writer for the native one.

Supported:
- Native tag format ("Hantei6DataFile" header), read and write
- Legacy tag format (HA4 editor files), read only
- Legacy packed format ("Hantei4" .DAT files), read only

Limitations:
- Packed files carry no attack blocks; decoded frames have attack=None
- Unknown packed fields are kept as raw numbers in frame/sequence opaque data
"""

from movelist.formats.detector import (
    FileFormat,
    detect_format,
    find_string_table,
    find_pattern_start,
)
from movelist.formats.binary import BufferReader
from movelist.formats.tag_stream import (
    TagStreamParser,
    TagStreamResult,
    StopReason,
)
from movelist.formats.frame_tags import (
    FrameTagDecoder,
    TagDialect,
    PendingAlias,
    SequenceContext,
)
from movelist.formats.assembler import (
    SequenceAssembler,
    TagFileDecoder,
)
from movelist.formats.packed import (
    BinaryPackedDecoder,
    decode_packed,
)
from movelist.formats.packed_layout import (
    SectionLayout,
    Section,
)
from movelist.formats.strings import (
    StringTableDecoder,
    default_name,
)
from movelist.formats.writer import (
    NativeTagWriter,
    encode,
    save,
)

__all__ = [
    'FileFormat',
    'detect_format',
    'find_string_table',
    'find_pattern_start',
    'BufferReader',
    'TagStreamParser',
    'TagStreamResult',
    'StopReason',
    'FrameTagDecoder',
    'TagDialect',
    'PendingAlias',
    'SequenceContext',
    'SequenceAssembler',
    'TagFileDecoder',
    'BinaryPackedDecoder',
    'decode_packed',
    'SectionLayout',
    'Section',
    'StringTableDecoder',
    'default_name',
    'NativeTagWriter',
    'encode',
    'save',
]
