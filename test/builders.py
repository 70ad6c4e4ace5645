"""
Byte-level builders for move-list test fixtures.

Tag files are assembled from tag helpers; packed files from fixed-size
record helpers laid out the way the packed decoder expects them.
"""

import struct
from typing import List, Optional, Sequence as Seq

# ----------------------------------------------------------------------
# Tag formats
# ----------------------------------------------------------------------


def word(value: int) -> bytes:
    return struct.pack('<I', value & 0xFFFFFFFF)


def tag(name: bytes, *values: int) -> bytes:
    """A tag followed by uint32 payload words."""
    return name + b''.join(word(v) for v in values)


def float_tag(name: bytes, *values: float) -> bytes:
    return name + b''.join(struct.pack('<f', v) for v in values)


def text_tag(name: bytes, raw: bytes) -> bytes:
    """A length-prefixed string tag."""
    return name + word(len(raw)) + raw


def native_file(body: bytes, count: int, utf8: bool = False) -> bytes:
    header = bytearray(32)
    header[:15] = b"Hantei6DataFile"
    if utf8:
        header[31] = 0xFF
    return bytes(header) + tag(b"_STR", count) + body + b"_END"


def legacy_file(body: bytes, count: int, header_size: int = 0) -> bytes:
    return b"\x00" * header_size + tag(b"_STR", count) + body + b"_END"


def sequence(index: int, *parts: bytes) -> bytes:
    return tag(b"PSTR", index) + b''.join(parts) + b"PEND"


def allocation(nframes: int, boxes: int = 0, states: int = 0) -> bytes:
    return tag(b"PDS2", 32, nframes, boxes, 0, 0, 0, 0, states, 0)


def frame(*parts: bytes) -> bytes:
    return b"FSTR" + b''.join(parts) + b"FEND"


def display(*parts: bytes) -> bytes:
    return b"AFST" + b''.join(parts) + b"AFED"


def state(*parts: bytes) -> bytes:
    return b"ASST" + b''.join(parts) + b"ASED"


def attack(*parts: bytes) -> bytes:
    return b"ATST" + b''.join(parts) + b"ATED"


def legacy_record(type_: int, number: int = 0, params: Seq[int] = ()) -> bytes:
    params = list(params) + [0] * (12 - len(params))
    return struct.pack('<hh12i', type_, number, *params)


# ----------------------------------------------------------------------
# Packed format
# ----------------------------------------------------------------------

PACKED_DATA_START = 0x40 + 256 * 4


def packed_frame(sprite: int = 0, x: int = 0, y: int = 0, duration: int = 1,
                 flow: int = 1, jump: int = -1, landing: Optional[int] = None,
                 priority: int = 0, rotation_flip: int = 0, arithmetic_op: int = 0,
                 vel=(0, 0), accel=(0, 0), stance: int = 0, cancel=(0, 0),
                 can_move: int = 0, flags1: int = 0, flags2: int = 0,
                 hitbox: int = -1, effects: Seq[int] = (), conditions: Seq[int] = (),
                 main_vector: int = -1) -> bytes:
    """One 216-byte packed frame record."""
    buf = bytearray(216)
    struct.pack_into('<hhhh', buf, 0, sprite, x, y, duration)
    buf[0x0B] = flow
    if landing is None:
        jump_word = jump & 0xFFFF
    else:
        jump_word = ((landing & 0xFF) << 8) | (jump & 0xFF)
    struct.pack_into('<H', buf, 0x0C, jump_word)
    buf[0x0E] = priority
    buf[0x10] = rotation_flip
    buf[0x12] = arithmetic_op

    struct.pack_into('<hh', buf, 44 + 0x08, *vel)
    struct.pack_into('<hh', buf, 44 + 0x10, *accel)
    buf[44 + 0x18] = stance
    buf[44 + 0x19] = cancel[0]
    buf[44 + 0x1A] = cancel[1]
    buf[44 + 0x1D] = can_move
    struct.pack_into('<II', buf, 44 + 0x24, flags1, flags2)

    ef = list(effects) + [-1] * (8 - len(effects))
    cond = list(conditions) + [-1] * (8 - len(conditions))
    struct.pack_into('<h8h8hh', buf, 100, hitbox, *ef, *cond, main_vector)
    struct.pack_into('<32h', buf, 136, *([-1] * 32))
    return bytes(buf)


def packed_hitbox(type_: int, x: int, y: int, w: int, h: int) -> bytes:
    buf = bytearray(88)
    struct.pack_into('<h', buf, 0x14, type_)
    struct.pack_into('<4h', buf, 0x24, x, y, w, h)
    return bytes(buf)


def packed_vector(start_x: int, start_y: int, end_x: int, end_y: int) -> bytes:
    return struct.pack('<4h', start_x, start_y, end_x, end_y)


def packed_sequence(frames: List[bytes], hitboxes: Seq[bytes] = (), effects: Seq[bytes] = (),
                    conditions: Seq[bytes] = (), vectors: Seq[bytes] = (), csel: bool = False,
                    frame_count: Optional[int] = None, flags=(0, 0), overrides: dict = None) -> bytes:
    """
    One packed sequence: 68-byte header, frames, then the record sections.

    overrides replaces header offsets by name (hitboxes, effects,
    conditions, vectors) after layout.
    """
    offsets = {}
    pos = 68 + 216 * len(frames)
    body = b''
    for name, records in (('hitboxes', hitboxes), ('effects', effects),
                          ('conditions', conditions), ('vectors', vectors)):
        if records:
            offsets[name] = pos
            data = b''.join(records)
            body += data
            pos += len(data)
        else:
            offsets[name] = -1
    offsets.update(overrides or {})

    header = bytearray(68)
    count = len(frames) if frame_count is None else frame_count
    struct.pack_into('<III', header, 0, count, flags[0], flags[1])
    struct.pack_into('<i', header, 0x0C, -1 if csel else 68)
    struct.pack_into('<iiii', header, 0x10, offsets['hitboxes'], offsets['effects'],
                     offsets['conditions'], 0)
    struct.pack_into('<i', header, 0x28, offsets['vectors'])
    return bytes(header) + b''.join(frames) + body


def packed_file(sequences: List[Optional[bytes]], image: bytes = b"",
                names: Optional[List[str]] = None, version: int = 1) -> bytes:
    """A whole packed file; None entries leave their offset-table slot absent."""
    offsets = [-1] * 256
    body = bytearray()
    pos = PACKED_DATA_START
    for i, seq in enumerate(sequences):
        if seq is None:
            continue
        offsets[i] = pos
        body += seq
        pos += len(seq)

    header = bytearray(64)
    header[:8] = b"Hantei4\x00"
    struct.pack_into('<IIIII', header, 0x10, version, pos, 0, pos, len(image))

    name_table = b''
    for name in names or []:
        name_table += name.encode('cp932').ljust(64, b'\x00')

    return bytes(header) + struct.pack('<256i', *offsets) + bytes(body) + image + name_table
