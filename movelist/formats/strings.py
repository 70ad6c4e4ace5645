"""
Legacy-codepage name decoding.

Sequence names are stored as Shift-JIS (cp932) bytes, either as a
length-prefixed tag payload or as fixed 64-byte records in the packed
name table. Both are converted to str here.
"""

from typing import Optional, Tuple

from movelist.formats.binary import BufferReader

NAME_RECORD_SIZE = 64
MAX_TAG_STRING = 64

# Default pattern names built into the legacy editor, keyed by pattern index.
DEFAULT_PATTERN_NAMES = {
    0: "立ち",                        # Standing
    1: "立ち弱攻撃",                   # Standing light attack
    2: "立ち中攻撃",                   # Standing medium attack
    3: "立ち強攻撃",                   # Standing heavy attack
    4: "しゃがみ弱攻撃",               # Crouching light attack
    5: "しゃがみ中攻撃",               # Crouching medium attack
    6: "しゃがみ強攻撃",               # Crouching heavy attack
    7: "ジャンプ弱攻撃",               # Jump light attack
    8: "ジャンプ中攻撃",               # Jump medium attack
    9: "ジャンプ強攻撃",               # Jump heavy attack
    10: "前進",                       # Forward walk
    11: "後退",                       # Backward walk
    12: "しゃがみ移行",               # Crouch transition
    13: "しゃがみ",                   # Crouching
    14: "立ち上がり",                 # Stand up
    15: "立ち振り向き",               # Turn around (standing)
    16: "しゃがみ振り向き",           # Turn around (crouching)
    17: "立ちガード",                 # Standing guard
    18: "しゃがみガード",             # Crouching guard
    19: "空中ガード",                 # Air guard
    23: "頭やられ",                   # Head hit
    24: "腹やられ",                   # Body hit
    25: "しゃがみやられ",             # Crouch hit
    26: "ダウン",                     # Down
    27: "ダウン中やられ",             # Hit while down
    28: "受け身",                     # Tech
    29: "前ダウン",                   # Forward down
    30: "エアリアル用ダウン",         # Aerial down
    32: "うつ伏せ→起き上がり",       # Face-down wakeup
    33: "あお向け→起き上がり",       # Face-up wakeup
    35: "前ジャンプ",                 # Forward jump
    36: "垂直ジャンプ",               # Neutral jump
    37: "後ろジャンプ",               # Back jump
    38: "前ジャンプ二段目以降",       # Forward double jump
    39: "垂直ジャンプ二段目以降",     # Neutral double jump
    40: "後ろジャンプ二段目以降",     # Back double jump
    41: "エアリアル用ジャンプ",       # Aerial combo jump
    50: "登場",                       # Entrance
    51: "交代",                       # Tag out
    52: "勝ちモーション",             # Victory pose
}


def default_name(index: int) -> str:
    """Built-in name for a pattern index, or "" when there is none."""
    return DEFAULT_PATTERN_NAMES.get(index, "")


class StringTableDecoder:
    """
    Converts legacy-encoded name bytes to text.

    Usage:
        strings = StringTableDecoder()
        name = strings.decode_fixed(record)
        title, offset = strings.decode_length_prefixed(reader, offset)
    """

    def __init__(self, encoding: str = "cp932", log=None):
        self.encoding = encoding
        self._log = log

    def decode(self, raw: bytes) -> str:
        """Decode up to the first NUL and strip trailing whitespace."""
        end = raw.find(b'\x00')
        if end != -1:
            raw = raw[:end]
        try:
            text = raw.decode(self.encoding)
        except UnicodeDecodeError:
            text = raw.decode(self.encoding, errors='replace')
            if self._log is not None:
                self._log.recoverable(
                    f"Name bytes not valid {self.encoding}, replaced: {raw.hex()}"
                )
        return text.rstrip(' \t\r\n　')

    def decode_fixed(self, raw: bytes, width: int = NAME_RECORD_SIZE) -> str:
        """Decode a fixed-width record; length is implied by the first NUL."""
        return self.decode(bytes(raw[:width]))

    def decode_length_prefixed(self, reader: BufferReader, offset: int,
                               limit: int = MAX_TAG_STRING) -> Tuple[Optional[str], int]:
        """
        Decode a uint32 length followed by that many bytes.

        Returns:
            (text, new_offset); text is None when the length is not below limit.
            The offset always advances past the declared payload.
        """
        length, offset = reader.read_uint32(offset)
        if length >= limit:
            if self._log is not None:
                self._log.recoverable(f"String of length {length} at 0x{offset - 4:X} ignored")
            reader.require(offset, length)
            return None, offset + length
        raw, offset = reader.read_bytes(offset, length)
        return self.decode(raw), offset

    def read_name_table(self, reader: BufferReader, offset: int, slots: int,
                        record_size: int = NAME_RECORD_SIZE):
        """
        Yield (index, name) for each whole record that fits in the buffer.

        Records past the end of the buffer are not yielded.
        """
        for i in range(slots):
            start = offset + i * record_size
            if not reader.has(start, record_size):
                break
            raw, _ = reader.read_bytes(start, record_size)
            yield i, self.decode_fixed(raw, record_size)
