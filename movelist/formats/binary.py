"""
Bounds-checked little-endian reads over an in-memory buffer.

Every read returns (value, next_offset), the same calling convention the
asset readers use, and raises TruncatedDataError instead of reading past
the buffer's logical length.
"""

import struct
from typing import Tuple, List

from movelist.errors import TruncatedDataError

_INT16 = struct.Struct('<h')
_UINT16 = struct.Struct('<H')
_INT32 = struct.Struct('<i')
_UINT32 = struct.Struct('<I')
_FLOAT = struct.Struct('<f')


class BufferReader:
    """Read-only view of the first `length` bytes of a buffer."""

    def __init__(self, data, length: int = None):
        view = memoryview(data)
        if view.ndim != 1 or view.itemsize != 1:
            view = view.cast('B')
        if length is None or length > len(view):
            length = len(view)
        self._view = view[:max(length, 0)]
        self.length = len(self._view)

    def __len__(self):
        return self.length

    def require(self, offset: int, size: int):
        """Raise TruncatedDataError unless [offset, offset + size) is inside the buffer."""
        if offset < 0 or size < 0 or offset + size > self.length:
            raise TruncatedDataError(
                f"Read of {size} bytes at 0x{offset:X} exceeds buffer length 0x{self.length:X}",
                offset
            )

    def has(self, offset: int, size: int) -> bool:
        return 0 <= offset and 0 <= size and offset + size <= self.length

    def matches(self, offset: int, magic: bytes) -> bool:
        """True if the bytes at offset equal magic (False when out of range)."""
        if not self.has(offset, len(magic)):
            return False
        return self._view[offset:offset + len(magic)] == magic

    def read_tag(self, offset: int) -> Tuple[bytes, int]:
        """Read a 4-byte tag."""
        self.require(offset, 4)
        return bytes(self._view[offset:offset + 4]), offset + 4

    def read_bytes(self, offset: int, size: int) -> Tuple[bytes, int]:
        self.require(offset, size)
        return bytes(self._view[offset:offset + size]), offset + size

    def read_int16(self, offset: int) -> Tuple[int, int]:
        """Read a signed 16-bit integer."""
        self.require(offset, 2)
        return _INT16.unpack_from(self._view, offset)[0], offset + 2

    def read_uint16(self, offset: int) -> Tuple[int, int]:
        """Read an unsigned 16-bit integer."""
        self.require(offset, 2)
        return _UINT16.unpack_from(self._view, offset)[0], offset + 2

    def read_int32(self, offset: int) -> Tuple[int, int]:
        """Read a signed 32-bit integer."""
        self.require(offset, 4)
        return _INT32.unpack_from(self._view, offset)[0], offset + 4

    def read_uint32(self, offset: int) -> Tuple[int, int]:
        """Read an unsigned 32-bit integer."""
        self.require(offset, 4)
        return _UINT32.unpack_from(self._view, offset)[0], offset + 4

    def read_float(self, offset: int) -> Tuple[float, int]:
        """Read a 32-bit float."""
        self.require(offset, 4)
        return _FLOAT.unpack_from(self._view, offset)[0], offset + 4

    def read_uint8(self, offset: int) -> Tuple[int, int]:
        self.require(offset, 1)
        return self._view[offset], offset + 1

    def read_int32_array(self, offset: int, count: int) -> Tuple[List[int], int]:
        """Read count signed 32-bit integers."""
        size = 4 * count
        self.require(offset, size)
        values = list(struct.unpack_from(f'<{count}i', self._view, offset))
        return values, offset + size

    def read_uint32_array(self, offset: int, count: int) -> Tuple[List[int], int]:
        """Read count unsigned 32-bit integers."""
        size = 4 * count
        self.require(offset, size)
        values = list(struct.unpack_from(f'<{count}I', self._view, offset))
        return values, offset + size

    def find(self, magic: bytes, start: int, end: int) -> int:
        """Offset of the first occurrence of magic in [start, end), or -1."""
        end = min(end, self.length)
        if start < 0 or start >= end:
            return -1
        pos = bytes(self._view[start:end]).find(magic)
        return pos + start if pos != -1 else -1

    def slice(self, offset: int, size: int) -> memoryview:
        """Zero-copy view of [offset, offset + size)."""
        self.require(offset, size)
        return self._view[offset:offset + size]
