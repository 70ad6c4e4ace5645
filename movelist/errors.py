"""
Error taxonomy for the move-list decoders.

Only FatalFormatError ever reaches the caller of decode() (as a failed
result). Everything else is caught inside the decoders, logged, and leaves
the affected field at its default.
"""


class FrameDataError(Exception):
    """Base class for decoding errors."""


class FatalFormatError(FrameDataError, ValueError):
    """Top-level header or offset table is unusable; the load is aborted."""


class RecoverableFieldError(FrameDataError):
    """A single field, record or array failed validation and was skipped."""

    def __init__(self, message: str, offset: int = -1):
        super().__init__(message)
        self.offset = offset


class TruncatedDataError(RecoverableFieldError):
    """A read would run past the end of the buffer."""


class UnknownTagError(FrameDataError):
    """A tag with no handler and no knowable length was met."""

    def __init__(self, tag: bytes, offset: int, block: str = ""):
        self.tag = tag
        self.offset = offset
        self.block = block
        super().__init__(f"Unknown {block} tag {format_tag(tag)} at 0x{offset:X}")


def format_tag(tag: bytes) -> str:
    """Printable form of a 4-byte tag."""
    return ''.join(chr(b) if 32 <= b < 127 else f'\\x{b:02x}' for b in tag)


__all__ = [
    'FrameDataError',
    'FatalFormatError',
    'RecoverableFieldError',
    'TruncatedDataError',
    'UnknownTagError',
    'format_tag',
]
