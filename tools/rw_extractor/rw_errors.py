"""Errors raised while decoding RenderWare streams."""
from typing import Optional


class DecodeError(ValueError):
    """Base class for all decode failures.

    Attributes:
        offset: Absolute buffer offset where the failure was detected,
            or None when it is not tied to a position.
    """

    def __init__(self, message: str, offset: Optional[int] = None):
        if offset is not None:
            message = f"{message} (at offset {offset:#x})"
        super().__init__(message)
        self.offset = offset


class TruncatedData(DecodeError):
    """A read or sub-scope needs more bytes than remain."""


class UnexpectedFormat(DecodeError):
    """The root chunk is not the kind of asset that was requested."""


class CountOutOfBounds(DecodeError):
    """A declared element count cannot fit in the remaining bytes."""


class MalformedChunk(DecodeError):
    """A nested chunk's declared size overruns its parent."""
