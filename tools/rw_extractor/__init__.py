"""RenderWare DFF/TXD Extractor Package."""
from .rw_chunks import walk
from .rw_clump import decode_model
from .rw_errors import (
    CountOutOfBounds,
    DecodeError,
    MalformedChunk,
    TruncatedData,
    UnexpectedFormat,
)
from .rw_txd import decode_texture_dictionary

__all__ = [
    "decode_model",
    "decode_texture_dictionary",
    "walk",
    "DecodeError",
    "TruncatedData",
    "UnexpectedFormat",
    "CountOutOfBounds",
    "MalformedChunk",
]
