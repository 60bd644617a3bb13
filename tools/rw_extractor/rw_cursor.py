"""Bounds-checked little-endian reader over an immutable buffer.

Every field of a RenderWare stream is pulled out through a Cursor. A cursor
sees the window ``[start, limit)`` of its buffer; reads never cross ``limit``
and fail with TruncatedData instead. Sub-cursors share the same buffer, so
positions are always absolute offsets into the original file.
"""
import struct
from typing import List, Optional, Tuple, Union

from .rw_errors import CountOutOfBounds, TruncatedData


class Cursor:
    """Reads fixed-width fields from a window of a byte buffer."""

    def __init__(self, buffer: Union[bytes, bytearray, memoryview],
                 start: int = 0, limit: Optional[int] = None):
        """Initialize cursor over buffer.

        Args:
            buffer: Source bytes. Non-bytes inputs are copied so the
                cursor can never observe later mutation.
            start: Absolute offset of the first readable byte
            limit: Absolute offset one past the last readable byte
                (defaults to the end of the buffer)
        """
        if not isinstance(buffer, bytes):
            buffer = bytes(buffer)
        if limit is None:
            limit = len(buffer)
        if not 0 <= start <= limit <= len(buffer):
            raise TruncatedData(
                f"Cursor window {start}..{limit} outside buffer of {len(buffer)} bytes",
                start,
            )
        self.buffer = buffer
        self.start = start
        self.limit = limit
        self.position = start

    def __repr__(self):
        return (f"Cursor(position={self.position:#x}, start={self.start:#x}, "
                f"limit={self.limit:#x})")

    def remaining(self) -> int:
        return self.limit - self.position

    def at_end(self) -> bool:
        return self.position >= self.limit

    def _take(self, size: int) -> int:
        """Reserve size bytes and return the offset they start at."""
        if size < 0:
            raise TruncatedData(f"Negative read of {size} bytes", self.position)
        if size > self.remaining():
            raise TruncatedData(
                f"Need {size} bytes, only {self.remaining()} remain",
                self.position,
            )
        offset = self.position
        self.position += size
        return offset

    def read_struct(self, fmt: str) -> Tuple:
        """Unpack several fields at once.

        Args:
            fmt: struct format string; must start with '<'

        Returns:
            Tuple of unpacked values
        """
        offset = self._take(struct.calcsize(fmt))
        return struct.unpack_from(fmt, self.buffer, offset)

    def read_u8(self) -> int:
        return self.read_struct("<B")[0]

    def read_u16(self) -> int:
        return self.read_struct("<H")[0]

    def read_u32(self) -> int:
        return self.read_struct("<I")[0]

    def read_i32(self) -> int:
        return self.read_struct("<i")[0]

    def read_f32(self) -> float:
        return self.read_struct("<f")[0]

    def read_fixed_bytes(self, size: int) -> bytes:
        offset = self._take(size)
        return self.buffer[offset:offset + size]

    def read_fixed_string(self, size: int) -> bytes:
        """Read a NUL-terminated field stored in exactly size bytes.

        Bytes after the first NUL are padding and are dropped. A field
        with no NUL uses all size bytes.
        """
        return self.read_fixed_bytes(size).split(b"\x00", 1)[0]

    def skip(self, size: int):
        self._take(size)

    def seek(self, position: int):
        """Move to an absolute offset inside this cursor's window."""
        if not self.start <= position <= self.limit:
            raise TruncatedData(
                f"Seek to {position:#x} outside window {self.start:#x}..{self.limit:#x}",
                self.position,
            )
        self.position = position

    def sub_cursor(self, size: int) -> "Cursor":
        """Carve the next size bytes into their own cursor.

        The parent moves past the whole region immediately, so it ends up
        size bytes further on no matter how much the child reads.
        """
        offset = self._take(size)
        return Cursor(self.buffer, offset, offset + size)

    def read_array(self, fmt: str, count: int, what: str = "elements") -> List[Tuple]:
        """Read count consecutive records of the same layout.

        The count is validated before anything is read, so a corrupt
        count fails fast instead of allocating.

        Returns:
            List of unpacked tuples, one per record
        """
        size = struct.calcsize(fmt)
        self.check_count(count, size, what)
        offset = self._take(count * size)
        return list(struct.iter_unpack(fmt, self.buffer[offset:offset + count * size]))

    def check_count(self, count: int, element_size: int, what: str = "elements"):
        """Reject counts that cannot fit in the remaining bytes.

        Raises:
            CountOutOfBounds: If count * element_size exceeds remaining()
        """
        if count < 0 or count * element_size > self.remaining():
            raise CountOutOfBounds(
                f"{count} {what} of {element_size} bytes do not fit in "
                f"{self.remaining()} remaining bytes",
                self.position,
            )
