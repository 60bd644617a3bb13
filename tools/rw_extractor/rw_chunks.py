"""Chunk header codec and generic chunk walker.

RenderWare streams are trees of chunks:
- 12-byte header: tag (uint32), body_size (uint32), version stamp (uint32)
- body_size bytes of body, either raw fields (Struct, String, plugins)
  or further chunks (Clump, Geometry, Extension, ...)

A decoder only ever sees a chunk body through a sub-cursor limited to
body_size, and the parent resumes exactly after the body. Chunks a decoder
does not understand are stepped over the same way, which keeps newer or
vendor-specific content from desynchronizing the rest of the stream.
"""
from typing import Iterator, List, Tuple, Union

from .rw_cursor import Cursor
from .rw_errors import MalformedChunk, TruncatedData, UnexpectedFormat
from .rw_types import (
    CHUNK_HEADER_SIZE,
    CONTAINER_TAGS,
    ChunkHeader,
    ChunkNode,
    Tag,
    tag_name,
)

# Deepest nesting accepted by walk(); real files stay well below 16
MAX_WALK_DEPTH = 64


def read_header(cursor: Cursor) -> ChunkHeader:
    """Read a 12-byte chunk header.

    Raises:
        TruncatedData: If fewer than 12 bytes remain
    """
    tag, body_size, version = cursor.read_struct("<III")
    return ChunkHeader(tag=tag, body_size=body_size, version=version)


def read_chunk(cursor: Cursor) -> Tuple[ChunkHeader, Cursor]:
    """Read a chunk header and scope its body.

    Args:
        cursor: Parent cursor positioned at a chunk header

    Returns:
        (header, body) where body is limited to header.body_size bytes.
        The parent is left just past the body.

    Raises:
        TruncatedData: If the header itself is cut off
        MalformedChunk: If body_size overruns the parent
    """
    header_offset = cursor.position
    header = read_header(cursor)
    if header.body_size > cursor.remaining():
        raise MalformedChunk(
            f"{header.tag_name} chunk declares {header.body_size} bytes but its "
            f"parent has only {cursor.remaining()} left",
            header_offset,
        )
    return header, cursor.sub_cursor(header.body_size)


def skip_to_end(parent: Cursor, chunk_start: int, body_size: int):
    """Reposition parent just past a chunk body starting at chunk_start."""
    parent.seek(chunk_start + body_size)


def iter_chunks(cursor: Cursor) -> Iterator[Tuple[ChunkHeader, Cursor]]:
    """Yield every sibling chunk until the cursor is exhausted.

    The parent is resynchronized to the end of each body before the next
    header is read, whatever the consumer did with the body.
    """
    while not cursor.at_end():
        header, body = read_chunk(cursor)
        yield header, body
        skip_to_end(cursor, body.start, header.body_size)


def expect_chunk(cursor: Cursor, tag: int) -> Tuple[ChunkHeader, Cursor]:
    """Read the next chunk with the given tag, skipping other siblings.

    Raises:
        TruncatedData: If the cursor runs out before a matching chunk
    """
    start = cursor.position
    for header, body in iter_chunks(cursor):
        if header.tag == tag:
            return header, body
    raise TruncatedData(f"Missing {tag_name(tag)} chunk", start)


def read_root(buffer: Union[bytes, bytearray, memoryview],
              expected_tag: int) -> Tuple[ChunkHeader, Cursor]:
    """Open the root chunk of an asset and check its kind.

    Raises:
        TruncatedData: If the buffer is shorter than a header or ends
            before the root body does
        UnexpectedFormat: If the root tag is not expected_tag
    """
    cursor = Cursor(buffer)
    if cursor.remaining() < CHUNK_HEADER_SIZE:
        raise TruncatedData(
            f"Buffer of {cursor.remaining()} bytes is shorter than a chunk header", 0
        )
    header = read_header(cursor)
    if header.tag != expected_tag:
        raise UnexpectedFormat(
            f"Expected {tag_name(expected_tag)} root chunk, found {header.tag_name}", 0
        )
    # The root has no parent; a short body means the file was cut off
    if header.body_size > cursor.remaining():
        raise TruncatedData(
            f"{header.tag_name} root declares {header.body_size} bytes but the "
            f"buffer has only {cursor.remaining()} left",
            0,
        )
    return header, cursor.sub_cursor(header.body_size)


def read_string(body: Cursor, tag: int = Tag.STRING) -> bytes:
    """Read a string chunk body: text up to the first NUL.

    UnicodeString bodies are UTF-16LE and are returned re-encoded as UTF-8.
    """
    if tag == Tag.UNICODE_STRING:
        text = body.read_fixed_bytes(body.remaining()).decode("utf-16-le", errors="replace")
        return text.split("\x00", 1)[0].encode("utf-8")
    return body.read_fixed_string(body.remaining())


def _walk_siblings(cursor: Cursor, depth: int) -> List[ChunkNode]:
    if depth > MAX_WALK_DEPTH:
        raise MalformedChunk(f"Chunks nested deeper than {MAX_WALK_DEPTH}", cursor.position)

    nodes = []
    while not cursor.at_end():
        offset = cursor.position
        header, body = read_chunk(cursor)
        node = ChunkNode(header=header, offset=offset, depth=depth)
        if header.tag in CONTAINER_TAGS:
            node.children = _walk_siblings(body, depth + 1)
        nodes.append(node)
    return nodes


def walk(buffer: Union[bytes, bytearray, memoryview]) -> List[ChunkNode]:
    """List the chunk tree of any RenderWare buffer.

    Container chunks are expanded; everything else is a leaf.

    Returns:
        Top-level ChunkNode objects with children filled in
    """
    return _walk_siblings(Cursor(buffer), 0)
