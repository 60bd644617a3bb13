"""Tests for the bounds-checked cursor."""
import struct
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from rw_extractor.rw_cursor import Cursor
from rw_extractor.rw_errors import CountOutOfBounds, DecodeError, TruncatedData


def test_read_scalars_little_endian():
    """Should decode each scalar width as little-endian."""
    data = b"\x7f" + struct.pack("<H", 0x1234) + struct.pack("<I", 0xDEADBEEF)
    data += struct.pack("<i", -2) + struct.pack("<f", 1.5)
    cursor = Cursor(data)

    assert cursor.read_u8() == 0x7F
    assert cursor.read_u16() == 0x1234
    assert cursor.read_u32() == 0xDEADBEEF
    assert cursor.read_i32() == -2
    assert cursor.read_f32() == 1.5
    assert cursor.remaining() == 0
    assert cursor.at_end()


def test_read_past_end_raises():
    """Should raise TruncatedData and not move when too few bytes remain."""
    cursor = Cursor(b"\x01\x02\x03")
    with pytest.raises(TruncatedData):
        cursor.read_u32()
    assert cursor.position == 0
    assert cursor.read_u16() == 0x0201


def test_truncated_data_is_decode_error():
    """TruncatedData should be catchable as DecodeError and ValueError."""
    cursor = Cursor(b"")
    with pytest.raises(DecodeError):
        cursor.read_u8()
    with pytest.raises(ValueError):
        cursor.read_u8()


def test_read_fixed_string_stops_at_nul():
    """Should drop everything from the first NUL onward."""
    cursor = Cursor(b"abc\x00def\x00\x00" + b"XY")
    assert cursor.read_fixed_string(9) == b"abc"
    assert cursor.position == 9
    assert cursor.read_fixed_bytes(2) == b"XY"


def test_read_fixed_string_without_nul_uses_whole_field():
    cursor = Cursor(b"A" * 32)
    assert cursor.read_fixed_string(32) == b"A" * 32


def test_sub_cursor_advances_parent_by_declared_length():
    """Parent should skip the whole region however little the child reads."""
    parent = Cursor(bytes(range(32)))
    parent.skip(4)
    child = parent.sub_cursor(10)

    assert parent.position == 14
    assert child.read_u16() == 0x0504
    assert child.remaining() == 8
    assert parent.position == 14
    assert parent.read_u8() == 14


def test_sub_cursor_is_limited():
    """Child reads must not cross its own limit."""
    parent = Cursor(b"\x00" * 16)
    child = parent.sub_cursor(3)
    with pytest.raises(TruncatedData):
        child.read_u32()


def test_sub_cursor_larger_than_remaining_raises():
    parent = Cursor(b"\x00" * 8)
    parent.skip(2)
    with pytest.raises(TruncatedData):
        parent.sub_cursor(7)
    assert parent.position == 2


def test_seek_within_window():
    cursor = Cursor(bytes(range(16)))
    child = cursor.sub_cursor(8)
    child.seek(6)
    assert child.read_u8() == 6
    child.seek(8)
    assert child.at_end()


def test_seek_outside_window_raises():
    cursor = Cursor(bytes(range(16)))
    cursor.skip(4)
    child = cursor.sub_cursor(4)
    with pytest.raises(TruncatedData):
        child.seek(9)
    with pytest.raises(TruncatedData):
        child.seek(3)
    with pytest.raises(TruncatedData):
        cursor.seek(17)


def test_check_count_rejects_oversized_count():
    cursor = Cursor(b"\x00" * 12)
    cursor.check_count(3, 4)
    with pytest.raises(CountOutOfBounds):
        cursor.check_count(4, 4)
    with pytest.raises(CountOutOfBounds):
        cursor.check_count(0xFFFFFFFF, 4)
    with pytest.raises(CountOutOfBounds):
        cursor.check_count(-1, 4)


def test_read_array():
    """Should return one tuple per record."""
    data = struct.pack("<3f", 1.0, 2.0, 3.0) + struct.pack("<3f", 4.0, 5.0, 6.0)
    cursor = Cursor(data)
    assert cursor.read_array("<3f", 2) == [(1.0, 2.0, 3.0), (4.0, 5.0, 6.0)]
    assert cursor.at_end()


def test_read_array_empty():
    cursor = Cursor(b"")
    assert cursor.read_array("<I", 0) == []


def test_read_array_count_checked_before_reading():
    cursor = Cursor(b"\x00" * 8)
    with pytest.raises(CountOutOfBounds):
        cursor.read_array("<I", 3)
    assert cursor.position == 0


def test_buffer_is_copied():
    """Later mutation of the caller's buffer must not be visible."""
    data = bytearray(b"\x01\x00\x00\x00")
    cursor = Cursor(data)
    data[0] = 0xFF
    assert cursor.read_u32() == 1


def test_default_limit_is_buffer_end():
    cursor = Cursor(b"\x00" * 8, start=2)
    assert cursor.limit == 8
    assert cursor.remaining() == 6
