import struct

import pytest
from hypothesis import given, strategies as st

from lunarlib.binpack import pack, packsize, unpack
from lunarlib.errors import LuaError


@given(st.integers(min_value=-(1 << 63), max_value=(1 << 63) - 1))
def test_int64_round_trip(n):
    assert unpack("<j", pack("<j", n)) == (n, 9)
    assert unpack(">j", pack(">j", n)) == (n, 9)


@given(st.integers(min_value=-(1 << 15), max_value=(1 << 15) - 1))
def test_short_matches_struct(n):
    assert pack("<i2", n) == struct.pack("<h", n)
    assert pack(">i2", n) == struct.pack(">h", n)


@given(st.floats(allow_nan=False))
def test_double_matches_struct(x):
    assert pack(">d", x) == struct.pack(">d", x)
    assert unpack("<d", pack("<d", x))[0] == x


def test_unsigned_big_endian_matches_struct():
    assert pack(">I2", 0x0102) == struct.pack(">H", 0x0102)


def test_length_prefixed_string():
    assert pack("s1", b"hi") == b"\x02hi"
    assert unpack("s1", b"\x02hi") == (b"hi", 4)


def test_fixed_string_is_padded():
    packed = pack("c5", b"ab")
    assert packed[:2] == b"ab"
    assert set(packed[2:]) == {0}
    assert len(packed) == 5


def test_zero_terminated_round_trip():
    packed = pack("zB", b"abc", 7)
    assert packed[:4] == b"abc\x00"
    assert unpack("zB", packed) == (b"abc", 7, len(packed) + 1)


def test_str_argument_accepted():
    assert pack("z", "abc") == pack("z", b"abc")


def test_wide_negative_integer_sign_extension():
    packed = pack("<i16", -1)
    assert packed == b"\xff" * 16
    assert unpack("<i16", packed) == (-1, 17)


def test_wide_integer_that_does_not_fit():
    data = b"\x00" * 8 + b"\x01" + b"\x00" * 7
    with pytest.raises(LuaError, match="does not fit"):
        unpack("<i16", data)


def test_alignment_matches_packsize():
    packed = pack("!8bd", 1, 2.0)
    assert len(packed) == packsize("!8bd")
    assert len(packed) % 8 == 0
    assert unpack("!8bd", packed)[:2] == (1, 2.0)


def test_x_alignment_consistent():
    packed = pack("!4bXi4", 1)
    assert len(packed) == packsize("!4bXi4")
    assert len(packed) % 4 == 0


def test_x_at_end_is_error():
    with pytest.raises(LuaError, match="invalid next option"):
        packsize("X")


def test_alignment_not_power_of_two():
    with pytest.raises(LuaError, match="power of 2"):
        packsize("!3i4")


def test_packsize_variable_length():
    with pytest.raises(LuaError, match="variable-length format"):
        packsize("s")


def test_invalid_option():
    with pytest.raises(LuaError, match="invalid format option 'y'"):
        pack("y", 1)


def test_integral_size_out_of_limits():
    with pytest.raises(LuaError, match="out of limits"):
        packsize("i17")


def test_char_needs_size():
    with pytest.raises(LuaError, match="missing size"):
        packsize("c")


def test_integer_overflow():
    with pytest.raises(LuaError, match="integer overflow"):
        pack("b", 128)


def test_unsigned_overflow():
    with pytest.raises(LuaError, match="unsigned overflow"):
        pack("B", 256)


def test_string_longer_than_size():
    with pytest.raises(LuaError, match="string longer than given size"):
        pack("c2", b"abc")


def test_zero_terminated_with_zero():
    with pytest.raises(LuaError, match="contains zeros"):
        pack("z", b"a\x00b")


def test_data_too_short():
    with pytest.raises(LuaError, match="data string too short"):
        unpack("i4", b"\x01\x02")


def test_initial_position_out_of_string():
    with pytest.raises(LuaError, match="initial position out of string"):
        unpack("b", b"a", 5)


def test_negative_initial_position():
    assert unpack("B", b"ab", -1) == (ord("b"), 3)


def test_missing_argument():
    with pytest.raises(TypeError, match="no value"):
        pack("i4")