import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lunarlib import strings
from lunarlib.errors import LuaError

byte_text = st.text(alphabet=st.characters(max_codepoint=255))


@given(byte_text)
def test_byte_char_round_trip(s):
    codes = strings.byte(s, 1, -1)
    assert strings.char(*codes) == s
    assert len(codes) == len(s)


def test_byte_defaults_to_single_character():
    assert strings.byte("ABC") == (ord("A"),)
    assert strings.byte("ABC", -1) == (ord("C"),)


def test_byte_empty_range():
    assert strings.byte("ABC", 3, 2) == ()
    assert strings.byte("", 1) == ()


def test_char_out_of_range():
    with pytest.raises(LuaError, match="value out of range"):
        strings.char(65, 256)
    with pytest.raises(LuaError, match="value out of range"):
        strings.char(-1)


@given(byte_text, st.integers(1, 20), st.integers(1, 20))
def test_sub_positive_matches_slice(s, i, j):
    assert strings.sub(s, i, j) == s[i - 1:j]


@given(byte_text, st.integers(1, 20))
def test_sub_negative_counts_from_end(s, k):
    result = strings.sub(s, -k)
    assert result == s[-k:]
    assert len(result) == min(k, len(s))


def test_sub_clamps_and_empty():
    assert strings.sub("hello", 0) == "hello"
    assert strings.sub("hello", 4, 2) == ""
    assert strings.sub("hello", 2, 100) == "hello"[1:]


@given(byte_text, st.integers(1, 6), st.text(max_size=3))
def test_rep_length_and_pieces(s, n, sep):
    result = strings.rep(s, n, sep)
    assert len(result) == n * len(s) + (n - 1) * len(sep)
    if sep and sep not in s:
        assert result.split(sep) == [s] * n


def test_rep_non_positive_is_empty():
    assert strings.rep("abc", 0) == ""
    assert strings.rep("abc", -3, ",") == ""


def test_rep_too_large():
    with pytest.raises(LuaError, match="resulting string too large"):
        strings.rep("xy", 2**31)


@given(byte_text)
def test_reverse_twice_is_identity(s):
    assert strings.reverse(strings.reverse(s)) == s
    assert strings.reverse(s) == "".join(reversed(s))


@given(st.text(alphabet=st.characters(max_codepoint=127)))
def test_case_ascii(s):
    assert strings.upper(s) == s.upper()
    assert strings.lower(s) == s.lower()


def test_case_leaves_non_ascii():
    assert strings.upper("é") == "é"
    assert strings.lower("É") == "É"


@given(st.integers(-(2**63), 2**63 - 1))
def test_format_d_round_trip(n):
    assert int(strings.format("%d", n)) == n


@given(st.integers(0, 2**63 - 1))
def test_format_hex_round_trip(n):
    assert int(strings.format("%x", n), 16) == n
    assert int(strings.format("%o", n), 8) == n


def test_format_negative_hex_is_unsigned():
    assert int(strings.format("%x", -1), 16) == 2**64 - 1


def test_format_width_and_left_justify():
    right = strings.format("%5d", 42)
    assert len(right) == 5 and right.strip() == "42"
    left = strings.format("%-5sX", "ab")
    assert left.startswith("ab") and left.endswith("X") and len(left) == 6
    zero = strings.format("%05d", 42)
    assert zero.startswith("000") and int(zero) == 42


@given(st.floats(allow_nan=False, allow_infinity=False))
def test_format_hex_float_round_trip(x):
    text = strings.format("%a", x)
    back = float.fromhex(text)
    assert back == x
    assert math.copysign(1, back) == math.copysign(1, x)
    assert float.fromhex(strings.format("%A", x)) == x


def test_format_float_round_trip():
    assert float(strings.format("%.3f", 2.5)) == 2.5
    assert float(strings.format("%g", 1e20)) == 1e20


def test_format_quoted():
    assert strings.format("%q", 'a"b') == '"a\\"b"'
    assert strings.format("%q", "\x01" + "2") == '"\\0012"'
    assert strings.format("%q", 1.0) == "0x1p+0"


def test_format_quoted_scalars():
    assert strings.format("%q", None) == "nil"
    assert strings.format("%q", True) == "true"
    assert strings.format("%q", 17) == str(17)


def test_format_s_and_percent():
    assert strings.format("%s", None) == "nil"
    assert strings.format("%s", 10) == "10"
    assert strings.format("%%") == "%"
    long_text = "x" * 150
    assert strings.format("%5s", long_text) == long_text


def test_format_c_matches_char():
    assert strings.format("%c", 65) == strings.char(65)


def test_format_errors():
    with pytest.raises(LuaError, match="no value"):
        strings.format("%d")
    with pytest.raises(LuaError, match="invalid option"):
        strings.format("%y", 1)
    with pytest.raises(LuaError, match="repeated flags"):
        strings.format("%------d", 1)
    with pytest.raises(LuaError, match="too long"):
        strings.format("%123d", 1)
    with pytest.raises(LuaError, match="not implemented"):
        strings.format("%5a", 1.0)
    with pytest.raises(LuaError, match="no integer representation"):
        strings.format("%d", 1.5)
    with pytest.raises(LuaError, match="contains zeros"):
        strings.format("%5s", "a\0b")
    with pytest.raises(LuaError, match="no literal form"):
        strings.format("%q", object())