"""Basic string functions with Lua's semantics: byte, char, sub, rep, format.

Strings are Python ``str`` objects whose characters stand for bytes, so
``char`` accepts codes 0..255 only. Positions are 1-based and negative
positions count back from the end. Case conversion follows the C locale
and touches ASCII letters only.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from .errors import LuaError
from .patterns import _number_to_str, _type_name

MAXSIZE = (1 << 31) - 1
_MAXINTEGER = (1 << 63) - 1
_MININTEGER = -(1 << 63)
_UNSIGNED_MASK = (1 << 64) - 1
_FLAGS = "-+ #0"
_MAX_FLAGS = len(_FLAGS) + 1

_LOWER = {code: code + 32 for code in range(ord("A"), ord("Z") + 1)}
_UPPER = {code: code - 32 for code in range(ord("a"), ord("z") + 1)}


def _posrelat(pos: int, length: int) -> int:
    if pos >= 0:
        return pos
    if -pos > length:
        return 0
    return length + pos + 1


def _check_str(value: Any, position: int, name: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _number_to_str(value)
    raise TypeError(
        f"bad argument #{position} to '{name}' "
        f"(string expected, got {_type_name(value)})"
    )


def _parse_number(text: str) -> Optional[float | int]:
    text = text.strip()
    try:
        return int(text, 10)
    except ValueError:
        pass
    lowered = text.lower()
    body = lowered[1:] if lowered[:1] in "+-" else lowered
    if body.startswith("0x"):
        try:
            return int(lowered, 16)
        except ValueError:
            try:
                return float.fromhex(text)
            except ValueError:
                return None
    try:
        return float(text)
    except ValueError:
        return None


def _check_number(value: Any, position: int, name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        parsed = _parse_number(value)
        if parsed is not None:
            return float(parsed)
    raise TypeError(
        f"bad argument #{position} to '{name}' "
        f"(number expected, got {_type_name(value)})"
    )


def _check_integer(value: Any, position: int, name: str) -> int:
    if isinstance(value, str):
        parsed = _parse_number(value)
        if parsed is not None:
            value = parsed
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float):
        if (
            math.isfinite(value)
            and value.is_integer()
            and _MININTEGER <= value < -float(_MININTEGER)
        ):
            return int(value)
        raise LuaError(
            f"bad argument #{position} to '{name}' "
            "(number has no integer representation)"
        )
    raise TypeError(
        f"bad argument #{position} to '{name}' "
        f"(number expected, got {_type_name(value)})"
    )


def byte(s: str, i: int = 1, j: Optional[int] = None) -> tuple[int, ...]:
    """Return the codes of the characters ``s[i]`` through ``s[j]``."""
    s = _check_str(s, 1, "byte")
    length = len(s)
    posi = _posrelat(_check_integer(i, 2, "byte"), length)
    pose = posi if j is None else _posrelat(_check_integer(j, 3, "byte"), length)
    posi = max(posi, 1)
    pose = min(pose, length)
    if posi > pose:
        return ()
    return tuple(ord(ch) for ch in s[posi - 1:pose])


def char(*args: int) -> str:
    """Build a string from character codes in the range 0..255."""
    codes = []
    for position, value in enumerate(args, 1):
        code = _check_integer(value, position, "char")
        if not 0 <= code <= 255:
            raise LuaError(f"bad argument #{position} to 'char' (value out of range)")
        codes.append(chr(code))
    return "".join(codes)


def sub(s: str, i: int, j: int = -1) -> str:
    """Return the substring from position ``i`` to ``j`` inclusive."""
    s = _check_str(s, 1, "sub")
    length = len(s)
    start = max(_posrelat(_check_integer(i, 2, "sub"), length), 1)
    end = min(_posrelat(_check_integer(j, 3, "sub"), length), length)
    if start > end:
        return ""
    return s[start - 1:end]


def rep(s: str, n: int, sep: str = "") -> str:
    """Return ``n`` copies of ``s`` separated by ``sep``."""
    s = _check_str(s, 1, "rep")
    n = _check_integer(n, 2, "rep")
    sep = _check_str(sep, 3, "rep")
    if n <= 0:
        return ""
    if len(s) + len(sep) > MAXSIZE // n:
        raise LuaError("resulting string too large")
    return sep.join([s] * n)


def reverse(s: str) -> str:
    """Return ``s`` with its characters in reverse order."""
    return _check_str(s, 1, "reverse")[::-1]


def lower(s: str) -> str:
    """Return ``s`` with ASCII upper-case letters made lower case."""
    return _check_str(s, 1, "lower").translate(_LOWER)


def upper(s: str) -> str:
    """Return ``s`` with ASCII lower-case letters made upper case."""
    return _check_str(s, 1, "upper").translate(_UPPER)


# -- format -----------------------------------------------------------------


def _hex_digit(d: int) -> str:
    return chr(d + ord("0")) if d < 10 else chr(d - 10 + ord("a"))


def _hex_float(x: float) -> str:
    if math.isnan(x) or math.isinf(x):
        return "%.14g" % x
    if x == 0:
        return ("%.14g" % x) + "x0p+0"
    m, e = math.frexp(x)
    out = []
    if m < 0:
        out.append("-")
        m = -m
    out.append("0x")
    m *= 2
    d = math.floor(m)
    out.append(_hex_digit(d))
    m -= d
    e -= 1
    if m > 0:
        out.append(".")
        while m > 0:
            m *= 16
            d = math.floor(m)
            out.append(_hex_digit(d))
            m -= d
    out.append("p%+d" % e)
    return "".join(out)


def _quoted(s: str) -> str:
    out = ['"']
    for index, ch in enumerate(s):
        code = ord(ch)
        if ch in '"\\\n':
            out.append("\\" + ch)
        elif code < 32 or code == 127:
            following = s[index + 1] if index + 1 < len(s) else ""
            if "0" <= following <= "9":
                out.append("\\%03d" % code)
            else:
                out.append("\\%d" % code)
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def _literal(value: Any, position: int) -> str:
    if isinstance(value, str):
        return _quoted(value)
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        if value == _MININTEGER:
            return "0x%x" % (value & _UNSIGNED_MASK)
        return "%d" % value
    if isinstance(value, float):
        return _hex_float(value)
    raise LuaError(f"bad argument #{position} to 'format' (value has no literal form)")


def _tostring(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _number_to_str(value)
    return f"{_type_name(value)}: 0x{id(value):08x}"


def _format_int(flags: str, width: int, precision: Optional[int],
                conv: str, n: int) -> str:
    base = {"o": 8, "x": 16, "X": 16}.get(conv, 10)
    if conv in "ouxX" and n < 0:
        n &= _UNSIGNED_MASK
    magnitude = abs(n)
    if base == 8:
        digits = "%o" % magnitude
    elif base == 16:
        digits = "%x" % magnitude
    else:
        digits = "%d" % magnitude
    if precision is not None:
        digits = "" if precision == 0 and magnitude == 0 else digits.rjust(precision, "0")
    prefix = ""
    if conv in "di":
        if n < 0:
            prefix = "-"
        elif "+" in flags:
            prefix = "+"
        elif " " in flags:
            prefix = " "
    if "#" in flags:
        if conv == "o" and not digits.startswith("0"):
            digits = "0" + digits
        elif conv in "xX" and magnitude != 0:
            prefix = "0x"
    if conv == "X":
        digits = digits.upper()
        prefix = prefix.upper()
    body = prefix + digits
    if "-" in flags:
        return body.ljust(width)
    if "0" in flags and precision is None:
        return prefix + digits.rjust(width - len(prefix), "0")
    return body.rjust(width)


def format(fmt: str, *args: Any) -> str:
    """Format ``args`` under the control of ``fmt``, as Lua's string.format."""
    fmt = _check_str(fmt, 1, "format")
    out: list[str] = []
    length = len(fmt)
    i = 0
    argi = 0
    while i < length:
        ch = fmt[i]
        if ch != "%":
            out.append(ch)
            i += 1
            continue
        i += 1
        if i < length and fmt[i] == "%":
            out.append("%")
            i += 1
            continue
        position = argi + 2
        if argi >= len(args):
            raise LuaError(f"bad argument #{position} to 'format' (no value)")
        value = args[argi]
        argi += 1

        start = i
        while i < length and fmt[i] in _FLAGS:
            i += 1
        flags = fmt[start:i]
        if len(flags) >= _MAX_FLAGS:
            raise LuaError("invalid format (repeated flags)")
        wstart = i
        for _ in range(2):
            if i < length and "0" <= fmt[i] <= "9":
                i += 1
        width_text = fmt[wstart:i]
        precision_text: Optional[str] = None
        if i < length and fmt[i] == ".":
            i += 1
            pstart = i
            for _ in range(2):
                if i < length and "0" <= fmt[i] <= "9":
                    i += 1
            precision_text = fmt[pstart:i]
        if i < length and "0" <= fmt[i] <= "9":
            raise LuaError("invalid format (width or precision too long)")
        spec = fmt[start:i]
        conv = fmt[i] if i < length else ""
        i += 1
        width = int(width_text) if width_text else 0
        precision = None if precision_text is None else int(precision_text or "0")

        if conv == "c":
            code = _check_integer(value, position, "format")
            text = chr(code & 0xFF)
            out.append(text.ljust(width) if "-" in flags else text.rjust(width))
        elif conv and conv in "diouxX":
            n = _check_integer(value, position, "format")
            out.append(_format_int(flags, width, precision, conv, n))
        elif conv and conv in "aA":
            number = _check_number(value, position, "format")
            if spec:
                raise LuaError("modifiers for format '%a'/'%A' not implemented")
            text = _hex_float(number)
            out.append(text.upper() if conv == "A" else text)
        elif conv and conv in "eEfgG":
            number = _check_number(value, position, "format")
            out.append(("%" + spec + conv) % number)
        elif conv == "q":
            out.append(_literal(value, position))
        elif conv == "s":
            text = _tostring(value)
            if not spec:
                out.append(text)
            else:
                if "\0" in text:
                    raise LuaError(
                        f"bad argument #{position} to 'format' (string contains zeros)"
                    )
                if precision is None and len(text) >= 100:
                    out.append(text)
                else:
                    out.append(("%" + spec + "s") % text)
        else:
            raise LuaError(f"invalid option '%{conv}' to 'format'")
    return "".join(out)