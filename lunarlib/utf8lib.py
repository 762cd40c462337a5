"""UTF-8 helpers with Lua's semantics: char, codepoint, length, offset, codes.

Subjects are byte strings; a ``str`` argument is encoded as UTF-8 first.
Positions are 1-based byte positions and negative positions count back
from the end.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional, Union

from .errors import LuaError
from .patterns import _number_to_str, _type_name
from .strings import _check_integer

MAXUNICODE = 0x10FFFF
CHARPATTERN = b"[\x00-\x7F\xC2-\xF4][\x80-\xBF]*"

_LIMITS = (0xFF, 0x7F, 0x7FF, 0xFFFF)


def _posrelat(pos: int, length: int) -> int:
    if pos >= 0:
        return pos
    if -pos > length:
        return 0
    return length + pos + 1


def _to_bytes(value: Any, position: int, func: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8", "surrogatepass")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _number_to_str(value).encode("ascii")
    raise TypeError(
        f"bad argument #{position} to '{func}' "
        f"(string expected, got {_type_name(value)})"
    )


def _byte_at(s: bytes, i: int) -> int:
    return s[i] if i < len(s) else 0


def _iscont(s: bytes, i: int) -> bool:
    return (_byte_at(s, i) & 0xC0) == 0x80


def _decode(s: bytes, pos: int) -> Optional[tuple[int, int]]:
    """Decode the sequence at ``pos``; return ``(code, next_pos)`` or ``None``."""
    c = _byte_at(s, pos)
    if c < 0x80:
        return c, pos + 1
    res = 0
    count = 0
    while c & 0x40:
        count += 1
        cc = _byte_at(s, pos + count)
        if (cc & 0xC0) != 0x80:
            return None
        res = (res << 6) | (cc & 0x3F)
        c <<= 1
    res |= (c & 0x7F) << (count * 5)
    if count > 3 or res > MAXUNICODE or res <= _LIMITS[count]:
        return None
    return res, pos + count + 1


def _encode(x: int) -> bytes:
    if x < 0x80:
        return bytes([x])
    tail = []
    mfb = 0x3F
    while x > mfb:
        tail.append(0x80 | (x & 0x3F))
        x >>= 6
        mfb >>= 1
    tail.append(((~mfb << 1) | x) & 0xFF)
    return bytes(reversed(tail))


def char(*args: int) -> bytes:
    """Return the UTF-8 encoding of the given code points, concatenated."""
    parts = []
    for position, value in enumerate(args, 1):
        code = _check_integer(value, position, "char")
        if not 0 <= code <= MAXUNICODE:
            raise LuaError(f"bad argument #{position} to 'char' (value out of range)")
        parts.append(_encode(code))
    return b"".join(parts)


def codepoint(s: Union[bytes, str], i: int = 1, j: Optional[int] = None) -> tuple[int, ...]:
    """Return the code points of all characters that start between ``i`` and ``j``."""
    data = _to_bytes(s, 1, "codepoint")
    length = len(data)
    posi = _posrelat(_check_integer(i, 2, "codepoint"), length)
    pose = posi if j is None else _posrelat(_check_integer(j, 3, "codepoint"), length)
    if posi < 1:
        raise LuaError("bad argument #2 to 'codepoint' (out of range)")
    if pose > length:
        raise LuaError("bad argument #3 to 'codepoint' (out of range)")
    if posi > pose:
        return ()
    codes = []
    pos = posi - 1
    while pos < pose:
        decoded = _decode(data, pos)
        if decoded is None:
            raise LuaError("invalid UTF-8 code")
        code, pos = decoded
        codes.append(code)
    return tuple(codes)


def length(
    s: Union[bytes, str], i: int = 1, j: int = -1
) -> Union[int, tuple[None, int]]:
    """Count the characters that start between ``i`` and ``j``.

    For an invalid sequence, return ``(None, position)`` where position is
    that of the first invalid byte.
    """
    data = _to_bytes(s, 1, "len")
    size = len(data)
    posi = _posrelat(_check_integer(i, 2, "len"), size)
    posj = _posrelat(_check_integer(j, 3, "len"), size)
    if not (1 <= posi and posi - 1 <= size):
        raise LuaError("bad argument #2 to 'len' (initial position out of string)")
    posi -= 1
    posj -= 1
    if posj >= size:
        raise LuaError("bad argument #3 to 'len' (final position out of string)")
    n = 0
    while posi <= posj:
        decoded = _decode(data, posi)
        if decoded is None:
            return None, posi + 1
        posi = decoded[1]
        n += 1
    return n


def offset(s: Union[bytes, str], n: int, i: Optional[int] = None) -> Optional[int]:
    """Return the byte position where the ``n``-th character from ``i`` starts.

    ``n == 0`` gives the start of the character containing byte ``i``.
    Returns ``None`` when there is no such character.
    """
    data = _to_bytes(s, 1, "offset")
    size = len(data)
    n = _check_integer(n, 2, "offset")
    default = 1 if n >= 0 else size + 1
    posi = _posrelat(default if i is None else _check_integer(i, 3, "offset"), size)
    if not (1 <= posi and posi - 1 <= size):
        raise LuaError("bad argument #3 to 'offset' (position out of range)")
    posi -= 1
    if n == 0:
        while posi > 0 and _iscont(data, posi):
            posi -= 1
    else:
        if _iscont(data, posi):
            raise LuaError("initial position is a continuation byte")
        if n < 0:
            while n < 0 and posi > 0:
                posi -= 1
                while posi > 0 and _iscont(data, posi):
                    posi -= 1
                n += 1
        else:
            n -= 1
            while n > 0 and posi < size:
                posi += 1
                while _iscont(data, posi):
                    posi += 1
                n -= 1
    return posi + 1 if n == 0 else None


def codes(s: Union[bytes, str]) -> Iterator[tuple[int, int]]:
    """Yield ``(position, code_point)`` for each character of ``s``.

    Raises ``LuaError`` when an invalid sequence is reached.
    """
    data = _to_bytes(s, 1, "codes")
    return _iter_codes(data)


def _iter_codes(data: bytes) -> Iterator[tuple[int, int]]:
    size = len(data)
    n = 0
    first = True
    while True:
        if not first and n < size:
            n += 1
            while _iscont(data, n):
                n += 1
        first = False
        if n >= size:
            return
        decoded = _decode(data, n)
        if decoded is None or _iscont(data, decoded[1]):
            raise LuaError("invalid UTF-8 code")
        yield n + 1, decoded[0]