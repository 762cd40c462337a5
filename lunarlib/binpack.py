"""Binary packing with Lua's format language: pack, packsize and unpack.

A format is a sequence of options. Integers are ``b``/``B`` (1 byte),
``h``/``H``, ``l``/``L``, ``j``/``J``, ``T`` and ``i[n]``/``I[n]``. Floats
are ``f``, ``d`` and ``n``. Strings are ``c<n>`` (fixed size), ``s[n]``
(length-prefixed) and ``z`` (zero-terminated). ``x`` is one byte of
padding and ``X<op>`` aligns as option ``op`` would. ``<``, ``>`` and ``=``
select little, big and native endianness, ``![n]`` sets the maximum
alignment, and spaces are ignored. Packed data is ``bytes``; string
arguments may be ``bytes`` or ``str`` made of characters 0..255.
"""

from __future__ import annotations

import enum
import math
import struct
import sys
from typing import Any

from .errors import LuaError
from .patterns import _number_to_str, _type_name
from .strings import _check_integer, _check_number

MAXINTSIZE = 16
MAXSIZE = (1 << 31) - 1
PADBYTE = 0
_NB = 8
_MC = 0xFF
_SZINT = 8
_MASK64 = (1 << 64) - 1
_NATIVE_LITTLE = sys.byteorder == "little"
_MAXALIGN = 8

_SIZE_INT = struct.calcsize("i")
_SIZE_SHORT = struct.calcsize("h")
_SIZE_LONG = struct.calcsize("l")
_SIZE_T = struct.calcsize("N")


class _Kind(enum.Enum):
    INT = enum.auto()
    UINT = enum.auto()
    FLOAT = enum.auto()
    CHAR = enum.auto()
    STRING = enum.auto()
    ZSTR = enum.auto()
    PADDING = enum.auto()
    PADDALIGN = enum.auto()
    NOP = enum.auto()


_FIXED = {
    "b": (1, _Kind.INT),
    "B": (1, _Kind.UINT),
    "h": (_SIZE_SHORT, _Kind.INT),
    "H": (_SIZE_SHORT, _Kind.UINT),
    "l": (_SIZE_LONG, _Kind.INT),
    "L": (_SIZE_LONG, _Kind.UINT),
    "j": (_SZINT, _Kind.INT),
    "J": (_SZINT, _Kind.UINT),
    "T": (_SIZE_T, _Kind.UINT),
    "f": (4, _Kind.FLOAT),
    "d": (8, _Kind.FLOAT),
    "n": (8, _Kind.FLOAT),
}


class _Format:
    """Reads options from a format string and tracks endianness and alignment."""

    def __init__(self, fmt: str, func: str) -> None:
        self.fmt = fmt
        self.pos = 0
        self.func = func
        self.islittle = _NATIVE_LITTLE
        self.maxalign = 1

    def __bool__(self) -> bool:
        return self.pos < len(self.fmt)

    def _getnum(self, default: int) -> int:
        fmt = self.fmt
        if self.pos >= len(fmt) or not fmt[self.pos].isdigit() or not fmt[self.pos].isascii():
            return default
        a = 0
        while True:
            a = a * 10 + (ord(fmt[self.pos]) - ord("0"))
            self.pos += 1
            if not (
                self.pos < len(fmt)
                and "0" <= fmt[self.pos] <= "9"
                and a <= (MAXSIZE - 9) // 10
            ):
                return a

    def _getnumlimit(self, default: int) -> int:
        size = self._getnum(default)
        if size > MAXINTSIZE or size <= 0:
            raise LuaError(
                f"integral size ({size}) out of limits [1,{MAXINTSIZE}]"
            )
        return size

    def _argerror(self, message: str) -> LuaError:
        return LuaError(f"bad argument #1 to '{self.func}' ({message})")

    def option(self) -> tuple[_Kind, int]:
        opt = self.fmt[self.pos]
        self.pos += 1
        if opt in _FIXED:
            size, kind = _FIXED[opt]
            return kind, size
        if opt == "i":
            return _Kind.INT, self._getnumlimit(_SIZE_INT)
        if opt == "I":
            return _Kind.UINT, self._getnumlimit(_SIZE_INT)
        if opt == "s":
            return _Kind.STRING, self._getnumlimit(_SIZE_T)
        if opt == "c":
            size = self._getnum(-1)
            if size == -1:
                raise LuaError("missing size for format option 'c'")
            return _Kind.CHAR, size
        if opt == "z":
            return _Kind.ZSTR, 0
        if opt == "x":
            return _Kind.PADDING, 1
        if opt == "X":
            return _Kind.PADDALIGN, 0
        if opt == " ":
            pass
        elif opt == "<":
            self.islittle = True
        elif opt == ">":
            self.islittle = False
        elif opt == "=":
            self.islittle = _NATIVE_LITTLE
        elif opt == "!":
            self.maxalign = self._getnumlimit(_MAXALIGN)
        else:
            raise LuaError(f"invalid format option '{opt}'")
        return _Kind.NOP, 0

    def details(self, totalsize: int) -> tuple[_Kind, int, int]:
        """Return the next option, its size and the padding needed before it."""
        kind, size = self.option()
        align = size
        if kind is _Kind.PADDALIGN:
            if not self:
                raise self._argerror("invalid next option for option 'X'")
            next_kind, align = self.option()
            if next_kind is _Kind.CHAR or align == 0:
                raise self._argerror("invalid next option for option 'X'")
        if align <= 1 or kind is _Kind.CHAR:
            return kind, size, 0
        align = min(align, self.maxalign)
        if align & (align - 1):
            raise self._argerror("format asks for alignment not power of 2")
        ntoalign = (align - (totalsize & (align - 1))) & (align - 1)
        return kind, size, ntoalign


def _check_fmt(fmt: Any, func: str) -> str:
    if isinstance(fmt, bytes):
        return fmt.decode("latin-1")
    if isinstance(fmt, str):
        return fmt
    raise TypeError(
        f"bad argument #1 to '{func}' (string expected, got {_type_name(fmt)})"
    )


def _check_bytes(value: Any, position: int, func: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return value.encode("latin-1")
        except UnicodeEncodeError:
            raise LuaError(
                f"bad argument #{position} to '{func}' "
                "(string has characters outside 0..255)"
            ) from None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _number_to_str(value).encode("ascii")
    raise TypeError(
        f"bad argument #{position} to '{func}' "
        f"(string expected, got {_type_name(value)})"
    )


def _pack_int(n: int, islittle: bool, size: int, neg: bool) -> bytes:
    if neg and size > _SZINT:
        value = n & ((1 << (size * _NB)) - 1)
    else:
        value = n & _MASK64 & ((1 << (size * _NB)) - 1)
    return value.to_bytes(size, "little" if islittle else "big")


def _float_bytes(n: float, size: int, islittle: bool) -> bytes:
    code = ("<" if islittle else ">") + ("f" if size == 4 else "d")
    try:
        return struct.pack(code, n)
    except OverflowError:
        return struct.pack(code, math.copysign(math.inf, n))


def pack(fmt: str, *args: Any) -> bytes:
    """Serialize ``args`` into binary form following ``fmt``."""
    parser = _Format(_check_fmt(fmt, "pack"), "pack")
    out = bytearray()
    totalsize = 0
    argi = 0
    while parser:
        kind, size, ntoalign = parser.details(totalsize)
        totalsize += ntoalign + size
        out.extend(bytes([PADBYTE]) * ntoalign)
        if kind is _Kind.PADDING:
            out.append(PADBYTE)
            continue
        if kind in (_Kind.PADDALIGN, _Kind.NOP):
            continue
        position = argi + 2
        if argi >= len(args):
            expected = "string" if kind in (_Kind.CHAR, _Kind.STRING, _Kind.ZSTR) else "number"
            raise TypeError(
                f"bad argument #{position} to 'pack' ({expected} expected, got no value)"
            )
        value = args[argi]
        argi += 1
        if kind is _Kind.INT:
            n = _check_integer(value, position, "pack")
            if size < _SZINT:
                lim = 1 << (size * _NB - 1)
                if not -lim <= n < lim:
                    raise LuaError(
                        f"bad argument #{position} to 'pack' (integer overflow)"
                    )
            out.extend(_pack_int(n, parser.islittle, size, n < 0))
        elif kind is _Kind.UINT:
            n = _check_integer(value, position, "pack")
            if size < _SZINT and (n & _MASK64) >= (1 << (size * _NB)):
                raise LuaError(
                    f"bad argument #{position} to 'pack' (unsigned overflow)"
                )
            out.extend(_pack_int(n, parser.islittle, size, False))
        elif kind is _Kind.FLOAT:
            number = _check_number(value, position, "pack")
            out.extend(_float_bytes(number, size, parser.islittle))
        elif kind is _Kind.CHAR:
            data = _check_bytes(value, position, "pack")
            if len(data) > size:
                raise LuaError(
                    f"bad argument #{position} to 'pack' (string longer than given size)"
                )
            out.extend(data)
            out.extend(bytes([PADBYTE]) * (size - len(data)))
        elif kind is _Kind.STRING:
            data = _check_bytes(value, position, "pack")
            if not (size >= _SIZE_T or len(data) < (1 << (size * _NB))):
                raise LuaError(
                    f"bad argument #{position} to 'pack' "
                    "(string length does not fit in given size)"
                )
            out.extend(_pack_int(len(data), parser.islittle, size, False))
            out.extend(data)
            totalsize += len(data)
        else:
            data = _check_bytes(value, position, "pack")
            if b"\0" in data:
                raise LuaError(
                    f"bad argument #{position} to 'pack' (string contains zeros)"
                )
            out.extend(data)
            out.append(0)
            totalsize += len(data) + 1
    return bytes(out)


def packsize(fmt: str) -> int:
    """Return the size of a string packed with ``fmt``, which must be fixed-size."""
    parser = _Format(_check_fmt(fmt, "packsize"), "packsize")
    totalsize = 0
    while parser:
        kind, size, ntoalign = parser.details(totalsize)
        size += ntoalign
        if totalsize > MAXSIZE - size:
            raise LuaError("bad argument #1 to 'packsize' (format result too large)")
        totalsize += size
        if kind in (_Kind.STRING, _Kind.ZSTR):
            raise LuaError("bad argument #1 to 'packsize' (variable-length format)")
    return totalsize


def _unpack_int(data: bytes, islittle: bool, size: int, issigned: bool) -> int:
    chunk = data if islittle else data[::-1]
    limit = min(size, _SZINT)
    res = int.from_bytes(chunk[:limit], "little")
    if size < _SZINT:
        if issigned:
            mask = 1 << (size * _NB - 1)
            res = ((res ^ mask) - mask) & _MASK64
    elif size > _SZINT:
        mask = 0 if (not issigned or res < (1 << 63)) else _MC
        if any(b != mask for b in chunk[limit:size]):
            raise LuaError(f"{size}-byte integer does not fit into Lua Integer")
    return res - (1 << 64) if res >= (1 << 63) else res


def unpack(fmt: str, data: bytes, pos: int = 1) -> tuple[Any, ...]:
    """Read values packed with ``fmt`` from ``data`` starting at ``pos``.

    Returns the values followed by the position after the last byte read.
    """
    parser = _Format(_check_fmt(fmt, "unpack"), "unpack")
    data = _check_bytes(data, 2, "unpack")
    ld = len(data)
    start = _check_integer(pos, 3, "unpack")
    if start < 0:
        start = 0 if -start > ld else ld + start + 1
    pos = start - 1
    if not 0 <= pos <= ld:
        raise LuaError("bad argument #3 to 'unpack' (initial position out of string)")
    results: list[Any] = []
    while parser:
        kind, size, ntoalign = parser.details(pos)
        if pos + ntoalign + size > ld:
            raise LuaError("bad argument #2 to 'unpack' (data string too short)")
        pos += ntoalign
        if kind in (_Kind.INT, _Kind.UINT):
            results.append(
                _unpack_int(data[pos:pos + size], parser.islittle, size, kind is _Kind.INT)
            )
        elif kind is _Kind.FLOAT:
            code = ("<" if parser.islittle else ">") + ("f" if size == 4 else "d")
            results.append(struct.unpack(code, data[pos:pos + size])[0])
        elif kind is _Kind.CHAR:
            results.append(data[pos:pos + size])
        elif kind is _Kind.STRING:
            length = _unpack_int(data[pos:pos + size], parser.islittle, size, False)
            length &= _MASK64
            if pos + length + size > ld:
                raise LuaError("bad argument #2 to 'unpack' (data string too short)")
            results.append(data[pos + size:pos + size + length])
            pos += length
        elif kind is _Kind.ZSTR:
            end = data.find(b"\0", pos)
            if end < 0:
                end = ld
            results.append(data[pos:end])
            pos = end + 1
        pos += size
    results.append(pos + 1)
    return tuple(results)