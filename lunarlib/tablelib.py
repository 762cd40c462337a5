"""Table manipulation with Lua's semantics: insert, remove, move, concat, sort.

Functions work on ``LuaTable`` objects, or on any object that provides
the item access and length protocol the operation needs. Indices are
1-based. Reading a missing entry gives ``None``.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

from .errors import LuaError
from .luatable import LuaTable
from .patterns import _number_to_str, _type_name
from .strings import _check_integer, _check_str

_INT_MAX = (1 << 31) - 1
_MAXINTEGER = (1 << 63) - 1
_MAX_RESULTS = 1_000_000
_RANLIMIT = 100

_READ = "__getitem__"
_WRITE = "__setitem__"
_LENGTH = "__len__"
_NOT_TABLES = (str, bytes, bytearray, list, tuple)


def _check_table(t: Any, needs: tuple[str, ...], func: str, position: int = 1) -> None:
    if isinstance(t, LuaTable):
        return
    if isinstance(t, _NOT_TABLES) or not all(hasattr(type(t), attr) for attr in needs):
        raise TypeError(
            f"bad argument #{position} to '{func}' "
            f"(table expected, got {_type_name(t)})"
        )


def _get(t: Any, index: int) -> Any:
    if isinstance(t, LuaTable):
        return t.get(index)
    try:
        return t[index]
    except LookupError:
        return None


def _set(t: Any, index: int, value: Any) -> None:
    t[index] = value


def _length(t: Any) -> int:
    if isinstance(t, LuaTable):
        return t.length()
    return len(t)


def _getn(t: Any, needs: tuple[str, ...], func: str) -> int:
    _check_table(t, needs + (_LENGTH,), func)
    return _length(t)


def _truthy(value: Any) -> bool:
    return value is not None and value is not False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _lua_less(a: Any, b: Any) -> bool:
    if _is_number(a) and _is_number(b):
        return a < b
    if isinstance(a, str) and isinstance(b, str):
        return a < b
    ta, tb = _type_name(a), _type_name(b)
    if ta == tb:
        raise LuaError(f"attempt to compare two {ta} values")
    raise LuaError(f"attempt to compare {ta} with {tb}")


def insert(t: Any, *args: Any) -> None:
    """Insert a value at the end of ``t``, or at a given position.

    Called as ``insert(t, value)`` or ``insert(t, pos, value)``.
    """
    e = _getn(t, (_READ, _WRITE), "insert") + 1
    if len(args) == 1:
        pos = e
        value = args[0]
    elif len(args) == 2:
        pos = _check_integer(args[0], 2, "insert")
        value = args[1]
        if not 1 <= pos <= e:
            raise LuaError("bad argument #2 to 'insert' (position out of bounds)")
        for i in range(e, pos, -1):
            _set(t, i, _get(t, i - 1))
    else:
        raise LuaError("wrong number of arguments to 'insert'")
    _set(t, pos, value)


def remove(t: Any, pos: Optional[int] = None) -> Any:
    """Remove and return the element at ``pos`` (default: the last one)."""
    size = _getn(t, (_READ, _WRITE), "remove")
    pos = size if pos is None else _check_integer(pos, 2, "remove")
    if pos != size and not 1 <= pos <= size + 1:
        raise LuaError("bad argument #1 to 'remove' (position out of bounds)")
    result = _get(t, pos)
    while pos < size:
        _set(t, pos, _get(t, pos + 1))
        pos += 1
    _set(t, pos, None)
    return result


def move(a1: Any, f: int, e: int, t: int, a2: Any = None) -> Any:
    """Copy ``a1[f..e]`` into ``a2[t..]`` (``a2`` defaults to ``a1``); return ``a2``."""
    f = _check_integer(f, 2, "move")
    e = _check_integer(e, 3, "move")
    t = _check_integer(t, 4, "move")
    dest = a1 if a2 is None else a2
    _check_table(a1, (_READ,), "move", 1)
    _check_table(dest, (_WRITE,), "move", 5 if a2 is not None else 1)
    if e >= f:
        if not (f > 0 or e < _MAXINTEGER + f):
            raise LuaError("bad argument #3 to 'move' (too many elements to move)")
        n = e - f + 1
        if t > _MAXINTEGER - n + 1:
            raise LuaError("bad argument #4 to 'move' (destination wrap around)")
        if t > e or t <= f or dest is not a1:
            order = range(n)
        else:
            order = range(n - 1, -1, -1)
        for i in order:
            _set(dest, t + i, _get(a1, f + i))
    return dest


def _field_text(t: Any, index: int) -> str:
    value = _get(t, index)
    if isinstance(value, str):
        return value
    if _is_number(value):
        return _number_to_str(value)
    raise LuaError(
        f"invalid value ({_type_name(value)}) at index {index} in table for 'concat'"
    )


def concat(t: Any, sep: str = "", i: int = 1, j: Optional[int] = None) -> str:
    """Join the strings or numbers ``t[i]..t[j]`` with ``sep`` between them."""
    last = _getn(t, (_READ,), "concat")
    sep = _check_str(sep, 2, "concat")
    i = _check_integer(i, 3, "concat")
    last = last if j is None else _check_integer(j, 4, "concat")
    if i > last:
        return ""
    return sep.join(_field_text(t, index) for index in range(i, last + 1))


def pack(*args: Any) -> LuaTable:
    """Return a table holding ``args`` at 1..n, with field ``n`` set to their count."""
    n = len(args)
    result = LuaTable(n, 1)
    for index, value in enumerate(args, 1):
        result.set_int(index, value)
    result.set("n", n)
    return result


def unpack(t: Any, i: int = 1, j: Optional[int] = None) -> tuple[Any, ...]:
    """Return the elements ``t[i]..t[j]`` (``j`` defaults to the length of ``t``)."""
    i = _check_integer(i, 2, "unpack")
    if j is None:
        _check_table(t, (_READ, _LENGTH), "unpack")
        e = _length(t)
    else:
        e = _check_integer(j, 3, "unpack")
        _check_table(t, (_READ,), "unpack")
    if i > e:
        return ()
    n = e - i
    if n >= _INT_MAX or n + 1 > _MAX_RESULTS:
        raise LuaError("too many results to unpack")
    return tuple(_get(t, index) for index in range(i, e + 1))


def _randomize_pivot() -> int:
    return (time.process_time_ns() + time.time_ns()) & 0xFFFFFFFF


def _choose_pivot(lo: int, up: int, rnd: int) -> int:
    r4 = (up - lo) // 4
    return rnd % (r4 * 2) + (lo + r4)


class _Sorter:
    """In-place quicksort over a table using a strict ordering."""

    def __init__(self, t: Any, less: Callable[[Any, Any], bool]) -> None:
        self.t = t
        self.less = less

    def _swap(self, i: int, vi: Any, j: int, vj: Any) -> None:
        _set(self.t, i, vj)
        _set(self.t, j, vi)

    def partition(self, lo: int, up: int, pivot: Any) -> int:
        t, less = self.t, self.less
        i = lo
        j = up - 1
        while True:
            while True:
                i += 1
                ai = _get(t, i)
                if not less(ai, pivot):
                    break
                if i == up - 1:
                    raise LuaError("invalid order function for sorting")
            while True:
                j -= 1
                aj = _get(t, j)
                if not less(pivot, aj):
                    break
                if j < i:
                    raise LuaError("invalid order function for sorting")
            if j < i:
                _set(t, up - 1, ai)
                _set(t, i, pivot)
                return i
            _set(t, i, aj)
            _set(t, j, ai)

    def sort(self, lo: int, up: int, rnd: int) -> None:
        t, less = self.t, self.less
        while lo < up:
            a_lo = _get(t, lo)
            a_up = _get(t, up)
            if less(a_up, a_lo):
                self._swap(lo, a_lo, up, a_up)
            if up - lo == 1:
                return
            if up - lo < _RANLIMIT or rnd == 0:
                p = (lo + up) // 2
            else:
                p = _choose_pivot(lo, up, rnd)
            a_p = _get(t, p)
            a_lo = _get(t, lo)
            if less(a_p, a_lo):
                self._swap(p, a_p, lo, a_lo)
            else:
                a_up = _get(t, up)
                if less(a_up, a_p):
                    self._swap(p, a_p, up, a_up)
            if up - lo == 2:
                return
            pivot = _get(t, p)
            _set(t, p, _get(t, up - 1))
            _set(t, up - 1, pivot)
            p = self.partition(lo, up, pivot)
            if p - lo < up - p:
                self.sort(lo, p - 1, rnd)
                n = p - lo
                lo = p + 1
            else:
                self.sort(p + 1, up, rnd)
                n = up - p
                up = p - 1
            if (up - lo) // 128 > n:
                rnd = _randomize_pivot()


def sort(t: Any, comp: Optional[Callable[[Any, Any], Any]] = None) -> None:
    """Sort ``t[1..#t]`` in place, using ``comp(a, b)`` as "a < b" if given."""
    n = _getn(t, (_READ, _WRITE), "sort")
    if n > 1:
        if n >= _INT_MAX:
            raise LuaError("bad argument #1 to 'sort' (array too big)")
        if comp is None:
            less = _lua_less
        elif callable(comp):
            def less(a: Any, b: Any) -> bool:
                return _truthy(comp(a, b))
        else:
            raise TypeError(
                f"bad argument #2 to 'sort' (function expected, got {_type_name(comp)})"
            )
        _Sorter(t, less).sort(1, n, 0)