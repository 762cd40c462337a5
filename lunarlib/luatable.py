"""A table with an array part and a hash part, following Lua's semantics.

Non-negative integer keys may live in the array part, whose size is the
largest power of two ``n`` such that more than half of the slots 1..n are
in use. Everything else goes to the hash part, whose capacity is always a
power of two. When the hash part is full, the table is rehashed and both
parts are resized. ``None`` plays the role of nil: storing it clears a
value but leaves the key in place until the next rehash, so fields may be
cleared while a traversal is in progress.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from itertools import islice
from typing import Any, Iterator, Optional

from .errors import LuaError

_MAXABITS = 31
_MAXASIZE = 1 << _MAXABITS
_MAXHBITS = _MAXABITS - 1
_MAXINTEGER = (1 << 63) - 1
_MININTEGER = -(1 << 63)


@dataclass(frozen=True)
class _BoolKey:
    """Keeps boolean keys apart from the integers 0 and 1."""

    value: bool


def _ceil_log2(x: int) -> int:
    return (x - 1).bit_length()


def _float_to_int(f: float) -> Optional[int]:
    if math.isfinite(f) and f.is_integer() and _MININTEGER <= f <= _MAXINTEGER:
        result = int(f)
        if _MININTEGER <= result <= _MAXINTEGER:
            return result
    return None


def _normalize(key: Any) -> Any:
    """Turn a user key into the form stored internally."""
    if isinstance(key, bool):
        return _BoolKey(key)
    if isinstance(key, float):
        as_int = _float_to_int(key)
        if as_int is not None:
            return as_int
    return key


def _denormalize(key: Any) -> Any:
    return key.value if isinstance(key, _BoolKey) else key


def _array_index(key: Any) -> int:
    if type(key) is int and 0 < key <= _MAXASIZE:
        return key
    return 0


def _node_capacity(size: int) -> int:
    if size == 0:
        return 0
    lsize = _ceil_log2(size)
    if lsize > _MAXHBITS:
        raise LuaError("table overflow")
    return 1 << lsize


def _compute_sizes(nums: list[int], total_ints: int) -> tuple[int, int]:
    """Return the optimal array size and how many keys will go into it."""
    a = 0
    in_array = 0
    optimal = 0
    twotoi = 1
    for count in nums:
        if total_ints <= twotoi // 2:
            break
        if count > 0:
            a += count
            if a > twotoi // 2:
                optimal = twotoi
                in_array = a
        twotoi *= 2
    return optimal, in_array


class LuaTable:
    """An associative array with Lua's key rules, traversal and length."""

    def __init__(self, narray: int = 0, nhash: int = 0) -> None:
        if narray < 0 or nhash < 0:
            raise ValueError("table sizes must not be negative")
        self._array: list[Any] = []
        self._node_cap = 0
        self._hkeys: list[Any] = []
        self._hvals: list[Any] = []
        self._hslot: dict[Any, int] = {}
        if narray > 0 or nhash > 0:
            self.resize(narray, nhash)

    @property
    def array_size(self) -> int:
        """Number of slots in the array part."""
        return len(self._array)

    @property
    def hash_size(self) -> int:
        """Capacity of the hash part (zero or a power of two)."""
        return self._node_cap

    # -- internal storage -------------------------------------------------

    def _clear_hash(self, capacity: int) -> None:
        self._node_cap = capacity
        self._hkeys = []
        self._hvals = []
        self._hslot = {}

    def _hash_get(self, ikey: Any) -> Any:
        slot = self._hslot.get(ikey)
        return None if slot is None else self._hvals[slot]

    def _get_internal(self, ikey: Any) -> Any:
        if type(ikey) is int:
            return self._get_int(ikey)
        return self._hash_get(ikey)

    def _get_int(self, key: int) -> Any:
        if 1 <= key <= len(self._array):
            return self._array[key - 1]
        return self._hash_get(key)

    def _store(self, ikey: Any, value: Any) -> None:
        if type(ikey) is int and 1 <= ikey <= len(self._array):
            self._array[ikey - 1] = value
            return
        slot = self._hslot.get(ikey)
        if slot is not None:
            self._hvals[slot] = value
            return
        self._new_key(ikey, value)

    def _new_key(self, ikey: Any, value: Any) -> None:
        if len(self._hkeys) >= self._node_cap:
            self._rehash(ikey)
            self._store(ikey, value)
            return
        self._hslot[ikey] = len(self._hkeys)
        self._hkeys.append(ikey)
        self._hvals.append(value)

    @staticmethod
    def _count_int(ikey: Any, nums: list[int]) -> int:
        k = _array_index(ikey)
        if k:
            nums[_ceil_log2(k)] += 1
            return 1
        return 0

    def _rehash(self, extra_key: Any) -> None:
        nums = [0] * (_MAXABITS + 1)
        in_array = 0
        for index, value in enumerate(self._array, 1):
            if value is not None:
                nums[_ceil_log2(index)] += 1
                in_array += 1
        total = in_array
        for ikey, value in zip(self._hkeys, self._hvals):
            if value is not None:
                total += 1
                in_array += self._count_int(ikey, nums)
        in_array += self._count_int(extra_key, nums)
        total += 1
        asize, in_array = _compute_sizes(nums, in_array)
        self.resize(asize, total - in_array)

    def _unbound_search(self, j: int) -> int:
        i = j
        j += 1
        while self._get_int(j) is not None:
            i = j
            if j > _MAXINTEGER // 2:
                i = 1
                while self._get_int(i) is not None:
                    i += 1
                return i - 1
            j *= 2
        while j - i > 1:
            m = (i + j) // 2
            if self._get_int(m) is None:
                j = m
            else:
                i = m
        return i

    # -- public interface -------------------------------------------------

    def get(self, key: Any) -> Any:
        """Return the value stored under ``key``, or ``None``."""
        if key is None:
            return None
        return self._get_internal(_normalize(key))

    def set(self, key: Any, value: Any) -> None:
        """Store ``value`` under ``key``; ``None`` clears the entry."""
        if key is None:
            raise LuaError("table index is nil")
        ikey = _normalize(key)
        if isinstance(ikey, float) and math.isnan(ikey):
            raise LuaError("table index is NaN")
        self._store(ikey, value)

    def get_int(self, key: int) -> Any:
        """Return the value stored under the integer ``key``, or ``None``."""
        if type(key) is not int:
            raise TypeError("integer key expected")
        return self._get_int(key)

    def set_int(self, key: int, value: Any) -> None:
        """Store ``value`` under the integer ``key``."""
        if type(key) is not int:
            raise TypeError("integer key expected")
        self._store(key, value)

    def next(self, key: Any = None) -> Optional[tuple[Any, Any]]:
        """Return the entry after ``key`` in traversal order.

        ``None`` starts a traversal; the result is ``None`` once every
        entry has been visited.
        """
        asize = len(self._array)
        if key is None:
            start = 0
        else:
            ikey = _normalize(key)
            index = _array_index(ikey)
            if index and index <= asize:
                start = index
            else:
                slot = self._hslot.get(ikey)
                if slot is None:
                    raise LuaError("invalid key to 'next'")
                start = slot + 1 + asize
        for index, value in enumerate(islice(self._array, start, None), start + 1):
            if value is not None:
                return index, value
        hstart = max(start - asize, 0)
        for ikey, value in zip(
            islice(self._hkeys, hstart, None), islice(self._hvals, hstart, None)
        ):
            if value is not None:
                return _denormalize(ikey), value
        return None

    def length(self) -> int:
        """Return a border: an ``n`` with ``t[n]`` set (or ``n == 0``) and ``t[n+1]`` unset."""
        j = len(self._array)
        if j > 0 and self._array[j - 1] is None:
            i = 0
            while j - i > 1:
                m = (i + j) // 2
                if self._array[m - 1] is None:
                    j = m
                else:
                    i = m
            return i
        if self._node_cap == 0:
            return j
        return self._unbound_search(j)

    def resize(self, nasize: int, nhsize: int) -> None:
        """Give the array part ``nasize`` slots and room for ``nhsize`` hash entries."""
        if nasize < 0 or nhsize < 0:
            raise ValueError("table sizes must not be negative")
        capacity = _node_capacity(nhsize)
        old_size = len(self._array)
        old_entries = [
            (ikey, value)
            for ikey, value in zip(self._hkeys, self._hvals)
            if value is not None
        ]
        if nasize > old_size:
            self._array.extend([None] * (nasize - old_size))
        self._clear_hash(capacity)
        if nasize < old_size:
            vanishing = self._array[nasize:]
            del self._array[nasize:]
            for index, value in enumerate(vanishing, nasize + 1):
                if value is not None:
                    self._store(index, value)
        for ikey, value in reversed(old_entries):
            self._store(ikey, value)

    def resize_array(self, nasize: int) -> None:
        """Resize only the array part, keeping the hash capacity."""
        self.resize(nasize, self._node_cap)

    def __iter__(self) -> Iterator[tuple[Any, Any]]:
        entry = self.next(None)
        while entry is not None:
            yield entry
            entry = self.next(entry[0])

    def __getitem__(self, key: Any) -> Any:
        return self.get(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        self.set(key, value)

    def __len__(self) -> int:
        return self.length()

    def __repr__(self) -> str:
        items = ", ".join(f"[{k!r}]={v!r}" for k, v in self)
        return f"LuaTable({{{items}}})"