"""Pattern matching with Lua's pattern language: find, match, gmatch, gsub.

Positions are 1-based, as in Lua. Character classes follow the C locale,
so only ASCII characters count as letters, digits, spaces and so on.
Results of ``match`` and ``gmatch`` are a single value when the pattern
produces exactly one capture (or none, in which case the whole match is
returned), and a tuple otherwise. Position captures ``()`` give integers.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Iterator, Optional, Union

from .errors import LuaError
from .luatable import LuaTable

MAXCAPTURES = 32
MAXCCALLS = 200

_L_ESC = "%"
_SPECIALS = "^$*+?.([%-"
_CAP_UNFINISHED = -1
_CAP_POSITION = -2
_NUL = "\0"


def _isalpha(c: int) -> bool:
    return 65 <= c <= 90 or 97 <= c <= 122


def _isdigit(c: int) -> bool:
    return 48 <= c <= 57


def _isalnum(c: int) -> bool:
    return _isalpha(c) or _isdigit(c)


def _iscntrl(c: int) -> bool:
    return 0 <= c <= 31 or c == 127


def _isgraph(c: int) -> bool:
    return 33 <= c <= 126


def _islower(c: int) -> bool:
    return 97 <= c <= 122


def _isupper(c: int) -> bool:
    return 65 <= c <= 90


def _ispunct(c: int) -> bool:
    return _isgraph(c) and not _isalnum(c)


def _isspace(c: int) -> bool:
    return 9 <= c <= 13 or c == 32


def _isxdigit(c: int) -> bool:
    return _isdigit(c) or 65 <= c <= 70 or 97 <= c <= 102


_CLASSES: dict[str, Callable[[int], bool]] = {
    "a": _isalpha,
    "c": _iscntrl,
    "d": _isdigit,
    "g": _isgraph,
    "l": _islower,
    "p": _ispunct,
    "s": _isspace,
    "u": _isupper,
    "w": _isalnum,
    "x": _isxdigit,
    "z": lambda c: c == 0,
}


def _match_class(c: int, cl: str) -> bool:
    test = _CLASSES.get(cl.lower() if cl.isascii() else cl)
    if test is None:
        return ord(cl) == c
    res = test(c)
    return res if _islower(ord(cl)) else not res


def _posrelat(pos: int, length: int) -> int:
    if pos >= 0:
        return pos
    if -pos > length:
        return 0
    return length + pos + 1


def _number_to_str(value: Union[int, float]) -> str:
    if isinstance(value, int):
        return str(value)
    text = "%.14g" % value
    if all(ch in "-0123456789" for ch in text):
        text += ".0"
    return text


def _type_name(value: Any) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (Mapping, LuaTable)):
        return "table"
    if callable(value):
        return "function"
    return "userdata"


class _MatchState:
    """Matching state for one subject string and one pattern."""

    def __init__(self, src: str, pattern: str) -> None:
        self.src = src
        self.src_end = len(src)
        self.pat = pattern
        self.p_end = len(pattern)
        self.matchdepth = MAXCCALLS
        self.level = 0
        self.capture: list[list[int]] = [[0, 0] for _ in range(MAXCAPTURES)]

    def reset(self) -> None:
        self.level = 0

    def _pc(self, p: int) -> str:
        return self.pat[p] if p < self.p_end else _NUL

    def _sc(self, s: int) -> int:
        return ord(self.src[s]) if s < self.src_end else 0

    # -- helpers ----------------------------------------------------------

    def _check_capture(self, ch: str) -> int:
        index = ord(ch) - ord("1")
        if (
            index < 0
            or index >= self.level
            or self.capture[index][1] == _CAP_UNFINISHED
        ):
            raise LuaError(f"invalid capture index %{index + 1}")
        return index

    def _capture_to_close(self) -> int:
        for level in range(self.level - 1, -1, -1):
            if self.capture[level][1] == _CAP_UNFINISHED:
                return level
        raise LuaError("invalid pattern capture")

    def _classend(self, p: int) -> int:
        ch = self.pat[p]
        p += 1
        if ch == _L_ESC:
            if p >= self.p_end:
                raise LuaError("malformed pattern (ends with '%')")
            return p + 1
        if ch == "[":
            if self._pc(p) == "^":
                p += 1
            while True:
                if p >= self.p_end:
                    raise LuaError("malformed pattern (missing ']')")
                cur = self.pat[p]
                p += 1
                if cur == _L_ESC and p < self.p_end:
                    p += 1
                if self._pc(p) == "]":
                    break
            return p + 1
        return p

    def _matchbracketclass(self, c: int, p: int, ec: int) -> bool:
        sig = True
        if self._pc(p + 1) == "^":
            sig = False
            p += 1
        while True:
            p += 1
            if p >= ec:
                break
            ch = self.pat[p]
            if ch == _L_ESC:
                p += 1
                if _match_class(c, self.pat[p]):
                    return sig
            elif self._pc(p + 1) == "-" and p + 2 < ec:
                p += 2
                if ord(self.pat[p - 2]) <= c <= ord(self.pat[p]):
                    return sig
            elif ord(ch) == c:
                return sig
        return not sig

    def _singlematch(self, s: int, p: int, ep: int) -> bool:
        if s >= self.src_end:
            return False
        c = ord(self.src[s])
        ch = self.pat[p]
        if ch == ".":
            return True
        if ch == _L_ESC:
            return _match_class(c, self.pat[p + 1])
        if ch == "[":
            return self._matchbracketclass(c, p, ep - 1)
        return ord(ch) == c

    def _matchbalance(self, s: int, p: int) -> Optional[int]:
        if p >= self.p_end - 1:
            raise LuaError("malformed pattern (missing arguments to '%b')")
        if s >= self.src_end or self.src[s] != self.pat[p]:
            return None
        begin, end = self.pat[p], self.pat[p + 1]
        count = 1
        s += 1
        while s < self.src_end:
            ch = self.src[s]
            if ch == end:
                count -= 1
                if count == 0:
                    return s + 1
            elif ch == begin:
                count += 1
            s += 1
        return None

    def _max_expand(self, s: int, p: int, ep: int) -> Optional[int]:
        i = 0
        while self._singlematch(s + i, p, ep):
            i += 1
        while i >= 0:
            res = self.match(s + i, ep + 1)
            if res is not None:
                return res
            i -= 1
        return None

    def _min_expand(self, s: int, p: int, ep: int) -> Optional[int]:
        while True:
            res = self.match(s, ep + 1)
            if res is not None:
                return res
            if self._singlematch(s, p, ep):
                s += 1
            else:
                return None

    def _start_capture(self, s: int, p: int, what: int) -> Optional[int]:
        level = self.level
        if level >= MAXCAPTURES:
            raise LuaError("too many captures")
        self.capture[level][0] = s
        self.capture[level][1] = what
        self.level = level + 1
        res = self.match(s, p)
        if res is None:
            self.level -= 1
        return res

    def _end_capture(self, s: int, p: int) -> Optional[int]:
        index = self._capture_to_close()
        self.capture[index][1] = s - self.capture[index][0]
        res = self.match(s, p)
        if res is None:
            self.capture[index][1] = _CAP_UNFINISHED
        return res

    def _match_capture(self, s: int, ch: str) -> Optional[int]:
        index = self._check_capture(ch)
        init, length = self.capture[index]
        if length < 0:
            return None
        if (
            self.src_end - s >= length
            and self.src[init:init + length] == self.src[s:s + length]
        ):
            return s + length
        return None

    # -- matcher ----------------------------------------------------------

    def match(self, s: int, p: int) -> Optional[int]:
        """Match the pattern from ``p`` against the subject from ``s``."""
        if self.matchdepth == 0:
            raise LuaError("pattern too complex")
        self.matchdepth -= 1
        try:
            return self._match_loop(s, p)
        finally:
            self.matchdepth += 1

    def _match_loop(self, s: int, p: int) -> Optional[int]:
        while True:
            if p == self.p_end:
                return s
            ch = self.pat[p]
            if ch == "(":
                if self._pc(p + 1) == ")":
                    return self._start_capture(s, p + 2, _CAP_POSITION)
                return self._start_capture(s, p + 1, _CAP_UNFINISHED)
            if ch == ")":
                return self._end_capture(s, p + 1)
            if ch == "$" and p + 1 == self.p_end:
                return s if s == self.src_end else None
            if ch == _L_ESC:
                nxt = self._pc(p + 1)
                if nxt == "b":
                    res = self._matchbalance(s, p + 2)
                    if res is None:
                        return None
                    s = res
                    p += 4
                    continue
                if nxt == "f":
                    p += 2
                    if self._pc(p) != "[":
                        raise LuaError("missing '[' after '%f' in pattern")
                    ep = self._classend(p)
                    previous = 0 if s == 0 else ord(self.src[s - 1])
                    current = self._sc(s)
                    if not self._matchbracketclass(
                        previous, p, ep - 1
                    ) and self._matchbracketclass(current, p, ep - 1):
                        p = ep
                        continue
                    return None
                if nxt in "0123456789" and nxt != _NUL:
                    res = self._match_capture(s, nxt)
                    if res is None:
                        return None
                    s = res
                    p += 2
                    continue
            ep = self._classend(p)
            suffix = self._pc(ep)
            if not self._singlematch(s, p, ep):
                if suffix in ("*", "?", "-"):
                    p = ep + 1
                    continue
                return None
            if suffix == "?":
                res = self.match(s + 1, ep + 1)
                if res is not None:
                    return res
                p = ep + 1
                continue
            if suffix == "+":
                return self._max_expand(s + 1, p, ep)
            if suffix == "*":
                return self._max_expand(s, p, ep)
            if suffix == "-":
                return self._min_expand(s, p, ep)
            s += 1
            p = ep

    # -- results ----------------------------------------------------------

    def get_onecapture(self, i: int, s: Optional[int], e: Optional[int]) -> Any:
        if i >= self.level:
            if i == 0:
                return self.src[s:e]
            raise LuaError(f"invalid capture index %{i + 1}")
        init, length = self.capture[i]
        if length == _CAP_UNFINISHED:
            raise LuaError("unfinished capture")
        if length == _CAP_POSITION:
            return init + 1
        return self.src[init:init + length]

    def get_captures(self, s: Optional[int], e: Optional[int]) -> list[Any]:
        nlevels = 1 if self.level == 0 and s is not None else self.level
        return [self.get_onecapture(i, s, e) for i in range(nlevels)]


def _shape(values: list[Any]) -> Any:
    return values[0] if len(values) == 1 else tuple(values)


def _check_str(value: Any, position: int, name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(
            f"bad argument #{position} to '{name}' (string expected, "
            f"got {_type_name(value)})"
        )
    return value


def _find_aux(s: str, pattern: str, init: int, find: bool, plain: bool) -> Any:
    ls = len(s)
    start = _posrelat(init, ls)
    if start < 1:
        start = 1
    elif start > ls + 1:
        return None
    if find and (plain or not any(ch in _SPECIALS for ch in pattern)):
        index = s.find(pattern, start - 1)
        if index >= 0:
            return (index + 1, index + len(pattern))
        return None
    anchor = pattern.startswith("^")
    if anchor:
        pattern = pattern[1:]
    ms = _MatchState(s, pattern)
    s1 = start - 1
    while True:
        ms.reset()
        res = ms.match(s1, 0)
        if res is not None:
            if find:
                return (s1 + 1, res, *ms.get_captures(None, None))
            return _shape(ms.get_captures(s1, res))
        if s1 >= ms.src_end or anchor:
            return None
        s1 += 1


def find(s: str, pattern: str, init: int = 1, plain: bool = False) -> Optional[tuple]:
    """Find ``pattern`` in ``s``; return ``(start, end, *captures)`` or ``None``."""
    _check_str(s, 1, "find")
    _check_str(pattern, 2, "find")
    return _find_aux(s, pattern, init, True, plain)


def match(s: str, pattern: str, init: int = 1) -> Any:
    """Return the captures of the first match of ``pattern`` in ``s``, or ``None``."""
    _check_str(s, 1, "match")
    _check_str(pattern, 2, "match")
    return _find_aux(s, pattern, init, False, False)


def gmatch(s: str, pattern: str) -> Iterator[Any]:
    """Yield the captures of each successive match of ``pattern`` in ``s``."""
    _check_str(s, 1, "gmatch")
    _check_str(pattern, 2, "gmatch")
    ms = _MatchState(s, pattern)
    pos = 0
    lastmatch: Optional[int] = None
    while True:
        for start in range(pos, len(s) + 1):
            ms.reset()
            end = ms.match(start, 0)
            if end is not None and end != lastmatch:
                pos = lastmatch = end
                values = ms.get_captures(start, end)
                break
        else:
            return
        yield _shape(values)


def _add_s(ms: _MatchState, repl: str, s: int, e: int) -> str:
    out: list[str] = []
    i = 0
    length = len(repl)
    while i < length:
        ch = repl[i]
        if ch != _L_ESC:
            out.append(ch)
            i += 1
            continue
        i += 1
        nxt = repl[i] if i < length else _NUL
        if not ("0" <= nxt <= "9"):
            if nxt != _L_ESC:
                raise LuaError("invalid use of '%' in replacement string")
            out.append(nxt)
        elif nxt == "0":
            out.append(ms.src[s:e])
        else:
            value = ms.get_onecapture(ord(nxt) - ord("1"), s, e)
            out.append(value if isinstance(value, str) else _number_to_str(value))
        i += 1
    return "".join(out)


def _add_value(ms: _MatchState, repl: Any, s: int, e: int) -> str:
    if isinstance(repl, str):
        return _add_s(ms, repl, s, e)
    if isinstance(repl, (Mapping, LuaTable)):
        result = repl.get(ms.get_onecapture(0, s, e))
    else:
        result = repl(*ms.get_captures(s, e))
    if result is None or result is False:
        return ms.src[s:e]
    if isinstance(result, str):
        return result
    if isinstance(result, (int, float)) and not isinstance(result, bool):
        return _number_to_str(result)
    raise LuaError(f"invalid replacement value (a {_type_name(result)})")


def gsub(s: str, pattern: str, repl: Any, max_n: Optional[int] = None) -> tuple[str, int]:
    """Replace matches of ``pattern`` in ``s``; return ``(result, count)``.

    ``repl`` may be a string (with ``%0``..``%9`` references), a number,
    a mapping or table indexed by the first capture, or a callable that
    receives the captures.
    """
    _check_str(s, 1, "gsub")
    _check_str(pattern, 2, "gsub")
    if isinstance(repl, (int, float)) and not isinstance(repl, bool):
        repl = _number_to_str(repl)
    elif not (
        isinstance(repl, (str, Mapping, LuaTable))
        or (callable(repl) and not isinstance(repl, bool))
    ):
        raise LuaError(
            "bad argument #3 to 'gsub' (string/function/table expected)"
        )
    limit = len(s) + 1 if max_n is None else max_n
    anchor = pattern.startswith("^")
    if anchor:
        pattern = pattern[1:]
    ms = _MatchState(s, pattern)
    out: list[str] = []
    src = 0
    lastmatch: Optional[int] = None
    count = 0
    while count < limit:
        ms.reset()
        end = ms.match(src, 0)
        if end is not None and end != lastmatch:
            count += 1
            out.append(_add_value(ms, repl, src, end))
            src = lastmatch = end
        elif src < ms.src_end:
            out.append(s[src])
            src += 1
        else:
            break
        if anchor:
            break
    out.append(s[src:])
    return "".join(out), count