"""Metamethod events, type names and metamethod lookup."""

from __future__ import annotations

import enum
import types
from typing import Any, Optional, Union

from .patterns import _type_name

TYPE_NAMES = (
    "no value",
    "nil",
    "boolean",
    "userdata",
    "number",
    "string",
    "table",
    "function",
    "userdata",
    "thread",
    "proto",
)

_EVENT_NAMES = (
    "__index", "__newindex",
    "__gc", "__mode", "__len", "__eq",
    "__add", "__sub", "__mul", "__mod", "__pow",
    "__div", "__idiv",
    "__band", "__bor", "__bxor", "__shl", "__shr",
    "__unm", "__bnot", "__lt", "__le",
    "__concat", "__call",
)


class TagMethod(enum.IntEnum):
    """Metamethod events, in their fixed order."""

    INDEX = 0
    NEWINDEX = 1
    GC = 2
    MODE = 3
    LEN = 4
    EQ = 5
    ADD = 6
    SUB = 7
    MUL = 8
    MOD = 9
    POW = 10
    DIV = 11
    IDIV = 12
    BAND = 13
    BOR = 14
    BXOR = 15
    SHL = 16
    SHR = 17
    UNM = 18
    BNOT = 19
    LT = 20
    LE = 21
    CONCAT = 22
    CALL = 23

    @property
    def event_name(self) -> str:
        """The metatable field holding this event's handler, such as ``__index``."""
        return _EVENT_NAMES[self]

    @property
    def has_fast_access(self) -> bool:
        """Whether the event is one whose absence may be cached (up to ``EQ``)."""
        return self <= TagMethod.EQ

    @classmethod
    def from_name(cls, name: str) -> "TagMethod":
        """Return the event for a field name such as ``__add``."""
        try:
            return cls(_EVENT_NAMES.index(name))
        except ValueError:
            raise ValueError(f"unknown metamethod event {name!r}") from None


def type_name(value: Any) -> str:
    """Return the basic type name of ``value``."""
    if isinstance(value, (types.GeneratorType, types.CoroutineType)):
        return "thread"
    return _type_name(value)


def object_type_name(value: Any, metatable: Any = None) -> str:
    """Return the type name of ``value``, preferring its metatable's ``__name``.

    ``__name`` is used only for tables and userdata, and only when it is a
    string.
    """
    if metatable is not None and type_name(value) in ("table", "userdata"):
        name = metatable.get("__name")
        if isinstance(name, str):
            return name
    return type_name(value)


def get_tag_method(metatable: Any, event: Union[TagMethod, str]) -> Optional[Any]:
    """Return the handler for ``event`` in ``metatable``, or ``None``."""
    if isinstance(event, str):
        event = TagMethod.from_name(event)
    else:
        event = TagMethod(event)
    if metatable is None:
        return None
    return metatable.get(event.event_name)