"""Lua 5.3 semantics in pure Python: tables, patterns, string and binary
formatting, UTF-8, table functions, metamethod lookup and chunk loading."""

__version__ = "0.1.0"

__all__ = [
    "errors",
    "luatable",
    "patterns",
    "strings",
    "binpack",
    "utf8lib",
    "tablelib",
    "tagmethods",
    "undump",
]