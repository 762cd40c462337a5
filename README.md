# lunarlib

Pure-Python code that behaves like parts of the Lua 5.3 runtime and
standard library. Use it when Python code has to agree with Lua: matching
Lua patterns, formatting like `string.format`, laying out bytes like
`string.pack`, counting a table's length the way Lua does, or reading the
prototypes stored in a precompiled chunk.

The package has no dependencies outside the standard library.

## Installation

```
pip install lunarlib
```

To run the test suite:

```
pip install "lunarlib[test]"
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `lunarlib.errors` | `LuaError`, raised wherever Lua would raise a runtime error |
| `lunarlib.luatable` | `LuaTable`: array part plus hash part, `next` traversal, `#` border rule |
| `lunarlib.patterns` | `find`, `match`, `gmatch`, `gsub` with Lua pattern syntax |
| `lunarlib.strings` | `byte`, `char`, `sub`, `rep`, `reverse`, `lower`, `upper`, `format` |
| `lunarlib.binpack` | `pack`, `packsize`, `unpack` with Lua's binary format language |
| `lunarlib.utf8lib` | `char`, `codepoint`, `length`, `offset`, `codes`, `CHARPATTERN` |
| `lunarlib.tablelib` | `insert`, `remove`, `move`, `concat`, `pack`, `unpack`, `sort` |
| `lunarlib.tagmethods` | `TagMethod`, `type_name`, `object_type_name`, `get_tag_method` |
| `lunarlib.undump` | `undump`, `Proto`, `UpvalueDesc`, `LocalVar`, `UndumpError` |

Positions are 1-based throughout and negative positions count back from
the end of a string. `None` stands for nil.

## Tables

```python
from lunarlib.luatable import LuaTable

t = LuaTable()          # or LuaTable(narray, nhash) to presize
for i in range(1, 6):
    t[i] = i * 10
t["name"] = "five"
len(t)                  # 5, a border of the sequence
t.get(3)                # 30
t.next(None)            # (1, 10): first entry in traversal order
list(t)                 # all (key, value) pairs, array part first
```

Integral floats are stored as integers (`t[2.0]` is `t[2]`) and `True`
and `False` are keys distinct from `1` and `0`. Setting a value to
`None` clears it. Setting with a `None` or NaN key raises `LuaError`, as
does `next` with a key that is not in the table. `resize(nasize,
nhsize)` and `resize_array(nasize)` change the part sizes explicitly;
`array_size` and `hash_size` report them.

## Patterns

```python
from lunarlib import patterns

patterns.find("hello world", "o w")                  # (5, 7)
patterns.find("a+b", "+", 1, True)                   # plain search: (2, 2)
patterns.match("key = value", "(%w+)%s*=%s*(%w+)")   # ("key", "value")
patterns.gsub("hello world", "o", "0")               # ("hell0 w0rld", 2)
list(patterns.gmatch("one two three", "%a+"))        # ["one", "two", "three"]
```

`find` returns `(start, end, *captures)` or `None`. `match` and the
items from `gmatch` are a single value when there is one capture (or the
whole match when there are none) and a tuple otherwise. Position
captures `()` give integers. `gsub` takes a replacement string with
`%0`..`%9`, a number, a mapping or `LuaTable` indexed by the first
capture, or a callable that receives the captures; an optional fourth
argument limits the number of replacements. Character classes such as
`%a` and `%s` follow the C locale (ASCII only).

## Strings and format

```python
from lunarlib import strings

strings.sub("hello", 2, -2)          # "ell"
strings.byte("ABC", 1, -1)           # (65, 66, 67)
strings.char(72, 105)                # "Hi"
strings.rep("ab", 3, ",")            # "ab,ab,ab"
strings.format("%5.2f|%-4d|%q", 3.14159, 7, 'a"b')
strings.format("%a", 1.0)            # "0x1p+0"
```

`format` supports `%c %d %i %o %u %x %X %a %A %e %E %f %g %G %q %s` and
`%%`, with flags `-+ #0` and at most two digits each for width and
precision; anything else raises `LuaError`. `char` accepts codes 0..255
only, and `lower`/`upper` change ASCII letters only.

## Binary packing

```python
from lunarlib import binpack

data = binpack.pack("<i4 s1", 7, b"hi")   # b'\x07\x00\x00\x00\x02hi'
binpack.unpack("<i4 s1", data)            # (7, b'hi', 8): values, then next position
binpack.packsize("<i4 i8")                # 12
```

Packed data is `bytes`. String arguments may be `bytes` or a `str` of
characters 0..255. `packsize` raises `LuaError` for the variable-length
options `s` and `z`.

## UTF-8

```python
from lunarlib import utf8lib

s = utf8lib.char(72, 228, 8364)   # b'H\xc3\xa4\xe2\x82\xac'
utf8lib.length(s)                 # 3
utf8lib.codepoint(s, 1, -1)       # (72, 228, 8364)
utf8lib.offset(s, 3)              # 4, byte position of the third character
list(utf8lib.codes(s))            # [(1, 72), (2, 228), (4, 8364)]
```

`length` returns `(None, position)` for an invalid sequence; `codepoint`
and `codes` raise `LuaError` instead. A `str` argument is encoded as
UTF-8 first.

## Table functions

```python
from lunarlib import tablelib
from lunarlib.luatable import LuaTable

t = tablelib.pack(3, 1, 2)        # t[1..3] set, t["n"] == 3
tablelib.sort(t)
tablelib.insert(t, 1, 0)
tablelib.concat(t, ",")           # "0,1,2,3"
tablelib.remove(t)                # 3
tablelib.unpack(t)                # (0, 1, 2)
```

The functions accept a `LuaTable` or any object with the item access and
`len` the operation needs (Python lists, tuples and strings are refused).
`sort` takes an optional "less than" callable and raises `LuaError` for
an inconsistent ordering or values that cannot be compared.

## Metamethods and type names

```python
from lunarlib.tagmethods import TagMethod, get_tag_method, object_type_name, type_name

TagMethod.ADD.event_name                         # "__add"
get_tag_method({"__add": print}, "__add")        # print
type_name(3.5)                                   # "number"
object_type_name({}, {"__name": "Point"})        # "Point"
```

## Precompiled chunks

```python
from lunarlib.undump import undump

with open("luac.out", "rb") as fh:
    proto = undump(fh.read(), "=luac.out")
proto.code, proto.constants, proto.protos
```

The header must match this machine's layout (4-byte `int`, native
`size_t`, 8-byte integers and floats, native byte order); otherwise
`UndumpError` is raised with a message such as `luac.out: version
mismatch in precompiled chunk`.

## What this package does not do

It contains no Lua interpreter or compiler and no command-line programs.
It cannot run Lua source, turn it into bytecode, or write precompiled
chunks: `undump` only reads a chunk into `Proto` objects, and nothing
executes or lists their instructions. Tables carry no metatables, so
`tablelib` and `tagmethods` look metamethods up but never call them.