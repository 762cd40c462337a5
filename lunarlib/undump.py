"""Loading of precompiled chunks (binary function prototypes).

A chunk starts with a header that fixes the format version and the sizes
and byte order of the machine types. ``undump`` checks the header against
this machine's layout and then reads the main function prototype, with
its code, constants, upvalue descriptions, nested prototypes and debug
information. Strings in a chunk are returned as ``bytes``.
"""

from __future__ import annotations

import struct
import sys
from dataclasses import dataclass, field
from typing import Optional, Union

from .errors import LuaError

LUA_SIGNATURE = b"\x1bLua"
LUAC_DATA = b"\x19\x93\r\n\x1a\n"
LUAC_INT = 0x5678
LUAC_NUM = 370.5
LUAC_VERSION = 5 * 16 + 3
LUAC_FORMAT = 0

_BYTEORDER = sys.byteorder
_FLOAT_CODE = ("<" if _BYTEORDER == "little" else ">") + "d"

_SIZE_INT = 4
_SIZE_T = struct.calcsize("N")
_SIZE_INSTRUCTION = 4
_SIZE_INTEGER = 8
_SIZE_NUMBER = 8

_TNIL = 0
_TBOOLEAN = 1
_TNUMFLT = 3
_TSHRSTR = 4
_TNUMINT = 3 | (1 << 4)
_TLNGSTR = 4 | (1 << 4)

Constant = Union[None, bool, int, float, bytes]


class UndumpError(LuaError):
    """A precompiled chunk is malformed or was made for another layout."""


@dataclass
class UpvalueDesc:
    """Where a function finds one of its upvalues."""

    instack: int
    idx: int
    name: Optional[bytes] = None


@dataclass
class LocalVar:
    """A local variable and the range of instructions where it is active."""

    varname: Optional[bytes]
    startpc: int
    endpc: int


@dataclass
class Proto:
    """A function prototype read from a chunk."""

    source: Optional[bytes] = None
    linedefined: int = 0
    lastlinedefined: int = 0
    numparams: int = 0
    is_vararg: int = 0
    maxstacksize: int = 0
    code: list[int] = field(default_factory=list)
    constants: list[Constant] = field(default_factory=list)
    upvalues: list[UpvalueDesc] = field(default_factory=list)
    protos: list["Proto"] = field(default_factory=list)
    lineinfo: list[int] = field(default_factory=list)
    locvars: list[LocalVar] = field(default_factory=list)


class _LoadState:
    """Cursor over the chunk bytes, with the chunk name for messages."""

    def __init__(self, data: bytes, name: str) -> None:
        self.data = data
        self.pos = 0
        self.name = name

    def error(self, why: str) -> UndumpError:
        return UndumpError(f"{self.name}: {why} precompiled chunk")

    def block(self, size: int) -> bytes:
        end = self.pos + size
        if size < 0 or end > len(self.data):
            raise self.error("truncated")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def byte(self) -> int:
        return self.block(1)[0]

    def int(self) -> int:
        return int.from_bytes(self.block(_SIZE_INT), _BYTEORDER, signed=True)

    def count(self) -> int:
        n = self.int()
        if n < 0:
            raise self.error("corrupted")
        return n

    def size_t(self) -> int:
        return int.from_bytes(self.block(_SIZE_T), _BYTEORDER)

    def integer(self) -> int:
        return int.from_bytes(self.block(_SIZE_INTEGER), _BYTEORDER, signed=True)

    def number(self) -> float:
        return struct.unpack(_FLOAT_CODE, self.block(_SIZE_NUMBER))[0]

    def string(self) -> Optional[bytes]:
        size = self.byte()
        if size == 0xFF:
            size = self.size_t()
        if size == 0:
            return None
        return self.block(size - 1)

    # -- function parts ---------------------------------------------------

    def code(self, f: Proto) -> None:
        n = self.count()
        raw = self.block(n * _SIZE_INSTRUCTION)
        f.code = [
            int.from_bytes(raw[k:k + _SIZE_INSTRUCTION], _BYTEORDER)
            for k in range(0, len(raw), _SIZE_INSTRUCTION)
        ]

    def constant(self) -> Constant:
        tag = self.byte()
        if tag == _TNIL:
            return None
        if tag == _TBOOLEAN:
            return self.byte() != 0
        if tag == _TNUMFLT:
            return self.number()
        if tag == _TNUMINT:
            return self.integer()
        if tag in (_TSHRSTR, _TLNGSTR):
            return self.string()
        raise self.error("corrupted")

    def constants(self, f: Proto) -> None:
        f.constants = [self.constant() for _ in range(self.count())]

    def upvalues(self, f: Proto) -> None:
        f.upvalues = [
            UpvalueDesc(instack=self.byte(), idx=self.byte())
            for _ in range(self.count())
        ]

    def protos(self, f: Proto) -> None:
        children = []
        for _ in range(self.count()):
            child = Proto()
            self.function(child, f.source)
            children.append(child)
        f.protos = children

    def debug(self, f: Proto) -> None:
        n = self.count()
        f.lineinfo = [self.int() for _ in range(n)]
        f.locvars = [
            LocalVar(varname=self.string(), startpc=self.int(), endpc=self.int())
            for _ in range(self.count())
        ]
        n = self.count()
        if n > len(f.upvalues):
            raise self.error("corrupted")
        for upvalue in f.upvalues[:n]:
            upvalue.name = self.string()

    def function(self, f: Proto, psource: Optional[bytes]) -> None:
        source = self.string()
        f.source = psource if source is None else source
        f.linedefined = self.int()
        f.lastlinedefined = self.int()
        f.numparams = self.byte()
        f.is_vararg = self.byte()
        f.maxstacksize = self.byte()
        self.code(f)
        self.constants(f)
        self.upvalues(f)
        self.protos(f)
        self.debug(f)

    # -- header -----------------------------------------------------------

    def literal(self, expected: bytes, why: str) -> None:
        if self.block(len(expected)) != expected:
            raise self.error(why)

    def checksize(self, size: int, tname: str) -> None:
        if self.byte() != size:
            raise self.error(f"{tname} size mismatch in")

    def header(self) -> None:
        self.literal(LUA_SIGNATURE, "not a")
        if self.byte() != LUAC_VERSION:
            raise self.error("version mismatch in")
        if self.byte() != LUAC_FORMAT:
            raise self.error("format mismatch in")
        self.literal(LUAC_DATA, "corrupted")
        self.checksize(_SIZE_INT, "int")
        self.checksize(_SIZE_T, "size_t")
        self.checksize(_SIZE_INSTRUCTION, "Instruction")
        self.checksize(_SIZE_INTEGER, "lua_Integer")
        self.checksize(_SIZE_NUMBER, "lua_Number")
        if self.integer() != LUAC_INT:
            raise self.error("endianness mismatch in")
        if self.number() != LUAC_NUM:
            raise self.error("float format mismatch in")


def _display_name(name: str) -> str:
    if name.startswith(("@", "=")):
        return name[1:]
    if name.startswith(LUA_SIGNATURE[:1].decode("latin-1")):
        return "binary string"
    return name


def undump(data: Union[bytes, bytearray, memoryview], name: str = "=?") -> Proto:
    """Read a precompiled chunk and return its main function prototype.

    ``name`` is the chunk name used in error messages; a leading ``@`` or
    ``=`` is dropped. Raises ``UndumpError`` for a bad or truncated chunk.
    """
    state = _LoadState(bytes(data), _display_name(name))
    state.header()
    state.byte()  # number of upvalues of the main closure
    main = Proto()
    state.function(main, None)
    return main