"""Errors raised by the table and library routines."""


class LuaError(Exception):
    """A runtime error such as an invalid table key or a bad argument."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message