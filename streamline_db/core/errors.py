"""Errors raised by the statement, connection, and row streaming layer."""

from __future__ import annotations

from typing import Any, Optional


class StreamlineError(RuntimeError):
    """Base class for all errors raised by streamline_db."""


class BindError(StreamlineError):
    """Raised when a parameter value cannot be bound onto a statement slot."""

    def __init__(self, index: int, value: Any):
        self.index = index
        self.value = value
        super().__init__(f"Bad value: index={index}, value={value!r}")


class StatementError(StreamlineError):
    """Raised when compiling, executing, or reading a statement fails."""

    def __init__(self, sql: str, message: Optional[str] = None):
        self.sql = sql
        super().__init__(sql if message is None else f"{message}: {sql}")


class DatabaseConnectionError(StreamlineError):
    """Raised when acquiring, configuring, or closing a connection fails."""
