"""Core port contracts used by the DB-API adapters and the session."""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from .statement import Statement


@runtime_checkable
class ConnectionProvider(Protocol):
    """Source of new DB-API connections for pooled sessions.

    Providers may also define `release(conn)`; when they do, owned
    connections are handed back to it instead of being closed directly.
    """

    def acquire(self) -> Any: ...


class PreparedStatementPort(Protocol):
    """Positional parameter slots of one statement, 1-based."""

    sql: str

    def set(self, index: int, value: Any) -> None: ...


class ParameterBinderPort(Protocol):
    """Binding, debug formatting, and lifecycle hooks used by the executor."""

    def bind(self, statement: PreparedStatementPort, index: int, value: Any) -> None: ...

    def bind_all(
        self,
        statement: PreparedStatementPort,
        first_index: int,
        params: Sequence[Any],
    ) -> None: ...

    def format(self, value: Any) -> Optional[str]: ...

    def on_connect(self, conn: Any) -> None: ...

    def on_disconnect(self, conn: Any) -> None: ...

    def on_execute_start(self, statement: Statement) -> None: ...

    def on_execute_fail(self, statement: Statement, exc: BaseException) -> None: ...

    def on_execute_complete(self, statement: Statement) -> None: ...
