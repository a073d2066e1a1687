"""Session-aware wrapper around one DB-API connection."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional, Union

from ...core.errors import DatabaseConnectionError
from ...core.helpers import validate_identifier
from ...core.statement import Statement
from ...core.types import RowParser, T

if TYPE_CHECKING:
    from ...core.contracts import ConnectionProvider
    from ...core.session import Session
    from .sequence import LazyRowSequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Savepoint:
    """Named savepoint created by `ConnectionHandle.set_savepoint()`."""

    name: str


class ConnectionHandle:
    """One DB-API connection as seen by a `Session`.

    `owns_lifecycle` is True for connections the session acquired from its
    provider; those are released on `close()`. Externally supplied
    connections are never closed here, and `close()` on them does nothing.
    """

    def __init__(
        self,
        raw: Any,
        session: Session,
        *,
        owns_lifecycle: bool,
        provider: Optional[ConnectionProvider] = None,
    ):
        self.raw = raw
        self.owns_lifecycle = owns_lifecycle
        self._session = session
        self._provider = provider
        self._closed = False
        self._read_only = False
        self._lock = threading.Lock()
        if owns_lifecycle:
            session.binder.on_connect(raw)

    @property
    def closed(self) -> bool:
        if self._closed:
            return True
        return bool(getattr(self.raw, "closed", False))

    @property
    def auto_commit(self) -> bool:
        """Whether the driver commits after every statement."""

        raw = self.raw
        try:
            value = getattr(raw, "autocommit", None)
            if isinstance(value, bool):
                return value
            get_autocommit = getattr(raw, "get_autocommit", None)
            if callable(get_autocommit):
                return bool(get_autocommit())
            if hasattr(raw, "isolation_level"):
                # sqlite3 legacy transaction control
                return raw.isolation_level is None
        except Exception as exc:
            raise DatabaseConnectionError("Unable to read auto-commit mode.") from exc
        return False

    @auto_commit.setter
    def auto_commit(self, enabled: bool) -> None:
        raw = self.raw
        try:
            value = getattr(raw, "autocommit", None)
            if isinstance(value, bool):
                raw.autocommit = enabled
            elif callable(value):
                raw.autocommit(enabled)
            elif hasattr(raw, "isolation_level"):
                raw.isolation_level = None if enabled else ""
            else:
                raise DatabaseConnectionError("Driver does not expose auto-commit control.")
        except DatabaseConnectionError:
            raise
        except Exception as exc:
            raise DatabaseConnectionError("Unable to change auto-commit mode.") from exc

    @property
    def read_only(self) -> bool:
        value = getattr(self.raw, "readonly", None)
        if isinstance(value, bool):
            return value
        return self._read_only

    @read_only.setter
    def read_only(self, enabled: bool) -> None:
        raw = self.raw
        try:
            if hasattr(raw, "readonly"):
                raw.readonly = enabled
            elif _is_sqlite(raw):
                self._run(f"PRAGMA query_only = {'ON' if enabled else 'OFF'}")
        except DatabaseConnectionError:
            raise
        except Exception as exc:
            raise DatabaseConnectionError("Unable to change read-only mode.") from exc
        self._read_only = enabled

    def commit(self) -> None:
        """Commit the open transaction, if there is one to commit."""

        if not self._committable():
            return
        try:
            self.raw.commit()
        except Exception as exc:
            raise DatabaseConnectionError("Commit failed.") from exc

    def rollback(self, savepoint: Optional[Savepoint] = None) -> None:
        """Roll back the open transaction, or back to `savepoint`."""

        if not self._committable():
            return
        if savepoint is not None:
            self._run(f"ROLLBACK TO SAVEPOINT {validate_identifier(savepoint.name)}")
            return
        try:
            self.raw.rollback()
        except Exception as exc:
            raise DatabaseConnectionError("Rollback failed.") from exc

    def set_savepoint(self, name: str) -> Savepoint:
        """Mark a savepoint. This also turns auto-commit off."""

        validate_identifier(name)
        if self.auto_commit:
            self.auto_commit = False
        self._run(f"SAVEPOINT {name}")
        return Savepoint(name)

    def release_savepoint(self, savepoint: Savepoint) -> None:
        self._run(f"RELEASE SAVEPOINT {validate_identifier(savepoint.name)}")

    def list(
        self,
        parser: RowParser[T],
        sql: Union[str, Statement],
        *params: Any,
    ) -> List[T]:
        return self._session.list(parser, sql, *params, connection=self)

    def stream(
        self,
        parser: RowParser[T],
        sql: Union[str, Statement],
        *params: Any,
    ) -> LazyRowSequence[T]:
        """Stream rows on this connection; closing the stream keeps it open."""

        return self._session.stream(parser, sql, *params, connection=self)

    def execute(self, sql: Union[str, Statement], *params: Any) -> int:
        return self._session.execute(sql, *params, connection=self)

    def call_procedure(self, name: str, *args: Any) -> int:
        return self._session.call_procedure(name, *args, connection=self)

    def close(self) -> None:
        """Release an owned connection. No-op for external connections."""

        if not self.owns_lifecycle:
            return
        with self._lock:
            if self._closed:
                return
            self._closed = True

        self._session.registry.deregister_connection(self)
        self._session.binder.on_disconnect(self.raw)
        try:
            release = getattr(self._provider, "release", None)
            if callable(release):
                # a pool gets its slot back even for a connection the server dropped
                release(self.raw)
            elif not getattr(self.raw, "closed", False):
                self.raw.close()
        except Exception as exc:
            raise DatabaseConnectionError("Unable to close connection.") from exc
        logger.debug("connection released: %s", type(self.raw).__name__)

    def _committable(self) -> bool:
        return not self.closed and not self.read_only and not self.auto_commit

    def _run(self, sql: str) -> None:
        try:
            cursor = self.raw.cursor()
            try:
                cursor.execute(sql)
            finally:
                cursor.close()
        except Exception as exc:
            raise DatabaseConnectionError(f"Connection command failed: {sql}") from exc

    def __enter__(self) -> ConnectionHandle:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"ConnectionHandle(raw={type(self.raw).__name__}, "
            f"owns_lifecycle={self.owns_lifecycle}, closed={self.closed})"
        )


def _is_sqlite(conn: Any) -> bool:
    module_name = type(conn).__module__
    return module_name.startswith("sqlite3") or module_name.startswith("_sqlite3")
