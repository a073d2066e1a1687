"""Session facade for list, stream, execute, and procedure calls."""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Any, Iterator, List, Optional, Tuple, Union

from ..ports.db_api.binder import ParameterBinder
from ..ports.db_api.connection import ConnectionHandle
from ..ports.db_api.executor import StatementExecutor
from ..ports.db_api.sequence import LazyRowSequence
from .contracts import ConnectionProvider, ParameterBinderPort
from .errors import DatabaseConnectionError
from .registry import ResourceRegistry
from .statement import Statement
from .types import RowParser, T

logger = logging.getLogger(__name__)

SqlInput = Union[str, Statement]


class Session:
    """Entry point that runs statements and guarantees cleanup.

    Built on a `ConnectionProvider` (pooled mode), every operation acquires
    its own connection and releases it when done. Built on a plain DB-API
    connection (fixed mode), every operation runs on that connection and the
    session never closes it.

    Streams that are abandoned before exhaustion stay open until they are
    closed or the session is closed, so prefer::

        with Session(provider) as session:
            first = session.stream(parser, "select x from t").first()
    """

    def __init__(self, source: Any, *, binder: Optional[ParameterBinderPort] = None):
        """Create a session.

        Args:
            source: `ConnectionProvider` (anything with `acquire()`) or a
                DB-API connection.
            binder: Binding/formatting/hook strategy, `ParameterBinder()` by default.
        """

        self.binder: ParameterBinderPort = binder if binder is not None else ParameterBinder()
        self.executor = StatementExecutor(self.binder)
        self.registry = ResourceRegistry()
        self._closed = False
        self._lock = threading.Lock()
        self._provider: Optional[ConnectionProvider]
        self._fixed: Optional[ConnectionHandle]
        if isinstance(source, _FixedSource):
            self._provider = None
            self._fixed = ConnectionHandle(source.conn, self, owns_lifecycle=False)
        elif isinstance(source, ConnectionProvider):
            self._provider = source
            self._fixed = None
        elif source is None:
            raise TypeError("Session requires a connection provider or a DB-API connection.")
        else:
            self._provider = None
            self._fixed = ConnectionHandle(source, self, owns_lifecycle=False)

    @classmethod
    def pooled(
        cls,
        provider: ConnectionProvider,
        *,
        binder: Optional[ParameterBinderPort] = None,
    ) -> Session:
        if not isinstance(provider, ConnectionProvider):
            raise TypeError("provider must define acquire().")
        return cls(provider, binder=binder)

    @classmethod
    def fixed(cls, conn: Any, *, binder: Optional[ParameterBinderPort] = None) -> Session:
        """Session on one external connection that is never closed here."""

        return cls(_FixedSource(conn), binder=binder)

    @property
    def is_pooled(self) -> bool:
        return self._provider is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def connection(self) -> ConnectionHandle:
        """Return a connection to run several operations on.

        In pooled mode this is a new owned connection: close it (or use it as
        a context manager) when done. In fixed mode it is the fixed
        connection, whose `close()` does nothing.
        """

        self._ensure_open()
        if self._fixed is not None:
            return self._fixed
        try:
            raw = self._provider.acquire()
        except Exception as exc:
            raise DatabaseConnectionError("Unable to acquire a connection.") from exc
        handle = ConnectionHandle(raw, self, owns_lifecycle=True, provider=self._provider)
        self.registry.register_connection(handle)
        self._reject_if_closed(handle)
        logger.debug("connection acquired: %s", type(raw).__name__)
        return handle

    def list(
        self,
        parser: RowParser[T],
        sql: SqlInput,
        *params: Any,
        connection: Optional[ConnectionHandle] = None,
    ) -> List[T]:
        """Run a query to the end and return its non-`None` parsed rows."""

        statement = _statement(sql, params)
        with self._scoped(connection) as conn:
            return self.executor.collect_list(conn, parser, statement)

    def stream(
        self,
        parser: RowParser[T],
        sql: SqlInput,
        *params: Any,
        connection: Optional[ConnectionHandle] = None,
    ) -> LazyRowSequence[T]:
        """Run a query and return its rows lazily.

        Without `connection`, the returned sequence owns the connection it
        runs on and releases it when it closes.
        """

        self._ensure_open()
        statement = _statement(sql, params)
        if connection is not None:
            rows = LazyRowSequence(connection, self.executor, self.registry, parser, statement)
        else:
            conn = self.connection()
            rows = LazyRowSequence(
                conn,
                self.executor,
                self.registry,
                parser,
                statement,
                owns_connection=conn.owns_lifecycle,
            )
        self._reject_if_closed(rows)
        return rows

    def execute(
        self,
        sql: SqlInput,
        *params: Any,
        connection: Optional[ConnectionHandle] = None,
    ) -> int:
        """Execute a statement for its effect; returns the driver row count."""

        statement = _statement(sql, params)
        with self._scoped(connection) as conn:
            return self.executor.execute_no_result(conn, statement)

    def call_procedure(
        self,
        name: str,
        *args: Any,
        connection: Optional[ConnectionHandle] = None,
    ) -> int:
        """Call a stored procedure by name and return its integer return code."""

        with self._scoped(connection) as conn:
            return self.executor.call_procedure(conn, name, args)

    def count_open_connections(self) -> int:
        return self.registry.count_open_connections()

    def count_open_sequences(self) -> int:
        return self.registry.count_open_sequences()

    def close(self) -> None:
        """Close every open sequence and owned connection.

        A fixed connection is left open.
        """

        with self._lock:
            self._closed = True
        self.registry.force_close_all()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    @contextlib.contextmanager
    def _scoped(self, connection: Optional[ConnectionHandle]) -> Iterator[ConnectionHandle]:
        self._ensure_open()
        if connection is not None:
            yield connection
            return
        with self.connection() as conn:
            yield conn

    def _ensure_open(self) -> None:
        if self._closed:
            raise DatabaseConnectionError("Session is closed.")

    def _reject_if_closed(self, resource: Any) -> None:
        # close() sets the flag before force_close_all() takes its snapshot, so a
        # resource registered after the snapshot is caught here
        if self._closed:
            resource.close()
            raise DatabaseConnectionError("Session is closed.")


class _FixedSource:
    """Marks a connection as fixed even if it happens to define `acquire()`."""

    def __init__(self, conn: Any):
        self.conn = conn


def _statement(sql: SqlInput, params: Tuple[Any, ...]) -> Statement:
    if isinstance(sql, Statement):
        if params:
            raise TypeError("Pass parameters inside the Statement, not alongside it.")
        return sql
    return Statement(sql, params)
