"""Lazy, single-pass row iteration over an open DB-API cursor."""

from __future__ import annotations

import enum
import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Generic, List, Optional

from ...core.errors import StreamlineError
from ...core.registry import ResourceRegistry
from ...core.statement import Statement
from ...core.types import Row, RowParser, T

if TYPE_CHECKING:
    from .connection import ConnectionHandle
    from .executor import StatementExecutor

logger = logging.getLogger(__name__)

_NO_ROW = object()


class SequenceState(enum.Enum):
    CREATED = "created"
    OPEN = "open"
    CLOSED = "closed"


class LazyRowSequence(Generic[T]):
    """Iterator of parsed rows that owns its cursor (and maybe its connection).

    The statement is executed on construction. Rows are fetched one ahead of
    the consumer, so the cursor is closed as soon as the last row is handed
    out. `close()` releases everything early and can be called any number of
    times, from any thread. Rows parsed to `None` are skipped.

    Short-circuit consumers should use `first()`, `take()`, `any()`, `all()`
    or a `with` block so the cursor is released without draining it.
    """

    def __init__(
        self,
        connection: ConnectionHandle,
        executor: StatementExecutor,
        registry: ResourceRegistry,
        parser: RowParser[T],
        statement: Statement,
        *,
        owns_connection: bool = False,
    ):
        self.connection = connection
        self.parser = parser
        self.statement = statement
        self.owns_connection = owns_connection
        self._executor = executor
        self._registry = registry
        self._binder = executor.binder
        self._cursor: Any = None
        self._pending: Any = _NO_ROW
        self._lock = threading.Lock()
        self._state = SequenceState.CREATED

        registry.register_sequence(self)
        try:
            self._binder.on_execute_start(statement)
            self._cursor = executor.execute(connection, statement)
            self._pending = self._fetch()
        except Exception as exc:
            self._abort(exc)
            raise
        with self._lock:
            opened = self._state is SequenceState.CREATED
            if opened:
                self._state = SequenceState.OPEN
        if not opened:
            # closed while opening; close() could not see the cursor yet
            self._discard_late_open()
            return
        logger.debug("sequence opened: %s", statement.sql)
        if self._pending is _NO_ROW:
            self.close()

    @property
    def state(self) -> SequenceState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is SequenceState.CLOSED

    def __iter__(self) -> LazyRowSequence[T]:
        return self

    def __next__(self) -> T:
        while True:
            if self._state is not SequenceState.OPEN or self._pending is _NO_ROW:
                raise StopIteration
            row = self._pending
            try:
                self._pending = self._fetch()
            except StreamlineError as exc:
                if self.closed:
                    # closed underneath us by another thread or a force-close
                    raise StopIteration from None
                self._fail_and_close(exc)
                raise
            if self._pending is _NO_ROW:
                self.close()
            try:
                value = self.parser(row)
            except Exception as exc:
                self._fail_and_close(exc)
                raise
            if value is not None:
                return value

    def close(self) -> None:
        """Release cursor and owned connection, then report completion.

        Idempotent. Every release step is attempted even if an earlier one
        fails; the first failure is raised afterwards.
        """

        with self._lock:
            if self._state is SequenceState.CLOSED:
                return
            self._state = SequenceState.CLOSED
        self._pending = _NO_ROW

        error: Optional[BaseException] = None
        self._registry.deregister_sequence(self)
        if self._cursor is not None:
            try:
                self._executor.close_cursor(self._cursor, self.statement)
            except Exception as exc:
                error = exc
        if self.owns_connection:
            try:
                self.connection.close()
            except Exception as exc:
                error = error or exc
        logger.debug("sequence closed: %s", self.statement.sql)
        self._binder.on_execute_complete(self.statement)
        if error is not None:
            raise error

    def first(self, default: Optional[T] = None) -> Optional[T]:
        """Return the first row (or `default`) and close."""

        with self:
            return next(self, default)

    def take(self, n: int) -> List[T]:
        """Return up to `n` rows and close."""

        rows: List[T] = []
        with self:
            if n > 0:
                for value in self:
                    rows.append(value)
                    if len(rows) >= n:
                        break
        return rows

    def any(self, predicate: Callable[[T], bool]) -> bool:
        with self:
            return any(predicate(value) for value in self)

    def all(self, predicate: Callable[[T], bool]) -> bool:
        with self:
            return all(predicate(value) for value in self)

    def to_list(self) -> List[T]:
        with self:
            return list(self)

    def __enter__(self) -> LazyRowSequence[T]:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def _fetch(self) -> Any:
        row: Optional[Row] = self._executor.fetch(self._cursor, self.statement)
        return _NO_ROW if row is None else row

    def _abort(self, exc: BaseException) -> None:
        """Undo a failed open: nothing stays registered or connected."""

        with self._lock:
            self._state = SequenceState.CLOSED
        self._registry.deregister_sequence(self)
        if self._cursor is not None:
            self._executor.discard_cursor(self._cursor)
        self._binder.on_execute_fail(self.statement, exc)
        if self.owns_connection:
            try:
                self.connection.close()
            except Exception:
                logger.warning(
                    "failed to release connection after open failure: %s",
                    self.statement.sql,
                    exc_info=True,
                )

    def _discard_late_open(self) -> None:
        self._pending = _NO_ROW
        if self._cursor is not None:
            self._executor.discard_cursor(self._cursor)
        if self.owns_connection:
            try:
                self.connection.close()
            except Exception:
                logger.warning(
                    "failed to release connection of a sequence closed while opening: %s",
                    self.statement.sql,
                    exc_info=True,
                )

    def _fail_and_close(self, exc: BaseException) -> None:
        with self._lock:
            if self._state is SequenceState.CLOSED:
                return
            self._state = SequenceState.CLOSED
        self._pending = _NO_ROW
        self._registry.deregister_sequence(self)
        self._executor.discard_cursor(self._cursor)
        self._binder.on_execute_fail(self.statement, exc)
        if self.owns_connection:
            try:
                self.connection.close()
            except Exception:
                logger.warning(
                    "failed to release connection after fetch failure: %s",
                    self.statement.sql,
                    exc_info=True,
                )

    def __repr__(self) -> str:
        return f"LazyRowSequence(state={self._state.value}, sql={self.statement.sql!r})"

