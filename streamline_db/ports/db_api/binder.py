"""Default parameter binding, debug formatting, and lifecycle hooks."""

from __future__ import annotations

import datetime
import decimal
import io
import logging
import threading
import time
from typing import Any, Dict, Optional, Sequence

from ...core.contracts import PreparedStatementPort
from ...core.errors import BindError
from ...core.helpers import has_time
from ...core.statement import Statement


class ParameterBinder:
    """How values are set into statements and rendered for logs.

    Pass an instance (or any object with the same methods) to `Session` to
    change binding, or override the `on_*` hooks for logging and timings.
    The hooks are no-ops here.
    """

    def bind(self, statement: PreparedStatementPort, index: int, value: Any) -> None:
        """Set one parameter value on a prepared statement.

        Args:
            statement: Statement slots to bind into.
            index: 1-based parameter index.
            value: Parameter value.
        """

        try:
            statement.set(index, self._coerce(value))
        except BindError:
            raise
        except Exception as exc:
            raise BindError(index, value) from exc

    def bind_all(
        self,
        statement: PreparedStatementPort,
        first_index: int,
        params: Sequence[Any],
    ) -> None:
        """Set parameter values starting at `first_index`."""

        for offset, value in enumerate(params or ()):
            self.bind(statement, first_index + offset, value)

    def _coerce(self, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, datetime.datetime):
            # a datetime at midnight is stored as a DATE, not a TIMESTAMP
            return value if has_time(value) else value.date()
        if isinstance(value, (datetime.date, datetime.time)):
            return value
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        if isinstance(value, (io.RawIOBase, io.BufferedIOBase)):
            return bytes(value.read())
        if isinstance(value, io.TextIOBase):
            return value.read()
        return value

    def format(self, value: Any) -> Optional[str]:
        """Format value as an equivalent SQL literal, `None` if not possible."""

        if value is None:
            return "NULL"
        if isinstance(value, datetime.datetime):
            if has_time(value):
                return value.strftime("'%Y-%m-%d %H:%M:%S'")
            return value.strftime("'%Y-%m-%d'")
        if isinstance(value, datetime.date):
            return value.strftime("'%Y-%m-%d'")
        if isinstance(value, str):
            return "'" + value.replace("'", "''") + "'"
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float, decimal.Decimal)):
            return str(value)
        return None

    def on_connect(self, conn: Any) -> None:
        """New owned connection acquired from the provider."""

    def on_disconnect(self, conn: Any) -> None:
        """Owned connection about to be released."""

    def on_execute_start(self, statement: Statement) -> None:
        """About to execute SQL."""

    def on_execute_fail(self, statement: Statement, exc: BaseException) -> None:
        """Execution failed; the error is raised right after this call."""

    def on_execute_complete(self, statement: Statement) -> None:
        """Execution finished and its cursor is closed."""


class LoggingBinder(ParameterBinder):
    """Binder that logs connections and statements with elapsed times."""

    def __init__(self, logger_name: str = "streamline_db.sql", level: int = logging.DEBUG):
        self.logger = logging.getLogger(logger_name)
        self.level = level
        self._started: Dict[int, float] = {}
        self._lock = threading.Lock()

    def on_connect(self, conn: Any) -> None:
        self.logger.log(self.level, "connect: %s", type(conn).__name__)

    def on_disconnect(self, conn: Any) -> None:
        self.logger.log(self.level, "disconnect: %s", type(conn).__name__)

    def on_execute_start(self, statement: Statement) -> None:
        with self._lock:
            self._started[id(statement)] = time.perf_counter()
        if self.logger.isEnabledFor(self.level):
            rendered = statement.format(self)
            if rendered.params:
                self.logger.log(self.level, "start: %s %r", rendered.sql, list(rendered.params))
            else:
                self.logger.log(self.level, "start: %s", rendered.sql)

    def on_execute_fail(self, statement: Statement, exc: BaseException) -> None:
        elapsed = self._elapsed_ms(statement)
        self.logger.error(
            "failed after %.1f ms: %s - %s: %s",
            elapsed,
            statement.sql,
            type(exc).__name__,
            exc,
        )

    def on_execute_complete(self, statement: Statement) -> None:
        elapsed = self._elapsed_ms(statement)
        self.logger.log(self.level, "complete in %.1f ms: %s", elapsed, statement.sql)

    def _elapsed_ms(self, statement: Statement) -> float:
        with self._lock:
            started = self._started.pop(id(statement), None)
        if started is None:
            return 0.0
        return (time.perf_counter() - started) * 1000.0
