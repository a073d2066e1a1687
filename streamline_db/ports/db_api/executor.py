"""Compile, bind, and execute statements on a DB-API connection."""

from __future__ import annotations

import contextlib
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Sequence

from ...core.contracts import ParameterBinderPort
from ...core.errors import StatementError, StreamlineError
from ...core.helpers import validate_identifier
from ...core.statement import Statement
from ...core.types import Row, RowParser, T

if TYPE_CHECKING:
    from .connection import ConnectionHandle


class PreparedStatement:
    """A cursor plus the positional parameter slots bound onto it."""

    def __init__(self, cursor: Any, sql: str, size: int):
        self.cursor = cursor
        self.sql = sql
        self.parameters: List[Any] = [None] * size

    def set(self, index: int, value: Any) -> None:
        """Set slot `index` (1-based)."""

        if index < 1 or index > len(self.parameters):
            raise IndexError(
                f"Parameter index {index} out of range 1..{len(self.parameters)}."
            )
        self.parameters[index - 1] = value

    def execute(self) -> None:
        self.cursor.execute(self.sql, tuple(self.parameters))


class ProcedureCall(PreparedStatement):
    """Prepared `{? = call name(...)}` with slot 1 reserved for the return code."""

    RETURN_SLOT = 1

    def __init__(self, cursor: Any, name: str, sql: str, arg_count: int):
        super().__init__(cursor, sql, arg_count + 1)
        self.name = name

    @property
    def arguments(self) -> List[Any]:
        return self.parameters[self.RETURN_SLOT :]

    def execute(self) -> None:
        self.cursor.callproc(self.name, self.arguments)


class StatementExecutor:
    """Runs statements for list, execute, and procedure calls.

    `execute()` only compiles and runs a statement and leaves the cursor
    open for the caller. The other operations own their cursor and fire the
    binder hooks around the whole call.
    """

    def __init__(self, binder: ParameterBinderPort):
        self.binder = binder

    def execute(self, connection: ConnectionHandle, statement: Statement) -> Any:
        """Compile and execute `statement`, returning its open cursor.

        Simple statements are executed as plain text. Otherwise the params
        are bound 1-based through the binder before executing.
        """

        cursor = self._open_cursor(connection, statement)
        try:
            if statement.simple:
                cursor.execute(statement.sql)
            else:
                prepared = PreparedStatement(cursor, statement.sql, len(statement.params))
                self.binder.bind_all(prepared, 1, statement.params)
                prepared.execute()
        except StreamlineError:
            self.discard_cursor(cursor)
            raise
        except Exception as exc:
            self.discard_cursor(cursor)
            raise StatementError(statement.sql) from exc
        return cursor

    def collect_list(
        self,
        connection: ConnectionHandle,
        parser: RowParser[T],
        statement: Statement,
    ) -> List[T]:
        """Execute a query to the end and return every non-`None` parsed row."""

        rows: List[T] = []
        self.binder.on_execute_start(statement)
        try:
            with self._cursor_scope(connection, statement) as cursor:
                while True:
                    row = self.fetch(cursor, statement)
                    if row is None:
                        break
                    value = parser(row)
                    if value is not None:
                        rows.append(value)
        except Exception as exc:
            self.binder.on_execute_fail(statement, exc)
            raise
        self.binder.on_execute_complete(statement)
        return rows

    def execute_no_result(self, connection: ConnectionHandle, statement: Statement) -> int:
        """Execute for effect only and return the driver row count."""

        self.binder.on_execute_start(statement)
        try:
            with self._cursor_scope(connection, statement) as cursor:
                rowcount = getattr(cursor, "rowcount", -1)
        except Exception as exc:
            self.binder.on_execute_fail(statement, exc)
            raise
        self.binder.on_execute_complete(statement)
        return rowcount if isinstance(rowcount, int) else -1

    def call_procedure(
        self,
        connection: ConnectionHandle,
        name: str,
        args: Sequence[Any],
    ) -> int:
        """Execute a stored procedure and return its integer return code.

        Only the single integer return code is read back; OUT and INOUT
        parameters are not supported. A NULL or missing return code reads
        as 0.
        """

        validate_identifier(name, dotted=True)
        args = tuple(args or ())
        placeholders = ",".join("?" for _ in args)
        statement = Statement(f"{{? = call {name}({placeholders})}}", args)

        self.binder.on_execute_start(statement)
        try:
            cursor = self._open_cursor(connection, statement)
            try:
                if not callable(getattr(cursor, "callproc", None)):
                    raise StatementError(
                        statement.sql, "Driver does not support stored procedures"
                    )
                call = ProcedureCall(cursor, name, statement.sql, len(args))
                self.binder.bind_all(call, ProcedureCall.RETURN_SLOT + 1, args)
                try:
                    call.execute()
                except Exception as exc:
                    raise StatementError(statement.sql) from exc
                code = self._return_code(self.fetch(cursor, statement), statement)
            except BaseException:
                self.discard_cursor(cursor)
                raise
            self._close_cursor(cursor, statement)
        except Exception as exc:
            self.binder.on_execute_fail(statement, exc)
            raise
        self.binder.on_execute_complete(statement)
        return code

    def fetch(self, cursor: Any, statement: Statement) -> Optional[Row]:
        """Advance the cursor by one row, `None` when there are no (more) rows."""

        if getattr(cursor, "description", None) is None:
            return None
        try:
            return cursor.fetchone()
        except Exception as exc:
            raise StatementError(statement.sql) from exc

    def close_cursor(self, cursor: Any, statement: Statement) -> None:
        self._close_cursor(cursor, statement)

    @contextlib.contextmanager
    def _cursor_scope(self, connection: ConnectionHandle, statement: Statement) -> Iterator[Any]:
        cursor = self.execute(connection, statement)
        try:
            yield cursor
        except BaseException:
            self.discard_cursor(cursor)
            raise
        self._close_cursor(cursor, statement)

    def _open_cursor(self, connection: ConnectionHandle, statement: Statement) -> Any:
        try:
            return connection.raw.cursor()
        except Exception as exc:
            raise StatementError(statement.sql, "Unable to create cursor") from exc

    def _close_cursor(self, cursor: Any, statement: Statement) -> None:
        try:
            cursor.close()
        except Exception as exc:
            raise StatementError(statement.sql, "Unable to close cursor") from exc

    def discard_cursor(self, cursor: Any) -> None:
        # the error already propagating wins over a failing close
        with contextlib.suppress(Exception):
            cursor.close()

    def _return_code(self, row: Optional[Row], statement: Statement) -> int:
        if row is None:
            return 0
        if isinstance(row, Mapping):
            values = list(row.values())
        else:
            values = list(row)
        if not values or values[0] is None:
            return 0
        try:
            return int(values[0])
        except (TypeError, ValueError) as exc:
            raise StatementError(statement.sql, "Procedure return code is not an integer") from exc
