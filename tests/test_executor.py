from __future__ import annotations

import unittest

from streamline_db import BindError, Session, Statement, StatementError
from tests.db_api_fakes import FakeConnection, FakeNoProcCursor, RecordingBinder


def _first_column(row):  # noqa: ANN001,ANN201
    return row[0]


class _Unbindable:
    pass


class _RejectingBinder(RecordingBinder):
    def _coerce(self, value):  # noqa: ANN001,ANN202
        if isinstance(value, _Unbindable):
            raise TypeError("unsupported type")
        return super()._coerce(value)


class StatementExecutorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.binder = RecordingBinder()

    def _session(self, conn: FakeConnection) -> Session:
        return Session(conn, binder=self.binder)

    def test_simple_statement_executes_plain_text(self) -> None:
        conn = FakeConnection()
        self._session(conn).execute("create table t (x int)")

        self.assertEqual(conn.executed, [("create table t (x int)", None)])
        self.assertEqual(conn.cursors[0].close_calls, 1)

    def test_parameterized_statement_binds_in_order(self) -> None:
        conn = FakeConnection()
        self._session(conn).execute("insert into t values (?, ?)", 1, None)

        self.assertEqual(conn.executed, [("insert into t values (?, ?)", (1, None))])

    def test_execute_returns_rowcount(self) -> None:
        conn = FakeConnection()
        self.assertEqual(self._session(conn).execute("delete from t"), 1)

    def test_list_filters_none_rows_in_cursor_order(self) -> None:
        conn = FakeConnection(rows=[(3,), (None,), (1,), (2,)])

        values = self._session(conn).list(_first_column, "select x from t")

        self.assertEqual(values, [3, 1, 2])
        self.assertEqual(conn.cursors[0].close_calls, 1)
        self.assertEqual(
            self.binder.names(),
            ["start", "complete"],
        )

    def test_list_on_statement_without_result_set_is_empty(self) -> None:
        conn = FakeConnection(rows=None)
        self.assertEqual(self._session(conn).list(_first_column, "update t set x = 1"), [])

    def test_list_accepts_prebuilt_statement(self) -> None:
        conn = FakeConnection(rows=[(1,)])
        statement = Statement.of("select x from t where y = ?", "a")

        self.assertEqual(self._session(conn).list(_first_column, statement), [1])
        self.assertEqual(conn.executed, [("select x from t where y = ?", ("a",))])

    def test_params_alongside_statement_are_rejected(self) -> None:
        conn = FakeConnection(rows=[(1,)])
        with self.assertRaises(TypeError):
            self._session(conn).list(_first_column, Statement("select 1"), 1)

    def test_execute_failure_fires_fail_hook_and_closes_cursor(self) -> None:
        conn = FakeConnection(rows=[(1,)])
        conn.fail_on_execute = RuntimeError("syntax error")

        with self.assertRaises(StatementError) as ctx:
            self._session(conn).list(_first_column, "selec x from t")

        self.assertEqual(ctx.exception.sql, "selec x from t")
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)
        self.assertEqual(self.binder.names(), ["start", "fail"])
        self.assertEqual(conn.cursors[0].close_calls, 1)

    def test_fetch_failure_fires_fail_hook_and_closes_cursor(self) -> None:
        conn = FakeConnection(rows=[(1,), (2,)])
        conn.fail_on_fetch = RuntimeError("network")
        conn.fail_after = 1

        with self.assertRaises(StatementError):
            self._session(conn).list(_first_column, "select x from t")

        self.assertEqual(self.binder.names(), ["start", "fail"])
        self.assertEqual(conn.cursors[0].close_calls, 1)

    def test_bind_failure_raises_bind_error(self) -> None:
        binder = _RejectingBinder()
        conn = FakeConnection()
        value = _Unbindable()

        with self.assertRaises(BindError) as ctx:
            Session(conn, binder=binder).execute("insert into t values (?, ?)", 1, value)

        self.assertEqual(ctx.exception.index, 2)
        self.assertIs(ctx.exception.value, value)
        self.assertEqual(binder.names(), ["start", "fail"])
        self.assertEqual(conn.executed, [])
        self.assertEqual(conn.cursors[0].close_calls, 1)

    def test_parser_error_propagates_after_fail_hook(self) -> None:
        conn = FakeConnection(rows=[(1,)])

        def _parser(row):  # noqa: ANN001,ANN202
            raise ValueError("bad row")

        with self.assertRaises(ValueError):
            self._session(conn).list(_parser, "select x from t")

        self.assertEqual(self.binder.names(), ["start", "fail"])
        self.assertEqual(conn.cursors[0].close_calls, 1)


class CallProcedureTests(unittest.TestCase):
    def test_call_procedure_binds_args_after_return_slot(self) -> None:
        binder = RecordingBinder()
        conn = FakeConnection()
        conn.return_code = 7

        code = Session(conn, binder=binder).call_procedure("app.do_work", 1, "x")

        self.assertEqual(code, 7)
        self.assertEqual(conn.calls, [("app.do_work", [1, "x"])])
        self.assertEqual(
            binder.events,
            [("start", "{? = call app.do_work(?,?)}"), ("complete", "{? = call app.do_work(?,?)}")],
        )
        self.assertEqual(conn.cursors[0].close_calls, 1)

    def test_null_return_code_reads_as_zero(self) -> None:
        conn = FakeConnection()
        conn.return_code = None
        self.assertEqual(Session(conn).call_procedure("noop"), 0)

    def test_non_integer_return_code_raises(self) -> None:
        conn = FakeConnection()
        conn.return_code = "not a number"
        with self.assertRaises(StatementError):
            Session(conn).call_procedure("noop")

    def test_driver_without_callproc_raises(self) -> None:
        binder = RecordingBinder()
        conn = FakeConnection(cursor_class=FakeNoProcCursor)

        with self.assertRaises(StatementError):
            Session(conn, binder=binder).call_procedure("noop")

        self.assertEqual(binder.names(), ["start", "fail"])
        self.assertEqual(conn.cursors[0].close_calls, 1)

    def test_invalid_procedure_name_raises(self) -> None:
        conn = FakeConnection()
        with self.assertRaises(ValueError):
            Session(conn).call_procedure("noop(); drop table t")
        self.assertEqual(conn.cursors, [])
