from __future__ import annotations

import decimal
import sqlite3
import unittest

from streamline_db import readers


class ReadersTests(unittest.TestCase):
    def test_null_reads_as_none(self) -> None:
        row = (None,)
        self.assertIsNone(readers.as_int(row, 0))
        self.assertIsNone(readers.as_float(row, 0))
        self.assertIsNone(readers.as_decimal(row, 0))
        self.assertIsNone(readers.as_str(row, 0))
        self.assertIsNone(readers.as_bool(row, 0))

    def test_conversions(self) -> None:
        row = ("7", 2, 0.1, b"caf\xc3\xa9", 0)
        self.assertEqual(readers.as_int(row, 0), 7)
        self.assertEqual(readers.as_float(row, 1), 2.0)
        self.assertEqual(readers.as_decimal(row, 2), decimal.Decimal("0.1"))
        self.assertEqual(readers.as_str(row, 3), "café")
        self.assertIs(readers.as_bool(row, 4), False)

    def test_named_columns(self) -> None:
        conn = sqlite3.connect(":memory:")
        self.addCleanup(conn.close)
        conn.row_factory = sqlite3.Row
        row = conn.execute("select 5 as amount, 'x' as label").fetchone()

        self.assertEqual(readers.as_int(row, "amount"), 5)
        self.assertEqual(readers.column(row, "label"), "x")
