"""Null-aware column readers for use inside row parsers."""

from __future__ import annotations

import decimal
from typing import Any, Optional, Union

ColumnKey = Union[int, str]


def column(row: Any, key: ColumnKey) -> Any:
    """Return one column of a row, by position (0-based) or by name."""

    return row[key]


def as_int(row: Any, key: ColumnKey) -> Optional[int]:
    value = column(row, key)
    return None if value is None else int(value)


def as_float(row: Any, key: ColumnKey) -> Optional[float]:
    value = column(row, key)
    return None if value is None else float(value)


def as_decimal(row: Any, key: ColumnKey) -> Optional[decimal.Decimal]:
    value = column(row, key)
    if value is None:
        return None
    if isinstance(value, float):
        # go through str so 0.1 stays 0.1
        return decimal.Decimal(str(value))
    return decimal.Decimal(value)


def as_str(row: Any, key: ColumnKey) -> Optional[str]:
    value = column(row, key)
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return str(value)


def as_bool(row: Any, key: ColumnKey) -> Optional[bool]:
    """Read a boolean; drivers without a boolean type return 0/1."""

    value = column(row, key)
    return None if value is None else bool(value)
