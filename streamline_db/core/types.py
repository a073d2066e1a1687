"""Shared core type aliases used across contracts, executor, and session."""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

# Rows are whatever the driver returns from `fetchone()`: tuples by default,
# mappings when a row factory is configured.
Row = Any
RowParser = Callable[[Row], Optional[T]]
PositionalParams = Tuple[Any, ...]
ParamsInput = Optional[Sequence[Any]]
