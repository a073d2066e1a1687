"""Small value helpers shared by the binder and the connection handle."""

from __future__ import annotations

import datetime
import re
from typing import Any

_SAFE_IDENT: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def has_time(value: Any) -> bool:
    """Return True when a datetime is not exactly midnight.

    Plain dates never carry a time. `None` has no time either.
    """

    if not isinstance(value, datetime.datetime):
        return False
    return bool(value.hour or value.minute or value.second or value.microsecond)


def is_identifier(name: str) -> bool:
    return isinstance(name, str) and bool(_SAFE_IDENT.match(name))


def validate_identifier(name: str, *, dotted: bool = False) -> str:
    """Return `name` if it is a safe SQL identifier, raise `ValueError` otherwise."""

    parts = name.split(".") if dotted and isinstance(name, str) else [name]
    if not all(is_identifier(part) for part in parts):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name
