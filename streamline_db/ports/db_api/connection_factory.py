"""Non-pooling connection provider around a DB-API `connect` callable."""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, Dict, Tuple
from urllib.parse import parse_qs, urlparse

# position of `uri` in sqlite3.connect(database, timeout, detect_types, ...)
_SQLITE_URI_POSITION = 7


class ConnectionFactory:
    """Opens a new DB-API connection on every `acquire()`.

    Use it where a real pool is not needed, or wrap a pool's own
    acquire/release in an object with the same two methods.
    """

    def __init__(self, connect: Callable[..., Any], *connect_args: Any, **connect_kwargs: Any):
        self._connect = connect
        self._connect_args = connect_args
        self._connect_kwargs = connect_kwargs
        if _opens_private_sqlite_memory(connect, connect_args, connect_kwargs):
            raise ValueError(
                "ConnectionFactory cannot share a private sqlite in-memory database; "
                "every acquire() would open a new empty one. Use a file path, "
                "'file:name?mode=memory&cache=shared' with uri=True, or a fixed "
                "connection session instead."
            )

    def acquire(self) -> Any:
        """Open one new connection."""

        return self._connect(*self._connect_args, **self._connect_kwargs)

    def release(self, conn: Any) -> None:
        """Close a connection returned by `acquire()`."""

        close = getattr(conn, "close", None)
        if callable(close):
            close()


def _opens_private_sqlite_memory(
    connect: Callable[..., Any],
    args: Tuple[Any, ...],
    kwargs: Dict[str, Any],
) -> bool:
    """True when `connect(*args, **kwargs)` would open an unshared sqlite memory db."""

    if isinstance(connect, functools.partial):
        args = connect.args + args
        kwargs = {**connect.keywords, **kwargs}
        connect = connect.func

    module_name = getattr(connect, "__module__", None) or ""
    if module_name.split(".")[0] not in ("sqlite3", "_sqlite3"):
        return False

    database = args[0] if args else kwargs.get("database")
    if not isinstance(database, str):
        return False
    if database == ":memory:":
        return True

    if "uri" in kwargs:
        uri = bool(kwargs["uri"])
    else:
        uri = len(args) > _SQLITE_URI_POSITION and bool(args[_SQLITE_URI_POSITION])
    if not uri or not database.lower().startswith("file:"):
        return False

    parsed = urlparse(database)
    query = {key: values[-1].lower() for key, values in parse_qs(parsed.query).items()}
    in_memory = query.get("mode") == "memory" or parsed.path == ":memory:"
    return in_memory and query.get("cache") != "shared"
