"""Public core API: statements, errors, contracts, registry, and session."""

from .errors import BindError, DatabaseConnectionError, StatementError, StreamlineError
from .statement import Statement
from .contracts import ConnectionProvider, ParameterBinderPort, PreparedStatementPort
from .registry import ResourceRegistry
from .helpers import has_time
from .session import Session

__all__ = [
    "BindError",
    "ConnectionProvider",
    "DatabaseConnectionError",
    "ParameterBinderPort",
    "PreparedStatementPort",
    "ResourceRegistry",
    "Session",
    "Statement",
    "StatementError",
    "StreamlineError",
    "has_time",
]
