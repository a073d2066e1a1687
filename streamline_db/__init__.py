"""Lazy, leak-free row streaming over DB-API connections."""

from .core import (
    BindError,
    ConnectionProvider,
    DatabaseConnectionError,
    ParameterBinderPort,
    ResourceRegistry,
    Session,
    Statement,
    StatementError,
    StreamlineError,
    has_time,
)
from .ports.db_api import (
    ConnectionFactory,
    ConnectionHandle,
    LazyRowSequence,
    LoggingBinder,
    ParameterBinder,
    Savepoint,
    SequenceState,
    StatementExecutor,
)
from .ports.db_api import readers

__all__ = [
    "BindError",
    "ConnectionFactory",
    "ConnectionHandle",
    "ConnectionProvider",
    "DatabaseConnectionError",
    "LazyRowSequence",
    "LoggingBinder",
    "ParameterBinder",
    "ParameterBinderPort",
    "ResourceRegistry",
    "Savepoint",
    "SequenceState",
    "Session",
    "Statement",
    "StatementError",
    "StatementExecutor",
    "StreamlineError",
    "has_time",
    "readers",
]
