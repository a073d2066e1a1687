"""Public port exports for the DB-API adapter implementation."""

from .db_api import (
    ConnectionFactory,
    ConnectionHandle,
    LazyRowSequence,
    LoggingBinder,
    ParameterBinder,
)

__all__ = [
    "ConnectionFactory",
    "ConnectionHandle",
    "LazyRowSequence",
    "LoggingBinder",
    "ParameterBinder",
]
