"""DB-API adapters: binding, execution, connections, and row streaming."""

from .binder import LoggingBinder, ParameterBinder
from .connection import ConnectionHandle, Savepoint
from .connection_factory import ConnectionFactory
from .executor import PreparedStatement, ProcedureCall, StatementExecutor
from .sequence import LazyRowSequence, SequenceState

__all__ = [
    "ConnectionFactory",
    "ConnectionHandle",
    "LazyRowSequence",
    "LoggingBinder",
    "ParameterBinder",
    "PreparedStatement",
    "ProcedureCall",
    "Savepoint",
    "SequenceState",
    "StatementExecutor",
]
