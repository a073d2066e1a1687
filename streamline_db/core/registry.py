"""Per-session bookkeeping of open connections and row sequences."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


class Closeable(Protocol):
    def close(self) -> None: ...


class ResourceRegistry:
    """Thread-safe sets of open connections and sequences, keyed by identity.

    Resources deregister themselves when they close. `force_close_all()`
    closes whatever is still registered, sequences before connections.
    """

    def __init__(self) -> None:
        self._connections: Dict[int, Closeable] = {}
        self._sequences: Dict[int, Closeable] = {}
        self._lock = threading.Lock()

    def register_connection(self, connection: Closeable) -> None:
        with self._lock:
            self._connections[id(connection)] = connection

    def deregister_connection(self, connection: Closeable) -> None:
        with self._lock:
            self._connections.pop(id(connection), None)

    def register_sequence(self, sequence: Closeable) -> None:
        with self._lock:
            self._sequences[id(sequence)] = sequence

    def deregister_sequence(self, sequence: Closeable) -> None:
        with self._lock:
            self._sequences.pop(id(sequence), None)

    def count_open_connections(self) -> int:
        with self._lock:
            return len(self._connections)

    def count_open_sequences(self) -> int:
        with self._lock:
            return len(self._sequences)

    def force_close_all(self) -> None:
        """Close every open sequence, then every open connection.

        Each close is attempted even when earlier ones fail. The first
        failure is raised once everything has been tried.
        """

        with self._lock:
            sequences = list(self._sequences.values())
        first_error = self._close_each(sequences, "sequence")

        with self._lock:
            connections = list(self._connections.values())
        error = self._close_each(connections, "connection")

        logger.debug(
            "force-closed %d sequence(s) and %d connection(s)",
            len(sequences),
            len(connections),
        )
        if first_error is None:
            first_error = error
        if first_error is not None:
            raise first_error

    def _close_each(self, resources: List[Closeable], kind: str) -> Optional[BaseException]:
        first_error: Optional[BaseException] = None
        for resource in resources:
            try:
                resource.close()
            except Exception as exc:
                logger.warning("failed to close %s %r: %s", kind, resource, exc, exc_info=True)
                if first_error is None:
                    first_error = exc
            finally:
                # a failed close must not keep the resource registered
                self._discard(resource)
        return first_error

    def _discard(self, resource: Any) -> None:
        with self._lock:
            self._sequences.pop(id(resource), None)
            self._connections.pop(id(resource), None)
