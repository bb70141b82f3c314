"""In-memory registry of active client connections."""

import threading
from collections.abc import Callable
from copy import deepcopy
from datetime import datetime, timedelta, timezone

from lms_presence.constants import (
    DEFAULT_STALE_AFTER_SECONDS,
    DEFAULT_SWEEP_EVERY,
)
from lms_presence.logging import logger
from lms_presence.schemas.connection import ConnectionData, ConnectionRecord
from lms_presence.utils.metrics import (
    presence_connection_upserts_total,
    presence_connections_active,
    presence_connections_cleared_total,
    presence_connections_evicted_total,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionRegistry:
    """
    Manager for tracked client connections.

    Keeps one record per client-supplied session id and evicts records
    whose last activity is older than ``stale_after``. Eviction is lazy:
    a sweep runs at the start of every read (``get``, ``list_active``,
    ``count``) and after any ``upsert`` that leaves the table size a
    multiple of ``sweep_every``.

    All operations hold a single lock for the duration of the map
    mutation, so concurrent upserts to the same session id never produce
    a mixed record. Logging happens after the lock is released.

    Records are frozen, and their ``network_info`` dict is copied on the
    way in and on the way out: neither the caller's payload nor a
    returned record shares state with the table.

    The registry lives in process memory only. Several worker processes
    each see their own disjoint set of connections.
    """

    def __init__(
        self,
        stale_after: timedelta = timedelta(seconds=DEFAULT_STALE_AFTER_SECONDS),
        sweep_every: int = DEFAULT_SWEEP_EVERY,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if sweep_every < 1:
            raise ValueError("sweep_every must be a positive integer")

        self.stale_after = stale_after
        self.sweep_every = sweep_every
        self._clock = clock
        self._connections: dict[str, ConnectionRecord] = {}
        self._lock = threading.Lock()

    def upsert(self, session_id: str, data: ConnectionData) -> ConnectionRecord:
        """
        Create or fully replace the record for a session id.

        The first ``connected_at`` is kept for a known session id; every
        other field is replaced by ``data``, so a registration without an
        identity clears a previously known one.

        Args:
            session_id: Client-generated session identifier.
            data: Identity, IP, user agent and network diagnostics.

        Returns:
            The stored record.
        """
        if not session_id:
            raise ValueError("session_id must be a non-empty string")

        network_info = deepcopy(data.network_info)

        evicted = 0
        with self._lock:
            now = self._clock()
            existing = self._connections.get(session_id)

            record = ConnectionRecord(
                session_id=session_id,
                identity=data.identity,
                ip=data.ip,
                network_info=network_info,
                user_agent=data.user_agent,
                connected_at=existing.connected_at if existing else now,
                last_activity=now,
            )
            self._connections[session_id] = record

            if len(self._connections) % self.sweep_every == 0:
                evicted = self._sweep_locked(now)

            presence_connections_active.set(len(self._connections))

        presence_connection_upserts_total.labels(
            kind="updated" if existing else "created"
        ).inc()
        logger.debug(
            f"Connection {session_id} {'updated' if existing else 'registered'} "
            f"from {record.ip}"
        )
        self._log_evicted(evicted)
        return _snapshot(record)

    def get(self, session_id: str) -> ConnectionRecord | None:
        """
        Get the record for a session id.

        Returns:
            The record, or None if unknown or stale.
        """
        with self._lock:
            evicted = self._sweep_locked(self._clock())
            record = self._connections.get(session_id)

        self._log_evicted(evicted)
        return _snapshot(record) if record else None

    def list_active(self) -> list[ConnectionRecord]:
        """Return every non-stale record, in no particular order."""
        with self._lock:
            evicted = self._sweep_locked(self._clock())
            records = list(self._connections.values())

        self._log_evicted(evicted)
        return [_snapshot(record) for record in records]

    def count(self) -> int:
        """Return the number of non-stale records."""
        with self._lock:
            evicted = self._sweep_locked(self._clock())
            total = len(self._connections)

        self._log_evicted(evicted)
        return total

    def remove(self, session_id: str) -> bool:
        """
        Delete one record.

        Returns:
            True if a record was removed, False if the session id was unknown.
        """
        with self._lock:
            removed = self._connections.pop(session_id, None) is not None
            presence_connections_active.set(len(self._connections))

        if removed:
            logger.debug(f"Connection {session_id} removed")
        return removed

    def clear_all(self) -> int:
        """
        Delete every record regardless of staleness.

        Returns:
            Number of records removed.
        """
        with self._lock:
            deleted = len(self._connections)
            self._connections.clear()
            presence_connections_active.set(0)

        presence_connections_cleared_total.inc(deleted)
        logger.info(f"Cleared {deleted} tracked connections")
        return deleted

    def sweep(self) -> int:
        """
        Evict stale records.

        Returns:
            Number of records evicted.
        """
        with self._lock:
            evicted = self._sweep_locked(self._clock())

        self._log_evicted(evicted)
        return evicted

    def _sweep_locked(self, now: datetime) -> int:
        # Caller must hold self._lock
        cutoff = now - self.stale_after
        stale = [
            session_id
            for session_id, record in self._connections.items()
            if record.last_activity < cutoff
        ]
        for session_id in stale:
            del self._connections[session_id]

        if stale:
            presence_connections_active.set(len(self._connections))

        return len(stale)

    def _log_evicted(self, evicted: int) -> None:
        if not evicted:
            return

        presence_connections_evicted_total.inc(evicted)
        logger.debug(f"Evicted {evicted} stale connections")


def _snapshot(record: ConnectionRecord) -> ConnectionRecord:
    return record.model_copy(
        update={"network_info": deepcopy(record.network_info)}
    )
