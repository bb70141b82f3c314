"""
Prometheus metrics for the connection registry.

Tracks the size of the registry and how records enter and leave it
(registration, staleness eviction, bulk clear).
"""

from prometheus_client import Counter, Gauge

from lms_presence.utils.metrics.factory import get_or_create

presence_connections_active = get_or_create(
    Gauge,
    "presence_connections_active",
    "Number of connection records currently held by the registry",
)

presence_connection_upserts_total = get_or_create(
    Counter,
    "presence_connection_upserts_total",
    "Total connection registrations",
    ("kind",),  # created, updated
)

presence_connections_evicted_total = get_or_create(
    Counter,
    "presence_connections_evicted_total",
    "Total connection records evicted for inactivity",
)

presence_connections_cleared_total = get_or_create(
    Counter,
    "presence_connections_cleared_total",
    "Total connection records removed by a bulk clear",
)


__all__ = [
    "presence_connections_active",
    "presence_connection_upserts_total",
    "presence_connections_evicted_total",
    "presence_connections_cleared_total",
]
