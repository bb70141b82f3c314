"""
Prometheus metrics definitions.

Metrics are organized into submodules by subsystem (HTTP, connection
registry) and re-exported here:

    from lms_presence.utils.metrics import http_requests_total
    from lms_presence.utils.metrics import presence_connections_active
"""

from prometheus_client import Gauge

from lms_presence.utils.metrics.connections import (
    presence_connection_upserts_total,
    presence_connections_active,
    presence_connections_cleared_total,
    presence_connections_evicted_total,
)
from lms_presence.utils.metrics.factory import get_or_create
from lms_presence.utils.metrics.http import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

app_info = get_or_create(
    Gauge,
    "app_info",
    "Application information",
    ("version", "python_version", "environment"),
)

__all__ = [
    # HTTP metrics
    "http_requests_total",
    "http_request_duration_seconds",
    "http_requests_in_progress",
    # Connection registry metrics
    "presence_connections_active",
    "presence_connection_upserts_total",
    "presence_connections_evicted_total",
    "presence_connections_cleared_total",
    # Application metrics
    "app_info",
]
