"""Prometheus metrics for HTTP request monitoring."""

from prometheus_client import Counter, Gauge, Histogram

from lms_presence.utils.metrics.factory import get_or_create

http_requests_total = get_or_create(
    Counter,
    "http_requests_total",
    "Total HTTP requests",
    ("method", "endpoint", "status_code"),
)

http_request_duration_seconds = get_or_create(
    Histogram,
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "endpoint"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

http_requests_in_progress = get_or_create(
    Gauge,
    "http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ("method", "endpoint"),
)

__all__ = [
    "http_requests_total",
    "http_request_duration_seconds",
    "http_requests_in_progress",
]
