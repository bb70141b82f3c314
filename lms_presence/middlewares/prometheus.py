"""
Prometheus metrics middleware for HTTP requests.

This middleware tracks request counts, duration, and in-progress
requests.
"""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

from lms_presence.utils.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

# Endpoint label for requests that match no route
UNMATCHED_ENDPOINT = "unmatched"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware to track Prometheus metrics for HTTP requests.

    Tracks the following metrics:
    - http_requests_total: Counter of total requests by method, endpoint, and status
    - http_request_duration_seconds: Histogram of request durations
    - http_requests_in_progress: Gauge of in-progress requests

    The endpoint label is the matched route template (e.g.
    ``/api/network/connections/{session_id}``) or ``"unmatched"``, never
    the raw path, so session ids and unknown URLs cannot grow the set of
    label values.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        method = request.method
        endpoint = endpoint_label(request)

        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.time()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            http_request_duration_seconds.labels(
                method=method, endpoint=endpoint
            ).observe(time.time() - start_time)
            http_requests_total.labels(
                method=method, endpoint=endpoint, status_code=status_code
            ).inc()
            http_requests_in_progress.labels(
                method=method, endpoint=endpoint
            ).dec()


def endpoint_label(request: Request) -> str:
    """
    Resolve the route template a request will be dispatched to.

    A route matching only the path (wrong method) still names the
    endpoint; the 405 is reported under it.
    """
    partial = None
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", UNMATCHED_ENDPOINT)
        if match == Match.PARTIAL and partial is None:
            partial = getattr(route, "path", None)

    return partial or UNMATCHED_ENDPOINT
