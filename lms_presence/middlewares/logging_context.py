"""
Middleware for injecting contextual fields into structured logs.

This middleware adds request-specific information to the log context
that will be included in all log messages during request processing.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from lms_presence.logging import clear_log_context, set_log_context
from lms_presence.schemas.user import UserModel


class LoggingContextMiddleware(BaseHTTPMiddleware):  # type: ignore[misc]
    """
    Middleware to inject contextual fields into structured logs.

    This middleware:
    - Adds endpoint and method to log context
    - Adds user_id and user_role if the request is authenticated
    - Clears log context after request completes

    Must run inside AuthenticationMiddleware so ``request.user`` is set.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        set_log_context(
            endpoint=request.url.path,
            method=request.method,
        )

        user = request.scope.get("user")
        if isinstance(user, UserModel):
            set_log_context(user_id=user.id, user_role=user.role)

        try:
            response = await call_next(request)
        finally:
            clear_log_context()

        return response
