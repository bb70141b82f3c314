"""
FastAPI dependencies for the application.

The connection registry is owned by the application instance
(``app.state.connection_registry``) and handed to endpoints through
``ConnectionRegistryDep``, which tests can override with
``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request

from lms_presence.dependencies.permissions import (
    require_privileged,
    require_roles,
)
from lms_presence.managers.connection_registry import ConnectionRegistry


def get_connection_registry(request: Request) -> ConnectionRegistry:
    """
    Get the connection registry owned by the running application.

    Args:
        request: Incoming request.

    Returns:
        ConnectionRegistry created by the application factory.
    """
    return request.app.state.connection_registry


ConnectionRegistryDep = Annotated[
    ConnectionRegistry, Depends(get_connection_registry)
]

__all__ = [
    "ConnectionRegistryDep",
    "get_connection_registry",
    "require_privileged",
    "require_roles",
]
