"""
FastAPI dependencies for role-based access control.

This module provides a standalone function for enforcing role-based
permissions on HTTP endpoints. It delegates to rbac_manager.
"""

from lms_presence.managers.rbac_manager import rbac_manager
from lms_presence.settings import app_settings


def require_roles(*roles: str):  # type: ignore[no-untyped-def]
    """
    Create a FastAPI dependency that requires the user to have ALL specified roles.

    Args:
        *roles: Variable number of role names that the user must have.

    Returns:
        A dependency function returning the authenticated user.

    Example:
        ```python
        @router.post(
            "/api/network/connections/clear",
            dependencies=[Depends(require_roles("profesor"))],
        )
        async def clear_connections(): ...
        ```

    Raises:
        AuthenticationError: 401 if the request is anonymous.
        AuthorizationError: 403 if the user lacks a required role.
    """
    return rbac_manager.require_roles(*roles)


def require_privileged():  # type: ignore[no-untyped-def]
    """Dependency requiring the role configured as ``PRIVILEGED_ROLE``."""
    return require_roles(app_settings.PRIVILEGED_ROLE)
