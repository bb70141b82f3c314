from collections.abc import Callable

from fastapi import Request

from lms_presence.constants import MSG_ACCESS_DENIED, MSG_NOT_AUTHENTICATED
from lms_presence.exceptions import AuthenticationError, AuthorizationError
from lms_presence.logging import logger
from lms_presence.schemas.user import UserModel


class RBACManager:
    """
    Manager for Role-Based Access Control (RBAC).

    Checks the roles carried by the authenticated user's session token
    against the roles an endpoint requires.
    """

    def check_permission(self, user: UserModel, roles: tuple[str, ...]) -> bool:
        """
        Checks if the user holds ALL of the required roles.

        Args:
            user: The authenticated user.
            roles: Required role names. Empty means any authenticated user.

        Returns:
            bool: True if every required role is present.
        """
        has_permission = all(role in user.roles for role in roles)

        if not has_permission:
            logger.info(
                f"Permission denied for user {user.username}. "
                f"Required roles: {list(roles)}, User roles: {user.roles}"
            )

        return has_permission

    def require_roles(self, *roles: str) -> Callable[[Request], UserModel]:
        """
        Create a FastAPI dependency enforcing the given roles.

        Args:
            *roles: Role names the user must all have.

        Returns:
            Dependency returning the authenticated user.

        Raises:
            AuthenticationError: If the request is anonymous (401).
            AuthorizationError: If the user lacks a required role (403).
        """

        def dependency(request: Request) -> UserModel:
            user = request.user
            if not isinstance(user, UserModel):
                raise AuthenticationError(MSG_NOT_AUTHENTICATED)

            if not self.check_permission(user, roles):
                raise AuthorizationError(MSG_ACCESS_DENIED)

            return user

        return dependency


rbac_manager = RBACManager()
