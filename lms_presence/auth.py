import json
from typing import Any

from fastapi.security.utils import get_authorization_scheme_param
from jwcrypto.common import JWException
from jwcrypto.jwk import JWK
from jwcrypto.jwt import JWT, JWTExpired
from pydantic import ValidationError as PydanticValidationError
from starlette.authentication import AuthCredentials, AuthenticationBackend
from starlette.requests import HTTPConnection

from lms_presence.exceptions import AuthenticationError
from lms_presence.logging import logger
from lms_presence.schemas.user import UserModel
from lms_presence.settings import app_settings

TOKEN_ALGORITHMS = ["HS256"]


def get_signing_key(secret: str | None = None) -> JWK:
    """
    Build the symmetric key used to sign LMS session tokens.

    Args:
        secret: Shared secret, defaults to ``AUTH_TOKEN_SECRET``.

    Returns:
        Octet JWK wrapping the secret.
    """
    secret = secret if secret is not None else app_settings.AUTH_TOKEN_SECRET
    return JWK.from_password(secret)


def decode_auth_token(token: str, secret: str | None = None) -> UserModel:
    """
    Verify an LMS session token and build the user it belongs to.

    The token is an HS256 JWT carrying ``id``, ``email``, ``role`` and
    optionally ``name``. Signature and expiry are both checked.

    Args:
        token: Compact-serialized JWT.
        secret: Shared secret, defaults to ``AUTH_TOKEN_SECRET``.

    Returns:
        UserModel built from the token claims.

    Raises:
        AuthenticationError: With reason ``token_expired``,
            ``invalid_token`` or ``token_decode_error``.
    """
    try:
        verified = JWT(
            jwt=token,
            key=get_signing_key(secret),
            algs=TOKEN_ALGORITHMS,
            expected_type="JWS",
        )
        claims: dict[str, Any] = json.loads(verified.claims)
        return UserModel(**claims)

    except JWTExpired as ex:
        raise AuthenticationError(str(ex), reason="token_expired")

    except JWException as ex:
        raise AuthenticationError(str(ex), reason="invalid_token")

    except (ValueError, TypeError, PydanticValidationError) as ex:
        raise AuthenticationError(str(ex), reason="token_decode_error")


def extract_auth_token(conn: HTTPConnection) -> str:
    """
    Get the raw session token from a request.

    The ``auth-token`` cookie wins over an ``Authorization: Bearer``
    header.

    Returns:
        The token, or an empty string when none was sent.
    """
    token = conn.cookies.get(app_settings.AUTH_COOKIE_NAME, "")
    if token:
        return token

    scheme, credentials = get_authorization_scheme_param(
        conn.headers.get("authorization", "")
    )
    if scheme.lower() == "bearer":
        return credentials

    return ""


class AuthBackend(AuthenticationBackend):  # type: ignore[misc]
    """
    Authentication backend resolving LMS session tokens.

    The backend never rejects a request: a missing, malformed, expired or
    forged token leaves the request anonymous, and endpoints that need an
    identity enforce it with ``require_roles``.

    On success it returns the user's role as the only auth scope and the
    ``UserModel`` as ``request.user``.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.excluded_paths = app_settings.EXCLUDED_PATHS

    async def authenticate(
        self, conn: HTTPConnection
    ) -> tuple[AuthCredentials, UserModel] | None:
        """
        Authenticates a request by verifying its session token.

        Args:
            conn: The incoming request.

        Returns:
            Tuple of (AuthCredentials, UserModel) on success, None for
            excluded paths and anonymous requests.
        """
        if self.excluded_paths.match(conn.url.path):
            return None

        token = extract_auth_token(conn)
        if not token:
            return None

        try:
            user = decode_auth_token(token)
        except AuthenticationError as ex:
            logger.info(
                f"Ignoring session token ({ex.reason}): {ex.message}",
                extra={"auth_failure_reason": ex.reason},
            )
            return None

        return AuthCredentials(user.roles), user
