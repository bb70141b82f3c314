"""
Custom exception classes for the application.

Every application exception carries the HTTP status code used when it
reaches an endpoint, so handlers can raise domain errors and let
``handle_http_errors`` translate them.
"""


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    Attributes:
        message: Human-readable error message.
        http_status: HTTP status code for REST API responses.
    """

    http_status: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(AppException):
    """
    Data validation failed.

    Raised when request input fails validation checks before processing.
    """

    http_status = 400


class AuthenticationError(AppException):
    """
    Authentication failed.

    Raised when a session token is expired or cannot be verified, and when
    an endpoint that needs an identity is called anonymously.

    Attributes:
        reason: A machine-readable error code (e.g. 'token_expired').
    """

    http_status = 401

    def __init__(self, message: str, reason: str = "not_authenticated") -> None:
        self.reason = reason
        super().__init__(message)


class AuthorizationError(AppException):
    """
    Authorization failed.

    Raised when a user lacks the role required for an operation.
    """

    http_status = 403


class ExternalServiceError(AppException):
    """
    An upstream service (e.g. IP geolocation) failed or answered badly.
    """

    http_status = 502
