"""
Pytest configuration and fixtures for testing.

This module provides shared fixtures for session tokens, a controllable
clock, the connection registry and the FastAPI test client.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

# Set required environment variables for testing before importing app modules
os.environ.setdefault(
    "AUTH_TOKEN_SECRET", "test-secret-for-lms-presence-0123456789abcdef"
)
os.environ.setdefault("LOG_FILE_PATH", os.devnull)
os.environ.setdefault("PRIVILEGED_ROLE", "profesor")


class FakeClock:
    """Manually advanced UTC clock for staleness tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    """
    Provides a controllable clock.

    Returns:
        FakeClock: Clock starting at 2024-03-01 09:00 UTC.
    """
    return FakeClock()


@pytest.fixture
def registry(clock):
    """
    Provides an empty connection registry driven by the fake clock.

    Returns:
        ConnectionRegistry: Registry with the default 60 minute threshold.
    """
    from lms_presence.managers.connection_registry import ConnectionRegistry

    return ConnectionRegistry(clock=clock)


@pytest.fixture
def app(registry):
    """
    Provides the full application wired to the test registry.

    Returns:
        FastAPI: Application instance.
    """
    from lms_presence import application

    return application(registry=registry)


@pytest.fixture
def client(app):
    """
    Provides a test client for the application.

    Returns:
        TestClient: FastAPI test client instance.
    """
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def teacher_claims():
    """
    Provides session token claims of a teacher (privileged role).

    Returns:
        dict: Token claims.
    """
    return {
        "id": 7,
        "name": "Ana Torres",
        "email": "ana.torres@example.com",
        "role": "profesor",
    }


@pytest.fixture
def student_claims():
    """
    Provides session token claims of a student.

    Returns:
        dict: Token claims.
    """
    return {
        "id": 42,
        "name": "Luis Pérez",
        "email": "luis.perez@example.com",
        "role": "estudiante",
    }


@pytest.fixture
def teacher_token(teacher_claims):
    from tests.mocks.auth_mocks import create_auth_token

    return create_auth_token(teacher_claims)


@pytest.fixture
def student_token(student_claims):
    from tests.mocks.auth_mocks import create_auth_token

    return create_auth_token(student_claims)


@pytest.fixture
def teacher_headers(teacher_token):
    """
    Provides HTTP headers authenticating a teacher.

    Returns:
        dict: Headers dictionary with Authorization header
    """
    return {"Authorization": f"Bearer {teacher_token}"}


@pytest.fixture
def student_headers(student_token):
    return {"Authorization": f"Bearer {student_token}"}


# Fixture Factories
def create_connection_data_fixture(
    ip: str = "203.0.113.7",
    identity: dict | None = None,
    network_info: dict | None = None,
    user_agent: str = "Mozilla/5.0 (X11; Linux x86_64)",
):
    """
    Factory function to create ConnectionData instances for testing.

    Args:
        ip: Client IP
        identity: Identity fields, None for an anonymous connection
        network_info: Client network diagnostics
        user_agent: User agent string

    Returns:
        ConnectionData: Connection data instance
    """
    from lms_presence.schemas.connection import ConnectionData, Identity

    return ConnectionData(
        identity=Identity(**identity) if identity else None,
        ip=ip,
        network_info=network_info or {},
        user_agent=user_agent,
    )
