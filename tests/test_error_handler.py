"""
Tests for error handler decorators and exception handlers.

Tests handle_http_errors and the ``{"error": ...}`` response format.
"""

import pytest
from fastapi import Depends, FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel

from lms_presence.exceptions import (
    AppException,
    AuthorizationError,
    ExternalServiceError,
    ValidationError as AppValidationError,
)
from lms_presence.utils.error_handler import (
    handle_http_errors,
    register_exception_handlers,
)


class TestHandleHTTPErrors:
    """Test handle_http_errors decorator for HTTP endpoints."""

    @pytest.mark.asyncio
    async def test_successful_execution(self):
        @handle_http_errors
        async def endpoint():
            return {"success": True}

        assert await endpoint() == {"success": True}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exception, status_code",
        [
            (AppValidationError("sessionId es requerido"), 400),
            (AuthorizationError("Acceso denegado"), 403),
            (ExternalServiceError("lookup down"), 502),
            (AppException("generic"), 500),
        ],
    )
    async def test_app_exceptions_map_to_status(self, exception, status_code):
        @handle_http_errors
        async def endpoint():
            raise exception

        with pytest.raises(HTTPException) as exc_info:
            await endpoint()

        assert exc_info.value.status_code == status_code
        assert exc_info.value.detail == exception.message

    @pytest.mark.asyncio
    async def test_http_exception_passes_through(self):
        @handle_http_errors
        async def endpoint():
            raise HTTPException(status_code=418, detail="teapot")

        with pytest.raises(HTTPException) as exc_info:
            await endpoint()

        assert exc_info.value.status_code == 418
        assert exc_info.value.detail == "teapot"

    @pytest.mark.asyncio
    async def test_unexpected_error_uses_default_message(self):
        @handle_http_errors
        async def endpoint():
            raise RuntimeError("boom")

        with pytest.raises(HTTPException) as exc_info:
            await endpoint()

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Error interno del servidor"

    @pytest.mark.asyncio
    async def test_unexpected_error_uses_custom_message(self):
        @handle_http_errors(error_message="Error al obtener las conexiones")
        async def endpoint():
            raise KeyError("boom")

        with pytest.raises(HTTPException) as exc_info:
            await endpoint()

        assert exc_info.value.detail == "Error al obtener las conexiones"

    def test_preserves_endpoint_metadata(self):
        async def list_things(limit: int = 10):
            """List things."""

        wrapped = handle_http_errors(list_things)

        assert wrapped.__name__ == "list_things"
        assert wrapped.__doc__ == "List things."
        assert wrapped.__wrapped__ is list_things


class Payload(BaseModel):
    count: int


@pytest.fixture
def error_client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/fail")
    async def fail():
        raise HTTPException(status_code=403, detail="Acceso denegado")

    @app.post("/payload")
    async def payload(body: Payload):
        return body

    def require_something():
        raise AuthorizationError("Acceso denegado")

    @app.get("/guarded", dependencies=[Depends(require_something)])
    async def guarded():
        return {"success": True}

    return TestClient(app)


def test_unknown_route_rendered_as_error(error_client):
    response = error_client.get("/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_wrong_method_rendered_as_error(error_client):
    response = error_client.delete("/fail")

    assert response.status_code == 405
    assert response.json() == {"error": "Method Not Allowed"}


def test_app_exception_from_dependency_rendered_as_error(error_client):
    response = error_client.get("/guarded")

    assert response.status_code == 403
    assert response.json() == {"error": "Acceso denegado"}


def test_http_exception_rendered_as_error(error_client):
    response = error_client.get("/fail")

    assert response.status_code == 403
    assert response.json() == {"error": "Acceso denegado"}


def test_request_validation_rendered_as_400(error_client):
    response = error_client.post("/payload", json={"count": "many"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Solicitud inválida"
    assert body["details"][0]["loc"] == ["body", "count"]


def test_malformed_json_rendered_as_400(error_client):
    response = error_client.post(
        "/payload",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Solicitud inválida"
