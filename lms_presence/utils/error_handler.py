"""
Error handling for HTTP endpoints.

``handle_http_errors`` converts AppException instances raised inside an
endpoint into HTTPException with the matching status code, and turns any
other unexpected failure into a 500 carrying the endpoint's error
message. ``register_exception_handlers`` renders HTTP errors (including
Starlette's own 404 and 405) and AppExceptions raised outside an
endpoint body, such as in a role dependency, in the ``{"error": ...}``
shape the LMS frontend expects.
"""

from functools import wraps
from typing import Any, Callable

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lms_presence.exceptions import AppException
from lms_presence.logging import logger

DEFAULT_ERROR_MESSAGE = "Error interno del servidor"


def handle_http_errors(
    func: Callable | None = None, *, error_message: str = DEFAULT_ERROR_MESSAGE
) -> Callable:
    """
    Decorator for HTTP endpoints to convert exceptions to HTTPException.

    Can be used bare or with an endpoint-specific 500 message.

    Args:
        func: The HTTP endpoint function to wrap.
        error_message: Detail returned when an unexpected error occurs.

    Returns:
        Wrapped function that handles exceptions.

    Example:
        ```python
        @router.post("/api/network/register")
        @handle_http_errors(error_message="Error al registrar la conexión")
        async def register_connection(...) -> RegisterResponse:
            ...
        ```
    """

    def decorator(endpoint: Callable) -> Callable:
        @wraps(endpoint)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await endpoint(*args, **kwargs)
            except HTTPException:
                raise
            except AppException as ex:
                logger.warning(
                    f"AppException in {endpoint.__name__}: {ex.message}",
                    extra={"exception_type": type(ex).__name__},
                )
                raise HTTPException(
                    status_code=ex.http_status,
                    detail=ex.message,
                )
            except Exception as ex:
                logger.error(
                    f"Unexpected error in {endpoint.__name__}: {ex}",
                    exc_info=True,
                )
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=error_message,
                )

        return wrapper

    if func is not None:
        return decorator(func)

    return decorator


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render HTTPException as ``{"error": detail}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=exc.headers,
    )


async def app_exception_handler(
    request: Request, exc: AppException
) -> JSONResponse:
    """Render an AppException as ``{"error": message}`` with its status."""
    logger.info(
        f"{type(exc).__name__} on {request.url.path}: {exc.message}"
    )
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": exc.message},
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures as ``{"error": ..., "details": ...}``."""
    logger.debug(f"Request validation failed for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Solicitud inválida",
            "details": jsonable_errors(exc),
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    """
    Install the application's exception handlers.

    Args:
        app: FastAPI application.
    """
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(
        RequestValidationError, validation_exception_handler
    )
