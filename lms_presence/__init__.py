# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
import sys
from asyncio import create_task, gather
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from starlette.middleware.authentication import AuthenticationMiddleware

from lms_presence.auth import AuthBackend
from lms_presence.logging import logger
from lms_presence.managers.connection_registry import ConnectionRegistry
from lms_presence.middlewares.correlation_id import CorrelationIDMiddleware
from lms_presence.middlewares.logging_context import LoggingContextMiddleware
from lms_presence.middlewares.prometheus import PrometheusMiddleware
from lms_presence.routing import collect_subrouters
from lms_presence.settings import app_settings
from lms_presence.tasks.connection_sweep import connection_sweep_task
from lms_presence.utils.error_handler import register_exception_handlers
from lms_presence.utils.metrics import app_info

__version__ = "1.0.0"


def build_connection_registry() -> ConnectionRegistry:
    """Create the connection registry from settings."""
    return ConnectionRegistry(
        stale_after=timedelta(
            seconds=app_settings.CONNECTION_STALE_AFTER_SECONDS
        ),
        sweep_every=app_settings.CONNECTION_SWEEP_EVERY,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application startup and shutdown.

    Startup:
    - Publishes the app_info metric
    - Starts the background sweep task when enabled

    Shutdown cancels background tasks and waits for them to finish.
    """
    logger.info("Application startup initiated")
    tasks = []

    app_info.labels(
        version=__version__,
        python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        environment=app_settings.ENVIRONMENT,
    ).set(1)

    interval = app_settings.CONNECTION_BACKGROUND_SWEEP_SECONDS
    if interval > 0:
        tasks.append(
            create_task(
                connection_sweep_task(app.state.connection_registry, interval)
            )
        )
        logger.info(f"Started connection sweep task every {interval}s")

    yield

    logger.info("Application shutdown initiated")

    if tasks:
        logger.info(f"Cancelling {len(tasks)} background tasks")
        for task in tasks:
            task.cancel()
        await gather(*tasks, return_exceptions=True)
        logger.info("All background tasks completed")

    logger.info("Application shutdown complete")


def application(registry: ConnectionRegistry | None = None) -> FastAPI:
    """
    Initializes and configures the FastAPI application.

    The connection registry is created here (or injected, for tests) and
    owned by the application through ``app.state.connection_registry``.

    Middlewares execute in reverse order of registration:
    CorrelationIDMiddleware → AuthenticationMiddleware →
    LoggingContextMiddleware → PrometheusMiddleware.

    Args:
        registry: Registry to use instead of one built from settings.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="LMS network presence",
        description="Tracks active LMS client connections",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.connection_registry = (
        registry if registry is not None else build_connection_registry()
    )

    app.include_router(collect_subrouters())
    register_exception_handlers(app)

    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(LoggingContextMiddleware)
    app.add_middleware(AuthenticationMiddleware, backend=AuthBackend())
    app.add_middleware(CorrelationIDMiddleware)

    return app
