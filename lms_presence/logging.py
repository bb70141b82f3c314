"""
Logging setup for the presence service.

The root logger writes one human-readable line per record to stdout.
ERROR records are also appended as JSON lines to ``LOG_FILE_PATH`` and,
with ``LOKI_ENABLED``, INFO and above are pushed to Loki as JSON.

JSON records carry the correlation ID of the current request, the fields
set through :func:`set_log_context` and any ``extra=`` passed to the
logging call.
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any

from lms_presence.middlewares.correlation_id import current_correlation_id
from lms_presence.settings import app_settings

CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context")

# Attributes every LogRecord has; anything else came in through extra=
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def set_log_context(**fields: Any) -> None:
    """
    Attach fields to every JSON record of the current request.

    Example:
        >>> set_log_context(session_id="abc", user_id=12)
    """
    _log_context.set({**get_log_context(), **fields})


def get_log_context() -> dict[str, Any]:
    return _log_context.get({})


def clear_log_context() -> None:
    _log_context.set({})


def _correlation_id(record: logging.LogRecord) -> str:
    return getattr(record, "correlation_id", "") or current_correlation_id()


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for the error file and Loki."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "environment": app_settings.ENVIRONMENT,
        }

        cid = _correlation_id(record)
        if cid:
            payload["request_id"] = cid

        payload.update(get_log_context())
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
        )

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Single-line console output.

    INFO lines are kept short; every other level also shows the
    ``module.function:line`` the record came from.
    """

    def __init__(self) -> None:
        super().__init__(datefmt=CONSOLE_DATEFMT)

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{self.formatTime(record, self.datefmt)} - "
            f"[{_correlation_id(record) or '-'}] {record.levelname}:"
        )
        if record.levelno != logging.INFO:
            line += f" {record.module}.{record.funcName}:{record.lineno} -"
        line += f" {record.getMessage()}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _loki_handler() -> logging.Handler | None:
    """Build the Loki push handler, or None without the ``loki`` extra."""
    try:
        from logging_loki import LokiHandler
    except ImportError:
        return None

    handler = LokiHandler(
        url=f"{app_settings.LOKI_URL}/loki/api/v{app_settings.LOKI_VERSION}/push",
        tags={
            "application": "lms-presence",
            "environment": app_settings.ENVIRONMENT,
        },
        version=app_settings.LOKI_VERSION,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging() -> logging.Logger:
    """Configure and return the root logger."""
    root = logging.getLogger()
    root.setLevel(app_settings.LOG_LEVEL.upper())
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ConsoleFormatter())
    root.addHandler(console)

    try:
        error_file = logging.FileHandler(app_settings.LOG_FILE_PATH)
    except OSError as ex:
        root.warning(f"Error log file disabled: {ex}")
    else:
        error_file.setLevel(logging.ERROR)
        error_file.setFormatter(JSONFormatter())
        root.addHandler(error_file)

    if app_settings.LOKI_ENABLED:
        loki = _loki_handler()
        if loki is None:
            root.warning("LOKI_ENABLED is set but python-logging-loki is missing")
        else:
            root.addHandler(loki)

    # Keep test output quiet
    if "pytest" in sys.modules:
        logging.disable(logging.ERROR)

    return root


logger = setup_logging()
