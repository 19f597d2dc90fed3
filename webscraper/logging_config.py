"""JSON log output for the service and the libraries it drives."""

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

SERVICE_NAME = "webscraper"

# Loggers that take over our handler instead of printing their own format.
_ADOPTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")

# Chatty at INFO/DEBUG: every static fetch, every playwright driver callback.
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def _json_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
            static_fields={"service": SERVICE_NAME},
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    )
    return handler


def setup_logging(log_level: str = "INFO") -> None:
    """Route root, uvicorn and library logs through one JSON stdout handler.

    Unknown level names fall back to INFO. Request-scoped fields such as
    ``url`` or ``session_id`` are passed via ``extra=`` at the call site
    and end up as top-level JSON keys.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = _json_handler()

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _ADOPTED_LOGGERS:
        adopted = logging.getLogger(name)
        adopted.handlers[:] = [handler]
        adopted.propagate = False

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
