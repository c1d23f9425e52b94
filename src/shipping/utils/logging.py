"""Logging setup for the shipping service.

Handlers are plain stdlib ones: stdout, plus a rotating ``shipping.log`` and a
separate ``shipping_error.log`` when a log directory is configured. structlog
sits on top so modules log with keyword context::

    logger.info("Task planned", task_id=task.id, route_code=task.route_code)

Production renders JSON lines for the log shipper; everywhere else gets the
coloured console renderer.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

import structlog

DEFAULT_LEVELS = {
    "production": "INFO",
    "test": "WARNING",
}

_MAX_BYTES = 10 * 1024 * 1024

# Chatty at INFO: protean logs every UoW commit, uvicorn every request
_QUIET_LOGGERS = ("protean", "urllib3", "asyncio", "uvicorn.access")


def _env() -> str:
    return os.getenv("PROTEAN_ENV", "development").lower()


def _level() -> str:
    return os.getenv("LOG_LEVEL", DEFAULT_LEVELS.get(_env(), "DEBUG")).upper()


def _rotating(path: Path, level: int | str) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=_MAX_BYTES, backupCount=5, encoding="utf-8")
    handler.setLevel(level)
    return handler


def _handlers(level: str, log_dir: str | None) -> list[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    handlers: list[logging.Handler] = [console]

    # Tests stay on stdout only
    directory = log_dir or os.getenv("SHIPPING_LOG_DIR")
    if directory is None and _env() == "test":
        return handlers

    path = Path(directory or "logs")
    path.mkdir(parents=True, exist_ok=True)
    handlers.append(_rotating(path / "shipping.log", level))
    handlers.append(_rotating(path / "shipping_error.log", logging.ERROR))
    return handlers


def _renderer():
    if _env() == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty(), exception_formatter=structlog.dev.plain_traceback)


def configure_logging(log_dir: str | None = None) -> None:
    """Wire stdlib handlers and structlog processors for the current PROTEAN_ENV."""
    level = _level()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = _handlers(level, log_dir)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            _renderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
