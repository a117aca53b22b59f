"""
structlog setup for the POS sync core.

Events are rendered for a terminal while developing and as one JSON object per
line elsewhere. A cashier session binds its identity once with
``bind_session_context`` and every event logged while it is open carries it.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from possync.config.settings import Settings, get_settings

# Libraries that log every request or query at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "uvicorn.access")


def _app_context(settings: Settings) -> Processor:
    context = {
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }

    def add_app_context(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_app_context


def _renderers(settings: Settings) -> list[Processor]:
    if settings.environment == "development":
        return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]
    return [
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(settings: Settings | None = None) -> None:
    """Route structlog through stdlib logging at the configured level."""
    settings = settings or get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        _app_context(settings),
        *_renderers(settings),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_session_context(**context: Any) -> None:
    """Attach ``context`` to every event logged from the current task onwards."""
    structlog.contextvars.bind_contextvars(**context)


def clear_session_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
