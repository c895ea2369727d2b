"""Structured logging configuration using structlog."""

import logging
import sys
from typing import Any

import structlog

# Chatty third-party loggers; archive downloads and relay calls log per request
_QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "clawforge-certification",
    service_version: str | None = None,
) -> None:
    """
    Configure structured logging for the certification service.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, output JSON; if False, output colored console format
        service_name: Bound to every entry as ``service``
        service_version: Bound as ``version`` when given
    """
    log_level = getattr(logging, level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_format:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    context: dict[str, Any] = {"service": service_name}
    if service_version:
        context["version"] = service_version
    structlog.contextvars.bind_contextvars(**context)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def bind_request_context(
    request_id: str,
    actor_id: str | None = None,
    **kwargs: Any,
) -> None:
    """Bind the request id and acting user to all subsequent log entries."""
    context = {"request_id": request_id}
    if actor_id:
        context["actor_id"] = actor_id
    context.update(kwargs)
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    """Drop request-scoped keys, keeping the service binding."""
    structlog.contextvars.unbind_contextvars("request_id", "actor_id")
