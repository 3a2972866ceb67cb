"""Logging configuration."""

import logging
import sys
from typing import Any

import structlog

from giveroom.settings import settings

# Event keys whose values never reach the log output
SENSITIVE_KEYS = frozenset({
    "password",
    "password_hash",
    "proof",
    "token",
    "handle",
    "secret_key",
    "cookie",
})

REDACTED = "[redacted]"


def redact_sensitive(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask credentials and identity proofs passed as event context."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def _level() -> int:
    return logging.getLevelName(settings.log_level.upper())


def configure_logging() -> None:
    """Configure structured logging.

    Console or JSON output according to ``log_format``.
    Sensitive keys are redacted before rendering in both formats.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        redact_sensitive,
    ]

    if settings.log_format == "json":
        processors = shared_processors + [
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level()),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route structlog output and third-party libraries through one stdout handler
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=_level(),
    )
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.env == "development" else logging.WARNING
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance bound to a module name."""
    return structlog.get_logger(name)
