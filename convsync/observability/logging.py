"""Structured logging configuration using structlog.

JSON output for production, console output for development. Signed voice
URLs and query-string credentials are masked before rendering.
"""

import logging
import re
import sys
from typing import Any, cast

import structlog
from structlog.types import EventDict, WrappedLogger

REDACTED = "[REDACTED]"

# Event keys whose whole value is a credential
SECRET_KEYS: frozenset[str] = frozenset({
    "signed_url",
    "session_url",
    "token",
    "authorization",
})

# ?token=... or &signature=... inside URLs and error texts
URL_SECRET_PATTERN = re.compile(r"([?&](?:token|signature|sig|key)=)[^&\s]+", re.IGNORECASE)


def _redact(value: Any) -> Any:
    if isinstance(value, str):
        return URL_SECRET_PATTERN.sub(rf"\1{REDACTED}", value)
    if isinstance(value, dict):
        return {
            k: REDACTED if k.lower() in SECRET_KEYS else _redact(v) for k, v in value.items()
        }
    return value


def redact_secrets(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """structlog processor masking signed URLs and URL credentials."""
    return cast(EventDict, _redact(dict(event_dict)))


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        format: "json" for production, "console" for development
        redact: Whether to mask signed URLs and URL credentials
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if redact:
        processors.append(redact_secrets)

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    level_num = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def setup_logging_from_settings(settings: Any) -> None:
    """Configure logging from the observability.logging section."""
    config = settings.observability.logging
    setup_logging(level=config.level, format=config.format, redact=config.redact_secrets)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
