"""
Logging configuration for ytlive.

This module configures structlog for JSON logging across the application.
Stream keys are credentials: every event passes through ``redact_secrets``
before rendering.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import structlog

from .settings import settings

# Event keys whose values are always masked
SECRET_KEYS = (
    "destination_key",
    "stream_key",
    "key",
    "token",
    "password",
    "secret",
    "database_url",
)

# Patterns to redact in string values
SECRET_PATTERNS = (
    (re.compile(r"(rtmps?://\S+/)[^\s/]+"), r"\1***"),  # RTMP ingest URL ending in a stream key
    (re.compile(r"(://[^:/\s]+:)[^@\s]+@"), r"\1***@"),  # URLs with credentials
)

REDACTED = "***REDACTED***"


def _redact_value(value: Any) -> Any:
    if isinstance(value, str):
        for pattern, replacement in SECRET_PATTERNS:
            value = pattern.sub(replacement, value)
        return value
    if isinstance(value, dict):
        return {k: _redact_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact_value(item) for item in value]
    return value


def redact_secrets(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Redact sensitive information from log events."""
    for key in list(event_dict.keys()):
        if any(secret in key.lower() for secret in SECRET_KEYS):
            event_dict[key] = REDACTED
        else:
            event_dict[key] = _redact_value(event_dict[key])
    return event_dict


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog; JSON lines by default, human-readable with ``log_format="console"``."""
    if (log_format or settings.log_format).lower() == "console":
        renderer: Any = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            redact_secrets,  # Redact secrets before rendering
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a configured logger with service context."""
    logger = structlog.get_logger(name)
    return logger.bind(service="ytlive", env=settings.env)
