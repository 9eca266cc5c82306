"""Structured logging helpers built on top of structlog."""

from __future__ import annotations

import logging
from typing import Any

import structlog

from mailbridge.config import settings
from mailbridge.token_security import redact_sensitive_text

BoundLogger = structlog.stdlib.BoundLogger

_configured = False


def _coerce_level(level_name: str) -> int:
    """Translate a string/int environment value into a logging level."""
    if level_name.isdigit():
        return int(level_name)
    return getattr(logging, level_name.upper(), logging.INFO)


def _redact_event(_logger: Any, _method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask bearer tokens in every string value before rendering."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = redact_sensitive_text(value)
    return event_dict


_timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)


def build_console_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Formatter shared by structlog and plain stdlib records; redacts before rendering."""
    # Tracebacks of stdlib records are rendered to text here so redaction sees them.
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _timestamper,
        structlog.processors.format_exc_info,
    ]
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _redact_event,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        foreign_pre_chain=pre_chain,
    )


def _configure_logging() -> None:
    """Configure structlog with a console renderer on the stdlib root logger."""
    global _configured
    if _configured:
        return

    effective_level = _coerce_level(settings.log_level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(effective_level)
    console_handler.setFormatter(build_console_formatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(effective_level)
    root_logger.addHandler(console_handler)
    logging.captureWarnings(True)

    # Request/response logging from HTTP and Slack clients can include auth headers.
    for name in ("urllib3", "slack_bolt", "slack_sdk"):
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(effective_level),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str = "mailbridge", **bindings: Any) -> BoundLogger:
    """Return the structured logger, optionally bound with context."""
    if not _configured:
        _configure_logging()
    logger = structlog.get_logger(name)
    if bindings:
        logger = logger.bind(**bindings)
    return logger


def bind_context(**context: Any) -> None:
    """Bind context variables to be included with every log entry."""
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
