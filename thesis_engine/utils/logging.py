"""
Logging configuration for the Market Thesis Engine.
"""
import logging
import sys
from typing import Any, Optional, TextIO

import structlog


def configure_logging(level: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Falls back to ``LOG_LEVEL`` from settings when omitted.
        stream: Log destination, stdout by default
    """
    if level is None:
        from thesis_engine.config.settings import settings
        level = settings.logging.LEVEL

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, level.upper())
    )

    # Configure structlog
    shared_processors = [
        # Instrument context bound by log_context
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if sys.stderr.isatty():
        # Pretty printing for development
        shared_processors.append(structlog.dev.ConsoleRenderer())
    else:
        # JSON for production
        shared_processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=shared_processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    return structlog.get_logger(name)


def log_context(**values: Any):
    """
    Bind fields to every structlog event emitted inside a ``with`` block.

    The synthesizer binds the instrument being classified so that component
    logs (scoring, gating) carry ``security_id`` and ``symbol`` without
    threading them through each call. Bindings live in context variables,
    so concurrent threads and tasks do not see each other's values.
    """
    return structlog.contextvars.bound_contextvars(**values)
