"""Structured logging configuration for docsift."""

from __future__ import annotations

import logging

import structlog
from structlog.stdlib import LoggerFactory


def configure_logging(log_level: str = "WARNING", json_logs: bool = False) -> None:
    """
    Configure structlog for the extraction pipeline.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ...)
        json_logs: Emit JSON lines instead of the colored console format
    """
    numeric_level = getattr(logging, log_level.upper(), logging.WARNING)
    logging.basicConfig(level=numeric_level, format="%(message)s")

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.BoundLogger:
    """Get a logger bound to a pipeline component."""
    # Initial values keep the proxy lazy, so module-level loggers pick up
    # configure_logging() calls made after import.
    return structlog.get_logger(component, component=component)
