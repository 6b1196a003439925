"""Structured logging infrastructure.

This module provides structured logging that works for:
- Local CLI usage (rich console output)
- Service deployments that embed the compiler (JSON structured logs)

Usage:
    from reportflow.core.logging import get_logger, configure_logging

    # Configure at startup
    configure_logging(log_level="INFO", log_format="console")

    # Get logger in any module
    logger = get_logger(__name__)

    # Log with structured context
    logger.info("graph_compiled", report_id="abc123", nodes=7)

    # Use context managers for automatic context propagation
    with log_context(report_id="report-123"):
        logger.info("node_skipped", node_id="n1", kind="pivot")
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any, cast

import structlog
from structlog.typing import FilteringBoundLogger

# Context variables for correlation
_log_context: ContextVar[dict[str, Any] | None] = ContextVar("log_context", default=None)


def _add_log_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Processor to add scoped context to log events."""
    context = _log_context.get()
    if context:
        event_dict.update(context)
    return event_dict


def _stderr_logger_factory(*args: Any) -> structlog.PrintLogger:
    """PrintLogger on whatever sys.stderr is when the event is written."""
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(
    log_level: str = "WARNING",
    log_format: str = "console",
    show_timestamps: bool = True,
    color: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Output format ("console" for development, "json" for services)
        show_timestamps: Whether to show timestamps in console mode
        color: Whether to use colors in console mode
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_log_context,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if show_timestamps:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=color,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level.upper())),
        context_class=dict,
        logger_factory=_stderr_logger_factory,
        # sys.stderr is looked up per event, never cached
        cache_logger_on_first_use=False,
    )

    # Also configure stdlib logging for libraries (sqlalchemy)
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Bound structlog logger
    """
    return cast(FilteringBoundLogger, structlog.get_logger(name))


class LogContext:
    """Context manager for adding context to logs within a scope."""

    def __init__(self, **context: Any):
        self.context = context
        self.token: Any = None

    def __enter__(self) -> LogContext:
        current = _log_context.get() or {}
        self.token = _log_context.set({**current, **self.context})
        return self

    def __exit__(self, *args: Any) -> None:
        if self.token:
            _log_context.reset(self.token)


def log_context(**context: Any) -> LogContext:
    """Create a context manager for scoped logging context.

    Usage:
        with log_context(report_id="abc"):
            logger.info("graph_compiled")  # Will include report_id
    """
    return LogContext(**context)


# Initialize with default configuration
configure_logging()
