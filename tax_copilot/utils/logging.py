"""
Structured logging utilities for Tax Copilot.

This module provides:
- Structured JSON logging for production
- Console logging for development
- Correlation ID support so every query can be traced to its audit entry
"""

import logging
import sys
from contextvars import ContextVar
from uuid import uuid4

import structlog
from structlog.types import EventDict, Processor

APP_NAME = "tax-copilot"

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Correlation id of the current request, or None outside a request."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Bind a correlation id to the current context.

    The HTTP middleware calls this with the caller's X-Correlation-ID; the
    query pipeline reads it back when it writes the audit entry. An empty or
    missing id is replaced by a new UUID4 string.

    Returns:
        The id now bound.
    """
    cid = correlation_id or str(uuid4())
    correlation_id_var.set(cid)
    return cid


def clear_correlation_id() -> None:
    """Clear the correlation ID from the current context."""
    correlation_id_var.set(None)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Structlog processor adding the context correlation ID to log entries."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Structlog processor adding the application name to log entries."""
    event_dict["app"] = APP_NAME
    return event_dict


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: 'json' for production, 'console' for development.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_id,
        add_app_context,
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=getattr(logging, log_level),
        )
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]
        logging.basicConfig(
            format="%(levelname)s %(name)s %(message)s",
            stream=sys.stdout,
            level=getattr(logging, log_level),
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Suppress noisy third-party loggers
    for noisy in ("httpx", "httpcore", "chromadb", "openai", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Module-level structlog logger."""
    return structlog.get_logger(name)


class LoggerMixin:
    """
    Gives a class a ``logger`` named after it.

    Usage:
        class IngestionPipeline(LoggerMixin):
            async def ingest(self, document_id):
                self.logger.info("Starting ingestion", document_id=document_id)
    """

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get a logger bound to this class."""
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger
