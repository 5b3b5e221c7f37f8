"""Structured logging configuration using structlog."""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import BoundLogger

from homecare_metrics.core.config import settings


def configure_logging() -> None:
    """Configure structured logging with JSON output."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.INFO if not settings.debug else logging.DEBUG,
    )

    # Quiet third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_request(logger: BoundLogger, method: str, path: str, status_code: int,
                duration: float, request_id: str) -> None:
    """Log HTTP request details."""
    logger.info(
        "HTTP request",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=round(duration * 1000, 2),
        request_id=request_id
    )


def log_error(logger: BoundLogger, error: Exception, request_id: str = None,
              context: dict[str, Any] = None) -> None:
    """Log error with enhanced context."""
    logger.error(
        "Application error",
        error=str(error),
        error_type=type(error).__name__,
        request_id=request_id,
        context=context or {}
    )
