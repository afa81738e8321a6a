"""Structured logging for the trust store and recompute tracing, using structlog.

Level and output format come from the same settings that drive the loguru
configuration in trust_system.config.logging.
"""

import sys
import uuid
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import JSONRenderer

from trust_system.config.settings import settings


def configure_structured_logging() -> None:
    """
    Configure structlog processors and renderer from settings.

    A colorized console renderer is used on a TTY with log_format=console,
    JSON lines otherwise.
    """
    processors = [
        merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if sys.stderr.isatty() and settings.log_format.lower() == "console":
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    else:
        processors.append(JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level.upper()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_structured_logger(name: str, **context: Any) -> structlog.BoundLogger:
    """
    Get a structlog logger with bound context.

    Example:
        >>> logger = get_structured_logger("trust_store", component="TrustStore")
        >>> logger.info("inferred_trust_persisted", user_id="u-1", written=10)
    """
    logger = structlog.get_logger(name)
    if context:
        logger = logger.bind(**context)
    return logger


def get_recompute_id() -> str:
    """UUID correlating every log line of one trust network recompute."""
    return str(uuid.uuid4())


configure_structured_logging()


__all__ = [
    "get_structured_logger",
    "get_recompute_id",
    "configure_structured_logging",
]
