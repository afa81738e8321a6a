"""Logging configuration for the trust engine using loguru with automatic dev/prod detection."""

import sys
from loguru import logger

from trust_system.config.settings import settings


def configure_logging(level: str | None = None) -> None:
    """
    Configure loguru based on environment settings.

    Behavior:
    - Development (TTY + console format): Colorized, human-readable output
    - Production (non-TTY or json format): JSON-structured logs to stdout
    - Respects LOG_LEVEL from settings unless a level is passed explicitly

    Args:
        level: Optional level overriding settings.log_level
    """
    logger.remove()

    is_tty = sys.stderr.isatty()
    use_console_format = settings.log_format.lower() == "console"
    log_level = (level or settings.log_level).upper()

    if is_tty and use_console_format:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[component]}</cyan> | <level>{message}</level>",
            level=log_level,
            colorize=True,
        )
    else:
        logger.add(
            sys.stdout,
            format="{message}",
            level=log_level,
            serialize=True,
            diagnose=False,  # No variable inspection in trust data dumps
        )


def get_logger(component: str):
    """
    Get a logger instance bound to a specific component name.

    Args:
        component: Component/module name for log context

    Returns:
        Logger instance with component context

    Example:
        >>> log = get_logger("TrustInference")
        >>> log.debug("Explicit trust found")
    """
    return logger.bind(component=component)


# Configure logging on module import
configure_logging()

__all__ = ["logger", "get_logger", "configure_logging"]
