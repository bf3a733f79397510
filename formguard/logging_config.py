"""Centralized logging configuration for formguard."""

import logging
import os
import sys
from typing import Optional

from starlette.requests import Request


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("formguard")

    if logger.handlers:
        return logger

    # Set log level
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Prevent duplicate logs
    logger.propagate = False

    return logger


def get_logger() -> logging.Logger:
    """Get the application logger instance."""
    return logging.getLogger("formguard")


def _client_ip(request: Request) -> str:
    return getattr(request.client, "host", "unknown") if request.client else "unknown"


def log_csrf_event(
    event_type: str,
    context: str,
    success: bool,
    request: Optional[Request] = None,
    extra_data: Optional[dict] = None,
) -> None:
    """Log a token lifecycle event.

    Token values are never part of the record; only the context they belong to.

    Args:
        event_type: Type of event (generate, validate, clear, prune)
        context: The context label the event concerns
        success: Whether the operation succeeded
        request: Optional request the event happened in
        extra_data: Optional additional data to log
    """
    logger = get_logger()

    log_data = {
        "event_type": event_type,
        "context": context,
        "success": success,
    }

    if request is not None:
        log_data["method"] = request.method
        log_data["path"] = request.url.path
        log_data["client_ip"] = _client_ip(request)

    if extra_data:
        log_data.update(extra_data)

    level = logging.INFO if success else logging.WARNING
    logger.log(level, f"CSRF event: {log_data}")


def log_error(
    error: Exception,
    request: Request,
    context: Optional[str] = None,
) -> None:
    """Log application errors.

    Args:
        error: Exception that occurred
        request: Request being served when it occurred
        context: Optional context description
    """
    logger = get_logger()

    log_data = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "path": request.url.path,
        "method": request.method,
        "client_ip": _client_ip(request),
    }

    if context:
        log_data["context"] = context

    logger.error(f"Application error: {log_data}", exc_info=True)


# Initialize logging on import
_log_level = os.getenv("LOG_LEVEL", "INFO")
setup_logging(_log_level)
