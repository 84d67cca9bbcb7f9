"""Structured logging for the Imagineer campaign backend.

Logging goes through structlog with keyword-style events. Development
gets the coloured console renderer and production gets one JSON object
per line. Every entry is stamped with ``app="imagineer"``, and values
under secret-looking keys (API keys, tokens, authorization headers)
are masked before rendering, so a stray ``api_key=...`` never reaches
the log stream.

Example:
    >>> from imagineer.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Analysis job created", job_id=12, items=7)
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from collections.abc import Iterator

    from structlog.types import EventDict, WrappedLogger


APP_NAME = "imagineer"

STDLIB_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Chatty third-party loggers and the level they are held at
QUIET_LOGGERS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "openai": logging.WARNING,
    "urllib3": logging.WARNING,
    "uvicorn.access": logging.WARNING,
}

SECRET_KEYS = frozenset({
    "api_key",
    "content_gen_api_key",
    "access_token",
    "token",
    "authorization",
    "client_secret",
    "jwt_secret",
    "encryption_key",
})


# =============================================================================
# Processors
# =============================================================================


def add_app_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Stamp the application name on every entry."""
    event_dict["app"] = APP_NAME
    return event_dict


def mask_secrets(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Replace values logged under secret keys.

    Only the last four characters survive, matching what the settings
    API shows for a stored key.

    Args:
        logger: The wrapped logger instance.
        method_name: Name of the logging method called.
        event_dict: The event dictionary to modify.

    Returns:
        The event dictionary with secret values masked.
    """
    for key in SECRET_KEYS.intersection(event_dict):
        value = event_dict[key]
        if not value:
            continue
        text = str(value)
        event_dict[key] = "****" if len(text) <= 4 else "****" + text[-4:]
    return event_dict


def _renderer(json_format: bool) -> Processor:
    if json_format:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the standard library loggers.

    Args:
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unknown names fall back to INFO.
        json_format: Render JSON lines instead of console output.
        log_file: Also write standard library records to this file.

    Example:
        >>> configure_logging(level="DEBUG", json_format=True)
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        mask_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        processors.append(structlog.processors.format_exc_info)
    processors.append(_renderer(json_format))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # uvicorn, openai and requests log through the standard library
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(format=STDLIB_FORMAT, level=numeric_level, handlers=handlers, force=True)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(quiet_level, numeric_level))


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger, typically with ``__name__``."""
    return structlog.get_logger(name)


# =============================================================================
# Context
# =============================================================================


def bind_context(**kwargs: Any) -> None:
    """Bind values that appear in every subsequent entry of this context.

    Example:
        >>> bind_context(request_id="abc123", path="/api/campaigns")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind values for the duration of a block, starting from a clean context.

    The request middleware wraps each request in one, so ids from one
    request never leak into the next.
    """
    clear_context()
    bind_context(**kwargs)
    try:
        yield
    finally:
        clear_context()


__all__ = [
    "APP_NAME",
    "SECRET_KEYS",
    "add_app_context",
    "mask_secrets",
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "log_context",
]
