"""Structured logging for dnd-solo.

Every module logs through structlog with keyword events, so a tool call,
a reference lookup or an LLM failure can be filtered by its fields
(``tool``, ``category``, ``model``...). Logs go to stderr; stdout belongs
to the CLI narration and the uvicorn access log.

Example:
    >>> from dnd_solo.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("State tool applied", tool="update_currency", change=-2)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger


MAX_FIELD_CHARS = 400
"""Longest string value logged verbatim; prompts and narration get cut."""

STDLIB_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Chatty HTTP layers under the OpenAI SDK, requests and uvicorn
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "openai", "uvicorn.access")


# =============================================================================
# Processors
# =============================================================================


def add_app_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag every entry with the application name."""
    event_dict["app"] = "dnd_solo"
    return event_dict


def truncate_long_values(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Shorten LLM-sized strings (raw responses, narration) in log fields.

    The event message itself is never cut.
    """
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_FIELD_CHARS:
            event_dict[key] = f"{value[:MAX_FIELD_CHARS]}... ({len(value)} chars)"
    return event_dict


def _processors(json_format: bool) -> list[Processor]:
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        truncate_long_values,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        return [*shared, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [
        *shared,
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty(), exception_formatter=structlog.dev.plain_traceback),
    ]


# =============================================================================
# Setup
# =============================================================================


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # sys.stderr is looked up per logger, not at configure time
    return structlog.PrintLogger(sys.stderr)


def configure_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Safe to call more than once; the last call wins (the API factory and
    the CLI both call it).

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Render JSON lines instead of the console format.
        log_file: Also append standard library records to this file.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=_processors(json_format),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format=STDLIB_FORMAT, level=log_level, stream=sys.stderr, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_file:
        handler = logging.FileHandler(log_file)
        handler.setLevel(log_level)
        handler.setFormatter(logging.Formatter(STDLIB_FORMAT))
        logging.getLogger().addHandler(handler)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Return a structlog logger, conventionally ``get_logger(__name__)``."""
    return structlog.get_logger(name)


# =============================================================================
# Context
# =============================================================================


def bind_context(**kwargs: Any) -> None:
    """Attach fields to every later log entry in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def turn_context(**kwargs: Any) -> Iterator[None]:
    """Bind fields (e.g. ``turn=3``) for the duration of one player turn.

    Example:
        >>> with turn_context(turn=3):
        ...     logger.info("Reconciling state")  # includes turn=3
    """
    structlog.contextvars.bind_contextvars(**kwargs)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*kwargs)


__all__ = [
    "MAX_FIELD_CHARS",
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "turn_context",
    "truncate_long_values",
]
