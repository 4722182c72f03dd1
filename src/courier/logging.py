"""Structured logging for Courier.

Engine modules log through structlog; the storage layer uses stdlib
loggers. Both end up in one stdout handler whose ProcessorFormatter runs
the same processor chain, so a record looks the same whichever API
produced it.

Delivery code scopes its records with log_context(), which binds
webhook_id, owner_id and the event name for the duration of a delivery
and restores the previous context afterwards.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from structlog.typing import Processor

_configured = False
_handler: logging.Handler | None = None


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def _render_processors(format: str) -> list[Processor]:
    if format.lower() == "json":
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(level: str = "INFO", format: str = "json") -> None:
    """Route structlog and stdlib logging to stdout.

    Safe to call more than once; the previous Courier handler is replaced.

    Args:
        level: Level name; unknown names fall back to INFO.
        format: "json" for production, "text" for a console renderer.

    Example:
        ```python
        configure_logging(level="DEBUG", format="text")
        get_logger(__name__).info("Webhook delivered", webhook_id="whk_123", attempts=1)
        ```
    """
    global _configured, _handler

    log_level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_render_processors(format),
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(log_level)

    _handler = handler
    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()

    return structlog.get_logger(name)  # type: ignore[no-any-return]


def bind_context(**kwargs: object) -> None:
    """Bind values to every later record in the current task.

    The API binds owner_id once the request's owner is resolved.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


@contextmanager
def log_context(**kwargs: object) -> Iterator[None]:
    """Bind values for the duration of a block.

    Values bound before the block, including ones it shadows, are restored
    on exit.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


logger = get_logger("courier")
