# src/exctrace/core/logging.py
"""Structured logging for exctrace.

Package modules log through get_logger() (structlog) or
logging.getLogger(__name__) (stdlib). configure_logging() routes both through
one structlog processor chain, so a stdlib record and a structlog event come
out in the same format.

Archive writes bind their tx_hash, collection and bucket with
archive_context(). Every event emitted inside the context, including those
from the blob store and overflow policy, carries those fields. The binding
lives in contextvars, so concurrent persistence workers never see each
other's fields.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.stdlib import ProcessorFormatter

if TYPE_CHECKING:
    from exctrace.core.config import LoggingSettings

# Parent loggers only; their children inherit the level.
_NOISY_LOGGERS: tuple[str, ...] = ("sqlalchemy", "dynaconf")


def _strip_formatter_bookkeeping(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    # ProcessorFormatter adds these to every record it handles.
    event_dict.pop("_record", None)
    event_dict.pop("_from_structlog", None)
    return event_dict


def _pre_chain() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]


def _render_chain(json_output: bool) -> list[Any]:
    if json_output:
        return [
            _strip_formatter_bookkeeping,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [_strip_formatter_bookkeeping, structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Route structlog and stdlib logging to stdout.

    Args:
        json_output: One JSON object per line instead of console output
        level: Root log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level = logging.getLevelName(level.upper())
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Tests reconfigure between cases
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ProcessorFormatter(processors=_render_chain(json_output), foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def configure_from_settings(settings: LoggingSettings) -> None:
    configure_logging(json_output=settings.json_output, level=settings.level)


def get_logger(name: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Structlog logger for a module, with optional permanently bound fields."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger


@contextmanager
def archive_context(**fields: Any) -> Iterator[None]:
    """Bind fields to every log event emitted by this thread inside the block."""
    with structlog.contextvars.bound_contextvars(**fields):
        yield
