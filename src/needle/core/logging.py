# src/needle/core/logging.py
"""Structured logging for needle.

structlog loggers (``get_logger``) and plain stdlib loggers share one
ProcessorFormatter, so every record comes out in the same format: JSON
lines for machines or colored console output for people.

The executor logs at DEBUG with the node name bound; run a pipeline with
``configure_logging(level="DEBUG")`` to watch it walk the graph.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Chatty at DEBUG; never below WARNING
_NOISY_LOGGERS: tuple[str, ...] = (
    "asyncio",
    "filelock",
    "urllib3",
    "urllib3.connectionpool",
)


def _drop_formatter_bookkeeping(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    # ProcessorFormatter always sets both keys
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _shared_processors() -> list[Any]:
    """Processors every record passes, whichever logger produced it."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]


def _renderer(json_output: bool) -> list[Any]:
    if json_output:
        return [_drop_formatter_bookkeeping, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [_drop_formatter_bookkeeping, structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib logging through one handler.

    Safe to call repeatedly; each call replaces the root handler.

    Args:
        json_output: Emit JSON lines instead of console output
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive)
        stream: Where records go; defaults to stdout

    Raises:
        ValueError: If ``level`` is not a known level name
    """
    if level.upper() not in _LEVELS:
        raise ValueError(f"Unknown log level '{level}'. Expected one of: {', '.join(_LEVELS)}")
    log_level = getattr(logging, level.upper())
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Tests reconfigure logging between cases
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(ProcessorFormatter(processors=_renderer(json_output), foreign_pre_chain=shared))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Bound structlog logger for ``name`` (usually ``__name__``)."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
