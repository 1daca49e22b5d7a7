"""
Structured logging for the analytics engine.

Engine components log snake_case events with keyword context through
structlog. configure_logging() routes them through the standard library so
host applications keep control of handlers and levels:

    - log_format=json renders one JSON object per line
    - log_format=console renders key=value lines; dev_mode forces console
    - testing raises the floor to WARNING

analysis_context() binds identifiers (metric, report dimensions) for the
duration of a call; every event logged inside it carries them.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from bizmetrics import __version__
from bizmetrics.config import Settings, get_settings

ENGINE_NAME = "bizmetrics"


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add severity level for structured logging."""
    event_dict["severity"] = method_name.upper()
    return event_dict


def add_engine_info(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag events with the engine name and version."""
    event_dict.setdefault("engine", ENGINE_NAME)
    event_dict.setdefault("engine_version", __version__)
    return event_dict


def _log_level(settings: Settings) -> int:
    if settings.testing:
        return logging.WARNING
    if settings.debug:
        return logging.DEBUG
    return getattr(logging, settings.log_level.upper(), logging.INFO)


def _renderer(settings: Settings) -> Processor:
    if settings.log_format == "json" and not settings.dev_mode:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        settings: Engine settings (default: get_settings())
    """
    settings = settings or get_settings()

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=_log_level(settings))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            add_severity,
            add_engine_info,
            _renderer(settings),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def log_event(
    logger: structlog.BoundLogger,
    level: str,
    event: str,
    **kwargs: Any,
) -> None:
    """
    Log a structured event at a level chosen at runtime.

    Unknown level names log at info.
    """
    log_func = getattr(logger, level.lower(), logger.info)
    log_func(event, **kwargs)


@contextmanager
def analysis_context(**context: Any) -> Iterator[None]:
    """
    Bind context for every event logged inside the block.

    Example:
        >>> with analysis_context(metric="revenue", points=90):
        ...     detector.detect(values)
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield
