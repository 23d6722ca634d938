"""
Structured logging configuration using structlog.

Every engine event carries the engine version and whatever analysis context
(user, batch, seed) was bound for the current run. Float fields such as
scores, ratios and slopes are rounded to four places.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from twinscore import __version__
from twinscore.config import Settings, get_settings

LOG_FLOAT_DIGITS = 4


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add severity level for structured logging."""
    event_dict["severity"] = method_name.upper()
    return event_dict


def add_engine_version(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("engine", f"twinscore/{__version__}")
    return event_dict


def round_float_fields(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Round float values (scores, ratios, slopes) to LOG_FLOAT_DIGITS places."""
    for key, value in event_dict.items():
        if isinstance(value, float):
            event_dict[key] = round(value, LOG_FLOAT_DIGITS)
    return event_dict


def build_processors(settings: Settings) -> list[Processor]:
    """Processor chain ending in a JSON renderer in production, console in dev mode."""
    if settings.log_format == "json" and not settings.dev_mode:
        renderer: Processor = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=settings.dev_mode)

    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        add_severity,
        add_engine_version,
        round_float_fields,
        renderer,
    ]


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structured logging for the engine.

    Args:
        settings: Log level, format and dev mode (defaults to get_settings())
    """
    settings = settings or get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def bind_analysis_context(**context: Any) -> None:
    """
    Bind context (user id, batch id, ...) to every log line of the current analysis.

    Replaces any context bound for a previous analysis.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**context)
