"""
Structured Logging

structlog configuration for the sync service and its scripts. Events are
snake_case names with key/value context, e.g.

    logger.info("schedule_sync_completed", added=3, updated=12, errors=0)

Output is a coloured console in development and one JSON object per line
elsewhere (override with LOG_FORMAT).
"""

import logging
import sys
from typing import List, Optional

import structlog
from structlog.types import Processor

from ..config import Settings, get_settings

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler.executors.default", "apscheduler.scheduler")


def resolve_level(settings: Settings, override: Optional[str] = None) -> int:
    name = (override or settings.log_level or "INFO").upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def use_json(settings: Settings) -> bool:
    if settings.log_format:
        return settings.log_format.lower() == "json"
    return settings.environment != "development"


def build_processors(json_output: bool) -> List[Processor]:
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def setup_logging(log_level: Optional[str] = None, settings: Optional[Settings] = None):
    """
    Configure structlog and the stdlib root logger.

    Args:
        log_level: Override settings.log_level (DEBUG, INFO, WARNING, ERROR)
        settings: Defaults to get_settings()
    """
    settings = settings or get_settings()
    level = resolve_level(settings, log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.sql_echo else logging.WARNING
    )

    structlog.configure(
        processors=build_processors(use_json(settings)),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "highlights") -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
