"""
Transwatch Structured Logging Module.

Diagnostic logging for the catalog, watch backends and build loop.
Log records go to stderr; stdout carries build status and printed output.
Requires Python 3.11+.
"""

import logging
import sys
from typing import Literal

import structlog
from structlog.types import Processor

from utils.config import get_settings


def _renderer(fmt: Literal["json", "console"]) -> list[Processor]:
    if fmt == "json":
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    ]


def configure_logging(level: str | None = None) -> None:
    """
    Configure structured logging for a transwatch run.

    Call this once, after argument parsing.

    Args:
        level: Optional level name overriding ``LOG_LEVEL``
    """
    settings = get_settings()
    level_value = getattr(logging, (level or settings.logging.level).upper())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="%H:%M:%S"),
        *_renderer(settings.logging.format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # watchdog logs through the standard library
    logging.basicConfig(format="%(name)s: %(message)s", stream=sys.stderr, level=level_value)
    logging.getLogger("watchdog").setLevel(max(level_value, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Print loggers carry no name of their own, so ``name`` is attached to
    every record as the ``component`` field.

    Args:
        name: Component name (module or class)

    Returns:
        Lazily configured structlog logger
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(component=name)


class LoggerMixin:
    """
    Give a class a ``log`` attribute tagged with its class name.

    Usage:
        class PollingNotifier(LoggerMixin):
            def sweep(self):
                self.log.debug("poll_sweep", files=3)
    """

    @property
    def log(self) -> structlog.stdlib.BoundLogger:
        if not hasattr(self, "_logger"):
            self._logger = get_logger(type(self).__name__)
        return self._logger
