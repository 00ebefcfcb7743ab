"""Logging helpers for the GPIO D-Bus daemon."""

from __future__ import annotations

import logging
import sys
from logging import Handler
from logging.config import dictConfig

from ..const import DEFAULT_LOG_PRIORITY, LOG_PRIORITIES, NOTICE
from .settings import RuntimeConfig

logging.addLevelName(NOTICE, "NOTICE")


def level_to_priority(levelno: int) -> str:
    """Map a logging level onto the syslog priority digit used as prefix."""
    for threshold, priority in LOG_PRIORITIES:
        if levelno >= threshold:
            return priority
    if levelno > logging.NOTSET:
        return LOG_PRIORITIES[-1][1]
    return DEFAULT_LOG_PRIORITY


class PriorityLogFormatter(logging.Formatter):
    """Emit ``<P>message`` with exactly one physical line per record."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}: {self.formatException(record.exc_info)}"
        elif record.exc_text:
            message = f"{message}: {record.exc_text}"
        # Multi-line payloads would be split into separate journal entries.
        message = message.replace("\r", "").replace("\n", "\\n")
        return f"<{level_to_priority(record.levelno)}>{message}"


def _build_handler() -> Handler:
    return logging.StreamHandler(sys.stderr)


def configure_logging(config: RuntimeConfig) -> None:
    """Configure root logging based on runtime settings."""

    debug_logging = getattr(config, "debug_logging", False)
    level_name = "DEBUG" if debug_logging else "NOTICE"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "gpiodbus": {
                    "()": "gpiodbus.config.logging.PriorityLogFormatter",
                }
            },
            "handlers": {
                "gpiodbus": {
                    "()": _build_handler,
                    "level": level_name,
                    "formatter": "gpiodbus",
                }
            },
            "root": {
                "level": level_name,
                "handlers": ["gpiodbus"],
            },
        }
    )

    logging.getLogger("gpiodbus").debug("Logging configured at level %s", level_name)
