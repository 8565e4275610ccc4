"""Process-wide logging for the venue scheduling service."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from venue_scheduler.utils.config import get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_LOGGER_INITIALIZED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install the root handler once per process.

    Booking, suggestion and repository modules all log through this handler,
    so their ``key=value`` decision lines share one pipe-separated layout.
    The level falls back to ``LOG_LEVEL`` from settings.
    """

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    resolved_level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=resolved_level, format=LOG_FORMAT, stream=sys.stdout)
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    """Return the module logger, configuring the process handler on first use."""
    configure_logging()
    return logging.getLogger(name)
