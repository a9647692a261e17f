"""Logging setup for the API server and the CLI.

Flow Studio modules log through ``logging.getLogger(__name__)`` under the
``flowstudio`` namespace. ``configure_logging`` installs a single stderr
handler on the root logger at the configured level and holds chatty
driver/server loggers at WARNING, so autosave and deploy messages stay
readable.
"""

import logging
import sys
from typing import Literal

from flowstudio.settings import get_settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

LOG_FORMAT = "%(asctime)s %(levelname)s | %(name)s | %(message)s"

# Drivers and servers that log every statement, request or connection
NOISY_LOGGERS = [
    "aiosqlite",
    "alembic.runtime.migration",
    "asyncio",
    "httpcore",
    "httpx",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "uvicorn.access",
]


def suppress_noisy_loggers() -> None:
    """Hold every logger in ``NOISY_LOGGERS`` at WARNING with no own handlers."""
    for name in NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.setLevel(logging.WARNING)
        noisy.handlers.clear()


def configure_logging(level: LogLevel | None = None) -> None:
    """Install the stderr handler and set the ``flowstudio`` level.

    Safe to call more than once: existing root handlers are replaced.

    Args:
        level: Overrides ``settings.log_level``
    """
    numeric_level = getattr(logging, level or get_settings().log_level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    # The handler filters; the root passes everything through
    root.setLevel(logging.DEBUG)

    logging.getLogger("flowstudio").setLevel(numeric_level)
    suppress_noisy_loggers()


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``; modules normally pass ``__name__``."""
    return logging.getLogger(name)
