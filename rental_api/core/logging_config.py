"""
Logging setup shared by the import pipeline, the store and the HTTP layer.

Everything logs through ``logging.getLogger(__name__)``; this module only
installs the console handler once per process.
"""
from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Optional


_is_configured = False

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(threadName)s | %(name)s | %(message)s"


class UTCFormatter(logging.Formatter):
    converter = time.gmtime


def configure_logging(level: Optional[str] = None, *, use_utc: bool = False) -> None:
    """
    Install the console handler on the root logger.

    Calling this more than once is a no-op, so both the app factory and
    scripts can call it unconditionally.

    Args:
        level: Log level name (e.g., "DEBUG", "INFO"). Defaults to INFO.
        use_utc: Render timestamps in UTC instead of server local time.
    """
    global _is_configured

    if _is_configured:
        return

    log_level = (level or "INFO").upper()
    formatter = {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"}
    if use_utc:
        formatter["()"] = UTCFormatter

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": formatter},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "level": log_level,
                }
            },
            "root": {
                "handlers": ["console"],
                "level": log_level,
            },
            "loggers": {
                # Statement echo is far too chatty with one INSERT per batch
                "sqlalchemy.engine": {"level": "WARNING"},
            },
        }
    )

    logging.getLogger("rental_api").setLevel(log_level)

    _is_configured = True
