"""
Logging configuration for the service.

Timestamps are rendered in UTC, like every instant the service handles,
so log lines line up with cycle starts and snapshot names.
Logging must not change program behavior.
"""

import logging
import sys
import time

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "asyncio")


class UtcFormatter(logging.Formatter):
    """Formatter stamping records with UTC time."""

    converter = time.gmtime


def configure_logging(level: str = "INFO") -> None:
    """Route all records to stdout with the service format.

    Safe to call more than once; the last call wins.

    Args:
        level: The log level name (DEBUG, INFO, WARNING, ERROR).
            Unknown names fall back to INFO.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(UtcFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
