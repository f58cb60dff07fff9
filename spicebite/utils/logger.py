"""
Centralized logging utility.

All client loggers hang under the ``spicebite`` package logger, which owns
the single stream handler. Its level comes from Settings.LOG_LEVEL
(SPICEBITE_LOG_LEVEL).
"""

import logging
import sys
from typing import Optional

from spicebite.config import settings

ROOT_LOGGER_NAME = "spicebite"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _root_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)

    # Configure once; later calls reuse the handler
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)
        root.setLevel(settings.LOG_LEVEL.upper())
        root.propagate = False

    return root


def set_log_level(level: str) -> None:
    """Change the level of every client logger at runtime."""
    _root_logger().setLevel(level.upper())


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Create or retrieve a client logger.

    Args:
        name (Optional[str]): Logger name (usually __name__). Names outside
            the ``spicebite`` namespace are nested under it.

    Returns:
        logging.Logger: Logger that propagates to the package logger.
    """
    root = _root_logger()
    if not name or name == ROOT_LOGGER_NAME:
        return root

    if not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    return logging.getLogger(name)
