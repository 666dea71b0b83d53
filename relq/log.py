"""Logging setup for the ``relq`` logger namespace.

Modules log through ``logging.getLogger(__name__)``; this module only maps
the configuration's ``log_level`` names onto standard logging levels.
"""
from __future__ import annotations

import logging
from typing import Literal

#: Log level names accepted by :class:`~relq.config.RelqConfig`.
LogLevel = Literal["silent", "error", "warn", "info", "debug"]

LOG_LEVELS: dict[str, int] = {
    "silent": logging.CRITICAL + 10,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

ROOT_LOGGER = "relq"

logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())


def configure_logging(level: LogLevel = "warn") -> logging.Logger:
    """Set the level of the ``relq`` logger and return it.

    Args:
        level: One of ``silent``, ``error``, ``warn``, ``info``, ``debug``.

    Raises:
        ValueError: If *level* is not a recognised name.
    """
    try:
        numeric = LOG_LEVELS[level]
    except KeyError:
        raise ValueError(
            f"Unknown log level '{level}'. Expected one of {sorted(LOG_LEVELS)}."
        ) from None
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric)
    return logger
