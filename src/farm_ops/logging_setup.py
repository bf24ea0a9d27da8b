"""Logging configuration for the API and CLI entry points."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the package logger.

    Repeated calls only adjust the level.
    """
    global _configured
    package_logger = logging.getLogger("farm_ops")
    package_logger.setLevel(level)
    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    _configured = True
