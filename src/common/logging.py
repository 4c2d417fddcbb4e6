"""Logging configuration for the intent popup engine.

Library modules log through ``logging.getLogger(__name__)``; service entry
points (orchestrator, telemetry, CLI) call ``setup_logging`` once to attach
a stdout handler.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: int = logging.INFO,
    module_name: str = "intent_engine",
    stream: TextIO | None = None,
) -> logging.Logger:
    """Return a named logger with a single formatted stream handler.

    Calling again for the same name reuses the existing handler but
    applies the new level.

    Args:
        level: Logging level (default INFO).
        module_name: Name for the logger instance.
        stream: Output stream (default stdout).
    """
    logger = logging.getLogger(module_name)
    logger.setLevel(level)

    if logger.handlers:
        for existing in logger.handlers:
            existing.setLevel(level)
        return logger

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)

    return logger
