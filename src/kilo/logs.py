"""Logging setup for the editor.

The terminal belongs to the editor, so log records only ever go to a file:
set ``KILO_LOG`` to a path to enable it, and ``KILO_LOG_LEVEL`` to change the
level (default ``INFO``).
"""
from __future__ import annotations

import logging
import logging.handlers
import os
from collections.abc import Mapping

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(env: Mapping[str, str] | None = None) -> logging.Logger:
    env = os.environ if env is None else env
    logger = logging.getLogger("kilo")
    for old in logger.handlers[:]:
        logger.removeHandler(old)
        old.close()
    logger.propagate = False

    path = env.get("KILO_LOG", "")
    if not path:
        logger.addHandler(logging.NullHandler())
        return logger

    level_name = env.get("KILO_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=1024 * 1024, backupCount=3, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.info("logging to %s at %s", path, logging.getLevelName(level))
    return logger
