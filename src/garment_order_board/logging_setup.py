"""Process-wide logging configuration driven by Settings.LOG_LEVEL / LOG_PATH."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from garment_order_board.config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
PACKAGE_LOGGER = "garment_order_board"


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(str(name or "").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: Settings) -> logging.Logger:
    """Attach file + stream handlers to the package logger (idempotent across reruns)."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(_level_from_name(settings.LOG_LEVEL))

    fmt = logging.Formatter(LOG_FORMAT)
    log_path = str(settings.LOG_PATH or "").strip()
    if log_path and not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            path,
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=5,
            encoding="utf-8",
        )
        handler.setFormatter(fmt)
        logger.addHandler(handler)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        stream = logging.StreamHandler()
        stream.setFormatter(fmt)
        logger.addHandler(stream)

    return logger
