from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def _level_from_env(default: str = "INFO") -> int:
    value = os.environ.get("LOG_LEVEL", default).upper()
    return _LEVELS.get(value, logging.INFO)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Return a logger that prints status lines to stdout.

    Configured once per name; later calls return the same logger. When
    CAPTURE_LOG_DIR is set, records also go to a rotating <name>.log there.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    log_level = _LEVELS.get(level.upper(), logging.INFO) if level else _level_from_env()
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    console.setLevel(log_level)
    logger.addHandler(console)

    log_dir = os.environ.get("CAPTURE_LOG_DIR")
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=Path(log_dir) / f"{name}.log",
            maxBytes=5_000_000,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        logger.addHandler(file_handler)

    logger.setLevel(log_level)
    return logger
