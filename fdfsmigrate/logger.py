"""JSON logging set-up for the application."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime

from .config import LoggingConfig

LOGGER_NAME = "fdfsmigrate"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}

_LEVEL_NAMES = {
    logging.CRITICAL: "fatal",
    logging.ERROR: "error",
    logging.WARNING: "warning",
    logging.INFO: "info",
    logging.DEBUG: "debug",
}


def _parse_level(name: str) -> int:
    try:
        return _LEVELS[name.lower()]
    except KeyError:
        raise ValueError(f"not a valid log level: {name!r}") from None


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object with level, msg and time."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname.lower()),
            "msg": record.getMessage(),
            "time": datetime.fromtimestamp(record.created).strftime(TIMESTAMP_FORMAT),
        }
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, sort_keys=True, default=str)


def init_logging(cfg: LoggingConfig) -> logging.Logger:
    """Configure the application logger; with a file set, log to stdout and the file."""
    level = _parse_level(cfg.level)
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    logger.propagate = False

    handlers: list[logging.Handler]
    if cfg.file:
        os.makedirs(os.path.dirname(cfg.file) or ".", exist_ok=True)
        handlers = [
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(cfg.file, mode="a", encoding="utf-8"),
        ]
    else:
        handlers = [logging.StreamHandler(sys.stderr)]

    formatter = JsonFormatter()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def get_logger() -> logging.Logger:
    """Return the application logger."""
    return logging.getLogger(LOGGER_NAME)