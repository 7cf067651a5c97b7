"""Logging setup: readable console output plus an optional rotating JSON file."""

from __future__ import annotations

import json
import logging
import logging.handlers
from datetime import datetime, timezone

from budgetcore.config import BaseConfig

ROOT_LOGGER = "budgetcore"


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    # LogRecord attributes that are not caller-supplied extras
    _STANDARD_ATTRS = set(
        logging.LogRecord("", 0, "", 0, "", (), None).__dict__
    ) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }
        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._STANDARD_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields
        return json.dumps(log_data, default=str)


def setup_logging(config: BaseConfig) -> logging.Logger:
    """Configure the `budgetcore` logger tree.

    Args:
        config: Application configuration with LOG_LEVEL and LOG_FILE

    Returns:
        The configured package logger
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(config.LOG_LEVEL)

    # Remove existing handlers to avoid duplicates on Streamlit reruns
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(
        fmt="[%(asctime)s] %(levelname)-8s [%(name)s.%(funcName)s:%(lineno)d] %(message)s",
        datefmt="%H:%M:%S",
    ))
    root_logger.addHandler(console_handler)

    if config.LOG_FILE is not None:
        config.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.LOG_FILE,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    root_logger.debug(
        "Logging initialized",
        extra={"level": config.LOG_LEVEL, "log_file": str(config.LOG_FILE)},
    )
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package tree; accepts `__name__` directly."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
