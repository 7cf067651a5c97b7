"""Environment-driven configuration for the tracker and its app."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

ENV_PREFIX = "BUDGET_TRACKER_"


def _env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc
    if parsed < 1:
        raise ValueError(f"{name} must be >= 1, got {parsed}")
    return parsed


class BaseConfig:
    """Settings shared by the Streamlit app and scripts."""

    APP_NAME = "BudgetTracker"

    def __init__(self) -> None:
        self.DATA_FILE = Path(os.getenv(f"{ENV_PREFIX}DATA_FILE", "data/budget_data.json"))
        self.SEED_FILE = Path(os.getenv(f"{ENV_PREFIX}SEED_FILE", "data/seed.json"))
        self.LOG_LEVEL = os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO").strip().upper()
        log_file = os.getenv(f"{ENV_PREFIX}LOG_FILE")
        self.LOG_FILE = Path(log_file) if log_file else None
        self.CURRENCY = os.getenv(f"{ENV_PREFIX}CURRENCY", "PKR")
        self.RECENT_LIMIT = _env_int(f"{ENV_PREFIX}RECENT_LIMIT", 10)
        self.MONTHS_SHOWN = _env_int(f"{ENV_PREFIX}MONTHS_SHOWN", 6)
        self.HISTORY_SIZE = _env_int(f"{ENV_PREFIX}HISTORY_SIZE", 50)

        if not isinstance(logging.getLevelName(self.LOG_LEVEL), int):
            raise ValueError(f"Unknown log level {self.LOG_LEVEL!r}")


def get_config() -> BaseConfig:
    return BaseConfig()
