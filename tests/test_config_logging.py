import json
import logging
import sys
from pathlib import Path

import pytest

from budgetcore.config import BaseConfig
from budgetcore.logging_config import JSONFormatter, get_logger, setup_logging


@pytest.fixture
def clean_env(monkeypatch):
    for key in ("DATA_FILE", "SEED_FILE", "LOG_LEVEL", "LOG_FILE", "CURRENCY",
                "RECENT_LIMIT", "MONTHS_SHOWN", "HISTORY_SIZE"):
        monkeypatch.delenv(f"BUDGET_TRACKER_{key}", raising=False)
    return monkeypatch


@pytest.fixture
def restore_logger():
    logger = logging.getLogger("budgetcore")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)


def test_config_defaults(clean_env):
    config = BaseConfig()
    assert config.DATA_FILE == Path("data/budget_data.json")
    assert config.SEED_FILE == Path("data/seed.json")
    assert config.LOG_LEVEL == "INFO"
    assert config.LOG_FILE is None
    assert config.CURRENCY == "PKR"
    assert (config.RECENT_LIMIT, config.MONTHS_SHOWN, config.HISTORY_SIZE) == (10, 6, 50)


def test_config_from_environment(clean_env, tmp_path):
    clean_env.setenv("BUDGET_TRACKER_DATA_FILE", str(tmp_path / "d.json"))
    clean_env.setenv("BUDGET_TRACKER_LOG_LEVEL", "debug")
    clean_env.setenv("BUDGET_TRACKER_MONTHS_SHOWN", "12")
    clean_env.setenv("BUDGET_TRACKER_CURRENCY", "USD")

    config = BaseConfig()
    assert config.DATA_FILE == tmp_path / "d.json"
    assert config.LOG_LEVEL == "DEBUG"
    assert config.MONTHS_SHOWN == 12
    assert config.CURRENCY == "USD"


@pytest.mark.parametrize(
    "key, value",
    [("RECENT_LIMIT", "ten"), ("HISTORY_SIZE", "0"), ("LOG_LEVEL", "LOUD")],
)
def test_config_rejects_bad_values(clean_env, key, value):
    clean_env.setenv(f"BUDGET_TRACKER_{key}", value)
    with pytest.raises(ValueError):
        BaseConfig()


def test_get_logger_namespaces():
    assert get_logger("budgetcore.ledger").name == "budgetcore.ledger"
    assert get_logger("app").name == "budgetcore.app"


def test_json_formatter_includes_extras():
    record = logging.LogRecord(
        name="budgetcore.ledger",
        level=logging.INFO,
        pathname="ledger.py",
        lineno=42,
        msg="Budget created",
        args=(),
        exc_info=None,
    )
    record.budget_id = "b1"

    data = json.loads(JSONFormatter().format(record))
    assert data["level"] == "INFO"
    assert data["logger"] == "budgetcore.ledger"
    assert data["message"] == "Budget created"
    assert data["line"] == 42
    assert data["extra"] == {"budget_id": "b1"}
    assert "timestamp" in data


def test_json_formatter_with_exception():
    try:
        raise ValueError("bad input")
    except ValueError:
        exc_info = sys.exc_info()

    record = logging.LogRecord("budgetcore", logging.ERROR, "x.py", 1, "failed", (), exc_info)
    data = json.loads(JSONFormatter().format(record))
    assert data["exception"]["type"] == "ValueError"
    assert "bad input" in data["exception"]["message"]


def test_setup_logging_writes_json_file(clean_env, tmp_path, restore_logger):
    log_file = tmp_path / "logs" / "tracker.log"
    clean_env.setenv("BUDGET_TRACKER_LOG_FILE", str(log_file))
    config = BaseConfig()

    setup_logging(config)
    setup_logging(config)
    assert len(restore_logger.handlers) == 2

    get_logger("ledger").info("Transaction created", extra={"transaction_id": "t1"})
    for handler in restore_logger.handlers:
        handler.flush()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[-1])
    assert entry["message"] == "Transaction created"
    assert entry["extra"]["transaction_id"] == "t1"
