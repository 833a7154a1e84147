import logging
from pathlib import Path

import pytest

from spoken_ledger.logger import ColourizedFormatter, get_logger, get_logging_config


def test_logging_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.delenv("LOG_DIR", raising=False)

    config = get_logging_config()

    assert set(config["loggers"]) == {"spoken_ledger", "httpx"}
    assert config["loggers"]["spoken_ledger"]["level"] == "DEBUG"
    assert config["loggers"]["httpx"]["level"] == "WARNING"
    assert set(config["handlers"]) == {"console"}


def test_explicit_level_wins_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert get_logging_config(level="warning")["loggers"]["spoken_ledger"]["level"] == "WARNING"


def test_logging_config_with_log_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"
    monkeypatch.setenv("LOG_DIR", str(log_dir))

    config = get_logging_config()

    assert log_dir.is_dir()
    assert config["handlers"]["file"]["filename"] == str(log_dir / "spoken_ledger.log")
    assert config["handlers"]["file"]["formatter"] == "plain"
    assert config["loggers"]["spoken_ledger"]["handlers"] == ["console", "file"]


def test_colourized_formatter_restores_levelname() -> None:
    formatter = ColourizedFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord("x", logging.WARNING, __file__, 1, "careful", None, None)

    output = formatter.format(record)

    assert "\x1b[33mWARNING\x1b[0m careful" == output
    assert record.levelname == "WARNING"


def test_colourized_formatter_leaves_custom_levels() -> None:
    formatter = ColourizedFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord("x", 25, __file__, 1, "note", None, None)
    assert formatter.format(record) == "Level 25 note"


def test_get_logger() -> None:
    assert get_logger("spoken_ledger.test").name == "spoken_ledger.test"
