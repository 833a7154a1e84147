import logging
from pathlib import Path

import pytest

from spoken_ledger.core import settings


def test_read_config_file(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        "# ledger\n"
        "LEDGER_URL: \"http://ledger\"  # local\n"
        "CATEGORIZE_TIMEOUT: 4\n"
        "EMPTY:\n"
        "nested:\n",
        encoding="utf-8",
    )

    values = settings.read_config_file(str(config))

    assert values == {"LEDGER_URL": "http://ledger", "CATEGORIZE_TIMEOUT": "4"}
    assert settings.read_config_file(str(tmp_path / "missing.yaml")) == {}


def test_config_file_fills_missing_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "config.yaml").write_text(
        "LEDGER_URL: http://from-config\nLEDGER_TOKEN: from-config\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    # setenv first so the value loaded from config.yaml is undone after the test
    monkeypatch.setenv("LEDGER_URL", "unset")
    monkeypatch.delenv("LEDGER_URL")
    monkeypatch.setenv("LEDGER_TOKEN", "from-env")

    settings.load_environment()

    assert settings.get_config_path() == str(tmp_path / "config.yaml")
    assert settings.get_env_str("LEDGER_URL") == "http://from-config"
    assert settings.get_env_str("LEDGER_TOKEN") == "from-env"


def test_get_env_float(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATEGORIZE_TIMEOUT", "oops")
    assert settings.get_env_float("CATEGORIZE_TIMEOUT", 10.0) == 10.0
    monkeypatch.setenv("CATEGORIZE_TIMEOUT", "-1")
    assert settings.get_env_float("CATEGORIZE_TIMEOUT", 10.0, min_value=0.0) == 10.0
    monkeypatch.setenv("CATEGORIZE_TIMEOUT", "2.5")
    assert settings.get_env_float("CATEGORIZE_TIMEOUT", 10.0, min_value=0.0) == 2.5


def test_get_env_int(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOME_INT", "7")
    assert settings.get_env_int("SOME_INT", 1) == 7
    monkeypatch.setenv("SOME_INT", "x")
    assert settings.get_env_int("SOME_INT", 1) == 1


def test_get_env_str(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEFAULT_PAYMENT_TYPE", "  Cash ")
    assert settings.get_env_str("DEFAULT_PAYMENT_TYPE") == "Cash"
    monkeypatch.setenv("DEFAULT_PAYMENT_TYPE", "   ")
    assert settings.get_env_str("DEFAULT_PAYMENT_TYPE", "Credit Card") == "Credit Card"


def test_log_environment_masks_secrets(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    monkeypatch.setenv("LEDGER_TOKEN", "supersecret")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-abcdef")
    monkeypatch.setenv("LEDGER_URL", "http://ledger")
    caplog.set_level(logging.INFO, logger="spoken_ledger.core.settings")

    settings.log_environment()

    assert "LEDGER_TOKEN=su...et" in caplog.text
    assert "OPENAI_API_KEY=sk...ef" in caplog.text
    assert "LEDGER_URL=http://ledger" in caplog.text
    assert "supersecret" not in caplog.text
