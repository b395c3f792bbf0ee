"""Tests for configuration loading."""

import json

import pytest

from marketplace.config import load_env, validate_currency, validate_log_level


ENV_KEYS = (
    "DATABASE_URL",
    "SECRET_KEY",
    "LOG_LEVEL",
    "CURRENCY",
    "ADMIN_USERNAME",
    "ADMIN_PASSWORD",
    "NOTIFICATION_URL",
    "NOTIFICATION_TIMEOUT",
    "ORDER_NUMBER_ATTEMPTS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults(tmp_path):
    cfg = load_env(tmp_path / "settings.json")

    assert cfg.database_url == "sqlite:///data/marketplace.db"
    assert cfg.currency == "RWF"
    assert cfg.log_level == "INFO"
    assert cfg.notification_url is None
    assert cfg.notification_timeout == 10.0
    assert cfg.order_number_attempts == 5


def test_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("CURRENCY", "usd")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("NOTIFICATION_URL", "https://hooks.example.com")
    monkeypatch.setenv("ORDER_NUMBER_ATTEMPTS", "3")

    cfg = load_env(tmp_path / "settings.json")

    assert cfg.currency == "USD"
    assert cfg.log_level == "DEBUG"
    assert cfg.notification_url == "https://hooks.example.com"
    assert cfg.order_number_attempts == 3


def test_settings_file_wins(monkeypatch, tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"ADMIN_USERNAME": "boss", "CURRENCY": ""}), encoding="utf-8")
    monkeypatch.setenv("ADMIN_USERNAME", "someone")
    monkeypatch.setenv("CURRENCY", "KES")

    cfg = load_env(path)

    assert cfg.admin_username == "boss"
    assert cfg.currency == "KES"


def test_invalid_settings_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ValueError):
        load_env(path)


@pytest.mark.parametrize(
    "key,value",
    [("ORDER_NUMBER_ATTEMPTS", "0"), ("NOTIFICATION_TIMEOUT", "soon"), ("LOG_LEVEL", "LOUD"), ("CURRENCY", "RW")],
)
def test_invalid_values(monkeypatch, tmp_path, key, value):
    monkeypatch.setenv(key, value)

    with pytest.raises(ValueError):
        load_env(tmp_path / "settings.json")


def test_validators():
    assert validate_currency(None) == "RWF"
    assert validate_log_level(" warning ") == "WARNING"
