import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass
class AppConfig:
    database_url: str
    secret_key: str
    log_level: str
    currency: str
    admin_username: str
    admin_password: str
    notification_url: Optional[str] = None
    notification_timeout: float = 10.0
    order_number_attempts: int = 5


LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


def validate_currency(value: Optional[str]) -> str:
    v = (value or "RWF").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def validate_log_level(value: Optional[str]) -> str:
    v = (value or "INFO").strip().upper()
    if v not in LOG_LEVELS:
        raise ValueError(f"Invalid log level: {value}")
    return v


def _positive_int(value, name: str) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if n <= 0:
        raise ValueError(f"{name} must be > 0")
    return n


def _positive_float(value, name: str) -> float:
    try:
        n = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a number") from exc
    if n <= 0:
        raise ValueError(f"{name} must be > 0")
    return n


def _load_settings_file(path: Optional[Path] = None) -> dict:
    path = path or Path(__file__).resolve().parents[1] / "data" / "settings.json"
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"settings file is not valid JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"settings file must contain an object: {path}")
    return payload


def load_env(settings_path: Optional[Path] = None) -> AppConfig:
    # data/settings.json wins, environment (and .env) is the fallback
    load_dotenv()
    s = _load_settings_file(settings_path)

    def pick(key: str, default=None):
        value = s.get(key)
        if value in (None, ""):
            value = os.getenv(key, default)
        return value

    return AppConfig(
        database_url=pick("DATABASE_URL", "sqlite:///data/marketplace.db"),
        secret_key=pick("SECRET_KEY", "dev_secret"),
        log_level=validate_log_level(pick("LOG_LEVEL")),
        currency=validate_currency(pick("CURRENCY")),
        admin_username=pick("ADMIN_USERNAME", "admin"),
        admin_password=pick("ADMIN_PASSWORD", "admin"),
        notification_url=pick("NOTIFICATION_URL") or None,
        notification_timeout=_positive_float(pick("NOTIFICATION_TIMEOUT", 10), "NOTIFICATION_TIMEOUT"),
        order_number_attempts=_positive_int(pick("ORDER_NUMBER_ATTEMPTS", 5), "ORDER_NUMBER_ATTEMPTS"),
    )
