# backend/cubepos/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/cubepos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cubepos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "AUD")

    # Email transport: "console" logs messages, "smtp" delivers them
    EMAIL_SERVICE = os.environ.get("EMAIL_SERVICE", "console")
    EMAIL_SENDER = os.environ.get("EMAIL_SENDER", "noreply@cubepos.local")
    SMTP_HOST = os.environ.get("SMTP_HOST")
    SMTP_PORT = int(os.environ.get("SMTP_PORT", "587"))
    SMTP_USERNAME = os.environ.get("SMTP_USERNAME")
    SMTP_PASSWORD = os.environ.get("SMTP_PASSWORD")
    SMTP_USE_SSL = _env_bool("SMTP_USE_SSL", "false")
    SMTP_TIMEOUT_SECONDS = float(os.environ.get("SMTP_TIMEOUT_SECONDS", "10"))

    # Billing
    REMINDER_GRACE_DAYS = int(os.environ.get("REMINDER_GRACE_DAYS", "0"))
    GENERIC_REMINDER_MIN_ACCRUED = os.environ.get("GENERIC_REMINDER_MIN_ACCRUED", "50")

    # Post-checkout stock alerts
    STOCK_ALERTS_ENABLED = _env_bool("STOCK_ALERTS_ENABLED", "true")
    STOCK_ALERT_QUEUE_SIZE = int(os.environ.get("STOCK_ALERT_QUEUE_SIZE", "256"))
    STOCK_ALERT_SHUTDOWN_TIMEOUT = float(os.environ.get("STOCK_ALERT_SHUTDOWN_TIMEOUT", "10"))
