# backend/shopsync/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shopsync.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shopsync.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Shopify Admin REST API
    SHOPIFY_API_VERSION = os.environ.get("SHOPIFY_API_VERSION", "2024-01")
    SHOPIFY_HTTP_TIMEOUT = _env_float("SHOPIFY_HTTP_TIMEOUT", 30.0)
    # Webhooks are rejected when this is unset; there is no unsigned mode.
    SHOPIFY_WEBHOOK_SECRET = os.environ.get("SHOPIFY_WEBHOOK_SECRET")

    # Retry applies to transient Shopify faults only (network, timeouts, 429).
    SYNC_RETRY_ATTEMPTS = _env_int("SYNC_RETRY_ATTEMPTS", 3)
    SYNC_RETRY_BACKOFF = _env_float("SYNC_RETRY_BACKOFF", 1.0)
    SYNC_RETRY_MAX_DELAY = _env_float("SYNC_RETRY_MAX_DELAY", 60.0)

    # Scheduled full sync of every active tenant
    SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED", False)
    SYNC_INTERVAL_HOURS = _env_int("SYNC_INTERVAL_HOURS", 6)
    SCHEDULER_MAX_WORKERS = _env_int("SCHEDULER_MAX_WORKERS", 4)
    SCHEDULER_TENANT_TIMEOUT = _env_float("SCHEDULER_TENANT_TIMEOUT", 900.0)
