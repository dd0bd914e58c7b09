"""
Centralized configuration for all environments.

Select a config by setting:
  APP_CONFIG=plantcare.config.DevConfig      # local dev
  APP_CONFIG=plantcare.config.ProdConfig     # production (default if unset)
  APP_CONFIG=plantcare.config.TestConfig     # pytest

Notes:
- SECRET_KEY is read from FLASK_SECRET_KEY
- Rate limiting uses Flask-Limiter v3 keys (RATELIMIT_*).
- REMINDER_STRATEGY picks the reminder engine: "sweep" (interval job or the
  cron endpoint) or "timer" (one APScheduler job per garden entry).
"""

from __future__ import annotations
import os
import secrets
from datetime import timedelta


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


class BaseConfig:
    # Secrets & basics: generate a random key if env var is missing so dev/test
    # never runs with an empty string (production enforces a real key at startup)
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    # Session configuration (the account service writes user_id/verified here)
    PERMANENT_SESSION_LIFETIME = timedelta(days=1)
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # Supabase (garden_entries + profiles)
    SUPABASE_URL = os.getenv("SUPABASE_URL", "")
    SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    # Garden store backend: "supabase" or "memory"
    GARDEN_BACKEND = os.getenv("GARDEN_BACKEND", "supabase")

    # Watering reminders
    REMINDER_STRATEGY = os.getenv("REMINDER_STRATEGY", "sweep")
    REMINDER_SCHEDULER_ENABLED = _flag("REMINDER_SCHEDULER_ENABLED", "true")
    REMINDER_SWEEP_MINUTES = int(os.getenv("REMINDER_SWEEP_MINUTES", "15"))
    REMINDER_SWEEP_WORKERS = int(os.getenv("REMINDER_SWEEP_WORKERS", "4"))  # bounded fan-out
    REMINDER_RETRY_SECONDS = int(os.getenv("REMINDER_RETRY_SECONDS", "300"))
    CRON_SECRET = os.getenv("CRON_SECRET", "")

    # Email (Resend)
    RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
    REMINDER_EMAIL_FROM = os.getenv("REMINDER_EMAIL_FROM", "PlantCare AI <reminders@updates.plantcare.app>")
    EMAIL_TIMEOUT_SECONDS = float(os.getenv("EMAIL_TIMEOUT_SECONDS", "10"))

    # Flask-Limiter v3
    RATELIMIT_ENABLED = _flag("RATELIMIT_ENABLED", "true")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "60 per minute; 2000 per day")
    GARDEN_RATE_LIMIT = "30 per hour"  # plant additions per client

    # Request bodies carry plant metadata only
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024

    # Per-user garden listing cache
    GARDEN_CACHE_TTL_SECONDS = int(os.getenv("GARDEN_CACHE_TTL_SECONDS", "300"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PREFERRED_URL_SCHEME = os.getenv("PREFERRED_URL_SCHEME", "https")


class ProdConfig(BaseConfig):
    """Production settings (selected by default if APP_CONFIG is unset)."""
    pass


class DevConfig(BaseConfig):
    """Developer-friendly settings."""
    DEBUG = True
    PREFERRED_URL_SCHEME = "http"
    # Allow cookies over HTTP in dev
    SESSION_COOKIE_SECURE = False
    # Run without Supabase unless it is configured
    GARDEN_BACKEND = os.getenv("GARDEN_BACKEND", "memory")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestConfig(BaseConfig):
    """CI/pytest settings."""
    TESTING = True
    DEBUG = True
    SESSION_COOKIE_SECURE = False
    GARDEN_BACKEND = "memory"
    REMINDER_STRATEGY = "sweep"
    # Tests drive sweeps and timers explicitly
    REMINDER_SCHEDULER_ENABLED = False
    REMINDER_SWEEP_WORKERS = 2
    CRON_SECRET = "test-cron-secret"
    RESEND_API_KEY = ""
    # Usually disable the limiter in tests to avoid flakiness
    RATELIMIT_ENABLED = False
