"""
Application configuration — environment-aware settings.

All environment variables are documented here. See .env.example for a template.
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).parent

DEFAULT_JWT_SECRET = "your-secret-key-change-in-production"


def _flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    # Core Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    PORT = int(os.environ.get("PORT", "8080"))

    # Database: PostgreSQL when DATABASE_URL is set, SQLite file otherwise
    DATABASE_URL = os.environ.get("DATABASE_URL", "")
    DATABASE_PATH = os.environ.get("DATABASE_PATH", str(BASE_DIR / "algovault.db"))
    SQLITE_BUSY_TIMEOUT_MS = int(os.environ.get("SQLITE_BUSY_TIMEOUT_MS", "5000"))
    PG_POOL_MAX = int(os.environ.get("PG_POOL_MAX", "10"))
    PG_POOL_MIN = int(os.environ.get("PG_POOL_MIN", "5"))
    DB_INIT_SYNC = _flag("DB_INIT_SYNC")

    # Bearer tokens
    JWT_SECRET = os.environ.get("JWT_SECRET", DEFAULT_JWT_SECRET)
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRE_DAYS = int(os.environ.get("JWT_EXPIRE_DAYS", "7"))

    # Access control
    REGISTRATION_ENABLED = _flag("REGISTRATION_ENABLED", "true")
    # Role used when the users-table lookup itself errors
    ROLE_LOOKUP_FALLBACK = os.environ.get("ROLE_LOOKUP_FALLBACK", "demo")
    HIDE_LOGIN_FAILURE_REASON = _flag("HIDE_LOGIN_FAILURE_REASON")

    # Logging
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Rate limiting (in-memory unless REDIS_URL is set)
    RATELIMIT_STORAGE_URI = os.environ.get("REDIS_URL", "") or "memory://"


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")
    HIDE_LOGIN_FAILURE_REASON = _flag("HIDE_LOGIN_FAILURE_REASON", "true")

    @classmethod
    def validate(cls):
        """Fail fast on missing or insecure configuration in production."""
        errors: list[str] = []

        if cls.JWT_SECRET in (DEFAULT_JWT_SECRET, ""):
            errors.append("JWT_SECRET must be set to a secure value in production.")
        if cls.ROLE_LOOKUP_FALLBACK not in ("admin", "demo"):
            errors.append("ROLE_LOOKUP_FALLBACK must be 'admin' or 'demo'.")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    TESTING = True
    DB_INIT_SYNC = True
    JWT_SECRET = "test-jwt-secret"
    RATELIMIT_ENABLED = False


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
