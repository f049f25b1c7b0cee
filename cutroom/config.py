"""
Cutroom
Configuration classes for Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Default SQLite path for local dev when PostgreSQL is not running
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'cutroom_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _parse_stage_order(raw: str | None) -> list[str] | None:
    """Split ``BRIEFING,PRODUCTION,...`` into upper-cased names; empty → None."""
    if not raw:
        return None
    names = [part.strip().upper() for part in raw.split(",") if part.strip()]
    return names or None


def _parse_sla_overrides(raw: str | None) -> dict[str, int]:
    """Parse ``BRIEFING=12,PRODUCTION=96`` into {"BRIEFING": 12, "PRODUCTION": 96}."""
    overrides: dict[str, int] = {}
    if not raw:
        return overrides
    for part in raw.split(","):
        if not part.strip():
            continue
        name, sep, hours = part.partition("=")
        if not sep:
            raise ValueError(f"WORKFLOW_STAGE_SLA_HOURS entry {part!r} must look like NAME=HOURS")
        overrides[name.strip().upper()] = int(hours)
    return overrides


def _database_url() -> str:
    # Railway/Heroku use postgres:// but SQLAlchemy 2.0 requires postgresql://
    raw = os.getenv("DATABASE_URL", "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else ""


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,   # recycle connections every 5 min
    }

    # Redis (rate limiter storage)
    REDIS_URL = os.getenv("REDIS_URL", "memory://")

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Workflow stages — None means DEFAULT_STAGE_ORDER
    WORKFLOW_STAGE_ORDER = _parse_stage_order(os.getenv("WORKFLOW_STAGE_ORDER"))
    WORKFLOW_STAGE_SLA_HOURS = _parse_sla_overrides(os.getenv("WORKFLOW_STAGE_SLA_HOURS"))


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url() or _SQLITE_DEV


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    # Tests run against the stock stage table regardless of the environment
    WORKFLOW_STAGE_ORDER = None
    WORKFLOW_STAGE_SLA_HOURS = {}


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _database_url() or None
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    # Override engine options with PostgreSQL statement timeout
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        "connect_args": {
            "options": "-c statement_timeout=30000",  # 30s query timeout
        },
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
