# backend/branchpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///branchpos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Alembic scripts: backend/migrations
    MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")

    # Comma-separated browser origins allowed to call the API
    CORS_ORIGINS = tuple(
        o.strip() for o in os.environ.get("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()
    )

    # Hours per calendar day before time counts as overtime
    STANDARD_WORKDAY_HOURS = int(os.environ.get("STANDARD_WORKDAY_HOURS", "8"))
    # Clock-ins within this many minutes of the hour boundary are on time
    ON_TIME_GRACE_MINUTES = int(os.environ.get("ON_TIME_GRACE_MINUTES", "15"))
    # Reported availability for custom bundles (pieces are picked at checkout)
    CUSTOM_BUNDLE_AVAILABILITY = int(os.environ.get("CUSTOM_BUNDLE_AVAILABILITY", "999"))


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "DEBUG"
