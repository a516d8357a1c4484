# backend/fenceflow/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/fenceflow.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///fenceflow.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens (signed JWTs). Falls back to SECRET_KEY when unset.
    JWT_SECRET = os.environ.get("JWT_SECRET") or SECRET_KEY
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_EXPIRES_HOURS = int(os.environ.get("JWT_EXPIRES_HOURS", "24"))

    # SPA origin allowed by CORS (Vite dev/preview ports are always allowed)
    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:8080")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # wsgi.py creates tables and seeds default data on boot
    SEED_ON_STARTUP = _env_bool("SEED_ON_STARTUP", True)

    # List endpoints: ?page=1&limit=20 (limit capped at 100)
    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100
