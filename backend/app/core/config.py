"""Environment-driven settings for the Expense Tracker backend."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file in project root
# backend/app/core/config.py -> backend -> project root
env_path = Path(__file__).resolve().parents[3] / ".env"
load_dotenv(env_path)


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")

# "local" (JSON files under DATA_DIR) or "firestore"
STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "local").strip().lower()

DATA_DIR = Path(os.environ.get("DATA_DIR", str(Path(__file__).resolve().parents[2] / "data")))

# Owner used when a request carries no X-User-Id header
DEFAULT_USER_ID = os.environ.get("DEFAULT_USER_ID", "local")

DEFAULT_PAGE_SIZE = _int_env("DEFAULT_PAGE_SIZE", 10)
MAX_PAGE_SIZE = _int_env("MAX_PAGE_SIZE", 100)

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"

LOCALHOST_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]

CORS_ORIGINS = {
    "development": LOCALHOST_ORIGINS,
    "production": [
        origin.strip()
        for origin in os.environ.get("CORS_ALLOW_ORIGINS", "").split(",")
        if origin.strip()
    ],
}


def cors_origins() -> list[str]:
    """Return allowed CORS origins for the current environment."""
    return CORS_ORIGINS.get(ENVIRONMENT) or CORS_ORIGINS["development"]
