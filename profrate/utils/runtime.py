"""Runtime environment helpers: deployment mode and secrets sanity checks."""

import logging
import os
from typing import List

logger = logging.getLogger(__name__)

DEFAULT_SESSION_SECRET = "dev-insecure-session-secret-change-me"

_DEFAULT_CORS_ORIGINS: List[str] = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5000",
    "http://localhost:5173",
]


def app_env() -> str:
    """Return the normalized deployment environment name (APP_ENV)."""
    return (os.getenv("APP_ENV") or "development").strip().lower()


def is_production() -> bool:
    return app_env() == "production"


def session_secret() -> str:
    """Return the cookie-signing secret.

    Production refuses to start with the built-in development secret; other
    environments fall back to it with a warning.
    """
    secret = (os.getenv("SESSION_SECRET") or "").strip()
    if secret:
        return secret
    if is_production():
        raise RuntimeError("SESSION_SECRET must be set when APP_ENV=production")
    logger.warning("SESSION_SECRET is not set; using the development default")
    return DEFAULT_SESSION_SECRET


def session_secret_configured() -> bool:
    return bool((os.getenv("SESSION_SECRET") or "").strip())


def cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or list(_DEFAULT_CORS_ORIGINS)


def env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back on absent or malformed values."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("invalid integer for %s=%r; using %s", name, raw, default)
        return default
