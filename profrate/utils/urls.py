"""
URL utilities for building absolute links in account emails.

Primary source: APP_BASE_URL (e.g., https://rate.example.edu)
Fallback: APP_HOST (adds scheme heuristically if missing).
"""
from __future__ import annotations

import os
from urllib.parse import urlencode

DEFAULT_BASE_URL = "http://localhost:5000"


def _add_scheme_if_missing(host: str) -> str:
    h = host.strip()
    if h.startswith("http://") or h.startswith("https://"):
        return h
    lower = h.lower()
    if lower.startswith("localhost") or lower.startswith("127.0.0.1"):
        return f"http://{h}"
    return f"https://{h}"


def get_app_base_url() -> str:
    """Return normalized base URL for the frontend application."""
    base = (os.getenv("APP_BASE_URL") or "").strip()
    if base:
        return base.rstrip("/")
    host = (os.getenv("APP_HOST") or "").strip()
    if host:
        return _add_scheme_if_missing(host).rstrip("/")
    return DEFAULT_BASE_URL


def build_app_link(path: str, **params: str) -> str:
    """Join a frontend path and query parameters onto the base URL."""
    url = f"{get_app_base_url()}/{path.lstrip('/')}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def build_verification_link(token: str) -> str:
    return build_app_link("verify-email", token=token)


def build_reset_password_link(token: str) -> str:
    return build_app_link("reset-password", token=token)


def build_login_link() -> str:
    return build_app_link("login")
