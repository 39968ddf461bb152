"""One-time token helpers for CSRF, email verification and password resets.

Raw tokens are only ever handed to the client (or emailed); the database keeps
a SHA-256 digest so a leaked row cannot be replayed.
"""
from __future__ import annotations

import hashlib
import hmac
import secrets
import time
from typing import Optional

CSRF_TOKEN_BYTES = 32
CSRF_TOKEN_TTL_SECONDS = 60 * 60


def generate_session_id() -> str:
    return secrets.token_urlsafe(32)


def generate_url_token() -> str:
    """High-entropy url-safe token for email links."""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def tokens_match(candidate: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time equality that treats missing values as a mismatch."""
    if not candidate or not expected:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def new_csrf_token(now: Optional[float] = None) -> dict:
    """Return a fresh CSRF record as stored in the session body."""
    issued = time.time() if now is None else now
    return {
        "token": secrets.token_hex(CSRF_TOKEN_BYTES),
        "expires_at": issued + CSRF_TOKEN_TTL_SECONDS,
    }


def csrf_record_valid(record: Optional[dict], now: Optional[float] = None) -> bool:
    if not record or not record.get("token"):
        return False
    current = time.time() if now is None else now
    return float(record.get("expires_at") or 0) > current
