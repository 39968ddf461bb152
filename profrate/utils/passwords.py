"""
Password hashing, verification and strength scoring.

Responsibilities:
- Hash passwords with Argon2id
- Verify Argon2id hashes and legacy unsalted SHA-256 hex digests
- Report when a stored hash should be upgraded on next successful login
- Score password strength and produce user-facing feedback
"""
from __future__ import annotations

import hashlib
import hmac
import os
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from argon2.low_level import Type

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
PASSWORD_MIN_SCORE = 40

_COMMON_PATTERNS = ("password", "123456", "qwerty", "abc123", "admin")
_LEGACY_SHA256_RE = re.compile(r"^[0-9a-f]{64}$")


@lru_cache(maxsize=1)
def get_password_hasher() -> PasswordHasher:
    """Return the process-wide Argon2id hasher.

    Cost parameters can be lowered through ARGON2_* variables (tests do this);
    the defaults match interactive-login guidance.
    """
    return PasswordHasher(
        time_cost=int(os.getenv("ARGON2_TIME_COST", "2")),
        memory_cost=int(os.getenv("ARGON2_MEMORY_COST", "102400")),
        parallelism=int(os.getenv("ARGON2_PARALLELISM", "8")),
        hash_len=32,
        type=Type.ID,
    )


def hash_password(password: str) -> str:
    return get_password_hasher().hash(password)


def _legacy_sha256(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def is_legacy_hash(encoded: str) -> bool:
    return bool(encoded) and bool(_LEGACY_SHA256_RE.match(encoded))


def verify_password(password: str, encoded: str) -> bool:
    if not password or not encoded:
        return False
    if encoded.startswith("$argon2"):
        try:
            return get_password_hasher().verify(encoded, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False
    if is_legacy_hash(encoded):
        return hmac.compare_digest(_legacy_sha256(password), encoded)
    # Unknown scheme
    return False


def needs_rehash(encoded: str) -> bool:
    """True for legacy digests and Argon2 hashes made with outdated parameters."""
    if is_legacy_hash(encoded):
        return True
    try:
        return get_password_hasher().check_needs_rehash(encoded)
    except InvalidHashError:
        return True


@dataclass
class PasswordStrength:
    score: int
    valid: bool
    feedback: List[str] = field(default_factory=list)


def check_password_strength(password: str) -> PasswordStrength:
    """Score a candidate password.

    Length earns 20 at 8 characters plus 10 each at 12 and 16; each character
    class (lower, upper, digit, symbol) earns 15; a common pattern costs 20.
    A password is acceptable with a score of at least 40 and a length within
    bounds.
    """
    password = password or ""
    score = 0
    feedback: List[str] = []

    if len(password) >= PASSWORD_MIN_LENGTH:
        score += 20
    else:
        feedback.append(f"Use at least {PASSWORD_MIN_LENGTH} characters")
    if len(password) >= 12:
        score += 10
    if len(password) >= 16:
        score += 10

    if re.search(r"[a-z]", password):
        score += 15
    else:
        feedback.append("Add lowercase letters")
    if re.search(r"[A-Z]", password):
        score += 15
    else:
        feedback.append("Add uppercase letters")
    if re.search(r"\d", password):
        score += 15
    else:
        feedback.append("Add numbers")
    if re.search(r"[^A-Za-z0-9]", password):
        score += 15
    else:
        feedback.append("Add special characters")

    lowered = password.lower()
    if any(pattern in lowered for pattern in _COMMON_PATTERNS):
        score -= 20
        feedback.append("Avoid common patterns")

    if len(password) > PASSWORD_MAX_LENGTH:
        feedback.append(f"Use at most {PASSWORD_MAX_LENGTH} characters")

    valid = (
        PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH
        and score >= PASSWORD_MIN_SCORE
    )
    return PasswordStrength(score=max(score, 0), valid=valid, feedback=feedback)
