"""Input validation and sanitization helpers shared by schemas and routes."""

from __future__ import annotations

import re
from typing import Optional

MAX_INPUT_LENGTHS = {
    "username": 30,
    "password": 128,
    "email": 254,
    "first_name": 100,
    "last_name": 100,
    "student_id": 64,
    "doctor_name": 255,
    "title": 100,
    "department": 100,
    "bio": 5000,
    "comment": 5000,
    "url": 2048,
}

USERNAME_MIN_LENGTH = 3
_USERNAME_RE = re.compile(r"^[a-z0-9._-]+$")
_EMAIL_RE = re.compile(r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+$")
_NAME_RE = re.compile(r"^[^\W\d_]+(?:[ '\-][^\W\d_]+)*$")
_TAG_RE = re.compile(r"<[^>]*>")


def contains_null_byte(value: Optional[str]) -> bool:
    return bool(value) and "\x00" in value


def normalize_username(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def normalize_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = value.strip().lower()
    return v or None


def username_error(username: str) -> Optional[str]:
    """Return a human-readable problem with a normalized username, or None when it is acceptable."""
    if len(username) < USERNAME_MIN_LENGTH:
        return f"Username must be at least {USERNAME_MIN_LENGTH} characters"
    if len(username) > MAX_INPUT_LENGTHS["username"]:
        return f"Username must be at most {MAX_INPUT_LENGTHS['username']} characters"
    if not _USERNAME_RE.match(username):
        return "Username may only contain letters, digits, dots, underscores and hyphens"
    if username.startswith("."):
        return "Username cannot start with a dot"
    return None


def is_valid_email(email: Optional[str]) -> bool:
    if not email or len(email) > MAX_INPUT_LENGTHS["email"]:
        return False
    return bool(_EMAIL_RE.match(email))


def is_valid_person_name(name: Optional[str]) -> bool:
    """Letters with single spaces, hyphens or apostrophes between them."""
    if not name:
        return False
    if len(name) > MAX_INPUT_LENGTHS["first_name"]:
        return False
    return bool(_NAME_RE.match(name))


def strip_html(value: Optional[str]) -> Optional[str]:
    """Remove markup tags from free text and trim it; empty results become None."""
    if value is None:
        return None
    text = _TAG_RE.sub("", value).strip()
    return text or None


__all__ = [
    "MAX_INPUT_LENGTHS",
    "contains_null_byte",
    "normalize_username",
    "normalize_email",
    "username_error",
    "is_valid_email",
    "is_valid_person_name",
    "strip_html",
]
