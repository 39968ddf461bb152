"""
Database-backed throttles for login, registration and review submission.

Counts come from `activity_logs`, so limits hold across workers without a
shared cache. Each check returns the number of seconds to wait, or None when
the request may proceed.
"""
from __future__ import annotations

import math
import uuid
from datetime import timedelta
from typing import Optional

from fastapi import status
from sqlalchemy.orm import Session
from starlette.responses import JSONResponse

from profrate.activity import ActivityType
from profrate.db import models
from profrate.db.repositories import activity as activity_repo
from profrate.utils.runtime import env_int

LOGIN_WINDOW_SECONDS = 15 * 60
REGISTER_WINDOW_SECONDS = 60 * 60


def _retry_after(oldest, window_seconds: int) -> int:
    if oldest is None:
        return window_seconds
    elapsed = (models.now_utc() - models.as_utc(oldest.created_at)).total_seconds()
    return max(1, int(math.ceil(window_seconds - elapsed)))


def login_lockout_retry_after(db: Session, *, username: str, ip_address: Optional[str]) -> Optional[int]:
    """Lock a username+IP pair after repeated failures since its last successful login."""
    max_failures = env_int("LOGIN_MAX_FAILED_ATTEMPTS", 5)
    if max_failures <= 0:
        return None
    since = models.now_utc() - timedelta(seconds=LOGIN_WINDOW_SECONDS)
    last_success = activity_repo.latest_activity_since(
        db, types=[ActivityType.LOGIN.value], since=since, username=username
    )
    if last_success is not None:
        since = models.as_utc(last_success.created_at)
    filters = dict(types=[ActivityType.LOGIN_FAILED.value], since=since, username=username, ip_address=ip_address)
    if activity_repo.count_activity_since(db, **filters) < max_failures:
        return None
    return _retry_after(activity_repo.oldest_activity_since(db, **filters), LOGIN_WINDOW_SECONDS)


def login_rate_retry_after(db: Session, *, username: str) -> Optional[int]:
    max_attempts = env_int("LOGIN_MAX_ATTEMPTS", 10)
    if max_attempts <= 0:
        return None
    since = models.now_utc() - timedelta(seconds=LOGIN_WINDOW_SECONDS)
    filters = dict(
        types=[ActivityType.LOGIN.value, ActivityType.LOGIN_FAILED.value],
        since=since,
        username=username,
    )
    if activity_repo.count_activity_since(db, **filters) < max_attempts:
        return None
    return _retry_after(activity_repo.oldest_activity_since(db, **filters), LOGIN_WINDOW_SECONDS)


def registration_retry_after(db: Session, *, ip_address: Optional[str]) -> Optional[int]:
    max_attempts = env_int("REGISTER_MAX_PER_HOUR", 5)
    if max_attempts <= 0 or not ip_address:
        return None
    since = models.now_utc() - timedelta(seconds=REGISTER_WINDOW_SECONDS)
    filters = dict(
        types=[ActivityType.REGISTER.value, ActivityType.REGISTER_FAILED.value],
        since=since,
        ip_address=ip_address,
    )
    if activity_repo.count_activity_since(db, **filters) < max_attempts:
        return None
    return _retry_after(activity_repo.oldest_activity_since(db, **filters), REGISTER_WINDOW_SECONDS)


def review_retry_after(db: Session, *, user_id: uuid.UUID) -> Optional[int]:
    interval = env_int("REVIEW_MIN_INTERVAL_SECONDS", 30)
    if interval <= 0:
        return None
    since = models.now_utc() - timedelta(seconds=interval)
    last = activity_repo.latest_activity_since(
        db, types=[ActivityType.REVIEW_CREATE.value], since=since, user_id=user_id
    )
    if last is None:
        return None
    elapsed = (models.now_utc() - models.as_utc(last.created_at)).total_seconds()
    return max(1, int(math.ceil(interval - elapsed)))


def rate_limited(retry_after: int, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": detail, "retry_after_seconds": retry_after},
        headers={"Retry-After": str(retry_after)},
    )
