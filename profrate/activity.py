"""
Activity logging helpers and enums.

Centralized helpers to persist security and moderation events with a
consistent shape; the admin activity feed, active-user statistics and the
login/registration throttles all read these rows.
"""
from __future__ import annotations
import logging
import os
from enum import Enum
from typing import Any, Optional, Dict, Tuple
from sqlalchemy.orm import Session
from starlette.requests import Request

from profrate.db import schemas
from profrate.db.repositories import activity as activity_repo

logger = logging.getLogger(__name__)


class ActivityType(str, Enum):
    # Authentication
    LOGIN = "login"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    REGISTER = "register"
    REGISTER_FAILED = "register_failed"
    # Account
    EMAIL_VERIFIED = "email_verified"
    PASSWORD_RESET_REQUEST = "password_reset_request"
    PASSWORD_RESET = "password_reset"
    PASSWORD_CHANGE = "password_change"
    USERNAME_CHANGE = "username_change"
    USERNAME_REMINDER = "username_reminder"
    PROFILE_UPDATE = "profile_update"
    # Content
    REVIEW_CREATE = "review_create"
    REVIEW_DELETE = "review_delete"
    DOCTOR_CREATE = "doctor_create"
    DOCTOR_UPDATE = "doctor_update"
    DOCTOR_DELETE = "doctor_delete"
    # Administration
    USER_ROLE_CHANGE = "user_role_change"
    USER_DELETE = "user_delete"
    DATA_EXPORT = "data_export"


def client_ip(request: Optional[Request]) -> Optional[str]:
    """Return the caller address; X-Forwarded-For is honoured only behind a trusted proxy."""
    if request is None:
        return None
    if os.getenv("TRUST_PROXY_HEADERS", "false").lower() == "true":
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def request_meta(request: Optional[Request]) -> Tuple[Optional[str], Optional[str]]:
    if request is None:
        return None, None
    user_agent = request.headers.get("user-agent")
    return client_ip(request), (user_agent[:512] if user_agent else None)


def log(
    db: Session,
    *,
    activity_type: ActivityType | str,
    action: str,
    user: Any = None,
    username: Optional[str] = None,
    request: Optional[Request] = None,
    metadata: Optional[Dict[str, Any]] = None,
):
    """Central activity logging helper.

    `user` may be an ORM user; `username` covers events without one (failed
    logins for unknown accounts).
    """
    # Persist pure string values, not Enum reprs
    type_value = activity_type.value if isinstance(activity_type, ActivityType) else str(activity_type)
    ip_address, user_agent = request_meta(request)
    entry = schemas.ActivityLogCreate(
        user_id=getattr(user, "id", None),
        username=getattr(user, "username", None) or username,
        role=getattr(user, "role", None),
        action=action,
        type=type_value,
        ip_address=ip_address,
        user_agent=user_agent,
        metadata=metadata or None,
    )
    return activity_repo.create_activity_log(db, entry)


def log_safely(db: Session, **kwargs) -> None:
    """Record an activity row without letting a logging failure fail the request."""
    try:
        log(db, **kwargs)
    except Exception as e:
        db.rollback()
        logger.warning("activity_log_failed type=%s: %s", kwargs.get("activity_type"), e)


__all__ = ["ActivityType", "client_ip", "request_meta", "log", "log_safely"]
