"""
Server-side session storage.

Rows are keyed by an opaque `sid`; expired rows are ignored on read and
removed by `prune_expired_sessions`.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from profrate.db import models
from profrate.utils.tokens import generate_session_id


def _expiry(ttl_seconds: int) -> datetime:
    return models.now_utc() + timedelta(seconds=ttl_seconds)


def create_session(db: Session, body: dict, ttl_seconds: int):
    row = models.UserSession(sid=generate_session_id(), sess=dict(body), expire=_expiry(ttl_seconds))
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def get_session(db: Session, sid: Optional[str]):
    if not sid:
        return None
    row = db.query(models.UserSession).filter(models.UserSession.sid == sid).first()
    if row is None:
        return None
    if models.as_utc(row.expire) <= models.now_utc():
        return None
    return row


def save_session(db: Session, row: models.UserSession, body: dict, ttl_seconds: int):
    # Reassign a new dict so the JSON column registers the change
    row.sess = dict(body)
    row.expire = _expiry(ttl_seconds)
    db.commit()
    db.refresh(row)
    return row


def destroy_session(db: Session, sid: Optional[str]) -> bool:
    if not sid:
        return False
    deleted = db.query(models.UserSession).filter(models.UserSession.sid == sid).delete(synchronize_session=False)
    db.commit()
    return bool(deleted)


def _owner_expr(db: Session):
    if db.get_bind().dialect.name == "postgresql":
        return models.UserSession.sess["user_id"].astext
    return func.json_extract(models.UserSession.sess, "$.user_id")


def destroy_user_sessions(db: Session, user_id, *, except_sid: Optional[str] = None) -> int:
    """Delete every session bound to `user_id`, optionally sparing one."""
    query = db.query(models.UserSession).filter(_owner_expr(db) == str(user_id))
    if except_sid:
        query = query.filter(models.UserSession.sid != except_sid)
    removed = query.delete(synchronize_session=False)
    db.commit()
    return removed


def prune_expired_sessions(db: Session) -> int:
    deleted = (
        db.query(models.UserSession)
        .filter(models.UserSession.expire <= models.now_utc())
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
