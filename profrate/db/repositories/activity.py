"""
Activity log repository functions.

Append-only writes plus the windowed counts used for login and registration
throttling.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Iterable, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from profrate.db import schemas, models


def create_activity_log(db: Session, entry: schemas.ActivityLogCreate):
    data = entry.model_dump()
    metadata_payload = data.pop('metadata', None)
    db_entry = models.ActivityLog(**data, metadata_json=metadata_payload)
    db.add(db_entry)
    db.commit()
    db.refresh(db_entry)
    return db_entry


def get_activity_logs(
    db: Session,
    *,
    limit: int = 50,
    activity_type: Optional[str] = None,
    user_id: Optional[uuid.UUID] = None,
):
    query = db.query(models.ActivityLog)
    if activity_type:
        query = query.filter(models.ActivityLog.type == activity_type)
    if user_id:
        query = query.filter(models.ActivityLog.user_id == user_id)
    return query.order_by(models.ActivityLog.created_at.desc()).limit(limit).all()


def _windowed(
    db: Session,
    *,
    types: Iterable[str],
    since: datetime,
    username: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_id: Optional[uuid.UUID] = None,
):
    query = db.query(models.ActivityLog).filter(
        models.ActivityLog.type.in_(list(types)),
        models.ActivityLog.created_at >= since,
    )
    if username is not None:
        query = query.filter(models.ActivityLog.username == username)
    if ip_address is not None:
        query = query.filter(models.ActivityLog.ip_address == ip_address)
    if user_id is not None:
        query = query.filter(models.ActivityLog.user_id == user_id)
    return query


def count_activity_since(db: Session, **filters) -> int:
    return _windowed(db, **filters).count()


def oldest_activity_since(db: Session, **filters):
    return _windowed(db, **filters).order_by(models.ActivityLog.created_at.asc()).first()


def latest_activity_since(db: Session, **filters):
    return _windowed(db, **filters).order_by(models.ActivityLog.created_at.desc()).first()


def count_distinct_users_since(db: Session, *, activity_type: str, since: datetime) -> int:
    return (
        db.query(func.count(func.distinct(models.ActivityLog.user_id)))
        .filter(
            models.ActivityLog.type == activity_type,
            models.ActivityLog.created_at > since,
            models.ActivityLog.user_id.isnot(None),
        )
        .scalar()
        or 0
    )
