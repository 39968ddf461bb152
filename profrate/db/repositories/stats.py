"""
Dashboard statistics.

Growth compares current totals with the totals that existed 30 days ago.
"""
from __future__ import annotations

from datetime import timedelta
from sqlalchemy.orm import Session

from profrate.db import models
from profrate.db.repositories import activity as activity_repo

STATS_WINDOW_DAYS = 30


def growth_percent(current: int, previous: int) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return ((current - previous) / previous) * 100.0


def _count_before(db: Session, model, cutoff) -> int:
    return db.query(model).filter(model.created_at < cutoff).count()


def get_stats(db: Session) -> dict:
    cutoff = models.now_utc() - timedelta(days=STATS_WINDOW_DAYS)

    total_users = db.query(models.User).count()
    total_doctors = db.query(models.Doctor).count()
    total_reviews = db.query(models.Review).count()
    active_users = activity_repo.count_distinct_users_since(db, activity_type="login", since=cutoff)

    return {
        "total_users": total_users,
        "total_doctors": total_doctors,
        "total_reviews": total_reviews,
        "active_users": active_users,
        "users_growth": growth_percent(total_users, _count_before(db, models.User, cutoff)),
        "doctors_growth": growth_percent(total_doctors, _count_before(db, models.Doctor, cutoff)),
        "reviews_growth": growth_percent(total_reviews, _count_before(db, models.Review, cutoff)),
    }
