"""
Doctor rating aggregation.

`recompute_doctor_rating` rewrites the denormalized `doctor_ratings` row from
one aggregate query over the doctor's reviews. The caller owns the
transaction; nothing here commits.
"""
from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from profrate.db import models

_FACTOR_COLUMNS = (
    ("avg_teaching_quality", models.Review.teaching_quality),
    ("avg_availability", models.Review.availability),
    ("avg_communication", models.Review.communication),
    ("avg_knowledge", models.Review.knowledge),
    ("avg_fairness", models.Review.fairness),
)


def aggregate_reviews(db: Session, doctor_id: int) -> dict:
    """Return factor means, overall mean and review count; all zero without reviews."""
    row = (
        db.query(
            func.count(models.Review.id),
            *[func.avg(column) for _name, column in _FACTOR_COLUMNS],
        )
        .filter(models.Review.doctor_id == doctor_id)
        .one()
    )
    total = int(row[0] or 0)
    values = {
        name: (float(avg) if total and avg is not None else 0.0)
        for (name, _column), avg in zip(_FACTOR_COLUMNS, row[1:])
    }
    values["overall_rating"] = (sum(values.values()) / len(_FACTOR_COLUMNS)) if total else 0.0
    values["total_reviews"] = total
    return values


def recompute_doctor_rating(db: Session, doctor_id: int) -> dict:
    values = aggregate_reviews(db, doctor_id)
    values["updated_at"] = models.now_utc()
    dialect = db.get_bind().dialect.name

    if dialect in ("postgresql", "sqlite"):
        insert_fn = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert_fn(models.DoctorRating).values(doctor_id=doctor_id, **values)
        stmt = stmt.on_conflict_do_update(index_elements=["doctor_id"], set_=values)
        db.execute(stmt)
        # The identity map may hold a stale DoctorRating for this doctor
        db.expire_all()
    else:
        rating = db.query(models.DoctorRating).filter(models.DoctorRating.doctor_id == doctor_id).first()
        if rating is None:
            rating = models.DoctorRating(doctor_id=doctor_id)
            db.add(rating)
        for key, value in values.items():
            setattr(rating, key, value)
        db.flush()
    return values
