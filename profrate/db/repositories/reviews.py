"""
Review repository functions.

Every insert or delete recomputes the doctor's rating aggregate inside the
same transaction.
"""
from __future__ import annotations

from typing import Optional
from sqlalchemy.orm import Session

from profrate.db import models, schemas
from profrate.db.repositories import ratings as ratings_repo


def get_review(db: Session, review_id: int):
    return db.query(models.Review).filter(models.Review.id == review_id).first()


def get_reviews_by_doctor(db: Session, doctor_id: int):
    return (
        db.query(models.Review)
        .filter(models.Review.doctor_id == doctor_id)
        .order_by(models.Review.created_at.desc(), models.Review.id.desc())
        .all()
    )


def get_reviews_with_doctor(db: Session, limit: Optional[int] = None):
    """Return (review, doctor_name) pairs, newest first."""
    query = (
        db.query(models.Review, models.Doctor.name)
        .join(models.Doctor, models.Doctor.id == models.Review.doctor_id)
        .order_by(models.Review.created_at.desc(), models.Review.id.desc())
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def create_review(db: Session, doctor_id: int, review: schemas.ReviewCreate):
    db_review = models.Review(doctor_id=doctor_id, **review.model_dump())
    try:
        db.add(db_review)
        db.flush()
        ratings_repo.recompute_doctor_rating(db, doctor_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_review)
    return db_review


def delete_review(db: Session, review_id: int) -> bool:
    db_review = get_review(db, review_id)
    if not db_review:
        return False
    doctor_id = db_review.doctor_id
    try:
        db.delete(db_review)
        db.flush()
        ratings_repo.recompute_doctor_rating(db, doctor_id)
        db.commit()
        return True
    except Exception as e:
        db.rollback()
        raise RuntimeError(f"Failed to delete review {review_id}: {e}") from e
