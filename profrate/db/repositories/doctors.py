"""
Doctor repository functions.

Listings always load the rating aggregate alongside each doctor; doctors
without reviews carry `ratings = None`.
"""
from __future__ import annotations

from typing import List, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from profrate.db import models, schemas

SORT_NEWEST = "newest"
SORT_NAME = "name"
SORT_RATING = "rating"
SORT_REVIEWS = "reviews"
SORT_OPTIONS = (SORT_NEWEST, SORT_NAME, SORT_RATING, SORT_REVIEWS)


def get_doctor(db: Session, doctor_id: int):
    return (
        db.query(models.Doctor)
        .options(joinedload(models.Doctor.ratings))
        .filter(models.Doctor.id == doctor_id)
        .first()
    )


def get_doctors(
    db: Session,
    *,
    search: Optional[str] = None,
    department: Optional[str] = None,
    sort: str = SORT_NEWEST,
    skip: int = 0,
    limit: Optional[int] = None,
):
    query = db.query(models.Doctor).options(joinedload(models.Doctor.ratings))
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(models.Doctor.name).like(pattern),
                func.lower(models.Doctor.department).like(pattern),
                func.lower(func.coalesce(models.Doctor.title, "")).like(pattern),
            )
        )
    if department:
        query = query.filter(func.lower(models.Doctor.department) == department.strip().lower())

    if sort in (SORT_RATING, SORT_REVIEWS):
        query = query.outerjoin(models.DoctorRating, models.DoctorRating.doctor_id == models.Doctor.id)
        key = models.DoctorRating.overall_rating if sort == SORT_RATING else models.DoctorRating.total_reviews
        query = query.order_by(func.coalesce(key, 0).desc(), models.Doctor.name.asc())
    elif sort == SORT_NAME:
        query = query.order_by(models.Doctor.name.asc())
    else:
        query = query.order_by(models.Doctor.created_at.desc(), models.Doctor.id.desc())

    query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_doctors_by_ids(db: Session, doctor_ids: List[int]):
    """Fetch doctors in the order requested; unknown ids are omitted."""
    rows = (
        db.query(models.Doctor)
        .options(joinedload(models.Doctor.ratings))
        .filter(models.Doctor.id.in_(doctor_ids))
        .all()
    )
    by_id = {d.id: d for d in rows}
    return [by_id[i] for i in doctor_ids if i in by_id]


def get_departments(db: Session) -> List[str]:
    rows = db.query(models.Doctor.department).distinct().order_by(models.Doctor.department.asc()).all()
    return [r[0] for r in rows]


def count_doctors(db: Session) -> int:
    return db.query(models.Doctor).count()


def create_doctor(db: Session, doctor: schemas.DoctorCreate):
    db_doctor = models.Doctor(**doctor.model_dump())
    db.add(db_doctor)
    db.commit()
    db.refresh(db_doctor)
    return db_doctor


def update_doctor(db: Session, doctor_id: int, doctor: schemas.DoctorUpdate):
    db_doctor = get_doctor(db, doctor_id)
    if not db_doctor:
        return None
    for key, value in doctor.model_dump(exclude_unset=True).items():
        if value is None and key in ("name", "department"):
            continue
        setattr(db_doctor, key, value)
    db.commit()
    db.refresh(db_doctor)
    return db_doctor


def delete_doctor(db: Session, doctor_id: int) -> bool:
    db_doctor = db.query(models.Doctor).filter(models.Doctor.id == doctor_id).first()
    if not db_doctor:
        return False
    try:
        db.delete(db_doctor)
        db.commit()
        return True
    except Exception as e:
        db.rollback()
        raise RuntimeError(f"Failed to delete doctor {doctor_id}: {e}") from e
