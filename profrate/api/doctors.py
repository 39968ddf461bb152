"""
Doctors API endpoints.

Public browsing (list, search, compare, detail), admin-only catalogue
management, and the per-doctor review feed and submission.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from profrate.activity import ActivityType, log_safely
from profrate.api import rate_limits
from profrate.api.deps import require_admin, require_csrf, require_student
from profrate.db import models, schemas
from profrate.db.database import get_db
from profrate.db.repositories import doctors as doctors_repo
from profrate.db.repositories import reviews as reviews_repo

router = APIRouter(prefix="/api/doctors", tags=["doctors"], dependencies=[Depends(require_csrf)])

COMPARE_MIN = 2
COMPARE_MAX = 4


def parse_doctor_id(raw: str) -> int:
    """Path ids arrive as text so malformed ids answer 400 rather than 422."""
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid doctor ID")
    if value <= 0:
        raise HTTPException(status_code=400, detail="Invalid doctor ID")
    return value


def _get_doctor_or_404(db: Session, raw_id: str) -> models.Doctor:
    doctor = doctors_repo.get_doctor(db, parse_doctor_id(raw_id))
    if doctor is None:
        raise HTTPException(status_code=404, detail="Doctor not found")
    return doctor


@router.get("", response_model=List[schemas.Doctor])
def list_doctors_endpoint(
    search: Optional[str] = None,
    department: Optional[str] = None,
    sort: str = doctors_repo.SORT_NEWEST,
    db: Session = Depends(get_db),
):
    if sort not in doctors_repo.SORT_OPTIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid sort; expected one of: {', '.join(doctors_repo.SORT_OPTIONS)}",
        )
    return doctors_repo.get_doctors(db, search=search, department=department, sort=sort)


@router.get("/departments", response_model=List[str])
def list_departments_endpoint(db: Session = Depends(get_db)):
    return doctors_repo.get_departments(db)


@router.get("/compare", response_model=List[schemas.Doctor])
def compare_doctors_endpoint(ids: str = "", db: Session = Depends(get_db)):
    doctor_ids: List[int] = []
    for part in ids.split(","):
        if not part.strip():
            continue
        value = parse_doctor_id(part)
        if value not in doctor_ids:
            doctor_ids.append(value)
    if not COMPARE_MIN <= len(doctor_ids) <= COMPARE_MAX:
        raise HTTPException(
            status_code=400,
            detail=f"Provide between {COMPARE_MIN} and {COMPARE_MAX} distinct doctor IDs",
        )
    doctors = doctors_repo.get_doctors_by_ids(db, doctor_ids)
    if len(doctors) != len(doctor_ids):
        found = {d.id for d in doctors}
        missing = [str(i) for i in doctor_ids if i not in found]
        raise HTTPException(status_code=404, detail=f"Doctor not found: {', '.join(missing)}")
    return doctors


@router.get("/{doctor_id}", response_model=schemas.Doctor)
def get_doctor_endpoint(doctor_id: str, db: Session = Depends(get_db)):
    return _get_doctor_or_404(db, doctor_id)


@router.post("", response_model=schemas.Doctor, status_code=status.HTTP_201_CREATED)
def create_doctor_endpoint(
    doctor: schemas.DoctorCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    created = doctors_repo.create_doctor(db, doctor)
    log_safely(
        db,
        activity_type=ActivityType.DOCTOR_CREATE,
        action=f"Created doctor {created.name}",
        user=admin,
        request=request,
        metadata={"doctor_id": created.id},
    )
    return created


@router.patch("/{doctor_id}", response_model=schemas.Doctor)
def update_doctor_endpoint(
    doctor_id: str,
    doctor: schemas.DoctorUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    updated = doctors_repo.update_doctor(db, parse_doctor_id(doctor_id), doctor)
    if updated is None:
        raise HTTPException(status_code=404, detail="Doctor not found")
    log_safely(
        db,
        activity_type=ActivityType.DOCTOR_UPDATE,
        action=f"Updated doctor {updated.name}",
        user=admin,
        request=request,
        metadata={"doctor_id": updated.id, "fields": sorted(doctor.model_dump(exclude_unset=True))},
    )
    return updated


@router.delete("/{doctor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_doctor_endpoint(
    doctor_id: str,
    request: Request,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    delete_doctor_as(db, parse_doctor_id(doctor_id), admin=admin, request=request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def delete_doctor_as(db: Session, doctor_id: int, *, admin: models.User, request: Request) -> None:
    """Delete a doctor (reviews and rating cascade) and record who did it."""
    doctor = doctors_repo.get_doctor(db, doctor_id)
    if doctor is None:
        raise HTTPException(status_code=404, detail="Doctor not found")
    name = doctor.name
    doctors_repo.delete_doctor(db, doctor_id)
    log_safely(
        db,
        activity_type=ActivityType.DOCTOR_DELETE,
        action=f"Deleted doctor {name}",
        user=admin,
        request=request,
        metadata={"doctor_id": doctor_id},
    )


@router.get("/{doctor_id}/reviews", response_model=List[schemas.Review])
def list_doctor_reviews_endpoint(doctor_id: str, db: Session = Depends(get_db)):
    doctor = _get_doctor_or_404(db, doctor_id)
    return reviews_repo.get_reviews_by_doctor(db, doctor.id)


@router.post("/{doctor_id}/reviews", response_model=schemas.Review, status_code=status.HTTP_201_CREATED)
def create_review_endpoint(
    doctor_id: str,
    review: schemas.ReviewCreate,
    request: Request,
    db: Session = Depends(get_db),
    student: models.User = Depends(require_student),
):
    doctor = _get_doctor_or_404(db, doctor_id)

    retry_after = rate_limits.review_retry_after(db, user_id=student.id)
    if retry_after is not None:
        return rate_limits.rate_limited(retry_after, "Please wait before submitting another review.")

    created = reviews_repo.create_review(db, doctor.id, review)
    # The review row stays anonymous; only the activity row knows the author
    log_safely(
        db,
        activity_type=ActivityType.REVIEW_CREATE,
        action=f"Submitted review for {doctor.name}",
        user=student,
        request=request,
        metadata={"doctor_id": doctor.id, "review_id": created.id},
    )
    return created
