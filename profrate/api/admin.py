"""
Admin dashboard API.

User, doctor and review moderation, the activity feed, and data export.
Every route requires the admin role; every change is written to the
activity log.
"""
import csv
import io
import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from profrate.activity import ActivityType, log_safely
from profrate.api.deps import require_admin, require_csrf
from profrate.api.doctors import delete_doctor_as
from profrate.api.reviews import with_doctor_name
from profrate.db import models, schemas
from profrate.db.database import get_db
from profrate.db.repositories import activity as activity_repo
from profrate.db.repositories import doctors as doctors_repo
from profrate.db.repositories import reviews as reviews_repo
from profrate.db.repositories import sessions as sessions_repo
from profrate.db.repositories import stats as stats_repo
from profrate.db.repositories import users as users_repo

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_csrf), Depends(require_admin)],
)

EXPORT_FORMATS = ("json", "csv")
EXPORT_RESOURCES = ("users", "doctors", "reviews")


@router.get("/stats", response_model=schemas.Stats)
def admin_stats_endpoint(db: Session = Depends(get_db)):
    return stats_repo.get_stats(db)


@router.get("/users", response_model=List[schemas.User])
def admin_list_users_endpoint(db: Session = Depends(get_db)):
    return users_repo.get_users(db)


@router.patch("/users/{user_id}/role", response_model=schemas.User)
def admin_update_user_role_endpoint(
    user_id: uuid.UUID,
    payload: schemas.UserRoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    role = (payload.role or "").strip().lower()
    if role not in models.ALL_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role")
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot change your own role")
    target = users_repo.get_user(db, user_id)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")

    previous_role = target.role
    updated = users_repo.update_user_role(db, target, role)
    log_safely(
        db,
        activity_type=ActivityType.USER_ROLE_CHANGE,
        action=f"Changed role of {updated.username} from {previous_role} to {role}",
        user=admin,
        request=request,
        metadata={"target_user_id": str(updated.id), "old_role": previous_role, "new_role": role},
    )
    return updated


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_delete_user_endpoint(
    user_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    target = users_repo.get_user(db, user_id)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")

    username = target.username
    sessions_repo.destroy_user_sessions(db, user_id)
    users_repo.delete_user(db, user_id)
    log_safely(
        db,
        activity_type=ActivityType.USER_DELETE,
        action=f"Deleted user {username}",
        user=admin,
        request=request,
        metadata={"target_user_id": str(user_id)},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/doctors", response_model=List[schemas.Doctor])
def admin_list_doctors_endpoint(db: Session = Depends(get_db)):
    return doctors_repo.get_doctors(db, sort=doctors_repo.SORT_NAME)


@router.post("/doctors", response_model=schemas.Doctor, status_code=status.HTTP_201_CREATED)
def admin_create_doctor_endpoint(
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


@router.delete("/doctors/{doctor_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_delete_doctor_endpoint(
    doctor_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    delete_doctor_as(db, doctor_id, admin=admin, request=request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/reviews", response_model=List[schemas.ReviewWithDoctor])
def admin_list_reviews_endpoint(db: Session = Depends(get_db)):
    return with_doctor_name(reviews_repo.get_reviews_with_doctor(db))


@router.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_delete_review_endpoint(
    review_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    review = reviews_repo.get_review(db, review_id)
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    doctor_id = review.doctor_id
    reviews_repo.delete_review(db, review_id)
    log_safely(
        db,
        activity_type=ActivityType.REVIEW_DELETE,
        action=f"Deleted review {review_id}",
        user=admin,
        request=request,
        metadata={"review_id": review_id, "doctor_id": doctor_id},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/activity", response_model=List[schemas.ActivityLog])
def admin_activity_endpoint(
    limit: int = Query(default=50, ge=1, le=500),
    type: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return activity_repo.get_activity_logs(db, limit=limit, activity_type=type)


def _export_rows(db: Session, resource: str):
    """Return (header, rows) for one CSV resource."""
    if resource == "users":
        header = ["id", "username", "email", "first_name", "last_name", "role", "student_id",
                  "email_verified", "created_at"]
        rows = [
            [str(u.id), u.username, u.email or "", u.first_name or "", u.last_name or "", u.role,
             u.student_id or "", u.email_verified, u.created_at.isoformat() if u.created_at else ""]
            for u in users_repo.get_users(db)
        ]
    elif resource == "doctors":
        header = ["id", "name", "department", "title", "overall_rating", "total_reviews", "created_at"]
        rows = [
            [d.id, d.name, d.department, d.title or "",
             d.ratings.overall_rating if d.ratings else "",
             d.ratings.total_reviews if d.ratings else 0,
             d.created_at.isoformat() if d.created_at else ""]
            for d in doctors_repo.get_doctors(db, sort=doctors_repo.SORT_NAME)
        ]
    else:
        header = ["id", "doctor_id", "doctor_name", "teaching_quality", "availability", "communication",
                  "knowledge", "fairness", "comment", "created_at"]
        rows = [
            [r.id, r.doctor_id, doctor_name, r.teaching_quality, r.availability, r.communication,
             r.knowledge, r.fairness, r.comment or "", r.created_at.isoformat() if r.created_at else ""]
            for r, doctor_name in reviews_repo.get_reviews_with_doctor(db)
        ]
    return header, rows


@router.get("/export")
def admin_export_endpoint(
    request: Request,
    format: str = "json",
    resource: Optional[str] = None,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
):
    fmt = format.lower()
    if fmt not in EXPORT_FORMATS:
        raise HTTPException(status_code=400, detail="Invalid export format; expected json or csv")
    if fmt == "csv" and resource not in EXPORT_RESOURCES:
        raise HTTPException(status_code=400, detail="CSV export requires resource=users, doctors or reviews")

    stamp = models.now_utc()
    log_safely(
        db,
        activity_type=ActivityType.DATA_EXPORT,
        action=f"Exported {resource or 'all data'} as {fmt}",
        user=admin,
        request=request,
        metadata={"format": fmt, "resource": resource},
    )

    if fmt == "csv":
        header, rows = _export_rows(db, resource)
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(header)
        writer.writerows(rows)
        output.seek(0)
        filename = f"profrate_{resource}_{stamp.strftime('%Y%m%d_%H%M%S')}.csv"
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    users = [schemas.User.model_validate(u).model_dump(mode="json") for u in users_repo.get_users(db)]
    doctors = [
        schemas.Doctor.model_validate(d).model_dump(mode="json")
        for d in doctors_repo.get_doctors(db, sort=doctors_repo.SORT_NAME)
    ]
    reviews = [r.model_dump(mode="json") for r in with_doctor_name(reviews_repo.get_reviews_with_doctor(db))]
    logger.info("admin_export admin=%s format=json users=%d doctors=%d reviews=%d",
                admin.username, len(users), len(doctors), len(reviews))
    return {
        "users": users,
        "doctors": doctors,
        "reviews": reviews,
        "export_date": stamp.isoformat(),
        "totals": {"users": len(users), "doctors": len(doctors), "reviews": len(reviews)},
    }
