"""
User self-service and profile image delivery.
"""
import logging
import uuid
from urllib.parse import urlparse

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.orm import Session

from profrate.activity import ActivityType, log_safely
from profrate.api.deps import get_current_user, require_csrf
from profrate.db import models, schemas
from profrate.db.database import get_db
from profrate.db.repositories import doctors as doctors_repo
from profrate.db.repositories import users as users_repo
from profrate.services.account_email_service import get_account_email_service
from profrate.utils.images import decode_data_url, is_data_url
from profrate.utils.tokens import generate_url_token, hash_token
from profrate.utils.validation import is_valid_email, is_valid_person_name, normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"], dependencies=[Depends(require_csrf)])
images_router = APIRouter(prefix="/api/profile-image", tags=["users"])

IMAGE_CACHE_CONTROL = "public, max-age=86400"


@router.patch("/me", response_model=schemas.User)
def update_me_endpoint(
    payload: schemas.UserProfileUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    changes = payload.model_dump(exclude_unset=True)
    for field in ("first_name", "last_name"):
        value = (changes.get(field) or "").strip()
        if field in changes:
            if value and not is_valid_person_name(value):
                raise HTTPException(status_code=400, detail=f"Invalid {field.replace('_', ' ')}")
            changes[field] = value or None
    if "student_id" in changes:
        changes["student_id"] = (changes["student_id"] or "").strip() or None

    email_changed = False
    if "email" in changes:
        email = normalize_email(changes["email"])
        if email is not None and not is_valid_email(email):
            raise HTTPException(status_code=400, detail="Invalid email address")
        if email and email != user.email:
            existing = users_repo.get_user_by_email(db, email)
            if existing is not None and existing.id != user.id:
                raise HTTPException(status_code=409, detail="Email already registered")
        email_changed = email != user.email
        changes["email"] = email

    updated = users_repo.update_user_profile(db, user, schemas.UserProfileUpdate(**changes))

    if email_changed:
        # A new address has to be proven again
        updated.email_verified = False
        token = None
        if updated.email:
            token = generate_url_token()
        users_repo.set_verification_token(db, updated, hash_token(token) if token else None)
        if token:
            background_tasks.add_task(
                get_account_email_service().send_verification_email, updated.email, updated.username, token
            )

    log_safely(
        db,
        activity_type=ActivityType.PROFILE_UPDATE,
        action="Profile updated",
        user=updated,
        request=request,
        metadata={"fields": sorted(changes)},
    )
    return updated


def _serve_image(stored: str):
    if not stored:
        raise HTTPException(status_code=404, detail="No profile image")
    if is_data_url(stored):
        try:
            image = decode_data_url(stored)
        except ValueError:
            logger.warning("profile_image_corrupt")
            raise HTTPException(status_code=404, detail="No profile image")
        return Response(
            content=image.data,
            media_type=image.content_type,
            headers={"Cache-Control": IMAGE_CACHE_CONTROL},
        )
    if urlparse(stored).scheme != "https":
        logger.warning("profile_image_unsafe_url")
        raise HTTPException(status_code=404, detail="No profile image")
    return RedirectResponse(url=stored, status_code=307)


@images_router.get("/user/{user_id}")
def user_profile_image_endpoint(user_id: str, db: Session = Depends(get_db)):
    try:
        parsed = uuid.UUID(user_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="No profile image")
    user = users_repo.get_user(db, parsed)
    return _serve_image(user.profile_image_url if user else None)


@images_router.get("/doctor/{doctor_id}")
def doctor_profile_image_endpoint(doctor_id: str, db: Session = Depends(get_db)):
    try:
        parsed = int(doctor_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="No profile image")
    doctor = doctors_repo.get_doctor(db, parsed)
    return _serve_image(doctor.profile_image_url if doctor else None)
