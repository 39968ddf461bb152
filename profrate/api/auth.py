"""
Authentication API endpoints.

Username/password login backed by server-side sessions, self-registration,
email verification, password and username recovery, and account
self-service (password, username and profile picture changes).
"""
import logging
import os
from datetime import timedelta
from typing import Optional, Set

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.responses import RedirectResponse

from profrate.activity import ActivityType, client_ip, log_safely
from profrate.api import rate_limits
from profrate.api.deps import get_current_user, get_session_service, require_csrf
from profrate.db import models, schemas
from profrate.db.database import get_db
from profrate.db.repositories import sessions as sessions_repo
from profrate.db.repositories import users as users_repo
from profrate.services.account_email_service import RESET_TOKEN_TTL_HOURS, get_account_email_service
from profrate.services.recaptcha_service import RecaptchaUnavailable, get_recaptcha_service
from profrate.services.session_service import SessionService
from profrate.utils.feature_flags import email_verification_required, registration_enabled
from profrate.utils.images import validate_image_reference
from profrate.utils.passwords import check_password_strength, hash_password, needs_rehash, verify_password
from profrate.utils.tokens import generate_url_token, hash_token
from profrate.utils.validation import (
    is_valid_email,
    is_valid_person_name,
    normalize_email,
    normalize_username,
    username_error,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"], dependencies=[Depends(require_csrf)])
# Paths kept for older clients
legacy_router = APIRouter(prefix="/api", tags=["auth"], dependencies=[Depends(require_csrf)])

GENERIC_RECOVERY_MESSAGE = "If an account exists for that email, we've sent instructions to it"


def _normalize_list_env(name: str) -> Set[str]:
    raw = os.getenv(name, "")
    return {item.strip().lower() for item in raw.split(",") if item.strip()}


def _admin_usernames() -> Set[str]:
    return _normalize_list_env("ADMIN_USERNAMES")


def _admin_emails() -> Set[str]:
    return _normalize_list_env("ADMIN_EMAILS")


def is_allowlisted_admin(username: Optional[str], email: Optional[str]) -> bool:
    """Admin role is only ever granted to configured usernames or emails."""
    if username and normalize_username(username) in _admin_usernames():
        return True
    normalized = normalize_email(email)
    return bool(normalized) and normalized in _admin_emails()


def _auth_payload(user: models.User) -> schemas.AuthResponse:
    return schemas.AuthResponse(user=schemas.User.model_validate(user))


def _issue_verification_token(db: Session, user: models.User) -> str:
    token = generate_url_token()
    users_repo.set_verification_token(db, user, hash_token(token))
    return token


def _password_problem(password: str) -> Optional[str]:
    strength = check_password_strength(password)
    if strength.valid:
        return None
    return "Password is too weak: " + "; ".join(strength.feedback or ["choose a longer, more varied password"])


@router.get("/user", response_model=Optional[schemas.User])
def get_auth_user(response: Response, sessions: SessionService = Depends(get_session_service)):
    """Return the signed-in user, or null for anonymous callers."""
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return sessions.current_user()


@router.get("/csrf-token", response_model=schemas.CsrfTokenResponse)
def get_csrf_token(sessions: SessionService = Depends(get_session_service)):
    return {"csrf_token": sessions.csrf_token()}


@router.get("/available")
def auth_available():
    """No external identity provider is wired in; clients use password login."""
    return {"enabled": False}


@router.post("/login", response_model=schemas.AuthResponse)
def login(
    payload: schemas.LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    identifier = (payload.username or "").strip()
    password = payload.password or ""
    if not identifier or not password:
        raise HTTPException(status_code=400, detail="Username and password are required")

    user = users_repo.get_user_by_login(db, identifier)
    throttle_key = user.username if user else normalize_username(identifier)
    ip_address = client_ip(request)

    retry_after = rate_limits.login_lockout_retry_after(db, username=throttle_key, ip_address=ip_address)
    if retry_after is not None:
        logger.warning("login_locked username=%s ip=%s", throttle_key, ip_address)
        return rate_limits.rate_limited(retry_after, "Too many failed login attempts. Please try again later.")
    retry_after = rate_limits.login_rate_retry_after(db, username=throttle_key)
    if retry_after is not None:
        return rate_limits.rate_limited(retry_after, "Too many login attempts. Please try again later.")

    if user is None or not verify_password(password, user.password_hash):
        log_safely(
            db,
            activity_type=ActivityType.LOGIN_FAILED,
            action="Failed login attempt",
            user=user,
            username=throttle_key,
            request=request,
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    if needs_rehash(user.password_hash):
        users_repo.set_password_hash(db, user, hash_password(password))

    if email_verification_required() and user.email and not user.email_verified:
        raise HTTPException(status_code=403, detail="Please verify your email address before signing in")

    sessions.login(user)
    log_safely(db, activity_type=ActivityType.LOGIN, action="User logged in", user=user, request=request)
    logger.info("login_ok user_id=%s", user.id)
    return _auth_payload(user)


@router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: schemas.RegisterRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    if not registration_enabled():
        raise HTTPException(status_code=403, detail="Registration is disabled")

    ip_address = client_ip(request)
    retry_after = rate_limits.registration_retry_after(db, ip_address=ip_address)
    if retry_after is not None:
        return rate_limits.rate_limited(retry_after, "Too many registration attempts. Please try again later.")

    username = normalize_username(payload.username)
    password = payload.password or ""

    def reject(detail: str, status_code: int = 400):
        log_safely(
            db,
            activity_type=ActivityType.REGISTER_FAILED,
            action=f"Registration rejected: {detail}",
            username=username or None,
            request=request,
        )
        raise HTTPException(status_code=status_code, detail=detail)

    if not username or not password:
        reject("Username and password are required")

    recaptcha = get_recaptcha_service()
    try:
        verdict = recaptcha.verify(payload.recaptcha_token, ip_address)
    except RecaptchaUnavailable:
        raise HTTPException(status_code=503, detail="reCAPTCHA verification is temporarily unavailable")
    if not verdict.ok:
        reject(verdict.reason or "reCAPTCHA verification failed")

    problem = username_error(username) or _password_problem(password)
    if problem:
        reject(problem)

    email = normalize_email(payload.email)
    if email is not None and not is_valid_email(email):
        reject("Invalid email address")
    for label, value in (("first name", payload.first_name), ("last name", payload.last_name)):
        if value and not is_valid_person_name(value.strip()):
            reject(f"Invalid {label}")

    requested_role = (payload.role or models.ROLE_STUDENT).strip().lower()
    if requested_role not in models.ALL_ROLES:
        reject("Valid role is required (student, teacher, or admin)")
    if is_allowlisted_admin(username, email):
        role = models.ROLE_ADMIN
    elif requested_role == models.ROLE_ADMIN:
        reject("Admin accounts cannot be self-registered", status.HTTP_403_FORBIDDEN)
    else:
        role = requested_role

    if users_repo.get_user_by_username(db, username):
        reject("Username already exists", status.HTTP_409_CONFLICT)
    if email and users_repo.get_user_by_email(db, email):
        reject("Email already registered", status.HTTP_409_CONFLICT)

    try:
        user = users_repo.create_user(
            db,
            username=username,
            password_hash=hash_password(password),
            role=role,
            email=email,
            first_name=(payload.first_name or "").strip() or None,
            last_name=(payload.last_name or "").strip() or None,
            student_id=(payload.student_id or "").strip() or None,
        )
    except IntegrityError:
        db.rollback()
        reject("Username or email already registered", status.HTTP_409_CONFLICT)

    if user.email:
        token = _issue_verification_token(db, user)
        background_tasks.add_task(get_account_email_service().send_verification_email, user.email, user.username, token)

    sessions.login(user)
    log_safely(
        db,
        activity_type=ActivityType.REGISTER,
        action=f"New {user.role} account registered",
        user=user,
        request=request,
    )
    logger.info("register_ok user_id=%s role=%s", user.id, user.role)
    return _auth_payload(user)


@router.post("/logout", response_model=schemas.MessageResponse)
@router.post("/logout-custom", response_model=schemas.MessageResponse)
def logout(
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    user = sessions.current_user()
    sessions.logout()
    if user is not None:
        log_safely(db, activity_type=ActivityType.LOGOUT, action="User logged out", user=user, request=request)
    return {"message": "Logged out successfully"}


@router.get("/verify-email")
def verify_email(token: str, request: Request, db: Session = Depends(get_db)):
    user = users_repo.get_user_by_verification_token_hash(db, hash_token(token)) if token else None
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")
    users_repo.mark_email_verified(db, user)
    log_safely(db, activity_type=ActivityType.EMAIL_VERIFIED, action="Email address verified", user=user, request=request)
    return {"message": "Email verified successfully", "username": user.username}


@router.post("/resend-verification", response_model=schemas.MessageResponse)
def resend_verification(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    if not user.email:
        raise HTTPException(status_code=400, detail="No email address on file")
    if user.email_verified:
        raise HTTPException(status_code=400, detail="Email already verified")
    token = _issue_verification_token(db, user)
    background_tasks.add_task(get_account_email_service().send_verification_email, user.email, user.username, token)
    return {"message": "Verification email sent"}


@router.post("/forgot-password", response_model=schemas.MessageResponse)
def forgot_password(
    payload: schemas.EmailRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    user = users_repo.get_user_by_email(db, payload.email)
    if user is not None:
        token = generate_url_token()
        expires_at = models.now_utc() + timedelta(hours=RESET_TOKEN_TTL_HOURS)
        users_repo.set_reset_token(db, user, hash_token(token), expires_at)
        background_tasks.add_task(get_account_email_service().send_password_reset_email, user.email, user.username, token)
        log_safely(
            db,
            activity_type=ActivityType.PASSWORD_RESET_REQUEST,
            action="Password reset requested",
            user=user,
            request=request,
        )
    return {"message": GENERIC_RECOVERY_MESSAGE}


@router.post("/reset-password", response_model=schemas.MessageResponse)
def reset_password(payload: schemas.ResetPasswordRequest, request: Request, db: Session = Depends(get_db)):
    user = users_repo.get_user_by_reset_token_hash(db, hash_token(payload.token))
    expires_at = models.as_utc(user.reset_token_expires_at) if user else None
    if user is None or expires_at is None or expires_at <= models.now_utc():
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    problem = _password_problem(payload.new_password)
    if problem:
        raise HTTPException(status_code=400, detail=problem)

    users_repo.set_password_hash(db, user, hash_password(payload.new_password))
    users_repo.set_reset_token(db, user, None, None)
    sessions_repo.destroy_user_sessions(db, user.id)
    log_safely(db, activity_type=ActivityType.PASSWORD_RESET, action="Password reset completed", user=user, request=request)
    return {"message": "Password has been reset. Please sign in with your new password."}


@router.post("/forgot-username", response_model=schemas.MessageResponse)
def forgot_username(
    payload: schemas.EmailRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    user = users_repo.get_user_by_email(db, payload.email)
    if user is not None:
        background_tasks.add_task(get_account_email_service().send_username_reminder, user.email, user.username)
        log_safely(
            db,
            activity_type=ActivityType.USERNAME_REMINDER,
            action="Username reminder requested",
            user=user,
            request=request,
        )
    return {"message": GENERIC_RECOVERY_MESSAGE}


@router.post("/change-password", response_model=schemas.MessageResponse)
def change_password(
    payload: schemas.ChangePasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
):
    if not verify_password(payload.current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    problem = _password_problem(payload.new_password)
    if problem:
        raise HTTPException(status_code=400, detail=problem)
    users_repo.set_password_hash(db, user, hash_password(payload.new_password))
    sessions_repo.destroy_user_sessions(db, user.id, except_sid=sessions.sid)
    log_safely(db, activity_type=ActivityType.PASSWORD_CHANGE, action="Password changed", user=user, request=request)
    return {"message": "Password updated"}


@router.post("/change-username", response_model=schemas.AuthResponse)
def change_username(
    payload: schemas.ChangeUsernameRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    if not verify_password(payload.current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    new_username = normalize_username(payload.new_username)
    problem = username_error(new_username)
    if problem:
        raise HTTPException(status_code=400, detail=problem)
    if new_username == user.username:
        raise HTTPException(status_code=400, detail="New username must differ from the current one")
    if users_repo.get_user_by_username(db, new_username):
        raise HTTPException(status_code=409, detail="Username already exists")

    old_username = user.username
    users_repo.set_username(db, user, new_username)
    log_safely(
        db,
        activity_type=ActivityType.USERNAME_CHANGE,
        action="Username changed",
        user=user,
        request=request,
        metadata={"old_username": old_username},
    )
    return _auth_payload(user)


@router.post("/upload-profile-picture", response_model=schemas.AuthResponse)
def upload_profile_picture(
    payload: schemas.ProfilePictureUpload,
    request: Request,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    try:
        image_url = validate_image_reference(payload.image_data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    users_repo.set_profile_image(db, user, image_url)
    log_safely(db, activity_type=ActivityType.PROFILE_UPDATE, action="Profile picture updated", user=user, request=request)
    return _auth_payload(user)


@router.get("/is-admin/{username}")
def is_admin(username: str, db: Session = Depends(get_db)):
    user = users_repo.get_user_by_username(db, username)
    return {"is_admin": bool(user and user.role == models.ROLE_ADMIN)}


@legacy_router.get("/login")
def legacy_login():
    return RedirectResponse(url="/?showRoleSelect=1", status_code=status.HTTP_302_FOUND)


@legacy_router.get("/logout", response_model=schemas.MessageResponse)
@legacy_router.post("/logout", response_model=schemas.MessageResponse)
def legacy_logout(
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    user = sessions.current_user()
    sessions.logout()
    if user is not None:
        log_safely(db, activity_type=ActivityType.LOGOUT, action="User logged out", user=user, request=request)
    return {"message": "logged out"}
