"""
User repository functions.

Lookups are case-insensitive because usernames and emails are stored
lower-cased.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from profrate.db import models, schemas
from profrate.utils.validation import normalize_email, normalize_username


def get_user(db: Session, user_id: uuid.UUID):
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_username(db: Session, username: str):
    return db.query(models.User).filter(models.User.username == normalize_username(username)).first()


def get_user_by_email(db: Session, email: str):
    normalized = normalize_email(email)
    if not normalized:
        return None
    return db.query(models.User).filter(models.User.email == normalized).first()


def get_user_by_login(db: Session, identifier: str):
    """Resolve a login identifier that may be a username or an email address."""
    if identifier and "@" in identifier:
        return get_user_by_email(db, identifier)
    return get_user_by_username(db, identifier)


def get_user_by_reset_token_hash(db: Session, token_hash: str):
    return db.query(models.User).filter(models.User.reset_token_hash == token_hash).first()


def get_user_by_verification_token_hash(db: Session, token_hash: str):
    return db.query(models.User).filter(models.User.verification_token_hash == token_hash).first()


def get_users(db: Session, skip: int = 0, limit: Optional[int] = None):
    query = db.query(models.User).order_by(models.User.created_at.desc()).offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_users_by_role(db: Session, role: str):
    return db.query(models.User).filter(models.User.role == role).order_by(models.User.username).all()


def create_user(
    db: Session,
    *,
    username: str,
    password_hash: str,
    role: str = models.ROLE_STUDENT,
    email: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    student_id: Optional[str] = None,
    email_verified: bool = False,
):
    db_user = models.User(
        username=normalize_username(username),
        password_hash=password_hash,
        role=role,
        email=normalize_email(email),
        first_name=first_name or None,
        last_name=last_name or None,
        student_id=student_id or None,
        email_verified=email_verified,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def update_user_profile(db: Session, user: models.User, update: schemas.UserProfileUpdate):
    data = update.model_dump(exclude_unset=True)
    if "email" in data:
        data["email"] = normalize_email(data["email"])
    for key, value in data.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def update_user_role(db: Session, user: models.User, role: str):
    user.role = role
    db.commit()
    db.refresh(user)
    return user


def set_username(db: Session, user: models.User, username: str):
    user.username = normalize_username(username)
    db.commit()
    db.refresh(user)
    return user


def set_password_hash(db: Session, user: models.User, password_hash: str):
    user.password_hash = password_hash
    db.commit()
    db.refresh(user)
    return user


def set_profile_image(db: Session, user: models.User, image_url: Optional[str]):
    user.profile_image_url = image_url
    db.commit()
    db.refresh(user)
    return user


def set_reset_token(db: Session, user: models.User, token_hash: Optional[str], expires_at: Optional[datetime]):
    user.reset_token_hash = token_hash
    user.reset_token_expires_at = expires_at
    db.commit()
    db.refresh(user)
    return user


def set_verification_token(db: Session, user: models.User, token_hash: Optional[str]):
    user.verification_token_hash = token_hash
    db.commit()
    db.refresh(user)
    return user


def mark_email_verified(db: Session, user: models.User):
    user.email_verified = True
    user.verification_token_hash = None
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: uuid.UUID) -> bool:
    db_user = get_user(db, user_id)
    if not db_user:
        return False
    try:
        db.delete(db_user)
        db.commit()
        return True
    except Exception as e:
        db.rollback()
        raise RuntimeError(f"Failed to delete user {user_id}: {e}") from e
