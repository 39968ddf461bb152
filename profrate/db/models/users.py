import uuid
from sqlalchemy import Column, String, DateTime, Boolean, Text, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc

ROLE_STUDENT = 'student'
ROLE_TEACHER = 'teacher'
ROLE_ADMIN = 'admin'
ALL_ROLES = (ROLE_STUDENT, ROLE_TEACHER, ROLE_ADMIN)


class User(Base):
    __tablename__ = 'users'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Stored lower-cased; uniqueness is therefore case-insensitive
    username = Column(String(30), nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    email = Column(String(254), nullable=True, unique=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    # External https URL or a data:image/...;base64 URL
    profile_image_url = Column(Text, nullable=True)
    role = Column(String(20), nullable=False, default=ROLE_STUDENT)
    student_id = Column(String(64), nullable=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    # Only hashes of one-time tokens are stored
    verification_token_hash = Column(String(64), nullable=True)
    reset_token_hash = Column(String(64), nullable=True)
    reset_token_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        CheckConstraint("role in ('student','teacher','admin')", name='ck_users_role'),
        Index('ix_users_role', 'role'),
        Index('ix_users_created_at', 'created_at'),
    )
