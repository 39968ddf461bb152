"""
Domain-split SQLAlchemy models with a single import surface.

Exposes `Base`, the timestamp helpers, role constants and every ORM class.
"""

from .base import Base, now_utc, as_utc  # re-export

# Domain models
from .users import User, ROLE_STUDENT, ROLE_TEACHER, ROLE_ADMIN, ALL_ROLES
from .doctors import Doctor, Review, DoctorRating
from .sessions import UserSession
from .activity import ActivityLog

__all__ = [
    # base
    "Base",
    "now_utc",
    "as_utc",
    # users
    "User",
    "ROLE_STUDENT",
    "ROLE_TEACHER",
    "ROLE_ADMIN",
    "ALL_ROLES",
    # doctors/reviews
    "Doctor",
    "Review",
    "DoctorRating",
    # sessions/activity
    "UserSession",
    "ActivityLog",
]
