"""
Domain-split Pydantic schemas re-exported from one module.
"""

from .common import InputModel
from .users import UserBase, User, UserProfileUpdate, UserRoleUpdate
from .auth import (
    LoginRequest,
    RegisterRequest,
    EmailRequest,
    ResetPasswordRequest,
    ChangePasswordRequest,
    ChangeUsernameRequest,
    ProfilePictureUpload,
    AuthResponse,
    CsrfTokenResponse,
    MessageResponse,
)
from .doctors import DoctorBase, DoctorCreate, DoctorUpdate, DoctorRating, Doctor
from .reviews import RATING_FACTORS, ReviewBase, ReviewCreate, Review, ReviewWithDoctor
from .activity import ActivityLogBase, ActivityLogCreate, ActivityLog
from .stats import Stats

__all__ = [
    "InputModel",
    # users
    "UserBase",
    "User",
    "UserProfileUpdate",
    "UserRoleUpdate",
    # auth
    "LoginRequest",
    "RegisterRequest",
    "EmailRequest",
    "ResetPasswordRequest",
    "ChangePasswordRequest",
    "ChangeUsernameRequest",
    "ProfilePictureUpload",
    "AuthResponse",
    "CsrfTokenResponse",
    "MessageResponse",
    # doctors/reviews
    "DoctorBase",
    "DoctorCreate",
    "DoctorUpdate",
    "DoctorRating",
    "Doctor",
    "RATING_FACTORS",
    "ReviewBase",
    "ReviewCreate",
    "Review",
    "ReviewWithDoctor",
    # activity/stats
    "ActivityLogBase",
    "ActivityLogCreate",
    "ActivityLog",
    "Stats",
]
