import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from .common import InputModel


class UserBase(BaseModel):
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    student_id: Optional[str] = None


class User(UserBase):
    """Public user representation; never carries password or token hashes."""
    id: uuid.UUID
    profile_image_url: Optional[str] = None
    email_verified: bool
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UserProfileUpdate(InputModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[str] = Field(default=None, max_length=254)
    student_id: Optional[str] = Field(default=None, max_length=64)


class UserRoleUpdate(InputModel):
    role: str = Field(max_length=20)
