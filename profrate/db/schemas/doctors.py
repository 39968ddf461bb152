from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from profrate.utils.images import validate_image_reference
from profrate.utils.validation import strip_html
from .common import InputModel


def _image_reference(value: Optional[str]) -> Optional[str]:
    # Stored values are served back as redirects, so only https or data URLs
    if value is None:
        return None
    return validate_image_reference(value)


class DoctorBase(InputModel):
    name: str = Field(min_length=1, max_length=255)
    department: str = Field(min_length=1, max_length=100)
    title: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=5000)
    profile_image_url: Optional[str] = Field(default=None, max_length=2048)

    @field_validator("name", "department")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        value = strip_html(value)
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("title", "bio")
    @classmethod
    def _strip_optional(cls, value: Optional[str]) -> Optional[str]:
        return strip_html(value)

    @field_validator("profile_image_url")
    @classmethod
    def _check_image(cls, value: Optional[str]) -> Optional[str]:
        return _image_reference(value)


class DoctorCreate(DoctorBase):
    pass


class DoctorUpdate(InputModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    department: Optional[str] = Field(default=None, min_length=1, max_length=100)
    title: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=5000)
    profile_image_url: Optional[str] = Field(default=None, max_length=2048)

    @field_validator("name", "department")
    @classmethod
    def _strip_required(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = strip_html(value)
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("title", "bio")
    @classmethod
    def _strip_optional(cls, value: Optional[str]) -> Optional[str]:
        return strip_html(value)

    @field_validator("profile_image_url")
    @classmethod
    def _check_image(cls, value: Optional[str]) -> Optional[str]:
        return _image_reference(value)


class DoctorRating(BaseModel):
    avg_teaching_quality: float
    avg_availability: float
    avg_communication: float
    avg_knowledge: float
    avg_fairness: float
    overall_rating: float
    total_reviews: int
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class Doctor(BaseModel):
    id: int
    name: str
    department: str
    title: Optional[str] = None
    bio: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    ratings: Optional[DoctorRating] = None
    model_config = ConfigDict(from_attributes=True)
