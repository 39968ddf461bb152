from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from profrate.utils.validation import strip_html
from .common import InputModel

RATING_FACTORS = ("teaching_quality", "availability", "communication", "knowledge", "fairness")


class ReviewBase(BaseModel):
    teaching_quality: int = Field(ge=1, le=5)
    availability: int = Field(ge=1, le=5)
    communication: int = Field(ge=1, le=5)
    knowledge: int = Field(ge=1, le=5)
    fairness: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=5000)


class ReviewCreate(ReviewBase, InputModel):
    @field_validator("comment")
    @classmethod
    def _sanitize_comment(cls, value: Optional[str]) -> Optional[str]:
        return strip_html(value)


class Review(ReviewBase):
    id: int
    doctor_id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ReviewWithDoctor(Review):
    doctor_name: Optional[str] = None
