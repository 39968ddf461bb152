from typing import Optional
from pydantic import BaseModel, Field

from .common import InputModel
from .users import User


class LoginRequest(InputModel):
    username: Optional[str] = Field(default=None, max_length=254)
    password: Optional[str] = Field(default=None, max_length=128)


class RegisterRequest(InputModel):
    username: Optional[str] = Field(default=None, max_length=30)
    password: Optional[str] = Field(default=None, max_length=128)
    email: Optional[str] = Field(default=None, max_length=254)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    role: Optional[str] = Field(default="student", max_length=20)
    student_id: Optional[str] = Field(default=None, max_length=64)
    recaptcha_token: Optional[str] = Field(default=None, max_length=4096)


class EmailRequest(InputModel):
    email: str = Field(max_length=254)


class ResetPasswordRequest(InputModel):
    token: str = Field(min_length=1, max_length=256)
    new_password: str = Field(max_length=128)


class ChangePasswordRequest(InputModel):
    current_password: str = Field(max_length=128)
    new_password: str = Field(max_length=128)


class ChangeUsernameRequest(InputModel):
    new_username: str = Field(max_length=30)
    current_password: str = Field(max_length=128)


class ProfilePictureUpload(InputModel):
    # Data URLs are bounded separately by decoded size
    image_data: str = Field(min_length=1, max_length=4_000_000)


class AuthResponse(BaseModel):
    user: User


class CsrfTokenResponse(BaseModel):
    csrf_token: str


class MessageResponse(BaseModel):
    message: str
