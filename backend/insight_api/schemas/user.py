from typing import Optional

from pydantic import Field

from .base import CamelModel


class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class UserUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    photo: Optional[str] = Field(default=None, max_length=255)


class PasswordChange(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class ForgotPasswordRequest(CamelModel):
    email: str = Field(..., min_length=3)


class ResetPasswordRequest(CamelModel):
    email: str = Field(..., min_length=3)
    otp: str = Field(..., min_length=6, max_length=6)
    new_password: str = Field(..., min_length=6, max_length=128)


class UserOut(CamelModel):
    id: int
    name: str
    email: str
    photo: Optional[str] = None
    is_verified: Optional[bool] = False
