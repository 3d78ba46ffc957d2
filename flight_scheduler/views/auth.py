"""Pydantic schemas related to authentication."""

from __future__ import annotations

from typing import Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from flight_scheduler.models.user import TrainingLevel
from flight_scheduler.views.common import CamelModel
from flight_scheduler.views.users import UserResponse, validate_password_strength


class SignupRequest(CamelModel):
    """Self-service student registration."""

    email: EmailStr
    full_name: str = Field(min_length=2, max_length=255)
    password: str = Field(max_length=128)
    confirm_password: str
    training_level: Optional[TrainingLevel] = TrainingLevel.STUDENT_PILOT
    phone: Optional[str] = Field(default=None, max_length=20)

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be at least 2 characters")
        return value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return validate_password_strength(value)

    @model_validator(mode="after")
    def passwords_match(self) -> "SignupRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(CamelModel):
    """Credentials submitted to obtain an access token."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class TokenResponse(CamelModel):
    """Standard access token response body."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(default=0, description="Seconds until the token expires")
    user: UserResponse


__all__ = [
    "LoginRequest",
    "SignupRequest",
    "TokenResponse",
]
