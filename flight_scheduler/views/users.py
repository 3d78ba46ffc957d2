"""Pydantic schemas for user interactions."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from flight_scheduler.models.user import TrainingLevel, UserRole
from flight_scheduler.utils.security import password_strength_errors
from flight_scheduler.views.common import CamelModel


def validate_password_strength(value: str) -> str:
    errors = password_strength_errors(value)
    if errors:
        raise ValueError(errors[0])
    return value


def _name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if len(value) < 2:
        raise ValueError("Name must be at least 2 characters")
    return value


class UserResponse(CamelModel):
    """General user response model."""

    id: int
    email: EmailStr
    full_name: str
    role: UserRole
    training_level: Optional[TrainingLevel] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    preferences: Optional[dict[str, Any]] = None
    is_active: bool = True
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UserDetailResponse(UserResponse):
    """User with booking counts, for administrators."""

    bookings_as_student: int = 0
    bookings_as_instructor: int = 0


class ProfileUpdateRequest(CamelModel):
    full_name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    training_level: Optional[TrainingLevel] = None
    preferences: Optional[dict[str, Any]] = None

    @field_validator("full_name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        return _name(value)


class ChangePasswordRequest(CamelModel):
    """Request model for user password changes."""

    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        return validate_password_strength(value)

    @model_validator(mode="after")
    def ensure_new_differs(self) -> "ChangePasswordRequest":
        if self.current_password == self.new_password:
            raise ValueError("New password must be different from the current one")
        return self


class ChangeEmailRequest(CamelModel):
    new_email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class AdminUserUpdateRequest(CamelModel):
    """Fields an administrator may change on any account."""

    full_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    training_level: Optional[TrainingLevel] = None
    phone: Optional[str] = Field(default=None, max_length=20)

    @field_validator("full_name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        return _name(value)


class AdminCreateRequest(CamelModel):
    email: EmailStr
    full_name: str = Field(max_length=255)
    password: str = Field(max_length=128)

    @field_validator("full_name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _name(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return validate_password_strength(value)


__all__ = [
    "AdminCreateRequest",
    "AdminUserUpdateRequest",
    "ChangeEmailRequest",
    "ChangePasswordRequest",
    "ProfileUpdateRequest",
    "UserDetailResponse",
    "UserResponse",
    "validate_password_strength",
]
