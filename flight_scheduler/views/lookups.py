"""Pydantic schemas for airports and lesson types."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from flight_scheduler.models.lookup import LessonCategory
from flight_scheduler.views.common import CamelModel

_AIRPORT_CODE = re.compile(r"^[A-Z0-9]{3,10}$")


def _airport_code(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip().upper()
    if not _AIRPORT_CODE.match(value):
        raise ValueError("Airport code must be 3-10 letters or numbers")
    return value


class AirportCreateRequest(CamelModel):
    code: str
    name: str = Field(min_length=3, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=50)
    country: str = Field(default="USA", max_length=100)

    @field_validator("code")
    @classmethod
    def validate_code(cls, value: str) -> str:
        return _airport_code(value)


class AirportUpdateRequest(CamelModel):
    code: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=3, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=50)
    country: Optional[str] = Field(default=None, max_length=100)

    @field_validator("code")
    @classmethod
    def validate_code(cls, value: Optional[str]) -> Optional[str]:
        return _airport_code(value)


class AirportResponse(CamelModel):
    id: int
    code: str
    name: str
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None


class LessonTypeCreateRequest(CamelModel):
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    category: Optional[LessonCategory] = None


class LessonTypeUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    category: Optional[LessonCategory] = None


class LessonTypeResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    category: Optional[LessonCategory] = None
    is_active: bool
    created_at: Optional[datetime] = None


__all__ = [
    "AirportCreateRequest",
    "AirportResponse",
    "AirportUpdateRequest",
    "LessonTypeCreateRequest",
    "LessonTypeResponse",
    "LessonTypeUpdateRequest",
]
