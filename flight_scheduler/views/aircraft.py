"""Pydantic schemas for the training fleet."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from flight_scheduler.models.base import utcnow
from flight_scheduler.views.common import CamelModel

_TAIL_NUMBER = re.compile(r"^[A-Z0-9-]{3,10}$")


class WeatherMinimums(CamelModel):
    ceiling_ft: int = Field(default=3000, ge=0, le=20000)
    visibility_miles: float = Field(default=5, ge=0, le=50)
    wind_speed_knots: int = Field(default=20, ge=0, le=100)
    crosswind_knots: int = Field(default=15, ge=0, le=100)
    clear_skies_required: bool = False

    @model_validator(mode="after")
    def crosswind_within_wind(self) -> "WeatherMinimums":
        if self.crosswind_knots > self.wind_speed_knots:
            raise ValueError("Crosswind limit cannot exceed the wind speed limit")
        return self


def _tail_number(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip().upper()
    if not _TAIL_NUMBER.match(value):
        raise ValueError(
            "Tail number must be 3-10 characters of letters, numbers or hyphens"
        )
    return value


def _year(value: Optional[int]) -> Optional[int]:
    if value is None:
        return value
    if not 1900 <= value <= utcnow().year + 1:
        raise ValueError("Year must be between 1900 and next year")
    return value


class AircraftCreateRequest(CamelModel):
    tail_number: str
    make: str = Field(min_length=2, max_length=100)
    model: str = Field(min_length=1, max_length=100)
    year: Optional[int] = None
    category: str = Field(min_length=1, max_length=50)
    hourly_rate: Optional[float] = Field(default=None, ge=10, le=10000)
    minimum_weather_requirements: Optional[WeatherMinimums] = None
    maintenance_notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("tail_number")
    @classmethod
    def validate_tail_number(cls, value: str) -> str:
        return _tail_number(value)

    @field_validator("year")
    @classmethod
    def validate_year(cls, value: Optional[int]) -> Optional[int]:
        return _year(value)


class AircraftUpdateRequest(CamelModel):
    tail_number: Optional[str] = None
    make: Optional[str] = Field(default=None, min_length=2, max_length=100)
    model: Optional[str] = Field(default=None, min_length=1, max_length=100)
    year: Optional[int] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    hourly_rate: Optional[float] = Field(default=None, ge=10, le=10000)
    minimum_weather_requirements: Optional[WeatherMinimums] = None
    maintenance_notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("tail_number")
    @classmethod
    def validate_tail_number(cls, value: Optional[str]) -> Optional[str]:
        return _tail_number(value)

    @field_validator("year")
    @classmethod
    def validate_year(cls, value: Optional[int]) -> Optional[int]:
        return _year(value)


class AircraftResponse(CamelModel):
    id: int
    tail_number: str
    make: str
    model: str
    year: Optional[int] = None
    category: str
    is_active: bool
    hourly_rate: Optional[float] = None
    minimum_weather_requirements: Optional[dict] = None
    maintenance_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


__all__ = [
    "AircraftCreateRequest",
    "AircraftResponse",
    "AircraftUpdateRequest",
    "WeatherMinimums",
]
