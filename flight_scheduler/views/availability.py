"""Pydantic schemas for instructor availability windows."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from pydantic import Field, field_validator, model_validator

from flight_scheduler.models.base import utcnow
from flight_scheduler.views.bookings import PartySummary
from flight_scheduler.views.common import CamelModel, to_naive_utc

MIN_BLOCK_MINUTES = 30
MAX_BLOCK_MINUTES = 12 * 60


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _add_years(value: date, years: int) -> date:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # 29 February
        return value.replace(year=value.year + years, day=28)


class AvailabilityBase(CamelModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time
    is_recurring: bool = True
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_hhmm(cls, value):
        if isinstance(value, str):
            try:
                return datetime.strptime(value.strip()[:5], "%H:%M").time()
            except ValueError:
                raise ValueError("Time must be in HH:MM format") from None
        return value

    @model_validator(mode="after")
    def validate_window(self) -> "AvailabilityBase":
        start = _minutes(self.start_time)
        end = _minutes(self.end_time)
        if end <= start:
            raise ValueError("End time must be after start time")
        if end - start < MIN_BLOCK_MINUTES:
            raise ValueError("Availability block must be at least 30 minutes")
        if end - start > MAX_BLOCK_MINUTES:
            raise ValueError("Availability block cannot exceed 12 hours")

        today = utcnow().date()
        if self.valid_from and self.valid_until and self.valid_until < self.valid_from:
            raise ValueError("End date must be on or after start date")
        if self.valid_until and self.valid_until < today:
            raise ValueError("End date cannot be in the past")
        if self.valid_from and self.valid_from > _add_years(today, 2):
            raise ValueError("Cannot create availability more than 2 years in advance")
        if (
            self.valid_from
            and self.valid_until
            and self.valid_until > _add_years(self.valid_from, 1)
        ):
            raise ValueError("Availability date range cannot exceed 1 year")
        return self


class AvailabilityCreateRequest(AvailabilityBase):
    pass


class AvailabilityUpdateRequest(AvailabilityBase):
    pass


class AvailabilityResponse(CamelModel):
    id: int
    user_id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_recurring: bool
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TimeRangeQuery(CamelModel):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def normalise(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def validate_range(self) -> "TimeRangeQuery":
        if self.end <= self.start:
            raise ValueError("End time must be after start time")
        if self.end - self.start > timedelta(days=1):
            raise ValueError("Time range cannot exceed 24 hours")
        return self


class InstructorAvailabilityResponse(CamelModel):
    instructor_id: int
    available: bool


class AvailableInstructor(PartySummary):
    pass


__all__ = [
    "AvailabilityCreateRequest",
    "AvailabilityResponse",
    "AvailabilityUpdateRequest",
    "AvailableInstructor",
    "InstructorAvailabilityResponse",
    "TimeRangeQuery",
]
