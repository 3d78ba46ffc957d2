"""Pydantic schemas for lesson bookings."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from flight_scheduler.models.base import utcnow
from flight_scheduler.models.booking import BookingStatus, FlightType
from flight_scheduler.views.common import CamelModel, to_naive_utc

MIN_DURATION = timedelta(minutes=15)
MAX_DURATION = timedelta(hours=8)
MAX_ADVANCE = timedelta(days=365)


def check_time_range(start: datetime, end: datetime) -> None:
    """Raise ValueError when the window is inverted or of unreasonable length."""

    if end <= start:
        raise ValueError("End time must be after start time")
    if not MIN_DURATION <= end - start <= MAX_DURATION:
        raise ValueError("Booking duration must be between 15 minutes and 8 hours")


class PartySummary(CamelModel):
    id: int
    full_name: str
    email: str


class AircraftSummary(CamelModel):
    id: int
    tail_number: str
    make: str
    model: str


class BookingCreateRequest(CamelModel):
    """Payload submitted by a student to request a lesson."""

    instructor_id: int = Field(ge=1)
    aircraft_id: int = Field(ge=1)
    scheduled_start: datetime
    scheduled_end: datetime
    lesson_type: str = Field(min_length=1, max_length=100)
    flight_type: FlightType = FlightType.LOCAL
    departure_airport: str
    destination_airport: Optional[str] = None
    route_waypoints: Optional[list[Any]] = None
    lesson_notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("scheduled_start", "scheduled_end")
    @classmethod
    def normalise_times(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator("lesson_type")
    @classmethod
    def validate_lesson_type(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter a lesson type")
        return value

    @field_validator("departure_airport")
    @classmethod
    def validate_departure(cls, value: str) -> str:
        value = value.strip().upper()
        if len(value) != 4:
            raise ValueError("Airport code must be 4 characters (e.g., KAUS)")
        return value

    @field_validator("destination_airport")
    @classmethod
    def validate_destination(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        value = value.strip().upper()
        if len(value) != 4:
            raise ValueError("Airport code must be 4 characters")
        return value

    @model_validator(mode="after")
    def validate_schedule(self) -> "BookingCreateRequest":
        check_time_range(self.scheduled_start, self.scheduled_end)

        now = utcnow()
        if self.scheduled_start <= now:
            raise ValueError("Booking must be scheduled for a future date and time")
        if self.scheduled_start > now + MAX_ADVANCE:
            raise ValueError("Bookings cannot be made more than 1 year in advance")

        if self.flight_type in (FlightType.SHORT_XC, FlightType.LONG_XC):
            if not self.destination_airport:
                raise ValueError(
                    "Destination airport is required for cross-country flights"
                )
            if self.destination_airport == self.departure_airport:
                raise ValueError(
                    "Destination airport must be different from departure airport "
                    "for cross-country flights"
                )
        elif self.destination_airport:
            raise ValueError("Local flights should not have a destination airport")
        return self


class CancelBookingRequest(CamelModel):
    reason: str = Field(min_length=1, max_length=1000)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Cancellation reason is required")
        return value


class RescheduleRequest(CamelModel):
    new_start: datetime
    new_end: datetime
    reason: str = Field(min_length=1, max_length=1000)

    @field_validator("new_start", "new_end")
    @classmethod
    def normalise_times(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Reschedule reason is required")
        return value


class BookingResponse(CamelModel):
    id: int
    student_id: int
    instructor_id: int
    aircraft_id: int
    scheduled_start: datetime
    scheduled_end: datetime
    status: BookingStatus
    flight_type: FlightType
    departure_airport: str
    destination_airport: Optional[str] = None
    route_waypoints: Optional[list[Any]] = None
    flight_distance_nm: Optional[int] = None
    lesson_type: Optional[str] = None
    lesson_notes: Optional[str] = None
    weather_snapshot: Optional[Any] = None
    last_weather_check: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancellation_reason: Optional[str] = None
    student: Optional[PartySummary] = None
    instructor: Optional[PartySummary] = None
    aircraft: Optional[AircraftSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


__all__ = [
    "AircraftSummary",
    "BookingCreateRequest",
    "BookingResponse",
    "CancelBookingRequest",
    "PartySummary",
    "RescheduleRequest",
    "check_time_range",
]
