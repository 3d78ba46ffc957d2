"""SQLAlchemy model for flight lesson bookings."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from flight_scheduler.models.base import Base, enum_type, utcnow


class BookingStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    RESCHEDULING = "rescheduling"
    WEATHER_HOLD = "weather_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class FlightType(str, Enum):
    LOCAL = "local"
    SHORT_XC = "short_xc"
    LONG_XC = "long_xc"


FLIGHT_DISTANCE_NM = {
    FlightType.LOCAL: 0,
    FlightType.SHORT_XC: 75,
    FlightType.LONG_XC: 150,
}

# Bookings in these states hold the instructor and aircraft.
BLOCKING_STATUSES = (BookingStatus.SCHEDULED, BookingStatus.WEATHER_HOLD)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    instructor_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    aircraft_id = Column(
        Integer, ForeignKey("aircraft.id", ondelete="CASCADE"), nullable=False, index=True
    )
    scheduled_start = Column(DateTime, nullable=False, index=True)
    scheduled_end = Column(DateTime, nullable=False)
    status = Column(
        enum_type(BookingStatus, "booking_status"),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )
    departure_airport = Column(String(4), nullable=False)
    destination_airport = Column(String(4), nullable=True)
    route_waypoints = Column(JSON, nullable=True)
    flight_distance_nm = Column(Integer, nullable=True)
    flight_type = Column(
        enum_type(FlightType, "flight_type"), nullable=False, default=FlightType.LOCAL
    )
    lesson_type = Column(String(100), nullable=True)
    lesson_notes = Column(Text, nullable=True)
    weather_snapshot = Column(JSON, nullable=True)
    last_weather_check = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("scheduled_end > scheduled_start", name="ck_booking_time_range"),
    )

    student = relationship("User", foreign_keys=[student_id], lazy="joined")
    instructor = relationship("User", foreign_keys=[instructor_id], lazy="joined")
    aircraft = relationship("Aircraft", lazy="joined")

    def is_party(self, user_id: int) -> bool:
        return user_id in (self.student_id, self.instructor_id)


__all__ = [
    "Booking",
    "BookingStatus",
    "FlightType",
    "FLIGHT_DISTANCE_NM",
    "BLOCKING_STATUSES",
]
