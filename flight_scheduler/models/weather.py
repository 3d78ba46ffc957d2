"""Weather conflict and forecast cache models."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from flight_scheduler.models.base import Base, enum_type, utcnow


class ConflictStatus(str, Enum):
    DETECTED = "detected"
    AI_PROCESSING = "ai_processing"
    PROPOSALS_READY = "proposals_ready"
    RESOLVED = "resolved"
    MANUAL_OVERRIDE = "manual_override"


class WeatherConflict(Base):
    """A booking whose forecast violates the applicable weather minimums."""

    __tablename__ = "weather_conflicts"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    detected_at = Column(DateTime, nullable=False, default=utcnow)
    status = Column(
        enum_type(ConflictStatus, "conflict_status"),
        nullable=False,
        default=ConflictStatus.DETECTED,
        index=True,
    )
    weather_data = Column(JSON, nullable=False, default=list)
    conflict_reasons = Column(JSON, nullable=False, default=list)
    ai_processing_started_at = Column(DateTime, nullable=True)
    ai_processing_completed_at = Column(DateTime, nullable=True)
    ai_processing_duration_ms = Column(Integer, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolution_method = Column(String(50), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    booking = relationship("Booking", lazy="joined")
    proposals = relationship(
        "RescheduleProposal",
        back_populates="conflict",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class WeatherCache(Base):
    """Cached provider response for one airport and forecast hour."""

    __tablename__ = "weather_cache"

    id = Column(Integer, primary_key=True, index=True)
    airport_code = Column(String(10), nullable=False, index=True)
    forecast_time = Column(DateTime, nullable=False)
    weather_data = Column(JSON, nullable=False)
    fetched_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint(
            "airport_code", "forecast_time", name="uq_weather_cache_airport_time"
        ),
    )


__all__ = ["ConflictStatus", "WeatherConflict", "WeatherCache"]
