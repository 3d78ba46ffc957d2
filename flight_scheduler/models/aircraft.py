"""SQLAlchemy model for the training fleet."""

from __future__ import annotations

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Numeric, String, Text

from flight_scheduler.models.base import Base, utcnow

DEFAULT_AIRCRAFT_MINIMUMS = {
    "ceiling_ft": 3000,
    "visibility_miles": 5,
    "wind_speed_knots": 20,
    "crosswind_knots": 15,
}


def default_minimums() -> dict:
    return dict(DEFAULT_AIRCRAFT_MINIMUMS)


class Aircraft(Base):
    __tablename__ = "aircraft"

    id = Column(Integer, primary_key=True, index=True)
    tail_number = Column(String(10), unique=True, nullable=False, index=True)
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=True)
    category = Column(String(50), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    minimum_weather_requirements = Column(JSON, nullable=True, default=default_minimums)
    maintenance_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


__all__ = ["Aircraft", "DEFAULT_AIRCRAFT_MINIMUMS"]
