"""SQLAlchemy model for application users."""

from __future__ import annotations

import copy
from enum import Enum

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text

from flight_scheduler.models.base import Base, enum_type, utcnow


class UserRole(str, Enum):
    """Enumeration of supported user roles."""

    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class TrainingLevel(str, Enum):
    """Pilot certificate level used to pick weather minimums."""

    STUDENT_PILOT = "student_pilot"
    PRIVATE_PILOT = "private_pilot"
    INSTRUMENT_RATED = "instrument_rated"
    COMMERCIAL_PILOT = "commercial_pilot"


DEFAULT_PREFERENCES: dict = {
    "notifications": {"email": True, "in_app": True, "sms": False},
    "weather_alerts": True,
    "auto_reschedule": False,
}


def default_preferences() -> dict:
    return copy.deepcopy(DEFAULT_PREFERENCES)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    password_hash = Column(String(256), nullable=False)
    role = Column(
        enum_type(UserRole, "user_role"),
        nullable=False,
        default=UserRole.STUDENT,
        index=True,
    )
    training_level = Column(enum_type(TrainingLevel, "training_level"), nullable=True)
    phone = Column(String(20), nullable=True)
    avatar_url = Column(Text, nullable=True)
    preferences = Column(JSON, nullable=True, default=default_preferences)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def wants_email(self) -> bool:
        """Return False only when the user explicitly disabled email notifications."""

        prefs = self.preferences or {}
        notifications = prefs.get("notifications") or {}
        return notifications.get("email") is not False


__all__ = [
    "User",
    "UserRole",
    "TrainingLevel",
    "DEFAULT_PREFERENCES",
    "default_preferences",
]
