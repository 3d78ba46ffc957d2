"""SQLAlchemy models for the flight training scheduler."""

from .aircraft import Aircraft
from .availability import Availability
from .base import Base
from .booking import Booking, BookingStatus, FlightType
from .log import RequestLog
from .lookup import Airport, LessonCategory, LessonType
from .notification import (
    Notification,
    NotificationChannel,
    NotificationStatus,
    NotificationType,
)
from .proposal import ProposalResponse, RescheduleProposal
from .user import TrainingLevel, User, UserRole
from .weather import ConflictStatus, WeatherCache, WeatherConflict

__all__ = [
    "Aircraft",
    "Airport",
    "Availability",
    "Base",
    "Booking",
    "BookingStatus",
    "ConflictStatus",
    "FlightType",
    "LessonCategory",
    "LessonType",
    "Notification",
    "NotificationChannel",
    "NotificationStatus",
    "NotificationType",
    "ProposalResponse",
    "RequestLog",
    "RescheduleProposal",
    "TrainingLevel",
    "User",
    "UserRole",
    "WeatherCache",
    "WeatherConflict",
]
