"""SQLAlchemy model for user notifications."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text

from flight_scheduler.models.base import Base, enum_type, utcnow


class NotificationType(str, Enum):
    BOOKING_CREATED = "booking_created"
    BOOKING_UPDATED = "booking_updated"
    BOOKING_CANCELLED = "booking_cancelled"
    WEATHER_CONFLICT = "weather_conflict"
    RESCHEDULE_PROPOSAL = "reschedule_proposal"
    RESCHEDULE_ACCEPTED = "reschedule_accepted"


class NotificationChannel(str, Enum):
    EMAIL = "email"
    IN_APP = "in_app"
    SMS = "sms"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    READ = "read"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(enum_type(NotificationType, "notification_type"), nullable=False)
    channel = Column(
        enum_type(NotificationChannel, "notification_channel"), nullable=False
    )
    status = Column(
        enum_type(NotificationStatus, "notification_status"),
        nullable=False,
        default=NotificationStatus.PENDING,
        index=True,
    )
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes.
    metadata_json = Column("metadata", JSON, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    read_at = Column(DateTime, nullable=True)
    failed_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)


__all__ = [
    "Notification",
    "NotificationType",
    "NotificationChannel",
    "NotificationStatus",
]
