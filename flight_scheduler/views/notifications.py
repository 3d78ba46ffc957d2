"""Pydantic schemas for user notifications."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, Field

from flight_scheduler.models.notification import (
    NotificationChannel,
    NotificationStatus,
    NotificationType,
)
from flight_scheduler.views.common import CamelModel


class NotificationResponse(CamelModel):
    id: int
    type: NotificationType
    channel: NotificationChannel
    status: NotificationStatus
    title: str
    message: str
    # The ORM attribute is metadata_json; "metadata" is the column name.
    metadata_json: Optional[dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices("metadata_json", "metadataJson"),
        serialization_alias="metadata",
    )
    sent_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UnreadCountResponse(CamelModel):
    count: int


__all__ = ["NotificationResponse", "UnreadCountResponse"]
