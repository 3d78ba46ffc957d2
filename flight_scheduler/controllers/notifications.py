"""In-app notification endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy import func, select

from flight_scheduler.controllers.dependencies import CurrentUserDep, SessionDep
from flight_scheduler.models.base import utcnow
from flight_scheduler.models.notification import (
    Notification,
    NotificationChannel,
    NotificationStatus,
)
from flight_scheduler.views import NotificationResponse, SuccessResponse, UnreadCountResponse

router = APIRouter(prefix="/notifications", tags=["notifications"])

LIST_LIMIT = 50


def _own_in_app(user_id: int):
    return (
        Notification.user_id == user_id,
        Notification.channel == NotificationChannel.IN_APP,
    )


@router.get("/", response_model=list[NotificationResponse])
async def list_notifications(
    session: SessionDep,
    current_user: CurrentUserDep,
) -> list[NotificationResponse]:
    result = await session.execute(
        select(Notification)
        .where(*_own_in_app(current_user.id))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(LIST_LIMIT)
    )
    return [NotificationResponse.model_validate(row) for row in result.scalars().all()]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    session: SessionDep,
    current_user: CurrentUserDep,
) -> UnreadCountResponse:
    count = await session.scalar(
        select(func.count(Notification.id)).where(
            *_own_in_app(current_user.id),
            Notification.status != NotificationStatus.READ,
        )
    )
    return UnreadCountResponse(count=count or 0)


@router.post("/read-all", response_model=SuccessResponse)
async def mark_all_read(
    session: SessionDep,
    current_user: CurrentUserDep,
) -> SuccessResponse:
    result = await session.execute(
        select(Notification).where(
            *_own_in_app(current_user.id),
            Notification.status != NotificationStatus.READ,
        )
    )
    now = utcnow()
    rows = result.scalars().all()
    for row in rows:
        row.status = NotificationStatus.READ
        row.read_at = now
    await session.commit()
    return SuccessResponse(message="Notifications marked as read", data={"updated": len(rows)})


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> NotificationResponse:
    notification = await session.get(Notification, notification_id)
    if notification is None or notification.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found"
        )
    notification.status = NotificationStatus.READ
    notification.read_at = utcnow()
    await session.commit()
    return NotificationResponse.model_validate(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> Response:
    notification = await session.get(Notification, notification_id)
    if notification is None or notification.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found"
        )
    await session.delete(notification)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
