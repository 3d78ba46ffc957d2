"""WebSocket stream of cache invalidations for the caller's channel."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy import select

from flight_scheduler.controllers.dependencies import resolve_token_user
from flight_scheduler.database import session_scope
from flight_scheduler.models import Booking, UserRole, WeatherConflict
from flight_scheduler.realtime import (
    ChangeEvent,
    ChannelClosedError,
    FeedSubscription,
    change_feed,
    channel_for_user,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])


async def _booking_parties(booking_id: Optional[int]) -> set[int]:
    if booking_id is None:
        return set()
    async with session_scope() as session:
        result = await session.execute(
            select(Booking.student_id, Booking.instructor_id).where(Booking.id == booking_id)
        )
        row = result.first()
    return set(row) if row else set()


async def _conflict_parties(conflict_id: Optional[int]) -> set[int]:
    if conflict_id is None:
        return set()
    async with session_scope() as session:
        result = await session.execute(
            select(Booking.student_id, Booking.instructor_id)
            .join(WeatherConflict, WeatherConflict.booking_id == Booking.id)
            .where(WeatherConflict.id == conflict_id)
        )
        row = result.first()
    return set(row) if row else set()


async def can_see_change(user: Any, change: ChangeEvent) -> bool:
    """Whether ``user`` may receive the row carried by ``change``.

    Admins see every row. Conflicts and proposals go only to the parties of
    the booking they belong to; rows that cannot be traced are withheld.
    """

    if getattr(user.role, "value", user.role) == UserRole.ADMIN.value:
        return True
    record = change.record
    if change.table == "weather_conflicts":
        return user.id in await _booking_parties(record.get("booking_id"))
    if change.table == "reschedule_proposals":
        if record.get("proposed_instructor_id") == user.id:
            return True
        return user.id in await _conflict_parties(record.get("conflict_id"))
    if change.table == "bookings":
        return user.id in (record.get("student_id"), record.get("instructor_id"))
    return False


async def _close_on_disconnect(websocket: WebSocket, subscription: FeedSubscription) -> None:
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except (WebSocketDisconnect, RuntimeError):
        pass
    finally:
        subscription.close()


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: str = Query(...)) -> None:
    async with session_scope() as session:
        try:
            user = await resolve_token_user(session, token)
        except HTTPException as exc:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.detail)
            return

    channel = channel_for_user(user)
    await websocket.accept()
    subscription = change_feed.subscribe()
    watcher = asyncio.create_task(_close_on_disconnect(websocket, subscription))
    logger.info("User %s subscribed to %s", user.id, channel.name)

    try:
        await websocket.send_json({"channel": channel.name, "status": "connected"})
        async for change in subscription:
            keys = channel.invalidations(change)
            if not keys or not await can_see_change(user, change):
                continue
            await websocket.send_json(
                {
                    "channel": channel.name,
                    "table": change.table,
                    "event": change.event,
                    "record": change.record,
                    "invalidate": [list(key) for key in keys],
                }
            )
    except ChannelClosedError as exc:
        logger.warning("Channel %s dropped: %s", channel.name, exc)
        with suppress(RuntimeError):
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason=str(exc))
    except WebSocketDisconnect:
        pass
    finally:
        subscription.close()
        watcher.cancel()
        with suppress(asyncio.CancelledError):
            await watcher
        logger.info("User %s left %s", user.id, channel.name)
