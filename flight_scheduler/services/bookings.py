"""Booking lifecycle operations.

Each operation loads the booking, checks the caller and the current status,
applies the change and commits. Guard failures raise ``BookingActionError``
carrying the HTTP status the controller should answer with.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from fastapi import status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from flight_scheduler.models.aircraft import Aircraft
from flight_scheduler.models.base import utcnow
from flight_scheduler.models.booking import (
    BLOCKING_STATUSES,
    FLIGHT_DISTANCE_NM,
    Booking,
    BookingStatus,
)
from flight_scheduler.models.user import User, UserRole
from flight_scheduler.models.weather import ConflictStatus, WeatherConflict
from flight_scheduler.services import notifications
from flight_scheduler.telemetry import record_transition
from flight_scheduler.views.bookings import BookingCreateRequest, check_time_range

logger = logging.getLogger(__name__)


class BookingActionError(Exception):
    """A booking operation was refused."""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


async def load_booking(session: AsyncSession, booking_id: int) -> Optional[Booking]:
    result = await session.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    return result.unique().scalar_one_or_none()


async def _get_booking_or_error(session: AsyncSession, booking_id: int) -> Booking:
    booking = await load_booking(session, booking_id)
    if booking is None:
        raise BookingActionError("Booking not found", status.HTTP_404_NOT_FOUND)
    return booking


def _ensure_party(booking: Booking, caller: User, action: str) -> None:
    if not booking.is_party(caller.id):
        raise BookingActionError(
            f"You are not authorized to {action} this booking",
            status.HTTP_403_FORBIDDEN,
        )


async def create_booking(
    session: AsyncSession, caller: User, payload: BookingCreateRequest
) -> Booking:
    """Create a ``pending`` booking for the calling student."""

    if caller.role != UserRole.STUDENT:
        raise BookingActionError(
            "Only students can create bookings", status.HTTP_403_FORBIDDEN
        )

    instructor = await session.get(User, payload.instructor_id)
    if instructor is None or instructor.role != UserRole.INSTRUCTOR:
        raise BookingActionError("Instructor not found", status.HTTP_404_NOT_FOUND)
    if not instructor.is_active:
        raise BookingActionError(
            "Instructor is not available", status.HTTP_409_CONFLICT
        )

    aircraft = await session.get(Aircraft, payload.aircraft_id)
    if aircraft is None or not aircraft.is_active:
        raise BookingActionError(
            "Aircraft not found or inactive", status.HTTP_404_NOT_FOUND
        )

    booking = Booking(
        student_id=caller.id,
        instructor_id=instructor.id,
        aircraft_id=aircraft.id,
        scheduled_start=payload.scheduled_start,
        scheduled_end=payload.scheduled_end,
        status=BookingStatus.PENDING,
        lesson_type=payload.lesson_type,
        lesson_notes=payload.lesson_notes,
        flight_type=payload.flight_type,
        departure_airport=payload.departure_airport,
        destination_airport=payload.destination_airport,
        route_waypoints=payload.route_waypoints,
        flight_distance_nm=FLIGHT_DISTANCE_NM[payload.flight_type],
    )
    session.add(booking)
    await session.flush()
    notifications.notify_booking_created(session, booking, caller)
    await session.commit()

    record_transition(BookingStatus.PENDING.value)
    logger.info(
        "Booking %s created by student %s with instructor %s",
        booking.id,
        caller.id,
        instructor.id,
    )
    return await _get_booking_or_error(session, booking.id)


async def confirm_booking(session: AsyncSession, caller: User, booking_id: int) -> Booking:
    """Move a ``pending`` booking to ``scheduled``; assigned instructor only."""

    booking = await _get_booking_or_error(session, booking_id)
    if booking.instructor_id != caller.id:
        raise BookingActionError(
            "Only the assigned instructor can confirm this booking",
            status.HTTP_403_FORBIDDEN,
        )
    if booking.status != BookingStatus.PENDING:
        raise BookingActionError(
            f"Cannot confirm booking with status: {booking.status.value}",
            status.HTTP_409_CONFLICT,
        )

    booking.status = BookingStatus.SCHEDULED
    notifications.notify_booking_updated(
        session,
        booking,
        caller,
        f"Your lesson on {notifications.format_time(booking.scheduled_start)} "
        "has been confirmed.",
    )
    await session.commit()
    record_transition(BookingStatus.SCHEDULED.value)
    logger.info("Booking %s confirmed by instructor %s", booking.id, caller.id)
    return booking


async def cancel_booking(
    session: AsyncSession, caller: User, booking_id: int, reason: str
) -> Booking:
    """Cancel a booking on behalf of its student or instructor."""

    reason = (reason or "").strip()
    if not reason:
        raise BookingActionError(
            "Cancellation reason is required", status.HTTP_422_UNPROCESSABLE_ENTITY
        )

    booking = await _get_booking_or_error(session, booking_id)
    _ensure_party(booking, caller, "cancel")
    if booking.status == BookingStatus.CANCELLED:
        raise BookingActionError(
            "Booking is already cancelled", status.HTTP_409_CONFLICT
        )

    booking.status = BookingStatus.CANCELLED
    booking.cancelled_at = utcnow()
    booking.cancelled_by = caller.id
    booking.cancellation_reason = reason
    await _close_open_conflicts(session, booking)
    notifications.notify_booking_cancelled(session, booking, caller, reason)
    await session.commit()
    record_transition(BookingStatus.CANCELLED.value)
    logger.info("Booking %s cancelled by user %s", booking.id, caller.id)
    return booking


_CLOSED_CONFLICT_STATUSES = (ConflictStatus.RESOLVED, ConflictStatus.MANUAL_OVERRIDE)


async def _close_open_conflicts(session: AsyncSession, booking: Booking) -> None:
    result = await session.execute(
        select(WeatherConflict).where(
            WeatherConflict.booking_id == booking.id,
            WeatherConflict.status.not_in(_CLOSED_CONFLICT_STATUSES),
        )
    )
    now = utcnow()
    for conflict in result.unique().scalars().all():
        conflict.status = ConflictStatus.RESOLVED
        conflict.resolved_at = now
        conflict.resolution_method = "booking_cancelled"


async def request_reschedule(
    session: AsyncSession,
    caller: User,
    booking_id: int,
    new_start,
    new_end,
    reason: str,
) -> Booking:
    """Propose new times for a booking, putting it in ``rescheduling``."""

    booking = await _get_booking_or_error(session, booking_id)
    _ensure_party(booking, caller, "reschedule")
    if booking.status == BookingStatus.CANCELLED:
        raise BookingActionError(
            "Cannot reschedule a cancelled booking", status.HTTP_409_CONFLICT
        )
    if new_start <= utcnow():
        raise BookingActionError(
            "New start time must be in the future",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
        )
    try:
        check_time_range(new_start, new_end)
    except ValueError as exc:
        raise BookingActionError(
            str(exc), status.HTTP_422_UNPROCESSABLE_ENTITY
        ) from None

    note = f"[Reschedule Request by {caller.email}]: {reason.strip()}"
    booking.lesson_notes = (
        f"{booking.lesson_notes}\n\n{note}" if booking.lesson_notes else note
    )
    booking.scheduled_start = new_start
    booking.scheduled_end = new_end
    booking.status = BookingStatus.RESCHEDULING
    notifications.notify_booking_updated(
        session,
        booking,
        caller,
        f"{caller.full_name} requested to move the lesson to "
        f"{notifications.format_time(new_start)}.",
    )
    await session.commit()
    record_transition(BookingStatus.RESCHEDULING.value)
    logger.info("Reschedule requested for booking %s by user %s", booking.id, caller.id)
    return booking


async def approve_reschedule(
    session: AsyncSession, caller: User, booking_id: int
) -> Booking:
    """Accept a pending reschedule request, returning the booking to ``scheduled``."""

    booking = await _get_booking_or_error(session, booking_id)
    _ensure_party(booking, caller, "approve a reschedule for")
    if booking.status != BookingStatus.RESCHEDULING:
        raise BookingActionError(
            "No pending reschedule request for this booking",
            status.HTTP_409_CONFLICT,
        )

    booking.status = BookingStatus.SCHEDULED
    notifications.notify_booking_updated(
        session,
        booking,
        caller,
        f"The new lesson time {notifications.format_time(booking.scheduled_start)} "
        "has been approved.",
    )
    await session.commit()
    record_transition(BookingStatus.SCHEDULED.value)
    logger.info("Reschedule approved for booking %s by user %s", booking.id, caller.id)
    return booking


async def list_bookings(
    session: AsyncSession,
    caller: User,
    *,
    include_past: bool = False,
    status_filter: Optional[BookingStatus] = None,
) -> Sequence[Booking]:
    """Bookings visible to the caller ordered by start time."""

    query = select(Booking)
    if caller.role == UserRole.STUDENT:
        query = query.where(Booking.student_id == caller.id)
    elif caller.role == UserRole.INSTRUCTOR:
        query = query.where(Booking.instructor_id == caller.id)
    if not include_past:
        query = query.where(Booking.scheduled_end >= utcnow())
    if status_filter is not None:
        query = query.where(Booking.status == status_filter)
    result = await session.execute(query.order_by(Booking.scheduled_start))
    return result.unique().scalars().all()


async def get_booking_for(session: AsyncSession, caller: User, booking_id: int) -> Booking:
    booking = await _get_booking_or_error(session, booking_id)
    if caller.role != UserRole.ADMIN and not booking.is_party(caller.id):
        raise BookingActionError(
            "You are not authorized to view this booking", status.HTTP_403_FORBIDDEN
        )
    return booking


async def has_blocking_overlap(
    session: AsyncSession,
    *,
    start,
    end,
    instructor_id: Optional[int] = None,
    aircraft_id: Optional[int] = None,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    """True when the instructor or aircraft holds a booking overlapping the window."""

    parties = []
    if instructor_id is not None:
        parties.append(Booking.instructor_id == instructor_id)
    if aircraft_id is not None:
        parties.append(Booking.aircraft_id == aircraft_id)
    if not parties:
        return False

    query = (
        select(Booking.id)
        .where(or_(*parties))
        .where(Booking.status.in_(BLOCKING_STATUSES))
        .where(Booking.scheduled_start < end)
        .where(Booking.scheduled_end > start)
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)
    result = await session.execute(query.limit(1))
    return result.first() is not None


__all__ = [
    "BookingActionError",
    "approve_reschedule",
    "cancel_booking",
    "confirm_booking",
    "create_booking",
    "get_booking_for",
    "has_blocking_overlap",
    "list_bookings",
    "load_booking",
    "request_reschedule",
]
