"""Instructor availability lookups and candidate slot generation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from flight_scheduler.models.availability import Availability
from flight_scheduler.models.base import utcnow
from flight_scheduler.models.user import User, UserRole
from flight_scheduler.services.bookings import has_blocking_overlap


def day_of_week(value: date) -> int:
    """Weekday numbered from Sunday = 0."""

    return value.isoweekday() % 7


def window_valid_on(window: Availability, on: date) -> bool:
    if window.valid_from and window.valid_from > on:
        return False
    if window.valid_until and window.valid_until < on:
        return False
    return True


@dataclass(frozen=True)
class CandidateSlot:
    start: datetime
    end: datetime
    instructor_id: int
    aircraft_id: int


async def list_windows(session: AsyncSession, user_id: int) -> Sequence[Availability]:
    result = await session.execute(
        select(Availability)
        .where(Availability.user_id == user_id)
        .order_by(Availability.day_of_week, Availability.start_time)
    )
    return result.scalars().all()


async def covers_time_range(
    session: AsyncSession, user_id: int, start: datetime, end: datetime
) -> bool:
    """True when one availability window contains the whole range."""

    query = select(Availability.id).where(
        Availability.user_id == user_id,
        Availability.day_of_week == day_of_week(start.date()),
        Availability.start_time <= start.time(),
        Availability.end_time >= end.time(),
        or_(Availability.valid_from.is_(None), Availability.valid_from <= start.date()),
        or_(Availability.valid_until.is_(None), Availability.valid_until >= end.date()),
    )
    result = await session.execute(query.limit(1))
    return result.first() is not None


async def is_instructor_available(
    session: AsyncSession, instructor_id: int, start: datetime, end: datetime
) -> bool:
    if not await covers_time_range(session, instructor_id, start, end):
        return False
    return not await has_blocking_overlap(
        session, start=start, end=end, instructor_id=instructor_id
    )


async def find_available_instructors(
    session: AsyncSession, start: datetime, end: datetime
) -> list[User]:
    result = await session.execute(
        select(User)
        .where(and_(User.role == UserRole.INSTRUCTOR, User.is_active.is_(True)))
        .order_by(User.full_name)
    )
    available = []
    for instructor in result.scalars().all():
        if await is_instructor_available(session, instructor.id, start, end):
            available.append(instructor)
    return available


async def find_candidate_slots(
    session: AsyncSession,
    *,
    instructor_id: int,
    aircraft_id: int,
    duration: timedelta,
    exclude_booking_id: Optional[int] = None,
    days_ahead: int = 7,
    limit: int = 20,
    now: Optional[datetime] = None,
) -> list[CandidateSlot]:
    """Free hourly slots in the instructor's recurring windows over the next days.

    Starts run hourly from each window's start hour while the slot still ends
    by the window's end hour. Slots overlapping a scheduled or weather-held
    booking of the instructor or the aircraft are skipped.
    """

    windows = [
        window
        for window in await list_windows(session, instructor_id)
        if window.is_recurring
    ]
    if not windows:
        return []

    today = (now or utcnow()).date()
    duration_hours = duration.total_seconds() / 3600.0
    slots: list[CandidateSlot] = []
    for offset in range(1, days_ahead + 1):
        day = today + timedelta(days=offset)
        dow = day_of_week(day)
        for window in windows:
            if window.day_of_week != dow or not window_valid_on(window, day):
                continue
            hour = window.start_time.hour
            while hour + duration_hours <= window.end_time.hour:
                start = datetime.combine(day, datetime.min.time()) + timedelta(hours=hour)
                end = start + duration
                busy = await has_blocking_overlap(
                    session,
                    start=start,
                    end=end,
                    instructor_id=instructor_id,
                    aircraft_id=aircraft_id,
                    exclude_booking_id=exclude_booking_id,
                )
                if not busy:
                    slots.append(CandidateSlot(start, end, instructor_id, aircraft_id))
                    if len(slots) >= limit:
                        return slots
                hour += 1
    return slots


__all__ = [
    "CandidateSlot",
    "covers_time_range",
    "day_of_week",
    "find_available_instructors",
    "find_candidate_slots",
    "is_instructor_available",
    "list_windows",
    "window_valid_on",
]
