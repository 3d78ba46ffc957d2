"""Periodic weather sweep over upcoming scheduled bookings."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, AsyncContextManager, Callable, Optional

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flight_scheduler.config.settings import settings
from flight_scheduler.database import session_scope
from flight_scheduler.models.base import utcnow
from flight_scheduler.models.booking import Booking, BookingStatus
from flight_scheduler.models.proposal import RescheduleProposal
from flight_scheduler.models.weather import ConflictStatus, WeatherConflict
from flight_scheduler.services import notifications
from flight_scheduler.services.bookings import load_booking
from flight_scheduler.services.rescheduler import Rescheduler, RescheduleError
from flight_scheduler.services.weather import (
    WeatherClient,
    check_violations,
    checkpoints_for,
    get_observation,
    minimums_for,
)
from flight_scheduler.telemetry import record_conflict, record_transition

logger = logging.getLogger("flight_scheduler.pipeline")

SessionOpener = Callable[[], AsyncContextManager[AsyncSession]]


@dataclass
class SweepResult:
    checked: int = 0
    conflicts: list[int] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "checked": self.checked,
            "conflictsDetected": len(self.conflicts),
            "conflictIds": list(self.conflicts),
            "errors": list(self.errors),
        }


def _forecast_hour(value: datetime) -> datetime:
    return value.replace(minute=0, second=0, microsecond=0)


async def check_booking(
    session: AsyncSession,
    booking: Booking,
    *,
    client: Optional[WeatherClient] = None,
) -> Optional[WeatherConflict]:
    """Check one booking; returns the new conflict when minimums are violated."""

    when = _forecast_hour(booking.scheduled_start)
    observations = []
    for airport in checkpoints_for(booking):
        observations.append(await get_observation(session, airport, when, client))

    level = booking.student.training_level if booking.student else None
    aircraft_minimums = booking.aircraft.minimum_weather_requirements if booking.aircraft else None
    violations = check_violations(observations, minimums_for(level), aircraft_minimums)

    now = utcnow()
    booking.weather_snapshot = observations
    booking.last_weather_check = now
    if not violations:
        await session.commit()
        logger.info("Booking %s clear for flight", booking.id)
        return None

    conflict = WeatherConflict(
        booking_id=booking.id,
        detected_at=now,
        status=ConflictStatus.DETECTED,
        weather_data=observations,
        conflict_reasons=violations,
    )
    session.add(conflict)
    booking.status = BookingStatus.WEATHER_HOLD
    await session.commit()

    record_transition(BookingStatus.WEATHER_HOLD.value)
    record_conflict()
    logger.warning(
        "Weather conflict %s for booking %s: %s",
        conflict.id,
        booking.id,
        "; ".join(violations),
    )
    return conflict


async def run_weather_sweep(
    session_factory: SessionOpener = session_scope,
    *,
    client: Optional[WeatherClient] = None,
    rescheduler: Optional[Rescheduler] = None,
    now: Optional[datetime] = None,
) -> SweepResult:
    """Check every scheduled booking starting within the look-ahead window.

    Each booking gets its own session so one failure cannot poison the rest.
    """

    now = now or utcnow()
    horizon = now + timedelta(hours=settings.weather.lookahead_hours)
    async with session_factory() as session:
        result = await session.execute(
            select(Booking.id)
            .where(
                Booking.status == BookingStatus.SCHEDULED,
                Booking.scheduled_start > now,
                Booking.scheduled_start <= horizon,
            )
            .order_by(Booking.scheduled_start)
        )
        booking_ids = list(result.scalars().all())

    logger.info("Weather sweep checking %d bookings", len(booking_ids))
    outcome = SweepResult()
    rescheduler = rescheduler or Rescheduler()

    for booking_id in booking_ids:
        conflict_id: Optional[int] = None
        try:
            async with session_factory() as session:
                booking = await load_booking(session, booking_id)
                if booking is None or booking.status != BookingStatus.SCHEDULED:
                    continue
                conflict = await check_booking(session, booking, client=client)
                outcome.checked += 1
                if conflict is not None:
                    conflict_id = conflict.id
                    outcome.conflicts.append(conflict_id)
        except Exception as exc:
            logger.exception("Weather check failed for booking %s", booking_id)
            outcome.errors.append({"bookingId": booking_id, "error": str(exc)})
            continue

        if conflict_id is None:
            continue
        try:
            async with session_factory() as session:
                await rescheduler.process_conflict(session, conflict_id)
        except Exception as exc:
            logger.exception("Rescheduling failed for conflict %s", conflict_id)
            outcome.errors.append(
                {"bookingId": booking_id, "conflictId": conflict_id, "error": str(exc)}
            )

    logger.info(
        "Weather sweep complete: %d checked, %d conflicts, %d errors",
        outcome.checked,
        len(outcome.conflicts),
        len(outcome.errors),
    )
    return outcome


SIMULATED_CONDITION = "Heavy rain showers"


def _simulated_weather(airport: str) -> list[dict[str, Any]]:
    return [
        {
            "airport": airport,
            "visibility_miles": 1.5,
            "ceiling_ft": 800,
            "wind_speed_knots": 30,
            "wind_direction": 310,
            "crosswind_knots": 24,
            "cloud_cover_percent": 98,
            "temp_f": 42,
            "condition_code": 1183,
            "condition_text": SIMULATED_CONDITION,
            "has_thunderstorm": False,
            "has_icing": False,
        }
    ]


# (offset from original start, score)
SIMULATED_PROPOSALS = (
    (timedelta(days=1), 0.97),
    (timedelta(days=2), 0.91),
    (timedelta(days=1, hours=4), 0.88),
)


async def simulate_conflict(session: AsyncSession, booking_id: int) -> WeatherConflict:
    """Place a booking on weather hold with canned poor weather and proposals."""

    booking = await load_booking(session, booking_id)
    if booking is None:
        raise RescheduleError("Booking not found", status.HTTP_404_NOT_FOUND)
    if booking.status == BookingStatus.CANCELLED:
        raise RescheduleError(
            "Cannot simulate a conflict for a cancelled booking", status.HTTP_409_CONFLICT
        )

    airport = booking.departure_airport
    weather = _simulated_weather(airport)
    now = utcnow()
    conflict = WeatherConflict(
        booking_id=booking.id,
        detected_at=now,
        status=ConflictStatus.PROPOSALS_READY,
        weather_data=weather,
        conflict_reasons=[
            f"Visibility at {airport}: 1.5mi (min: 5mi)",
            f"Ceiling at {airport}: 800ft (min: 5000ft)",
            f"Wind at {airport}: 30kts (max: 10kts)",
            f"Cloud cover at {airport}: 98% (max: 25%)",
        ],
        ai_processing_started_at=now,
        ai_processing_completed_at=now,
        ai_processing_duration_ms=0,
    )
    session.add(conflict)
    booking.status = BookingStatus.WEATHER_HOLD
    booking.weather_snapshot = weather
    booking.last_weather_check = now
    await session.flush()

    reasoning = (
        "Forecast shows the front clearing by this time with visibility above "
        "minimums and light winds. Instructor and aircraft are both available."
    )
    proposals = []
    for offset, score in SIMULATED_PROPOSALS:
        start = booking.scheduled_start + offset
        proposals.append(
            RescheduleProposal(
                conflict_id=conflict.id,
                proposed_start=start,
                proposed_end=start + timedelta(hours=2),
                proposed_instructor_id=booking.instructor_id,
                proposed_aircraft_id=booking.aircraft_id,
                score=score,
                reasoning=reasoning,
            )
        )
    session.add_all(proposals)
    await session.flush()

    await notifications.notify_conflict(
        session, conflict, booking, proposals, send_emails=False
    )
    await session.commit()

    record_transition(BookingStatus.WEATHER_HOLD.value)
    record_conflict(source="simulated")
    logger.info("Simulated weather conflict %s for booking %s", conflict.id, booking.id)
    return conflict


class WeatherMonitor:
    """Background task that runs the sweep on a fixed interval."""

    def __init__(
        self,
        interval_seconds: Optional[float] = None,
        sweep: Callable[[], Any] = run_weather_sweep,
    ) -> None:
        self._interval = (
            settings.weather.monitor_interval_seconds
            if interval_seconds is None
            else interval_seconds
        )
        self._sweep = sweep
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _loop(self) -> None:
        while True:
            try:
                await self._sweep()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Weather sweep crashed")
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info("Weather monitor started (every %ss)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Weather monitor stopped")


__all__ = [
    "SweepResult",
    "WeatherMonitor",
    "check_booking",
    "run_weather_sweep",
    "simulate_conflict",
]
