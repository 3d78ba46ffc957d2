"""Weather conditions, conflicts and monitoring endpoints."""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select

from flight_scheduler.controllers.dependencies import (
    AdminUserDep,
    CurrentUserDep,
    SessionDep,
    service_error,
)
from flight_scheduler.models.booking import Booking
from flight_scheduler.models.user import User as UserModel
from flight_scheduler.models.user import UserRole
from flight_scheduler.models.weather import ConflictStatus, WeatherConflict
from flight_scheduler.services.query_cache import query_cache
from flight_scheduler.services.rescheduler import (
    Rescheduler,
    RescheduleError,
    load_conflict,
)
from flight_scheduler.services.weather import WeatherClient, WeatherServiceError
from flight_scheduler.services.weather_monitor import run_weather_sweep, simulate_conflict
from flight_scheduler.views import (
    MetarResponse,
    SimulateConflictRequest,
    SweepResponse,
    WeatherConflictResponse,
)

router = APIRouter(prefix="/weather", tags=["weather"])


def get_weather_client() -> WeatherClient:
    return WeatherClient()


def get_rescheduler() -> Rescheduler:
    return Rescheduler()


WeatherClientDep = Annotated[WeatherClient, Depends(get_weather_client)]
ReschedulerDep = Annotated[Rescheduler, Depends(get_rescheduler)]


def _visible(conflict: WeatherConflict, user: UserModel) -> bool:
    return user.role == UserRole.ADMIN or conflict.booking.is_party(user.id)


@router.get("/conditions/{icao_code}", response_model=MetarResponse)
async def get_conditions(
    icao_code: str,
    client: WeatherClientDep,
    _current_user: CurrentUserDep,
) -> MetarResponse:
    """Current METAR conditions for an airport."""

    try:
        data = await client.fetch_metar(icao_code.upper())
    except WeatherServiceError as exc:
        raise service_error(exc) from None
    return MetarResponse(**data)


@router.get("/conflicts", response_model=list[WeatherConflictResponse])
async def list_conflicts(
    session: SessionDep,
    current_user: CurrentUserDep,
    status_filter: Optional[ConflictStatus] = None,
) -> list[WeatherConflictResponse]:
    async def _load() -> list[WeatherConflictResponse]:
        query = select(WeatherConflict).join(
            Booking, WeatherConflict.booking_id == Booking.id
        )
        if current_user.role == UserRole.STUDENT:
            query = query.where(Booking.student_id == current_user.id)
        elif current_user.role == UserRole.INSTRUCTOR:
            query = query.where(Booking.instructor_id == current_user.id)
        if status_filter is not None:
            query = query.where(WeatherConflict.status == status_filter)
        result = await session.execute(query.order_by(WeatherConflict.detected_at.desc()))
        return [
            WeatherConflictResponse.model_validate(row)
            for row in result.unique().scalars().all()
        ]

    filter_value = status_filter.value if status_filter else None
    if current_user.role == UserRole.ADMIN:
        key = ("admin-weather-conflicts", filter_value)
    else:
        key = ("weather-conflicts", current_user.id, filter_value)
    return await query_cache.get_or_load(key, _load)


@router.get("/conflicts/{conflict_id}", response_model=WeatherConflictResponse)
async def get_conflict(
    conflict_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> WeatherConflictResponse:
    conflict = await load_conflict(session, conflict_id)
    if conflict is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Weather conflict not found"
        )
    if not _visible(conflict, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not authorized to view this conflict",
        )
    return WeatherConflictResponse.model_validate(conflict)


@router.post("/conflicts/{conflict_id}/process", response_model=WeatherConflictResponse)
async def process_conflict(
    conflict_id: int,
    session: SessionDep,
    rescheduler: ReschedulerDep,
    _admin: AdminUserDep,
) -> WeatherConflictResponse:
    """Re-run proposal generation for a conflict still awaiting proposals."""

    conflict = await load_conflict(session, conflict_id)
    if conflict is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Weather conflict not found"
        )
    if conflict.status not in (ConflictStatus.DETECTED, ConflictStatus.AI_PROCESSING):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot process conflict with status: {conflict.status.value}",
        )
    try:
        await rescheduler.process_conflict(session, conflict_id)
    except RescheduleError as exc:
        raise service_error(exc) from None
    return WeatherConflictResponse.model_validate(await load_conflict(session, conflict_id))


@router.post("/check", response_model=SweepResponse)
async def check_now(
    client: WeatherClientDep,
    rescheduler: ReschedulerDep,
    _admin: AdminUserDep,
) -> SweepResponse:
    """Run the weather sweep immediately."""

    outcome = await run_weather_sweep(client=client, rescheduler=rescheduler)
    return SweepResponse.model_validate(outcome.to_dict())


@router.post(
    "/simulate",
    response_model=WeatherConflictResponse,
    status_code=status.HTTP_201_CREATED,
)
async def simulate(
    payload: SimulateConflictRequest,
    session: SessionDep,
    _admin: AdminUserDep,
) -> WeatherConflictResponse:
    """Create a canned poor-weather conflict with proposals for a booking."""

    try:
        conflict = await simulate_conflict(session, payload.booking_id)
    except RescheduleError as exc:
        raise service_error(exc) from None
    return WeatherConflictResponse.model_validate(await load_conflict(session, conflict.id))
