"""Training fleet endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from flight_scheduler.controllers.dependencies import (
    AdminUserDep,
    CurrentUserDep,
    SessionDep,
)
from flight_scheduler.models.aircraft import Aircraft, DEFAULT_AIRCRAFT_MINIMUMS
from flight_scheduler.models.user import UserRole
from flight_scheduler.services.query_cache import query_cache
from flight_scheduler.views import (
    AircraftCreateRequest,
    AircraftResponse,
    AircraftUpdateRequest,
)

router = APIRouter(prefix="/aircraft", tags=["aircraft"])


async def _get_aircraft_or_404(session: AsyncSession, aircraft_id: int) -> Aircraft:
    aircraft = await session.get(Aircraft, aircraft_id)
    if aircraft is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Aircraft not found"
        )
    return aircraft


async def _ensure_tail_free(
    session: AsyncSession, tail_number: str, exclude_id: int | None = None
) -> None:
    query = select(Aircraft.id).where(func.upper(Aircraft.tail_number) == tail_number)
    if exclude_id is not None:
        query = query.where(Aircraft.id != exclude_id)
    if (await session.execute(query)).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Aircraft {tail_number} already exists",
        )


async def _save(session: AsyncSession, aircraft: Aircraft) -> AircraftResponse:
    await session.commit()
    await session.refresh(aircraft)
    return AircraftResponse.model_validate(aircraft)


@router.get("/", response_model=list[AircraftResponse])
async def list_aircraft(
    session: SessionDep,
    current_user: CurrentUserDep,
    include_inactive: bool = False,
) -> list[AircraftResponse]:
    """Active aircraft; administrators may include retired ones."""

    show_all = include_inactive and current_user.role == UserRole.ADMIN

    async def _load() -> list[AircraftResponse]:
        query = select(Aircraft).order_by(Aircraft.tail_number)
        if not show_all:
            query = query.where(Aircraft.is_active.is_(True))
        result = await session.execute(query)
        return [AircraftResponse.model_validate(row) for row in result.scalars().all()]

    return await query_cache.get_or_load(("aircraft", show_all), _load)


@router.get("/{aircraft_id}", response_model=AircraftResponse)
async def get_aircraft(
    aircraft_id: int,
    session: SessionDep,
    _current_user: CurrentUserDep,
) -> AircraftResponse:
    return AircraftResponse.model_validate(await _get_aircraft_or_404(session, aircraft_id))


@router.post("/", response_model=AircraftResponse, status_code=status.HTTP_201_CREATED)
async def create_aircraft(
    payload: AircraftCreateRequest,
    session: SessionDep,
    _admin: AdminUserDep,
) -> AircraftResponse:
    await _ensure_tail_free(session, payload.tail_number)
    minimums = (
        payload.minimum_weather_requirements.model_dump()
        if payload.minimum_weather_requirements
        else dict(DEFAULT_AIRCRAFT_MINIMUMS)
    )
    aircraft = Aircraft(
        **payload.model_dump(exclude={"minimum_weather_requirements"}),
        minimum_weather_requirements=minimums,
        is_active=True,
    )
    session.add(aircraft)
    return await _save(session, aircraft)


@router.patch("/{aircraft_id}", response_model=AircraftResponse)
async def update_aircraft(
    aircraft_id: int,
    payload: AircraftUpdateRequest,
    session: SessionDep,
    _admin: AdminUserDep,
) -> AircraftResponse:
    aircraft = await _get_aircraft_or_404(session, aircraft_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("tail_number"):
        await _ensure_tail_free(session, changes["tail_number"], exclude_id=aircraft.id)
    if payload.minimum_weather_requirements is not None:
        changes["minimum_weather_requirements"] = (
            payload.minimum_weather_requirements.model_dump()
        )
    for field, value in changes.items():
        setattr(aircraft, field, value)
    return await _save(session, aircraft)


@router.post("/{aircraft_id}/deactivate", response_model=AircraftResponse)
async def deactivate_aircraft(
    aircraft_id: int,
    session: SessionDep,
    _admin: AdminUserDep,
) -> AircraftResponse:
    aircraft = await _get_aircraft_or_404(session, aircraft_id)
    aircraft.is_active = False
    return await _save(session, aircraft)


@router.post("/{aircraft_id}/reactivate", response_model=AircraftResponse)
async def reactivate_aircraft(
    aircraft_id: int,
    session: SessionDep,
    _admin: AdminUserDep,
) -> AircraftResponse:
    aircraft = await _get_aircraft_or_404(session, aircraft_id)
    aircraft.is_active = True
    return await _save(session, aircraft)
