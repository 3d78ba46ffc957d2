"""Instructor availability endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from flight_scheduler.controllers.dependencies import (
    CurrentUserDep,
    InstructorUserDep,
    SessionDep,
)
from flight_scheduler.models.availability import Availability
from flight_scheduler.services import availability as availability_service
from flight_scheduler.views import (
    AvailabilityCreateRequest,
    AvailabilityResponse,
    AvailabilityUpdateRequest,
    AvailableInstructor,
    InstructorAvailabilityResponse,
    TimeRangeQuery,
)

router = APIRouter(prefix="/availability", tags=["availability"])


def _time_range(start: datetime, end: datetime) -> TimeRangeQuery:
    try:
        return TimeRangeQuery(start=start, end=end)
    except ValidationError as exc:
        message = exc.errors()[0]["msg"].removeprefix("Value error, ")
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=message
        ) from None


async def _get_own_window(
    session: AsyncSession, window_id: int, instructor_id: int
) -> Availability:
    window = await session.get(Availability, window_id)
    if window is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Availability not found"
        )
    if window.user_id != instructor_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own availability",
        )
    return window


@router.get("/me", response_model=list[AvailabilityResponse])
async def list_own_availability(
    session: SessionDep,
    instructor: InstructorUserDep,
) -> list[AvailabilityResponse]:
    windows = await availability_service.list_windows(session, instructor.id)
    return [AvailabilityResponse.model_validate(window) for window in windows]


@router.post("/", response_model=AvailabilityResponse, status_code=status.HTTP_201_CREATED)
async def create_availability(
    payload: AvailabilityCreateRequest,
    session: SessionDep,
    instructor: InstructorUserDep,
) -> AvailabilityResponse:
    window = Availability(user_id=instructor.id, **payload.model_dump())
    session.add(window)
    await session.commit()
    await session.refresh(window)
    return AvailabilityResponse.model_validate(window)


@router.put("/{window_id}", response_model=AvailabilityResponse)
async def update_availability(
    window_id: int,
    payload: AvailabilityUpdateRequest,
    session: SessionDep,
    instructor: InstructorUserDep,
) -> AvailabilityResponse:
    window = await _get_own_window(session, window_id, instructor.id)
    for field, value in payload.model_dump().items():
        setattr(window, field, value)
    await session.commit()
    await session.refresh(window)
    return AvailabilityResponse.model_validate(window)


@router.delete("/{window_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_availability(
    window_id: int,
    session: SessionDep,
    instructor: InstructorUserDep,
) -> Response:
    window = await _get_own_window(session, window_id, instructor.id)
    await session.delete(window)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/instructors/available", response_model=list[AvailableInstructor])
async def available_instructors(
    start: datetime,
    end: datetime,
    session: SessionDep,
    _current_user: CurrentUserDep,
) -> list[AvailableInstructor]:
    window = _time_range(start, end)
    instructors = await availability_service.find_available_instructors(
        session, window.start, window.end
    )
    return [AvailableInstructor.model_validate(user) for user in instructors]


@router.get("/instructors/{instructor_id}", response_model=list[AvailabilityResponse])
async def list_instructor_availability(
    instructor_id: int,
    session: SessionDep,
    _current_user: CurrentUserDep,
) -> list[AvailabilityResponse]:
    windows = await availability_service.list_windows(session, instructor_id)
    return [AvailabilityResponse.model_validate(window) for window in windows]


@router.get(
    "/instructors/{instructor_id}/check",
    response_model=InstructorAvailabilityResponse,
)
async def check_instructor_availability(
    instructor_id: int,
    start: datetime,
    end: datetime,
    session: SessionDep,
    _current_user: CurrentUserDep,
) -> InstructorAvailabilityResponse:
    window = _time_range(start, end)
    available = await availability_service.is_instructor_available(
        session, instructor_id, window.start, window.end
    )
    return InstructorAvailabilityResponse(instructor_id=instructor_id, available=available)
