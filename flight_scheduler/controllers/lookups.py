"""Airport and lesson type lookup endpoints."""

from __future__ import annotations

from typing import Type, TypeVar

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from flight_scheduler.controllers.dependencies import (
    AdminUserDep,
    CurrentUserDep,
    SessionDep,
)
from flight_scheduler.models.lookup import Airport, LessonType
from flight_scheduler.models.user import UserRole
from flight_scheduler.services.query_cache import query_cache
from flight_scheduler.views import (
    AirportCreateRequest,
    AirportResponse,
    AirportUpdateRequest,
    LessonTypeCreateRequest,
    LessonTypeResponse,
    LessonTypeUpdateRequest,
)

router = APIRouter(prefix="/lookups", tags=["lookups"])

M = TypeVar("M", Airport, LessonType)


async def _get_or_404(session: AsyncSession, model: Type[M], row_id: int, label: str) -> M:
    row = await session.get(model, row_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return row


async def _ensure_unique(
    session: AsyncSession,
    model: Type[M],
    column,
    value: str,
    label: str,
    exclude_id: int | None = None,
) -> None:
    query = select(model.id).where(func.lower(column) == value.lower())
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    if (await session.execute(query)).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=f"{label} already exists"
        )


# Airports


@router.get("/airports", response_model=list[AirportResponse])
async def list_airports(
    session: SessionDep,
    current_user: CurrentUserDep,
    include_inactive: bool = False,
) -> list[AirportResponse]:
    show_all = include_inactive and current_user.role == UserRole.ADMIN

    async def _load() -> list[AirportResponse]:
        query = select(Airport).order_by(Airport.code)
        if not show_all:
            query = query.where(Airport.is_active.is_(True))
        result = await session.execute(query)
        return [AirportResponse.model_validate(row) for row in result.scalars().all()]

    return await query_cache.get_or_load(("airports", show_all), _load)


@router.post("/airports", response_model=AirportResponse, status_code=status.HTTP_201_CREATED)
async def create_airport(
    payload: AirportCreateRequest,
    session: SessionDep,
    _admin: AdminUserDep,
) -> AirportResponse:
    await _ensure_unique(
        session, Airport, Airport.code, payload.code, f"Airport {payload.code}"
    )
    airport = Airport(**payload.model_dump(), is_active=True)
    session.add(airport)
    await session.commit()
    await session.refresh(airport)
    return AirportResponse.model_validate(airport)


@router.patch("/airports/{airport_id}", response_model=AirportResponse)
async def update_airport(
    airport_id: int,
    payload: AirportUpdateRequest,
    session: SessionDep,
    _admin: AdminUserDep,
) -> AirportResponse:
    airport = await _get_or_404(session, Airport, airport_id, "Airport")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("code"):
        code = changes["code"]
        await _ensure_unique(
            session, Airport, Airport.code, code, f"Airport {code}", airport.id
        )
    for field, value in changes.items():
        setattr(airport, field, value)
    await session.commit()
    await session.refresh(airport)
    return AirportResponse.model_validate(airport)


@router.post("/airports/{airport_id}/deactivate", response_model=AirportResponse)
async def deactivate_airport(
    airport_id: int, session: SessionDep, _admin: AdminUserDep
) -> AirportResponse:
    airport = await _get_or_404(session, Airport, airport_id, "Airport")
    airport.is_active = False
    await session.commit()
    await session.refresh(airport)
    return AirportResponse.model_validate(airport)


@router.post("/airports/{airport_id}/reactivate", response_model=AirportResponse)
async def reactivate_airport(
    airport_id: int, session: SessionDep, _admin: AdminUserDep
) -> AirportResponse:
    airport = await _get_or_404(session, Airport, airport_id, "Airport")
    airport.is_active = True
    await session.commit()
    await session.refresh(airport)
    return AirportResponse.model_validate(airport)


# Lesson types


@router.get("/lesson-types", response_model=list[LessonTypeResponse])
async def list_lesson_types(
    session: SessionDep,
    current_user: CurrentUserDep,
    include_inactive: bool = False,
) -> list[LessonTypeResponse]:
    show_all = include_inactive and current_user.role == UserRole.ADMIN

    async def _load() -> list[LessonTypeResponse]:
        query = select(LessonType).order_by(LessonType.name)
        if not show_all:
            query = query.where(LessonType.is_active.is_(True))
        result = await session.execute(query)
        return [LessonTypeResponse.model_validate(row) for row in result.scalars().all()]

    return await query_cache.get_or_load(("lesson-types", show_all), _load)


@router.post(
    "/lesson-types", response_model=LessonTypeResponse, status_code=status.HTTP_201_CREATED
)
async def create_lesson_type(
    payload: LessonTypeCreateRequest,
    session: SessionDep,
    _admin: AdminUserDep,
) -> LessonTypeResponse:
    name = payload.name.strip()
    await _ensure_unique(
        session, LessonType, LessonType.name, name, f"Lesson type {name}"
    )
    lesson_type = LessonType(
        name=name,
        description=payload.description,
        category=payload.category,
        is_active=True,
    )
    session.add(lesson_type)
    await session.commit()
    await session.refresh(lesson_type)
    return LessonTypeResponse.model_validate(lesson_type)


@router.patch("/lesson-types/{lesson_type_id}", response_model=LessonTypeResponse)
async def update_lesson_type(
    lesson_type_id: int,
    payload: LessonTypeUpdateRequest,
    session: SessionDep,
    _admin: AdminUserDep,
) -> LessonTypeResponse:
    lesson_type = await _get_or_404(session, LessonType, lesson_type_id, "Lesson type")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name"):
        changes["name"] = changes["name"].strip()
        await _ensure_unique(
            session,
            LessonType,
            LessonType.name,
            changes["name"],
            f"Lesson type {changes['name']}",
            lesson_type.id,
        )
    for field, value in changes.items():
        setattr(lesson_type, field, value)
    await session.commit()
    await session.refresh(lesson_type)
    return LessonTypeResponse.model_validate(lesson_type)


@router.post("/lesson-types/{lesson_type_id}/deactivate", response_model=LessonTypeResponse)
async def deactivate_lesson_type(
    lesson_type_id: int, session: SessionDep, _admin: AdminUserDep
) -> LessonTypeResponse:
    lesson_type = await _get_or_404(session, LessonType, lesson_type_id, "Lesson type")
    lesson_type.is_active = False
    await session.commit()
    await session.refresh(lesson_type)
    return LessonTypeResponse.model_validate(lesson_type)


@router.post("/lesson-types/{lesson_type_id}/reactivate", response_model=LessonTypeResponse)
async def reactivate_lesson_type(
    lesson_type_id: int, session: SessionDep, _admin: AdminUserDep
) -> LessonTypeResponse:
    lesson_type = await _get_or_404(session, LessonType, lesson_type_id, "Lesson type")
    lesson_type.is_active = True
    await session.commit()
    await session.refresh(lesson_type)
    return LessonTypeResponse.model_validate(lesson_type)
