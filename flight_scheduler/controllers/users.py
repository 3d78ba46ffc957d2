"""User profile and administration endpoints."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from flight_scheduler.controllers.dependencies import (
    AdminUserDep,
    CurrentUserDep,
    SessionDep,
)
from flight_scheduler.models.booking import Booking
from flight_scheduler.models.user import User as UserModel
from flight_scheduler.models.user import UserRole, default_preferences
from flight_scheduler.services.query_cache import query_cache
from flight_scheduler.utils import hash_password, verify_password
from flight_scheduler.views import (
    AdminCreateRequest,
    AdminUserUpdateRequest,
    ChangeEmailRequest,
    ChangePasswordRequest,
    PartySummary,
    ProfileUpdateRequest,
    SuccessResponse,
    UserDetailResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


async def _get_user_or_404(session: AsyncSession, user_id: int) -> UserModel:
    result = await session.execute(select(UserModel).where(UserModel.id == user_id))
    db_user = result.scalar_one_or_none()
    if not db_user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
        )
    return db_user


async def _ensure_email_free(
    session: AsyncSession, email: str, exclude_id: Optional[int] = None
) -> None:
    query = select(UserModel.id).where(func.lower(UserModel.email) == email.lower())
    if exclude_id is not None:
        query = query.where(UserModel.id != exclude_id)
    result = await session.execute(query)
    if result.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email address already registered",
        )


async def _save(session: AsyncSession, db_user: UserModel) -> UserResponse:
    await session.commit()
    await session.refresh(db_user)
    return UserResponse.model_validate(db_user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(current_user: CurrentUserDep) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_profile(
    payload: ProfileUpdateRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> UserResponse:
    if payload.full_name is not None:
        current_user.full_name = payload.full_name
    if "phone" in payload.model_fields_set:
        current_user.phone = payload.phone
    if payload.training_level is not None and current_user.role != UserRole.ADMIN:
        current_user.training_level = payload.training_level
    if payload.preferences is not None:
        current_user.preferences = {
            **(current_user.preferences or default_preferences()),
            **payload.preferences,
        }
    return await _save(session, current_user)


@router.post("/me/password", response_model=SuccessResponse)
async def change_password(
    payload: ChangePasswordRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> SuccessResponse:
    if not verify_password(payload.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    current_user.password_hash = hash_password(payload.new_password)
    await session.commit()
    return SuccessResponse(message="Password updated successfully")


@router.post("/me/email", response_model=UserResponse)
async def change_email(
    payload: ChangeEmailRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> UserResponse:
    if not verify_password(payload.password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password is incorrect",
        )
    new_email = payload.new_email.lower()
    await _ensure_email_free(session, new_email, exclude_id=current_user.id)
    current_user.email = new_email
    return await _save(session, current_user)


@router.get("/instructors", response_model=list[PartySummary])
async def list_instructors(
    session: SessionDep,
    _current_user: CurrentUserDep,
) -> list[PartySummary]:
    """Active instructors students can book with."""

    async def _load() -> list[PartySummary]:
        result = await session.execute(
            select(UserModel)
            .where(UserModel.role == UserRole.INSTRUCTOR, UserModel.is_active.is_(True))
            .order_by(UserModel.full_name)
        )
        return [PartySummary.model_validate(user) for user in result.scalars().all()]

    return await query_cache.get_or_load(("admin-users", "instructors"), _load)


@router.get("/", response_model=list[UserResponse])
async def list_users(
    session: SessionDep,
    _admin: AdminUserDep,
    role: Optional[UserRole] = None,
) -> list[UserResponse]:
    async def _load() -> list[UserResponse]:
        query = select(UserModel).order_by(UserModel.created_at.desc(), UserModel.id.desc())
        if role is not None:
            query = query.where(UserModel.role == role)
        result = await session.execute(query)
        return [UserResponse.model_validate(user) for user in result.scalars().all()]

    key = ("admin-users", role.value if role else None)
    return await query_cache.get_or_load(key, _load)


@router.post("/admins", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    payload: AdminCreateRequest,
    session: SessionDep,
    admin: AdminUserDep,
) -> UserResponse:
    email = payload.email.lower()
    await _ensure_email_free(session, email)
    db_user = UserModel(
        email=email,
        full_name=payload.full_name,
        password_hash=hash_password(payload.password),
        role=UserRole.ADMIN,
        training_level=None,
        preferences=default_preferences(),
        is_active=True,
    )
    session.add(db_user)
    response = await _save(session, db_user)
    logger.info("Admin %s created admin account %s", admin.id, db_user.id)
    return response


@router.get("/{user_id}", response_model=UserDetailResponse)
async def get_user(
    user_id: int,
    session: SessionDep,
    _admin: AdminUserDep,
) -> UserDetailResponse:
    db_user = await _get_user_or_404(session, user_id)

    as_student = await session.scalar(
        select(func.count(Booking.id)).where(Booking.student_id == user_id)
    )
    as_instructor = await session.scalar(
        select(func.count(Booking.id)).where(Booking.instructor_id == user_id)
    )
    detail = UserDetailResponse.model_validate(db_user)
    detail.bookings_as_student = as_student or 0
    detail.bookings_as_instructor = as_instructor or 0
    return detail


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    payload: AdminUserUpdateRequest,
    session: SessionDep,
    _admin: AdminUserDep,
) -> UserResponse:
    db_user = await _get_user_or_404(session, user_id)

    if payload.full_name is not None:
        db_user.full_name = payload.full_name
    if payload.email is not None:
        await _ensure_email_free(session, payload.email, exclude_id=db_user.id)
        db_user.email = payload.email.lower()
    if "phone" in payload.model_fields_set:
        db_user.phone = payload.phone
    if payload.role is not None:
        db_user.role = payload.role
    if "training_level" in payload.model_fields_set:
        db_user.training_level = payload.training_level
    if db_user.role == UserRole.ADMIN:
        db_user.training_level = None

    return await _save(session, db_user)


@router.post("/{user_id}/promote", response_model=UserResponse)
async def promote_to_instructor(
    user_id: int,
    session: SessionDep,
    _admin: AdminUserDep,
) -> UserResponse:
    db_user = await _get_user_or_404(session, user_id)
    if db_user.role != UserRole.STUDENT:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only students can be promoted to instructor",
        )
    db_user.role = UserRole.INSTRUCTOR
    return await _save(session, db_user)


@router.post("/{user_id}/demote", response_model=UserResponse)
async def demote_to_student(
    user_id: int,
    session: SessionDep,
    _admin: AdminUserDep,
) -> UserResponse:
    db_user = await _get_user_or_404(session, user_id)
    if db_user.role != UserRole.INSTRUCTOR:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only instructors can be demoted to student",
        )
    db_user.role = UserRole.STUDENT
    return await _save(session, db_user)


@router.post("/{user_id}/deactivate", response_model=UserResponse)
async def deactivate_user(
    user_id: int,
    session: SessionDep,
    admin: AdminUserDep,
) -> UserResponse:
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot deactivate your own account",
        )
    db_user = await _get_user_or_404(session, user_id)
    db_user.is_active = False
    return await _save(session, db_user)


@router.post("/{user_id}/reactivate", response_model=UserResponse)
async def reactivate_user(
    user_id: int,
    session: SessionDep,
    _admin: AdminUserDep,
) -> UserResponse:
    db_user = await _get_user_or_404(session, user_id)
    db_user.is_active = True
    return await _save(session, db_user)
