"""Booking lifecycle endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, status

from flight_scheduler.controllers.dependencies import (
    CurrentUserDep,
    SessionDep,
    service_error,
)
from flight_scheduler.models.booking import BookingStatus
from flight_scheduler.models.user import User as UserModel
from flight_scheduler.models.user import UserRole
from flight_scheduler.services import bookings as booking_service
from flight_scheduler.services.query_cache import query_cache
from flight_scheduler.views import (
    BookingCreateRequest,
    BookingResponse,
    CancelBookingRequest,
    RescheduleRequest,
)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def bookings_cache_key(user: UserModel, *params) -> tuple:
    """Cache key matching the invalidation keys of the booking channels."""

    if user.role == UserRole.ADMIN:
        return ("admin-bookings", *params)
    if user.role == UserRole.INSTRUCTOR:
        return ("instructor-bookings", user.id, *params)
    return ("bookings", user.id, *params)


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreateRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> BookingResponse:
    try:
        booking = await booking_service.create_booking(session, current_user, payload)
    except booking_service.BookingActionError as exc:
        raise service_error(exc) from None
    return BookingResponse.model_validate(booking)


@router.get("/", response_model=list[BookingResponse])
async def list_bookings(
    session: SessionDep,
    current_user: CurrentUserDep,
    include_past: bool = False,
    status_filter: Optional[BookingStatus] = None,
) -> list[BookingResponse]:
    async def _load() -> list[BookingResponse]:
        rows = await booking_service.list_bookings(
            session,
            current_user,
            include_past=include_past,
            status_filter=status_filter,
        )
        return [BookingResponse.model_validate(row) for row in rows]

    key = bookings_cache_key(
        current_user, include_past, status_filter.value if status_filter else None
    )
    return await query_cache.get_or_load(key, _load)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> BookingResponse:
    try:
        booking = await booking_service.get_booking_for(session, current_user, booking_id)
    except booking_service.BookingActionError as exc:
        raise service_error(exc) from None
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> BookingResponse:
    try:
        booking = await booking_service.confirm_booking(session, current_user, booking_id)
    except booking_service.BookingActionError as exc:
        raise service_error(exc) from None
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    payload: CancelBookingRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> BookingResponse:
    try:
        booking = await booking_service.cancel_booking(
            session, current_user, booking_id, payload.reason
        )
    except booking_service.BookingActionError as exc:
        raise service_error(exc) from None
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/reschedule", response_model=BookingResponse)
async def request_reschedule(
    booking_id: int,
    payload: RescheduleRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> BookingResponse:
    try:
        booking = await booking_service.request_reschedule(
            session,
            current_user,
            booking_id,
            payload.new_start,
            payload.new_end,
            payload.reason,
        )
    except booking_service.BookingActionError as exc:
        raise service_error(exc) from None
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/approve-reschedule", response_model=BookingResponse)
async def approve_reschedule(
    booking_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> BookingResponse:
    try:
        booking = await booking_service.approve_reschedule(
            session, current_user, booking_id
        )
    except booking_service.BookingActionError as exc:
        raise service_error(exc) from None
    return BookingResponse.model_validate(booking)
