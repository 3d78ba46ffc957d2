"""Authentication controller providing signup and login endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import func, select

from flight_scheduler.config.settings import settings
from flight_scheduler.controllers.dependencies import SessionDep
from flight_scheduler.models.base import utcnow
from flight_scheduler.models.user import User as UserModel
from flight_scheduler.models.user import UserRole, default_preferences
from flight_scheduler.telemetry import increment_login
from flight_scheduler.utils import create_access_token, hash_password, verify_password
from flight_scheduler.views import (
    LoginRequest,
    SignupRequest,
    SuccessResponse,
    TokenResponse,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user: UserModel) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(subject=str(user.id), user=user),
        expires_in=settings.security.access_token_expires_minutes * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(payload: SignupRequest, session: SessionDep) -> TokenResponse:
    """Register a student account and sign it in."""

    email = payload.email.lower()
    result = await session.execute(
        select(UserModel).where(func.lower(UserModel.email) == email)
    )
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        )

    user = UserModel(
        email=email,
        full_name=payload.full_name,
        password_hash=hash_password(payload.password),
        role=UserRole.STUDENT,
        training_level=payload.training_level,
        phone=payload.phone,
        preferences=default_preferences(),
        is_active=True,
        last_login_at=utcnow(),
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)

    increment_login()
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    session: SessionDep,
) -> TokenResponse:
    """Validate credentials and issue a JWT access token."""

    result = await session.execute(
        select(UserModel).where(func.lower(UserModel.email) == payload.email.lower())
    )
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account has been deactivated")

    user.last_login_at = utcnow()
    await session.commit()
    await session.refresh(user)

    increment_login()
    return _token_response(user)


@router.post("/logout", response_model=SuccessResponse)
async def logout() -> SuccessResponse:
    """Tokens are stateless; clients discard them."""

    return SuccessResponse(message="Logged out")
