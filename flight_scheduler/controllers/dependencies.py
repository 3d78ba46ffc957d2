"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flight_scheduler.database import get_session
from flight_scheduler.models.user import User as UserModel
from flight_scheduler.models.user import UserRole
from flight_scheduler.utils import AuthenticationError, decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def resolve_token_user(session: AsyncSession, token: str) -> UserModel:
    """Load the active user a bearer token refers to."""

    try:
        payload = decode_access_token(token)
        user_id = int(payload.sub)
    except (AuthenticationError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from None

    result = await session.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account has been deactivated",
        )
    return user


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: SessionDep,
) -> UserModel:
    """Resolve and validate the user referenced by the bearer token."""

    return await resolve_token_user(session, token)


CurrentUserDep = Annotated[UserModel, Depends(get_current_user)]


def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory admitting only users holding one of ``roles``."""

    async def _checker(current_user: CurrentUserDep) -> UserModel:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action",
            )
        return current_user

    return _checker


AdminUserDep = Annotated[UserModel, Depends(require_roles(UserRole.ADMIN))]
InstructorUserDep = Annotated[UserModel, Depends(require_roles(UserRole.INSTRUCTOR))]


def service_error(exc: Exception) -> HTTPException:
    """Translate a service exception carrying ``status_code`` into an HTTP error."""

    detail = getattr(exc, "message", None) or str(exc)
    return HTTPException(
        status_code=getattr(exc, "status_code", status.HTTP_400_BAD_REQUEST),
        detail=detail,
    )


__all__ = [
    "AdminUserDep",
    "CurrentUserDep",
    "InstructorUserDep",
    "SessionDep",
    "get_current_user",
    "oauth2_scheme",
    "require_roles",
    "resolve_token_user",
    "service_error",
]
