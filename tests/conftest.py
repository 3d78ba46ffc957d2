"""Shared fixtures: a throwaway SQLite database and seeded users."""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, time, timedelta
from pathlib import Path
import sys
import tempfile

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

_TMP_DIR = Path(tempfile.mkdtemp(prefix="flight-scheduler-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'test.db'}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_FILE"] = str(_TMP_DIR / "app.log")
os.environ["PIPELINE_LOG_FILE"] = str(_TMP_DIR / "pipeline.log")
os.environ["WEATHER_MONITOR_ENABLED"] = "false"

from fastapi.testclient import TestClient  # noqa: E402

from flight_scheduler.database import drop_models, init_models, session_scope  # noqa: E402
from flight_scheduler.main import app  # noqa: E402
from flight_scheduler.models import (  # noqa: E402
    Aircraft,
    Availability,
    Booking,
    BookingStatus,
    TrainingLevel,
    User,
    UserRole,
)
from flight_scheduler.models.base import utcnow  # noqa: E402
from flight_scheduler.utils import create_access_token, hash_password  # noqa: E402

PASSWORD = "Password1"


@pytest.fixture(autouse=True)
def database():
    """Recreate the schema for every test."""

    asyncio.run(drop_models())
    asyncio.run(init_models())
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


async def _add(instance):
    async with session_scope() as session:
        session.add(instance)
        await session.commit()
        return instance


def create_user(
    email: str,
    role: UserRole = UserRole.STUDENT,
    full_name: str | None = None,
    training_level: TrainingLevel | None = TrainingLevel.STUDENT_PILOT,
    is_active: bool = True,
) -> User:
    return asyncio.run(
        _add(
            User(
                email=email,
                full_name=full_name or email.split("@")[0].title(),
                password_hash=hash_password(PASSWORD),
                role=role,
                training_level=training_level,
                is_active=is_active,
            )
        )
    )


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(subject=str(user.id), user=user)
    return {"Authorization": f"Bearer {token}"}


def create_aircraft(tail_number: str = "N12345", **fields) -> Aircraft:
    return asyncio.run(
        _add(
            Aircraft(
                tail_number=tail_number,
                make=fields.pop("make", "Cessna"),
                model=fields.pop("model", "172S"),
                category=fields.pop("category", "single_engine"),
                **fields,
            )
        )
    )


def create_booking(
    student: User,
    instructor: User,
    aircraft: Aircraft,
    start: datetime,
    duration: timedelta = timedelta(hours=2),
    status: BookingStatus = BookingStatus.SCHEDULED,
    **fields,
) -> Booking:
    return asyncio.run(
        _add(
            Booking(
                student_id=student.id,
                instructor_id=instructor.id,
                aircraft_id=aircraft.id,
                scheduled_start=start,
                scheduled_end=start + duration,
                status=status,
                departure_airport=fields.pop("departure_airport", "KAUS"),
                lesson_type=fields.pop("lesson_type", "Pattern work"),
                flight_distance_nm=0,
                **fields,
            )
        )
    )


def add_weekly_availability(instructor: User, start: time, end: time) -> None:
    """Give the instructor the same window on every day of the week."""

    async def _run():
        async with session_scope() as session:
            for day in range(7):
                session.add(
                    Availability(
                        user_id=instructor.id,
                        day_of_week=day,
                        start_time=start,
                        end_time=end,
                        is_recurring=True,
                    )
                )
            await session.commit()

    asyncio.run(_run())


def future_start(days: int = 2, hour: int = 9) -> datetime:
    day = (utcnow() + timedelta(days=days)).date()
    return datetime.combine(day, time(hour=hour))


@pytest.fixture
def student() -> User:
    return create_user("student@example.com", full_name="Sam Student")


@pytest.fixture
def instructor() -> User:
    return create_user(
        "instructor@example.com",
        role=UserRole.INSTRUCTOR,
        full_name="Ida Instructor",
        training_level=TrainingLevel.COMMERCIAL_PILOT,
    )


@pytest.fixture
def admin() -> User:
    return create_user(
        "admin@example.com", role=UserRole.ADMIN, full_name="Ada Admin", training_level=None
    )


@pytest.fixture
def aircraft() -> Aircraft:
    return create_aircraft()
