"""Weather sweep, simulated conflicts and the weather endpoints."""

from __future__ import annotations

import asyncio
from datetime import time, timedelta

from sqlalchemy import select

from conftest import (
    add_weekly_availability,
    auth_headers,
    create_booking,
    future_start,
)
from flight_scheduler.controllers.weather import get_rescheduler, get_weather_client
from flight_scheduler.database import session_scope
from flight_scheduler.main import app
from flight_scheduler.models import (
    BookingStatus,
    ConflictStatus,
    WeatherCache,
    WeatherConflict,
)
from flight_scheduler.models.base import utcnow
from flight_scheduler.services.bookings import load_booking
from flight_scheduler.services.rescheduler import Rescheduler
from flight_scheduler.services.weather import WeatherServiceError
from flight_scheduler.services.weather_monitor import WeatherMonitor, run_weather_sweep

CLEAR_HOUR = {
    "vis_miles": 10.0,
    "cloud": 0,
    "wind_mph": 5,
    "wind_degree": 180,
    "temp_f": 72,
    "precip_mm": 0,
    "humidity": 40,
    "condition": {"code": 1000, "text": "Sunny"},
}
STORMY_HOUR = {
    "vis_miles": 2.0,
    "cloud": 100,
    "wind_mph": 35,
    "wind_degree": 250,
    "temp_f": 60,
    "precip_mm": 4,
    "humidity": 95,
    "condition": {"code": 1276, "text": "Moderate or heavy rain with thunder"},
}


class FakeWeatherClient:
    def __init__(self, hour=None, error=None):
        self.hour = hour or CLEAR_HOUR
        self.error = error
        self.calls = []

    async def fetch_forecast(self, airport, when):
        self.calls.append((airport, when))
        if self.error is not None:
            raise self.error
        stamp = when.strftime("%Y-%m-%d %H:%M")
        return {"forecast": {"forecastday": [{"hour": [{**self.hour, "time": stamp}]}]}}

    async def fetch_metar(self, icao_code):
        return {"icaoId": icao_code, "temp": 21.0, "wspd": 8, "rawOb": f"{icao_code} 8KT"}


class SilentLlm:
    async def invoke(self, **kwargs):
        return None


def _sweep(client, now=None):
    return asyncio.run(
        run_weather_sweep(client=client, rescheduler=Rescheduler(SilentLlm()), now=now)
    )


def _booking(booking_id):
    async def _run():
        async with session_scope() as session:
            return await load_booking(session, booking_id)

    return asyncio.run(_run())


def _all(model):
    async def _run():
        async with session_scope() as session:
            result = await session.execute(select(model))
            return result.unique().scalars().all()

    return asyncio.run(_run())


def _soon(hours=2):
    return (utcnow() + timedelta(hours=hours)).replace(minute=0, second=0, microsecond=0)


def test_clear_weather_keeps_booking(student, instructor, aircraft):
    booking = create_booking(student, instructor, aircraft, _soon())
    client = FakeWeatherClient()

    outcome = _sweep(client)

    assert outcome.to_dict() == {
        "checked": 1,
        "conflictsDetected": 0,
        "conflictIds": [],
        "errors": [],
    }
    stored = _booking(booking.id)
    assert stored.status == BookingStatus.SCHEDULED
    assert stored.last_weather_check is not None
    assert stored.weather_snapshot[0]["airport"] == "KAUS"
    assert len(_all(WeatherCache)) == 1

    _sweep(client)
    assert len(client.calls) == 1


def test_bad_weather_creates_conflict_and_proposals(student, instructor, aircraft):
    add_weekly_availability(instructor, time(8), time(12))
    booking = create_booking(student, instructor, aircraft, _soon())

    outcome = _sweep(FakeWeatherClient(STORMY_HOUR))

    assert outcome.checked == 1
    assert len(outcome.conflicts) == 1
    assert _booking(booking.id).status == BookingStatus.WEATHER_HOLD

    [conflict] = _all(WeatherConflict)
    assert conflict.status == ConflictStatus.PROPOSALS_READY
    assert any(reason.startswith("Thunderstorms detected at KAUS") for reason in conflict.conflict_reasons)
    assert len(conflict.proposals) == 3


def test_sweep_only_checks_scheduled_bookings_in_window(student, instructor, aircraft):
    create_booking(student, instructor, aircraft, _soon(), status=BookingStatus.PENDING)
    create_booking(student, instructor, aircraft, _soon(hours=30))
    client = FakeWeatherClient()

    outcome = _sweep(client)

    assert outcome.checked == 0
    assert client.calls == []


def test_weather_errors_are_collected(student, instructor, aircraft):
    booking = create_booking(student, instructor, aircraft, _soon())

    outcome = _sweep(FakeWeatherClient(error=WeatherServiceError("provider down")))

    assert outcome.checked == 0
    assert outcome.errors == [{"bookingId": booking.id, "error": "provider down"}]
    assert _booking(booking.id).status == BookingStatus.SCHEDULED


def test_check_endpoint_runs_sweep(client, admin, student, instructor, aircraft):
    create_booking(student, instructor, aircraft, _soon())
    app.dependency_overrides[get_weather_client] = lambda: FakeWeatherClient(STORMY_HOUR)
    app.dependency_overrides[get_rescheduler] = lambda: Rescheduler(SilentLlm())

    denied = client.post("/weather/check", headers=auth_headers(student))
    assert denied.status_code == 403

    response = client.post("/weather/check", headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["checked"] == 1
    assert body["conflictsDetected"] == 1


def test_simulate_conflict(client, admin, student, instructor, aircraft):
    start = future_start(days=3)
    booking = create_booking(student, instructor, aircraft, start)

    response = client.post(
        "/weather/simulate", json={"bookingId": booking.id}, headers=auth_headers(admin)
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "proposals_ready"
    assert body["booking"]["status"] == "weather_hold"
    assert body["weatherData"][0]["condition_text"] == "Heavy rain showers"

    proposals = client.get(
        f"/proposals/conflict/{body['id']}", headers=auth_headers(student)
    ).json()
    assert [row["score"] for row in proposals] == [0.97, 0.91, 0.88]
    assert proposals[0]["proposedStart"] == (start + timedelta(days=1)).isoformat()

    conflicts = client.get("/weather/conflicts", headers=auth_headers(student)).json()
    assert [row["id"] for row in conflicts] == [body["id"]]

    unread = client.get("/notifications/unread-count", headers=auth_headers(student))
    assert unread.json() == {"count": 2}


def test_simulate_rejects_missing_and_cancelled(client, admin, student, instructor, aircraft):
    headers = auth_headers(admin)
    cancelled = create_booking(
        student, instructor, aircraft, future_start(), status=BookingStatus.CANCELLED
    )

    missing = client.post("/weather/simulate", json={"bookingId": 999}, headers=headers)
    assert missing.status_code == 404

    refused = client.post(
        "/weather/simulate", json={"bookingId": cancelled.id}, headers=headers
    )
    assert refused.status_code == 409

    student_call = client.post(
        "/weather/simulate", json={"bookingId": cancelled.id}, headers=auth_headers(student)
    )
    assert student_call.status_code == 403


def test_conditions_endpoint(client, student):
    app.dependency_overrides[get_weather_client] = lambda: FakeWeatherClient()

    response = client.get("/weather/conditions/kaus", headers=auth_headers(student))

    assert response.status_code == 200
    assert response.json()["icaoId"] == "KAUS"
    assert response.json()["rawOb"] == "KAUS 8KT"


def test_monitor_runs_sweep_until_stopped():
    calls = []

    async def fake_sweep():
        calls.append(utcnow())

    async def _run():
        monitor = WeatherMonitor(interval_seconds=0.01, sweep=fake_sweep)
        monitor.start()
        assert monitor.running
        await asyncio.sleep(0.05)
        await monitor.stop()
        return monitor

    monitor = asyncio.run(_run())

    assert len(calls) >= 2
    assert not monitor.running
