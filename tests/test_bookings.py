"""Booking lifecycle endpoint tests."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from conftest import (
    auth_headers,
    create_booking,
    create_user,
    future_start,
)
from flight_scheduler.database import session_scope
from flight_scheduler.main import app
from flight_scheduler.models import BookingStatus, Notification, NotificationType
from flight_scheduler.models.base import utcnow
from flight_scheduler.services.query_cache import query_cache


def _payload(instructor, aircraft, **overrides):
    start = future_start()
    payload = {
        "instructorId": instructor.id,
        "aircraftId": aircraft.id,
        "scheduledStart": start.isoformat(),
        "scheduledEnd": (start + timedelta(hours=2)).isoformat(),
        "lessonType": "Pattern work",
        "flightType": "local",
        "departureAirport": "kaus",
    }
    payload.update(overrides)
    return payload


def _notifications_for(user_id):
    async def _run():
        async with session_scope() as session:
            result = await session.execute(
                select(Notification).where(Notification.user_id == user_id)
            )
            return result.scalars().all()

    return asyncio.run(_run())


def test_student_creates_pending_booking(client, student, instructor, aircraft):
    response = client.post(
        "/bookings/",
        json=_payload(instructor, aircraft),
        headers=auth_headers(student),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["studentId"] == student.id
    assert body["departureAirport"] == "KAUS"
    assert body["flightDistanceNm"] == 0
    assert body["instructor"]["fullName"] == "Ida Instructor"

    notes = _notifications_for(instructor.id)
    assert [n.type for n in notes] == [NotificationType.BOOKING_CREATED]


def test_instructor_cannot_create_booking(client, instructor, aircraft):
    response = client.post(
        "/bookings/",
        json=_payload(instructor, aircraft),
        headers=auth_headers(instructor),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Only students can create bookings"


def test_cross_country_requires_destination(client, student, instructor, aircraft):
    response = client.post(
        "/bookings/",
        json=_payload(instructor, aircraft, flightType="short_xc"),
        headers=auth_headers(student),
    )

    assert response.status_code == 422
    assert "Destination airport is required" in response.text


def test_local_flight_rejects_destination(client, student, instructor, aircraft):
    response = client.post(
        "/bookings/",
        json=_payload(instructor, aircraft, destinationAirport="KHYI"),
        headers=auth_headers(student),
    )

    assert response.status_code == 422
    assert "Local flights should not have a destination airport" in response.text


def test_booking_in_the_past_is_rejected(client, student, instructor, aircraft):
    start = future_start(days=-1)
    response = client.post(
        "/bookings/",
        json=_payload(
            instructor,
            aircraft,
            scheduledStart=start.isoformat(),
            scheduledEnd=(start + timedelta(hours=1)).isoformat(),
        ),
        headers=auth_headers(student),
    )

    assert response.status_code == 422


def test_cross_country_distance_is_recorded(client, student, instructor, aircraft):
    response = client.post(
        "/bookings/",
        json=_payload(
            instructor, aircraft, flightType="long_xc", destinationAirport="KSAT"
        ),
        headers=auth_headers(student),
    )

    assert response.status_code == 201
    assert response.json()["flightDistanceNm"] == 150


def test_confirm_by_assigned_instructor(client, student, instructor, aircraft):
    booking = create_booking(
        student, instructor, aircraft, future_start(), status=BookingStatus.PENDING
    )

    denied = client.post(f"/bookings/{booking.id}/confirm", headers=auth_headers(student))
    assert denied.status_code == 403

    response = client.post(
        f"/bookings/{booking.id}/confirm", headers=auth_headers(instructor)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "scheduled"

    again = client.post(f"/bookings/{booking.id}/confirm", headers=auth_headers(instructor))
    assert again.status_code == 409
    assert again.json()["detail"] == "Cannot confirm booking with status: scheduled"


def test_cancel_requires_reason_and_party(client, student, instructor, aircraft):
    booking = create_booking(student, instructor, aircraft, future_start())
    outsider = create_user("other@example.com")

    blank = client.post(
        f"/bookings/{booking.id}/cancel",
        json={"reason": "   "},
        headers=auth_headers(student),
    )
    assert blank.status_code == 422

    forbidden = client.post(
        f"/bookings/{booking.id}/cancel",
        json={"reason": "Sick"},
        headers=auth_headers(outsider),
    )
    assert forbidden.status_code == 403

    response = client.post(
        f"/bookings/{booking.id}/cancel",
        json={"reason": "Sick"},
        headers=auth_headers(student),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "cancelled"
    assert body["cancelledBy"] == student.id
    assert body["cancellationReason"] == "Sick"

    again = client.post(
        f"/bookings/{booking.id}/cancel",
        json={"reason": "Sick"},
        headers=auth_headers(student),
    )
    assert again.status_code == 409
    assert again.json()["detail"] == "Booking is already cancelled"

    notes = _notifications_for(instructor.id)
    assert NotificationType.BOOKING_CANCELLED in [n.type for n in notes]


def test_reschedule_then_approve(client, student, instructor, aircraft):
    booking = create_booking(
        student, instructor, aircraft, future_start(), lesson_notes="Bring headset"
    )
    new_start = future_start(days=4, hour=13)

    response = client.post(
        f"/bookings/{booking.id}/reschedule",
        json={
            "newStart": new_start.isoformat(),
            "newEnd": (new_start + timedelta(hours=1)).isoformat(),
            "reason": "Exam week",
        },
        headers=auth_headers(student),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "rescheduling"
    assert body["scheduledStart"].startswith(new_start.isoformat())
    assert body["lessonNotes"] == (
        "Bring headset\n\n[Reschedule Request by student@example.com]: Exam week"
    )

    approved = client.post(
        f"/bookings/{booking.id}/approve-reschedule", headers=auth_headers(instructor)
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "scheduled"

    again = client.post(
        f"/bookings/{booking.id}/approve-reschedule", headers=auth_headers(instructor)
    )
    assert again.status_code == 409


def test_reschedule_into_the_past_is_rejected(client, student, instructor, aircraft):
    booking = create_booking(student, instructor, aircraft, future_start())
    past = future_start(days=-2)

    response = client.post(
        f"/bookings/{booking.id}/reschedule",
        json={
            "newStart": past.isoformat(),
            "newEnd": (past + timedelta(hours=1)).isoformat(),
            "reason": "Oops",
        },
        headers=auth_headers(student),
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "New start time must be in the future"


def test_list_is_scoped_to_caller(client, student, instructor, aircraft, admin):
    other = create_user("other@example.com")
    mine = create_booking(student, instructor, aircraft, future_start())
    create_booking(other, instructor, aircraft, future_start(days=3))

    own = client.get("/bookings/", headers=auth_headers(student)).json()
    assert [row["id"] for row in own] == [mine.id]

    teaching = client.get("/bookings/", headers=auth_headers(instructor)).json()
    assert len(teaching) == 2

    everything = client.get("/bookings/", headers=auth_headers(admin)).json()
    assert len(everything) == 2

    hidden = client.get(f"/bookings/{mine.id}", headers=auth_headers(other))
    assert hidden.status_code == 403


def test_requests_without_token_are_rejected(client):
    assert client.get("/bookings/").status_code == 401


def _timed_payload(instructor, aircraft, start, duration):
    return _payload(
        instructor,
        aircraft,
        scheduledStart=start.isoformat(),
        scheduledEnd=(start + duration).isoformat(),
    )


@pytest.mark.parametrize(
    ("duration", "expected"),
    [
        (timedelta(minutes=14), 422),
        (timedelta(minutes=15), 201),
        (timedelta(hours=8), 201),
        (timedelta(hours=8, minutes=1), 422),
    ],
)
def test_booking_duration_bounds(client, student, instructor, aircraft, duration, expected):
    response = client.post(
        "/bookings/",
        json=_timed_payload(instructor, aircraft, future_start(), duration),
        headers=auth_headers(student),
    )

    assert response.status_code == expected
    if expected == 422:
        assert "Booking duration must be between 15 minutes and 8 hours" in response.text


def test_booking_more_than_a_year_ahead_is_rejected(client, student, instructor, aircraft):
    start = (utcnow() + timedelta(days=366)).replace(microsecond=0)

    response = client.post(
        "/bookings/",
        json=_timed_payload(instructor, aircraft, start, timedelta(hours=1)),
        headers=auth_headers(student),
    )

    assert response.status_code == 422
    assert "Bookings cannot be made more than 1 year in advance" in response.text


@pytest.mark.parametrize(
    ("duration", "expected"),
    [
        (timedelta(minutes=14), 422),
        (timedelta(minutes=15), 200),
        (timedelta(hours=8), 200),
        (timedelta(hours=8, minutes=1), 422),
    ],
)
def test_reschedule_duration_bounds(
    client, student, instructor, aircraft, duration, expected
):
    booking = create_booking(student, instructor, aircraft, future_start())
    new_start = future_start(days=5, hour=8)

    response = client.post(
        f"/bookings/{booking.id}/reschedule",
        json={
            "newStart": new_start.isoformat(),
            "newEnd": (new_start + duration).isoformat(),
            "reason": "Weather",
        },
        headers=auth_headers(student),
    )

    assert response.status_code == expected
    if expected == 422:
        assert response.json()["detail"] == (
            "Booking duration must be between 15 minutes and 8 hours"
        )


def test_approve_without_pending_request(client, student, instructor, aircraft):
    booking = create_booking(student, instructor, aircraft, future_start())

    response = client.post(
        f"/bookings/{booking.id}/approve-reschedule", headers=auth_headers(instructor)
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "No pending reschedule request for this booking"


def test_cancelled_booking_cannot_be_rescheduled(client, student, instructor, aircraft):
    booking = create_booking(
        student, instructor, aircraft, future_start(), status=BookingStatus.CANCELLED
    )
    new_start = future_start(days=5)

    response = client.post(
        f"/bookings/{booking.id}/reschedule",
        json={
            "newStart": new_start.isoformat(),
            "newEnd": (new_start + timedelta(hours=1)).isoformat(),
            "reason": "Try again",
        },
        headers=auth_headers(student),
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot reschedule a cancelled booking"


def test_list_reflects_own_write_while_cache_is_live(student, instructor, aircraft):
    headers = auth_headers(student)

    with TestClient(app) as client:
        query_cache.set_live(True)
        try:
            assert client.get("/bookings/", headers=headers).json() == []

            created = client.post(
                "/bookings/", json=_payload(instructor, aircraft), headers=headers
            )
            assert created.status_code == 201

            listed = client.get("/bookings/", headers=headers).json()
            assert [row["id"] for row in listed] == [created.json()["id"]]

            client.post(
                f"/bookings/{listed[0]['id']}/cancel",
                json={"reason": "Sick"},
                headers=headers,
            )
            refreshed = client.get("/bookings/", headers=headers).json()
            assert [row["status"] for row in refreshed] == ["cancelled"]
        finally:
            query_cache.set_live(False)
