"""Aircraft, lookup tables, notifications and analytics endpoints."""

from __future__ import annotations

from conftest import auth_headers, create_booking, future_start
from flight_scheduler.models import BookingStatus
from flight_scheduler.seeds import DEFAULT_AIRPORTS, DEFAULT_LESSON_TYPES


def test_admin_manages_aircraft(client, admin, student):
    headers = auth_headers(admin)

    created = client.post(
        "/aircraft/",
        json={
            "tailNumber": "n172sp",
            "make": "Cessna",
            "model": "172SP",
            "year": 2004,
            "category": "single_engine",
            "hourlyRate": 165.5,
        },
        headers=headers,
    )
    assert created.status_code == 201
    body = created.json()
    assert body["tailNumber"] == "N172SP"
    assert body["minimumWeatherRequirements"]["ceiling_ft"] == 3000

    duplicate = client.post(
        "/aircraft/",
        json={"tailNumber": "N172SP", "make": "Cessna", "model": "172", "category": "se"},
        headers=headers,
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "Aircraft N172SP already exists"

    updated = client.patch(
        f"/aircraft/{body['id']}",
        json={"minimumWeatherRequirements": {"crosswindKnots": 10, "windSpeedKnots": 18}},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["minimumWeatherRequirements"]["crosswind_knots"] == 10

    client.post(f"/aircraft/{body['id']}/deactivate", headers=headers)
    assert client.get("/aircraft/", headers=auth_headers(student)).json() == []
    everything = client.get("/aircraft/?include_inactive=true", headers=headers).json()
    assert [row["isActive"] for row in everything] == [False]

    forbidden = client.post(
        "/aircraft/",
        json={"tailNumber": "N111", "make": "Piper", "model": "PA28", "category": "se"},
        headers=auth_headers(student),
    )
    assert forbidden.status_code == 403


def test_aircraft_validation(client, admin):
    headers = auth_headers(admin)

    bad_tail = client.post(
        "/aircraft/",
        json={"tailNumber": "N!", "make": "Piper", "model": "PA28", "category": "se"},
        headers=headers,
    )
    assert bad_tail.status_code == 422

    bad_minimums = client.post(
        "/aircraft/",
        json={
            "tailNumber": "N5000",
            "make": "Piper",
            "model": "PA28",
            "category": "se",
            "minimumWeatherRequirements": {"windSpeedKnots": 10, "crosswindKnots": 12},
        },
        headers=headers,
    )
    assert bad_minimums.status_code == 422
    assert "Crosswind limit cannot exceed the wind speed limit" in bad_minimums.text


def test_seeded_lookups(client, student):
    airports = client.get("/lookups/airports", headers=auth_headers(student)).json()
    lesson_types = client.get("/lookups/lesson-types", headers=auth_headers(student)).json()

    assert len(airports) == len(DEFAULT_AIRPORTS)
    assert [row["code"] for row in airports] == sorted(code for code, *_ in DEFAULT_AIRPORTS)
    assert len(lesson_types) == len(DEFAULT_LESSON_TYPES)


def test_admin_manages_airports(client, admin, student):
    headers = auth_headers(admin)

    created = client.post(
        "/lookups/airports",
        json={"code": "kaus", "name": "Austin-Bergstrom", "city": "Austin", "state": "Texas"},
        headers=headers,
    )
    assert created.status_code == 201
    airport = created.json()
    assert airport["code"] == "KAUS"

    duplicate = client.post(
        "/lookups/airports", json={"code": "KVNY", "name": "Van Nuys"}, headers=headers
    )
    assert duplicate.status_code == 409

    client.post(f"/lookups/airports/{airport['id']}/deactivate", headers=headers)
    codes = [row["code"] for row in client.get("/lookups/airports", headers=auth_headers(student)).json()]
    assert "KAUS" not in codes

    missing = client.patch("/lookups/airports/9999", json={"name": "Nowhere"}, headers=headers)
    assert missing.status_code == 404


def test_admin_manages_lesson_types(client, admin):
    headers = auth_headers(admin)

    created = client.post(
        "/lookups/lesson-types",
        json={"name": "Night Currency", "category": "specialized"},
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["category"] == "specialized"

    duplicate = client.post(
        "/lookups/lesson-types", json={"name": "discovery flight"}, headers=headers
    )
    assert duplicate.status_code == 409


def test_notification_inbox(client, student, instructor, aircraft):
    booking = create_booking(
        student, instructor, aircraft, future_start(), status=BookingStatus.PENDING
    )
    client.post(f"/bookings/{booking.id}/confirm", headers=auth_headers(instructor))
    client.post(
        f"/bookings/{booking.id}/cancel",
        json={"reason": "Checkride moved"},
        headers=auth_headers(instructor),
    )
    headers = auth_headers(student)

    inbox = client.get("/notifications/", headers=headers).json()
    assert [row["type"] for row in inbox] == ["booking_cancelled", "booking_updated"]
    assert inbox[0]["metadata"]["booking_id"] == booking.id
    assert client.get("/notifications/unread-count", headers=headers).json() == {"count": 2}

    read = client.post(f"/notifications/{inbox[1]['id']}/read", headers=headers)
    assert read.json()["status"] == "read"
    assert client.get("/notifications/unread-count", headers=headers).json() == {"count": 1}

    other = client.post(
        f"/notifications/{inbox[0]['id']}/read", headers=auth_headers(instructor)
    )
    assert other.status_code == 404

    marked = client.post("/notifications/read-all", headers=headers).json()
    assert marked["data"] == {"updated": 1}

    deleted = client.delete(f"/notifications/{inbox[0]['id']}", headers=headers)
    assert deleted.status_code == 204
    assert len(client.get("/notifications/", headers=headers).json()) == 1


def test_analytics_summary(client, admin, student, instructor, aircraft):
    create_booking(student, instructor, aircraft, future_start())
    create_booking(
        student, instructor, aircraft, future_start(days=3), status=BookingStatus.CANCELLED
    )

    denied = client.get("/analytics/", headers=auth_headers(student))
    assert denied.status_code == 403

    body = client.get("/analytics/", headers=auth_headers(admin)).json()
    assert body["usersByRole"] == {"student": 1, "instructor": 1, "admin": 1}
    assert body["bookingsByStatus"] == {"scheduled": 1, "cancelled": 1}
    assert body["conflictsByStatus"] == {}
    assert body["proposals"] == {
        "total": 0,
        "accepted": 0,
        "rejected": 0,
        "pending": 0,
        "acceptanceRate": 0.0,
    }
    assert body["bookingsPerInstructor"] == [
        {"instructorId": instructor.id, "fullName": "Ida Instructor", "bookings": 2}
    ]


def test_health_reports_realtime_status(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["realtime"] in {"connected", "disconnected", "error"}
