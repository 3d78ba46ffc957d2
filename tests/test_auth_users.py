"""Signup, login and user administration tests."""

from __future__ import annotations

from conftest import PASSWORD, auth_headers, create_user
from flight_scheduler.models import UserRole
from flight_scheduler.utils import decode_access_token


def _signup(client, **overrides):
    payload = {
        "email": "New.Pilot@Example.com",
        "fullName": "New Pilot",
        "password": "Sup3rSecret",
        "confirmPassword": "Sup3rSecret",
    }
    payload.update(overrides)
    return client.post("/auth/signup", json=payload)


def test_signup_creates_student_and_token(client):
    response = _signup(client)

    assert response.status_code == 201
    body = response.json()
    assert body["tokenType"] == "bearer"
    assert body["user"]["email"] == "new.pilot@example.com"
    assert body["user"]["role"] == "student"
    assert body["user"]["trainingLevel"] == "student_pilot"

    claims = decode_access_token(body["accessToken"])
    assert claims.sub == str(body["user"]["id"])
    assert claims.role == "student"


def test_signup_rejects_duplicates_and_weak_passwords(client):
    assert _signup(client).status_code == 201

    duplicate = _signup(client, email="new.pilot@example.com")
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "An account with this email already exists"

    weak = _signup(client, email="weak@example.com", password="short", confirmPassword="short")
    assert weak.status_code == 422
    assert "Password must be at least 8 characters" in weak.text

    mismatch = _signup(client, email="mismatch@example.com", confirmPassword="Sup3rSecreT")
    assert mismatch.status_code == 422
    assert "Passwords do not match" in mismatch.text


def test_login_checks_credentials_and_activation(client):
    create_user("pilot@example.com")
    create_user("gone@example.com", is_active=False)

    ok = client.post("/auth/login", json={"email": "PILOT@example.com", "password": PASSWORD})
    assert ok.status_code == 200
    assert ok.json()["user"]["lastLoginAt"] is not None

    wrong = client.post("/auth/login", json={"email": "pilot@example.com", "password": "nope"})
    assert wrong.status_code == 401
    assert wrong.json()["detail"] == "Invalid email or password"

    inactive = client.post("/auth/login", json={"email": "gone@example.com", "password": PASSWORD})
    assert inactive.status_code == 403


def test_deactivated_token_is_refused(client):
    user = create_user("gone@example.com", is_active=False)

    response = client.get("/users/me", headers=auth_headers(user))

    assert response.status_code == 403
    assert response.json()["detail"] == "Account has been deactivated"


def test_invalid_token_is_refused(client):
    response = client.get("/users/me", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Could not validate credentials"


def test_profile_update_and_password_change(client, student):
    headers = auth_headers(student)

    updated = client.patch(
        "/users/me",
        json={"fullName": "Samantha Student", "preferences": {"weather_alerts": False}},
        headers=headers,
    )
    assert updated.status_code == 200
    body = updated.json()
    assert body["fullName"] == "Samantha Student"
    assert body["preferences"]["weather_alerts"] is False
    assert body["preferences"]["notifications"]["email"] is True

    wrong = client.post(
        "/users/me/password",
        json={"currentPassword": "Wrong1234", "newPassword": "Another1pass"},
        headers=headers,
    )
    assert wrong.status_code == 400
    assert wrong.json()["detail"] == "Current password is incorrect"

    changed = client.post(
        "/users/me/password",
        json={"currentPassword": PASSWORD, "newPassword": "Another1pass"},
        headers=headers,
    )
    assert changed.status_code == 200

    login = client.post(
        "/auth/login", json={"email": "student@example.com", "password": "Another1pass"}
    )
    assert login.status_code == 200


def test_change_email_requires_free_address(client, student, instructor):
    headers = auth_headers(student)

    taken = client.post(
        "/users/me/email",
        json={"newEmail": "instructor@example.com", "password": PASSWORD},
        headers=headers,
    )
    assert taken.status_code == 409

    moved = client.post(
        "/users/me/email",
        json={"newEmail": "Sam@Example.com", "password": PASSWORD},
        headers=headers,
    )
    assert moved.status_code == 200
    assert moved.json()["email"] == "sam@example.com"


def test_admin_role_changes(client, admin, student, instructor):
    headers = auth_headers(admin)

    promoted = client.post(f"/users/{student.id}/promote", headers=headers)
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "instructor"

    again = client.post(f"/users/{student.id}/promote", headers=headers)
    assert again.status_code == 409

    demoted = client.post(f"/users/{instructor.id}/demote", headers=headers)
    assert demoted.status_code == 200
    assert demoted.json()["role"] == "student"

    instructors = client.get("/users/?role=instructor", headers=headers).json()
    assert [row["email"] for row in instructors] == ["student@example.com"]


def test_admin_activation_and_detail(client, admin, student):
    headers = auth_headers(admin)

    self_deactivate = client.post(f"/users/{admin.id}/deactivate", headers=headers)
    assert self_deactivate.status_code == 400

    deactivated = client.post(f"/users/{student.id}/deactivate", headers=headers)
    assert deactivated.json()["isActive"] is False

    reactivated = client.post(f"/users/{student.id}/reactivate", headers=headers)
    assert reactivated.json()["isActive"] is True

    detail = client.get(f"/users/{student.id}", headers=headers).json()
    assert detail["bookingsAsStudent"] == 0
    assert detail["bookingsAsInstructor"] == 0

    missing = client.get("/users/9999", headers=headers)
    assert missing.status_code == 404


def test_admin_creates_admin(client, admin):
    response = client.post(
        "/users/admins",
        json={"email": "boss@example.com", "fullName": "Big Boss", "password": "Admin1234"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    assert response.json()["role"] == "admin"
    assert response.json()["trainingLevel"] is None


def test_user_admin_requires_admin_role(client, student):
    response = client.get("/users/", headers=auth_headers(student))

    assert response.status_code == 403
    assert response.json()["detail"] == "You do not have permission to perform this action"


def test_instructor_directory(client, student, instructor):
    create_user("retired@example.com", role=UserRole.INSTRUCTOR, is_active=False)

    response = client.get("/users/instructors", headers=auth_headers(student))

    assert response.status_code == 200
    assert [row["email"] for row in response.json()] == ["instructor@example.com"]
