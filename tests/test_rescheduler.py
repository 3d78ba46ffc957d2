"""Reschedule proposal generation and responses."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, time

import pytest
from sqlalchemy import select

from conftest import (
    add_weekly_availability,
    auth_headers,
    create_booking,
    create_user,
    future_start,
)
from flight_scheduler.database import session_scope
from flight_scheduler.models import (
    Booking,
    BookingStatus,
    ConflictStatus,
    Notification,
    NotificationChannel,
    NotificationStatus,
    NotificationType,
    ProposalResponse,
    RescheduleProposal,
    WeatherConflict,
)
from flight_scheduler.services.availability import CandidateSlot
from flight_scheduler.services.llm_client import LlmInvocationError
from flight_scheduler.services.rescheduler import Rescheduler, fallback_ranking, load_conflict


class FakeLlm:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    async def invoke(self, *, system_prompt, user_prompt, **kwargs):
        self.calls += 1
        response = self.responses.pop(0) if self.responses else None
        if isinstance(response, Exception):
            raise response
        return response


def _create_conflict(booking) -> int:
    async def _run():
        async with session_scope() as session:
            conflict = WeatherConflict(
                booking_id=booking.id,
                status=ConflictStatus.DETECTED,
                weather_data=[{"airport": "KAUS", "visibility_miles": 1}],
                conflict_reasons=["Visibility at KAUS: 1mi (min: 5mi)"],
            )
            session.add(conflict)
            await session.commit()
            return conflict.id

    return asyncio.run(_run())


def _process(conflict_id, llm):
    async def _run():
        async with session_scope() as session:
            proposals = await Rescheduler(llm).process_conflict(session, conflict_id)
            return [(proposal.id, proposal.score) for proposal in proposals]

    return asyncio.run(_run())


def _conflict(conflict_id):
    async def _run():
        async with session_scope() as session:
            return await load_conflict(session, conflict_id)

    return asyncio.run(_run())


def _rows(model, *criteria):
    async def _run():
        async with session_scope() as session:
            result = await session.execute(select(model).where(*criteria))
            return result.unique().scalars().all()

    return asyncio.run(_run())


@pytest.fixture
def held_booking(student, instructor, aircraft):
    add_weekly_availability(instructor, time(8), time(12))
    return create_booking(
        student, instructor, aircraft, future_start(days=1, hour=9),
        status=BookingStatus.WEATHER_HOLD,
    )


def test_llm_ranking_is_stored(held_booking, student, instructor):
    conflict_id = _create_conflict(held_booking)
    llm = FakeLlm(
        json.dumps(
            {
                "proposals": [
                    {"slot_number": 2, "score": 95, "reasoning": "Front passes overnight."},
                    {"slot_number": 1, "score": 80, "reasoning": "Early and calm."},
                    {"slot_number": 2, "score": 70, "reasoning": "Duplicate."},
                    {"slot_number": 99, "score": 60, "reasoning": "Out of range."},
                ]
            }
        )
    )

    stored = _process(conflict_id, llm)

    assert [score for _, score in stored] == [0.95, 0.8]
    conflict = _conflict(conflict_id)
    assert conflict.status == ConflictStatus.PROPOSALS_READY
    assert conflict.ai_processing_duration_ms is not None

    in_app = _rows(
        Notification,
        Notification.user_id == student.id,
        Notification.channel == NotificationChannel.IN_APP,
    )
    assert {row.type for row in in_app} == {
        NotificationType.WEATHER_CONFLICT,
        NotificationType.RESCHEDULE_PROPOSAL,
    }

    # SMTP is not configured in tests, so both email attempts are recorded as failed.
    emails = _rows(Notification, Notification.channel == NotificationChannel.EMAIL)
    assert len(emails) == 2
    assert all(row.status == NotificationStatus.FAILED for row in emails)


def test_invalid_json_retries_then_falls_back(held_booking):
    conflict_id = _create_conflict(held_booking)
    llm = FakeLlm("not json", "still not json", '{"proposals": []}')

    stored = _process(conflict_id, llm)

    assert llm.calls == 3
    assert len(stored) == 3
    assert all(0.1 <= score <= 0.95 for _, score in stored)
    assert [score for _, score in stored] == sorted(
        (score for _, score in stored), reverse=True
    )


def test_llm_failure_falls_back_without_retry(held_booking):
    conflict_id = _create_conflict(held_booking)
    llm = FakeLlm(LlmInvocationError("throttled"))

    stored = _process(conflict_id, llm)

    assert llm.calls == 1
    assert len(stored) == 3


def test_no_slots_resolves_conflict(student, instructor, aircraft):
    booking = create_booking(
        student, instructor, aircraft, future_start(days=1),
        status=BookingStatus.WEATHER_HOLD,
    )
    conflict_id = _create_conflict(booking)
    llm = FakeLlm()

    assert _process(conflict_id, llm) == []
    assert llm.calls == 0
    conflict = _conflict(conflict_id)
    assert conflict.status == ConflictStatus.RESOLVED
    assert conflict.resolution_method == "no_slots_available"


def test_emails_sent_when_mail_is_available(monkeypatch, held_booking):
    sent = []

    async def fake_send_email(*, recipient, subject, body, html_body=None):
        sent.append((recipient, subject))

    monkeypatch.setattr(
        "flight_scheduler.services.notifications.send_email", fake_send_email
    )
    conflict_id = _create_conflict(held_booking)

    _process(conflict_id, FakeLlm())

    assert sorted(recipient for recipient, _ in sent) == [
        "instructor@example.com",
        "student@example.com",
    ]
    emails = _rows(Notification, Notification.channel == NotificationChannel.EMAIL)
    assert all(row.status == NotificationStatus.SENT for row in emails)


def test_email_preference_is_respected(monkeypatch, held_booking, student):
    sent = []

    async def fake_send_email(*, recipient, subject, body, html_body=None):
        sent.append(recipient)

    monkeypatch.setattr(
        "flight_scheduler.services.notifications.send_email", fake_send_email
    )

    async def _opt_out():
        async with session_scope() as session:
            user = await session.get(type(student), student.id)
            user.preferences = {"notifications": {"email": False}}
            await session.commit()

    asyncio.run(_opt_out())
    _process(_create_conflict(held_booking), FakeLlm())

    assert sent == ["instructor@example.com"]


def test_student_accepts_proposal(client, held_booking, student, instructor):
    conflict_id = _create_conflict(held_booking)
    stored = _process(conflict_id, FakeLlm())
    proposal_id = stored[0][0]
    outsider = create_user("other@example.com")

    listed = client.get("/proposals/", headers=auth_headers(student)).json()
    assert sorted(row["id"] for row in listed) == sorted(pid for pid, _ in stored)

    forbidden = client.post(f"/proposals/{proposal_id}/accept", headers=auth_headers(outsider))
    assert forbidden.status_code == 403

    response = client.post(f"/proposals/{proposal_id}/accept", headers=auth_headers(student))
    assert response.status_code == 200
    body = response.json()
    assert body["studentResponse"] == "accepted"
    assert body["newBookingId"] == held_booking.id

    booking = client.get(f"/bookings/{held_booking.id}", headers=auth_headers(student)).json()
    assert booking["status"] == "scheduled"
    assert booking["scheduledStart"] == body["proposedStart"]

    conflict = _conflict(conflict_id)
    assert conflict.status == ConflictStatus.RESOLVED
    assert conflict.resolution_method == "rescheduled"

    late = client.post(f"/proposals/{proposal_id}/accept", headers=auth_headers(instructor))
    assert late.status_code == 409
    assert late.json()["detail"] == "This weather conflict has already been resolved"


def test_rejected_proposals_are_hidden_from_instructor(
    client, held_booking, student, instructor
):
    conflict_id = _create_conflict(held_booking)
    stored = _process(conflict_id, FakeLlm())
    rejected_id = stored[0][0]

    response = client.post(f"/proposals/{rejected_id}/reject", headers=auth_headers(student))
    assert response.status_code == 200
    assert response.json()["studentResponse"] == "rejected"

    visible = client.get("/proposals/", headers=auth_headers(instructor)).json()
    assert rejected_id not in [row["id"] for row in visible]
    assert len(visible) == len(stored) - 1

    rows = _rows(RescheduleProposal, RescheduleProposal.id == rejected_id)
    assert rows[0].student_response == ProposalResponse.REJECTED
    assert _conflict(conflict_id).status == ConflictStatus.PROPOSALS_READY


def test_fallback_prefers_close_mornings():
    booking = Booking(scheduled_start=datetime(2025, 5, 5, 9))
    slots = [
        CandidateSlot(datetime(2025, 5, 7, 14), datetime(2025, 5, 7, 16), 1, 1),
        CandidateSlot(datetime(2025, 5, 6, 9), datetime(2025, 5, 6, 11), 1, 1),
        CandidateSlot(datetime(2025, 5, 6, 15), datetime(2025, 5, 6, 17), 1, 1),
    ]

    picks = fallback_ranking(booking, slots, 2)

    assert [pick.slot_number for pick in picks] == [2, 3]
    assert picks[0].score == 0.9


def test_cancelling_closes_conflict_and_blocks_accept(client, held_booking, student):
    conflict_id = _create_conflict(held_booking)
    proposal_id = _process(conflict_id, FakeLlm())[0][0]

    cancelled = client.post(
        f"/bookings/{held_booking.id}/cancel",
        json={"reason": "Selling the headset"},
        headers=auth_headers(student),
    )
    assert cancelled.status_code == 200

    conflict = _conflict(conflict_id)
    assert conflict.status == ConflictStatus.RESOLVED
    assert conflict.resolution_method == "booking_cancelled"

    response = client.post(f"/proposals/{proposal_id}/accept", headers=auth_headers(student))
    assert response.status_code == 409

    booking = client.get(f"/bookings/{held_booking.id}", headers=auth_headers(student)).json()
    assert booking["status"] == "cancelled"


def test_accept_refused_for_cancelled_booking(client, held_booking, student):
    conflict_id = _create_conflict(held_booking)
    proposal_id = _process(conflict_id, FakeLlm())[0][0]

    async def _cancel_directly():
        async with session_scope() as session:
            booking = await session.get(Booking, held_booking.id)
            booking.status = BookingStatus.CANCELLED
            await session.commit()

    asyncio.run(_cancel_directly())

    response = client.post(f"/proposals/{proposal_id}/accept", headers=auth_headers(student))

    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot respond to a proposal for a cancelled booking"
    assert _conflict(conflict_id).status == ConflictStatus.PROPOSALS_READY
    rows = _rows(RescheduleProposal, RescheduleProposal.id == proposal_id)
    assert rows[0].student_response == ProposalResponse.PENDING
