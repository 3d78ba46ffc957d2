"""In-app and email notifications for booking and weather events.

Functions here add rows to the caller's session without committing; the
calling operation commits them together with its own changes.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from flight_scheduler.config.settings import settings
from flight_scheduler.models.base import utcnow
from flight_scheduler.models.booking import Booking
from flight_scheduler.models.notification import (
    Notification,
    NotificationChannel,
    NotificationStatus,
    NotificationType,
)
from flight_scheduler.models.proposal import RescheduleProposal
from flight_scheduler.models.user import User
from flight_scheduler.models.weather import WeatherConflict
from flight_scheduler.services.email import EmailServiceError, send_email

logger = logging.getLogger("flight_scheduler.pipeline")

EMAIL_SUBJECT = "Weather Alert: Flight Lesson Rescheduling Required"


def format_time(value: datetime) -> str:
    return value.strftime("%A, %B %d, %Y %H:%M UTC")


def add_in_app(
    session: AsyncSession,
    *,
    user_id: int,
    type: NotificationType,
    title: str,
    message: str,
    metadata: Optional[dict[str, Any]] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type,
        channel=NotificationChannel.IN_APP,
        status=NotificationStatus.SENT,
        title=title,
        message=message,
        metadata_json=metadata or {},
        sent_at=utcnow(),
    )
    session.add(notification)
    return notification


def notify_booking_created(session: AsyncSession, booking: Booking, student: User) -> None:
    add_in_app(
        session,
        user_id=booking.instructor_id,
        type=NotificationType.BOOKING_CREATED,
        title="New Lesson Request",
        message=(
            f"{student.full_name} requested a lesson on "
            f"{format_time(booking.scheduled_start)}. Confirm it to add it to your schedule."
        ),
        metadata={"booking_id": booking.id},
    )


def notify_booking_updated(
    session: AsyncSession, booking: Booking, actor: User, summary: str
) -> None:
    """Tell the party that did not perform the change what happened."""

    recipient_id = (
        booking.instructor_id if actor.id == booking.student_id else booking.student_id
    )
    add_in_app(
        session,
        user_id=recipient_id,
        type=NotificationType.BOOKING_UPDATED,
        title="Booking Updated",
        message=summary,
        metadata={"booking_id": booking.id, "status": booking.status.value},
    )


def notify_booking_cancelled(
    session: AsyncSession, booking: Booking, actor: User, reason: str
) -> None:
    recipient_id = (
        booking.instructor_id if actor.id == booking.student_id else booking.student_id
    )
    add_in_app(
        session,
        user_id=recipient_id,
        type=NotificationType.BOOKING_CANCELLED,
        title="Lesson Cancelled",
        message=(
            f"{actor.full_name} cancelled the lesson on "
            f"{format_time(booking.scheduled_start)}. Reason: {reason}"
        ),
        metadata={"booking_id": booking.id, "cancelled_by": actor.id},
    )


def notify_reschedule_accepted(
    session: AsyncSession, booking: Booking, proposal: RescheduleProposal, actor: User
) -> None:
    for user_id in (booking.student_id, booking.instructor_id):
        add_in_app(
            session,
            user_id=user_id,
            type=NotificationType.RESCHEDULE_ACCEPTED,
            title="Lesson Rescheduled",
            message=(
                f"{actor.full_name} accepted a new time: "
                f"{format_time(proposal.proposed_start)}."
            ),
            metadata={
                "booking_id": booking.id,
                "proposal_id": proposal.id,
                "conflict_id": proposal.conflict_id,
            },
        )


def _conflict_rows(
    session: AsyncSession,
    conflict: WeatherConflict,
    booking: Booking,
    proposals: Sequence[RescheduleProposal],
) -> None:
    reasons = list(conflict.conflict_reasons or [])
    student_name = booking.student.full_name if booking.student else "your student"
    start = format_time(booking.scheduled_start)

    add_in_app(
        session,
        user_id=booking.student_id,
        type=NotificationType.WEATHER_CONFLICT,
        title="Weather Conflict Detected",
        message=(
            f"Your flight lesson scheduled for {start} has been placed on weather "
            "hold due to unsafe conditions."
        ),
        metadata={
            "conflict_id": conflict.id,
            "booking_id": booking.id,
            "conflict_reasons": reasons,
        },
    )
    add_in_app(
        session,
        user_id=booking.instructor_id,
        type=NotificationType.WEATHER_CONFLICT,
        title="Weather Conflict Detected",
        message=(
            f"Flight lesson with {student_name} scheduled for {start} has been "
            "placed on weather hold."
        ),
        metadata={
            "conflict_id": conflict.id,
            "booking_id": booking.id,
            "conflict_reasons": reasons,
        },
    )

    if not proposals:
        return

    proposal_ids = [proposal.id for proposal in proposals]
    add_in_app(
        session,
        user_id=booking.student_id,
        type=NotificationType.RESCHEDULE_PROPOSAL,
        title="AI Reschedule Proposals Ready",
        message=(
            f"We've generated {len(proposals)} alternative time slots for your lesson. "
            "Review and accept your preferred option."
        ),
        metadata={
            "conflict_id": conflict.id,
            "booking_id": booking.id,
            "proposal_ids": proposal_ids,
        },
    )
    add_in_app(
        session,
        user_id=booking.instructor_id,
        type=NotificationType.RESCHEDULE_PROPOSAL,
        title="AI Reschedule Proposals Ready",
        message=(
            f"{len(proposals)} alternative time slots have been proposed for the "
            f"lesson with {student_name}. Review the options."
        ),
        metadata={
            "conflict_id": conflict.id,
            "booking_id": booking.id,
            "proposal_ids": proposal_ids,
        },
    )


def render_conflict_email(
    recipient: User,
    role: str,
    conflict: WeatherConflict,
    booking: Booking,
    proposals: Iterable[RescheduleProposal],
) -> tuple[str, str]:
    """Return the (text, html) bodies of the weather alert email."""

    dashboard_url = f"{settings.app_url}/dashboard/{role}"
    reasons = list(conflict.conflict_reasons or [])
    options = []
    for index, proposal in enumerate(proposals, start=1):
        options.append(
            f"Option {index} (Score: {round(proposal.score * 100)}/100)\n"
            f"{format_time(proposal.proposed_start)}\n"
            f"{proposal.reasoning}"
        )

    aircraft = booking.aircraft
    lines = [
        "Weather Alert - Flight Rescheduling Required",
        "",
        f"Hi {recipient.full_name},",
        "",
        f"Your flight lesson scheduled for {format_time(booking.scheduled_start)} "
        "has been placed on weather hold.",
        "",
        "Weather Conditions:",
        *reasons,
        "",
        "AI-Generated Reschedule Options:",
        "",
        "\n\n".join(options) if options else "No alternative slots were found.",
        "",
        f"View and accept proposals at: {dashboard_url}",
        "",
        "Original Booking:",
        f"Student: {booking.student.full_name if booking.student else ''}",
        f"Instructor: {booking.instructor.full_name if booking.instructor else ''}",
        f"Aircraft: {aircraft.tail_number if aircraft else ''}",
        "",
        settings.app_name,
    ]
    text = "\n".join(lines)

    reason_items = "".join(f"<li>{reason}</li>" for reason in reasons[:5])
    option_items = "".join(
        f"<p><strong>{block.splitlines()[0]}</strong><br>"
        f"{'<br>'.join(block.splitlines()[1:])}</p>"
        for block in options
    )
    html = (
        "<html><body>"
        "<h1>Weather Alert</h1>"
        f"<p>Hi {recipient.full_name},</p>"
        f"<p>Your flight lesson scheduled for <strong>{format_time(booking.scheduled_start)}"
        "</strong> has been placed on weather hold due to unsafe flying conditions.</p>"
        f"<ul>{reason_items}</ul>"
        "<h2>AI-Generated Reschedule Options</h2>"
        f"{option_items}"
        f'<p><a href="{dashboard_url}">View &amp; Accept Proposals</a></p>'
        "</body></html>"
    )
    return text, html


async def _email_party(
    session: AsyncSession,
    recipient: User,
    role: str,
    conflict: WeatherConflict,
    booking: Booking,
    proposals: Sequence[RescheduleProposal],
) -> bool:
    if not recipient.wants_email():
        logger.info("User %s disabled email notifications; skipping", recipient.id)
        return False

    text, html = render_conflict_email(recipient, role, conflict, booking, proposals)
    record = Notification(
        user_id=recipient.id,
        type=NotificationType.WEATHER_CONFLICT,
        channel=NotificationChannel.EMAIL,
        title=EMAIL_SUBJECT,
        message=text,
        metadata_json={"conflict_id": conflict.id, "booking_id": booking.id},
    )
    try:
        await send_email(
            recipient=recipient.email,
            subject=EMAIL_SUBJECT,
            body=text,
            html_body=html,
        )
    except EmailServiceError as exc:
        logger.warning("Email to user %s failed: %s", recipient.id, exc)
        record.status = NotificationStatus.FAILED
        record.failed_at = utcnow()
        record.error_message = str(exc)
        session.add(record)
        return False

    record.status = NotificationStatus.SENT
    record.sent_at = utcnow()
    session.add(record)
    return True


async def notify_conflict(
    session: AsyncSession,
    conflict: WeatherConflict,
    booking: Booking,
    proposals: Sequence[RescheduleProposal],
    *,
    send_emails: bool = True,
) -> int:
    """Create in-app rows for both parties and email them; return emails sent."""

    _conflict_rows(session, conflict, booking, proposals)
    if not send_emails:
        return 0

    sent = 0
    for recipient, role in ((booking.student, "student"), (booking.instructor, "instructor")):
        if recipient is None:
            continue
        if await _email_party(session, recipient, role, conflict, booking, proposals):
            sent += 1
    logger.info("Notified parties of conflict %s (%d emails sent)", conflict.id, sent)
    return sent


__all__ = [
    "add_in_app",
    "format_time",
    "notify_booking_cancelled",
    "notify_booking_created",
    "notify_booking_updated",
    "notify_conflict",
    "notify_reschedule_accepted",
    "render_conflict_email",
]
