"""AI-assisted reschedule proposals for weather conflicts."""

from __future__ import annotations

import json
import logging
from typing import Optional, Sequence

from fastapi import status
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from flight_scheduler.config.settings import settings
from flight_scheduler.models.base import utcnow
from flight_scheduler.models.booking import Booking, BookingStatus
from flight_scheduler.models.proposal import ProposalResponse, RescheduleProposal
from flight_scheduler.models.user import User, UserRole
from flight_scheduler.models.weather import ConflictStatus, WeatherConflict
from flight_scheduler.services import notifications
from flight_scheduler.services.availability import CandidateSlot, find_candidate_slots
from flight_scheduler.services.llm_client import BedrockLlmClient, LlmInvocationError
from flight_scheduler.services.response_contract import RankedSlot, SlotRankingResponse
from flight_scheduler.telemetry import record_proposals, record_transition

logger = logging.getLogger("flight_scheduler.pipeline")

SYSTEM_PROMPT = (
    "You are an expert flight scheduler with deep knowledge of aviation weather "
    "and training requirements. Always respond with valid JSON only."
)


class RescheduleError(Exception):
    """A proposal operation was refused."""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _truncate(value: str, max_length: int = 500) -> str:
    if len(value) <= max_length:
        return value
    return value[: max_length - 3] + "..."


def _slot_label(slot: CandidateSlot) -> str:
    return (
        f"{slot.start.strftime('%a %Y-%m-%d %H:%M')} - "
        f"{slot.end.strftime('%H:%M')} UTC"
    )


def build_prompt(
    conflict: WeatherConflict,
    booking: Booking,
    slots: Sequence[CandidateSlot],
    proposals_wanted: int,
) -> str:
    student = booking.student
    instructor = booking.instructor
    aircraft = booking.aircraft
    level = student.training_level.value if student and student.training_level else "student_pilot"
    route = booking.departure_airport
    if booking.destination_airport:
        route += f" -> Destination: {booking.destination_airport}"
    slot_lines = "\n".join(
        f"{index}. {_slot_label(slot)}" for index, slot in enumerate(slots, start=1)
    )
    reasons = "\n".join(conflict.conflict_reasons or [])

    return f"""A training flight has been cancelled due to weather conditions.

**Original Booking:**
- Student: {student.full_name if student else 'Unknown'} ({level})
- Instructor: {instructor.full_name if instructor else 'Unknown'}
- Aircraft: {aircraft.tail_number} ({aircraft.make} {aircraft.model})
- Originally scheduled: {booking.scheduled_start.strftime('%Y-%m-%d %H:%M')} - {booking.scheduled_end.strftime('%H:%M')} UTC
- Flight type: {booking.flight_type.value}
- Departure: {route}

**Weather Conflict Reasons:**
{reasons}

**Weather Data at Checkpoints:**
{json.dumps(conflict.weather_data or [], indent=2, default=str)}

**Available Time Slots:**
{slot_lines}

**Task:**
Analyze the available time slots and generate exactly {proposals_wanted} reschedule proposals. Consider:
1. Weather conditions are likely to improve (avoid similar conditions)
2. Student's training level requirements
3. Time of day preferences (morning flights often have better weather)
4. Proximity to original time (minimize disruption)
5. Weekend vs weekday (if original was weekend, prefer weekend)

For each proposal, provide the slot number from the list above, a score from
0 to 100 (higher is better) and 2-3 sentences of reasoning.

Respond in JSON format:
{{"proposals": [{{"slot_number": 1, "score": 95, "reasoning": "..."}}]}}

IMPORTANT: Return ONLY valid JSON, no additional text."""


def fallback_ranking(
    booking: Booking, slots: Sequence[CandidateSlot], count: int
) -> list[RankedSlot]:
    """Rank slots by closeness to the original start, preferring mornings."""

    def score(slot: CandidateSlot) -> float:
        days_away = abs((slot.start - booking.scheduled_start).total_seconds()) / 86400.0
        value = 0.9 - 0.05 * days_away
        if slot.start.hour < 12:
            value += 0.05
        return round(max(0.1, min(0.95, value)), 2)

    ranked = sorted(
        enumerate(slots, start=1),
        key=lambda item: (-score(item[1]), item[1].start),
    )
    picks = []
    for slot_number, slot in ranked[:count]:
        period = "morning" if slot.start.hour < 12 else "afternoon"
        picks.append(
            RankedSlot(
                slot_number=slot_number,
                score=score(slot),
                reasoning=(
                    f"Closest available {period} slot to the original lesson time "
                    f"with both instructor and aircraft free ({_slot_label(slot)})."
                ),
            )
        )
    return picks


class Rescheduler:
    """Generate, store and resolve reschedule proposals for weather conflicts."""

    def __init__(self, llm_client: Optional[BedrockLlmClient] = None) -> None:
        self._llm = llm_client if llm_client is not None else BedrockLlmClient()

    async def rank_slots(
        self,
        conflict: WeatherConflict,
        booking: Booking,
        slots: Sequence[CandidateSlot],
    ) -> tuple[list[RankedSlot], str]:
        """Return ranked picks and how they were produced ("llm" or "fallback")."""

        config = settings.rescheduler
        wanted = min(config.proposals_per_conflict, len(slots))
        prompt = build_prompt(conflict, booking, slots, wanted)

        for attempt in range(config.max_json_retries + 1):
            try:
                raw_response = await self._llm.invoke(
                    system_prompt=SYSTEM_PROMPT, user_prompt=prompt
                )
            except LlmInvocationError as exc:
                logger.warning("LLM invocation failed for conflict %s: %s", conflict.id, exc)
                break
            if not raw_response:
                logger.warning("LLM returned no output for conflict %s", conflict.id)
                break

            logger.info(
                "Raw LLM ranking conflict=%s attempt=%s: %s",
                conflict.id,
                attempt + 1,
                _truncate(raw_response),
            )
            try:
                parsed = SlotRankingResponse.from_json(raw_response)
            except ValidationError as exc:
                logger.warning(
                    "LLM produced invalid JSON conflict=%s attempt=%s: %s",
                    conflict.id,
                    attempt + 1,
                    exc,
                )
                continue

            picks: list[RankedSlot] = []
            seen: set[int] = set()
            for pick in parsed.proposals:
                if pick.slot_number > len(slots) or pick.slot_number in seen:
                    continue
                seen.add(pick.slot_number)
                picks.append(pick)
            if picks:
                return picks[:wanted], "llm"
            logger.warning(
                "LLM ranking referenced no valid slots conflict=%s attempt=%s",
                conflict.id,
                attempt + 1,
            )

        logger.info("Using fallback ranking for conflict %s", conflict.id)
        return fallback_ranking(booking, slots, wanted), "fallback"

    async def process_conflict(
        self, session: AsyncSession, conflict_id: int
    ) -> list[RescheduleProposal]:
        """Find free slots for a conflicted booking and store ranked proposals."""

        conflict = await load_conflict(session, conflict_id)
        if conflict is None:
            raise RescheduleError("Weather conflict not found", status.HTTP_404_NOT_FOUND)

        started = utcnow()
        conflict.status = ConflictStatus.AI_PROCESSING
        conflict.ai_processing_started_at = started
        await session.commit()
        logger.info("Processing weather conflict %s", conflict.id)

        booking = conflict.booking
        config = settings.rescheduler
        slots = await find_candidate_slots(
            session,
            instructor_id=booking.instructor_id,
            aircraft_id=booking.aircraft_id,
            duration=booking.scheduled_end - booking.scheduled_start,
            exclude_booking_id=booking.id,
            days_ahead=config.days_ahead,
            limit=config.max_slots,
        )

        def _finish() -> None:
            completed = utcnow()
            conflict.ai_processing_completed_at = completed
            conflict.ai_processing_duration_ms = int(
                (completed - started).total_seconds() * 1000
            )

        if not slots:
            logger.info("No available slots found for conflict %s", conflict.id)
            conflict.status = ConflictStatus.RESOLVED
            conflict.resolution_method = "no_slots_available"
            conflict.resolved_at = utcnow()
            _finish()
            await session.commit()
            return []

        picks, ranking = await self.rank_slots(conflict, booking, slots)
        proposals = []
        for pick in picks:
            slot = slots[pick.slot_number - 1]
            proposals.append(
                RescheduleProposal(
                    conflict_id=conflict.id,
                    proposed_start=slot.start,
                    proposed_end=slot.end,
                    proposed_instructor_id=slot.instructor_id,
                    proposed_aircraft_id=slot.aircraft_id,
                    score=pick.score,
                    reasoning=pick.reasoning,
                )
            )
        session.add_all(proposals)
        await session.flush()

        conflict.status = ConflictStatus.PROPOSALS_READY
        _finish()
        await notifications.notify_conflict(session, conflict, booking, proposals)
        await session.commit()

        record_proposals(len(proposals), ranking)
        logger.info(
            "Generated %d proposals for conflict %s (%s ranking)",
            len(proposals),
            conflict.id,
            ranking,
        )
        return proposals


async def load_conflict(session: AsyncSession, conflict_id: int) -> Optional[WeatherConflict]:
    result = await session.execute(
        select(WeatherConflict)
        .where(WeatherConflict.id == conflict_id)
        .execution_options(populate_existing=True)
    )
    return result.unique().scalar_one_or_none()


async def _load_proposal(session: AsyncSession, proposal_id: int) -> RescheduleProposal:
    result = await session.execute(
        select(RescheduleProposal)
        .options(joinedload(RescheduleProposal.conflict))
        .where(RescheduleProposal.id == proposal_id)
        .execution_options(populate_existing=True)
    )
    proposal = result.unique().scalar_one_or_none()
    if proposal is None:
        raise RescheduleError("Proposal not found", status.HTTP_404_NOT_FOUND)
    return proposal


async def respond_to_proposal(
    session: AsyncSession, caller: User, proposal_id: int, accept: bool
) -> RescheduleProposal:
    """Record a party's answer; an acceptance moves the booking to the proposed slot."""

    proposal = await _load_proposal(session, proposal_id)
    conflict = proposal.conflict
    booking = conflict.booking

    if caller.id == booking.student_id:
        is_student = True
    elif caller.id == booking.instructor_id:
        is_student = False
    else:
        raise RescheduleError(
            "You are not authorized to respond to this proposal",
            status.HTTP_403_FORBIDDEN,
        )
    if conflict.status == ConflictStatus.RESOLVED:
        raise RescheduleError(
            "This weather conflict has already been resolved",
            status.HTTP_409_CONFLICT,
        )
    if booking.status == BookingStatus.CANCELLED:
        raise RescheduleError(
            "Cannot respond to a proposal for a cancelled booking",
            status.HTTP_409_CONFLICT,
        )

    now = utcnow()
    answer = ProposalResponse.ACCEPTED if accept else ProposalResponse.REJECTED
    if is_student:
        proposal.student_response = answer
        proposal.student_responded_at = now
    else:
        proposal.instructor_response = answer
        proposal.instructor_responded_at = now

    if accept:
        proposal.accepted_at = now
        proposal.new_booking_id = booking.id
        booking.scheduled_start = proposal.proposed_start
        booking.scheduled_end = proposal.proposed_end
        if proposal.proposed_instructor_id:
            booking.instructor_id = proposal.proposed_instructor_id
        if proposal.proposed_aircraft_id:
            booking.aircraft_id = proposal.proposed_aircraft_id
        booking.status = BookingStatus.SCHEDULED
        conflict.status = ConflictStatus.RESOLVED
        conflict.resolved_at = now
        conflict.resolution_method = "rescheduled"
        notifications.notify_reschedule_accepted(session, booking, proposal, caller)

    await session.commit()
    if accept:
        record_transition(BookingStatus.SCHEDULED.value)
    logger.info(
        "User %s %s proposal %s",
        caller.id,
        "accepted" if accept else "rejected",
        proposal.id,
    )
    return proposal


async def list_proposals_for(
    session: AsyncSession, caller: User
) -> Sequence[RescheduleProposal]:
    """Proposals visible to the caller.

    Students see every proposal for their conflicts, best score first.
    Instructors see proposals the student has not rejected.
    """

    query = (
        select(RescheduleProposal)
        .join(WeatherConflict, RescheduleProposal.conflict_id == WeatherConflict.id)
        .join(Booking, WeatherConflict.booking_id == Booking.id)
    )
    if caller.role == UserRole.STUDENT:
        query = query.where(Booking.student_id == caller.id).order_by(
            RescheduleProposal.score.desc()
        )
    elif caller.role == UserRole.INSTRUCTOR:
        query = query.where(
            Booking.instructor_id == caller.id,
            RescheduleProposal.student_response.in_(
                (ProposalResponse.PENDING, ProposalResponse.ACCEPTED)
            ),
        ).order_by(RescheduleProposal.created_at.desc(), RescheduleProposal.score.desc())
    else:
        query = query.order_by(RescheduleProposal.created_at.desc())
    result = await session.execute(query)
    return result.unique().scalars().all()


__all__ = [
    "Rescheduler",
    "RescheduleError",
    "build_prompt",
    "fallback_ranking",
    "list_proposals_for",
    "load_conflict",
    "respond_to_proposal",
]
