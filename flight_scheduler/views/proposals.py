"""Pydantic schemas for reschedule proposals."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flight_scheduler.models.proposal import ProposalResponse
from flight_scheduler.views.bookings import AircraftSummary, PartySummary
from flight_scheduler.views.common import CamelModel


class RescheduleProposalResponse(CamelModel):
    id: int
    conflict_id: int
    proposed_start: datetime
    proposed_end: datetime
    proposed_instructor_id: int
    proposed_aircraft_id: int
    score: float
    reasoning: str
    student_response: ProposalResponse
    student_responded_at: Optional[datetime] = None
    instructor_response: ProposalResponse
    instructor_responded_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    new_booking_id: Optional[int] = None
    created_at: Optional[datetime] = None
    proposed_instructor: Optional[PartySummary] = None
    proposed_aircraft: Optional[AircraftSummary] = None


__all__ = ["RescheduleProposalResponse"]
