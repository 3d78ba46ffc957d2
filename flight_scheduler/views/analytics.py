"""Pydantic schemas for the admin analytics summary."""

from __future__ import annotations

from flight_scheduler.views.common import CamelModel


class ProposalStats(CamelModel):
    total: int = 0
    accepted: int = 0
    rejected: int = 0
    pending: int = 0
    acceptance_rate: float = 0.0


class InstructorLoad(CamelModel):
    instructor_id: int
    full_name: str
    bookings: int


class AnalyticsResponse(CamelModel):
    users_by_role: dict[str, int]
    bookings_by_status: dict[str, int]
    conflicts_by_status: dict[str, int]
    proposals: ProposalStats
    bookings_per_instructor: list[InstructorLoad]


__all__ = ["AnalyticsResponse", "InstructorLoad", "ProposalStats"]
