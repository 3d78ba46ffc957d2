"""SQLAlchemy model for AI generated reschedule proposals."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from flight_scheduler.models.base import Base, enum_type, utcnow


class ProposalResponse(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RescheduleProposal(Base):
    __tablename__ = "reschedule_proposals"

    id = Column(Integer, primary_key=True, index=True)
    conflict_id = Column(
        Integer,
        ForeignKey("weather_conflicts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    proposed_start = Column(DateTime, nullable=False)
    proposed_end = Column(DateTime, nullable=False)
    proposed_instructor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    proposed_aircraft_id = Column(Integer, ForeignKey("aircraft.id"), nullable=False)
    score = Column(Float, nullable=False)
    reasoning = Column(Text, nullable=False)
    student_response = Column(
        enum_type(ProposalResponse, "proposal_response"),
        nullable=False,
        default=ProposalResponse.PENDING,
    )
    student_responded_at = Column(DateTime, nullable=True)
    instructor_response = Column(
        enum_type(ProposalResponse, "proposal_response"),
        nullable=False,
        default=ProposalResponse.PENDING,
    )
    instructor_responded_at = Column(DateTime, nullable=True)
    accepted_at = Column(DateTime, nullable=True)
    new_booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    conflict = relationship("WeatherConflict", back_populates="proposals")
    proposed_instructor = relationship("User", lazy="joined")
    proposed_aircraft = relationship("Aircraft", lazy="joined")


__all__ = ["ProposalResponse", "RescheduleProposal"]
