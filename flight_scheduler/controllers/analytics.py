"""Administrator analytics summary."""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import func, select

from flight_scheduler.controllers.dependencies import AdminUserDep, SessionDep
from flight_scheduler.models.booking import Booking
from flight_scheduler.models.proposal import ProposalResponse, RescheduleProposal
from flight_scheduler.models.user import User as UserModel
from flight_scheduler.models.user import UserRole
from flight_scheduler.models.weather import WeatherConflict
from flight_scheduler.views import AnalyticsResponse, InstructorLoad, ProposalStats

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _counts(rows) -> dict[str, int]:
    return {getattr(key, "value", key): count for key, count in rows}


@router.get("/", response_model=AnalyticsResponse)
async def get_analytics(session: SessionDep, _admin: AdminUserDep) -> AnalyticsResponse:
    users = await session.execute(
        select(UserModel.role, func.count(UserModel.id)).group_by(UserModel.role)
    )
    bookings = await session.execute(
        select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
    )
    conflicts = await session.execute(
        select(WeatherConflict.status, func.count(WeatherConflict.id)).group_by(
            WeatherConflict.status
        )
    )
    responses = await session.execute(
        select(RescheduleProposal.student_response, func.count(RescheduleProposal.id))
        .group_by(RescheduleProposal.student_response)
    )
    by_response = _counts(responses.all())
    total = sum(by_response.values())
    accepted = by_response.get(ProposalResponse.ACCEPTED.value, 0)
    proposals = ProposalStats(
        total=total,
        accepted=accepted,
        rejected=by_response.get(ProposalResponse.REJECTED.value, 0),
        pending=by_response.get(ProposalResponse.PENDING.value, 0),
        acceptance_rate=round(accepted / total, 4) if total else 0.0,
    )

    load = await session.execute(
        select(UserModel.id, UserModel.full_name, func.count(Booking.id))
        .join(Booking, Booking.instructor_id == UserModel.id, isouter=True)
        .where(UserModel.role == UserRole.INSTRUCTOR)
        .group_by(UserModel.id, UserModel.full_name)
        .order_by(func.count(Booking.id).desc(), UserModel.full_name)
    )

    return AnalyticsResponse(
        users_by_role=_counts(users.all()),
        bookings_by_status=_counts(bookings.all()),
        conflicts_by_status=_counts(conflicts.all()),
        proposals=proposals,
        bookings_per_instructor=[
            InstructorLoad(instructor_id=row[0], full_name=row[1], bookings=row[2])
            for row in load.all()
        ],
    )
