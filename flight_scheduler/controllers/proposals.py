"""Reschedule proposal endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from flight_scheduler.controllers.dependencies import (
    CurrentUserDep,
    SessionDep,
    service_error,
)
from flight_scheduler.models.user import User as UserModel
from flight_scheduler.models.user import UserRole
from flight_scheduler.services.query_cache import query_cache
from flight_scheduler.services.rescheduler import (
    RescheduleError,
    list_proposals_for,
    load_conflict,
    respond_to_proposal,
)
from flight_scheduler.views import RescheduleProposalResponse

router = APIRouter(prefix="/proposals", tags=["proposals"])


def proposals_cache_key(user: UserModel) -> tuple:
    if user.role == UserRole.ADMIN:
        return ("admin-proposals",)
    if user.role == UserRole.INSTRUCTOR:
        return ("instructor-proposals", user.id)
    return ("proposals", user.id)


@router.get("/", response_model=list[RescheduleProposalResponse])
async def list_proposals(
    session: SessionDep,
    current_user: CurrentUserDep,
) -> list[RescheduleProposalResponse]:
    async def _load() -> list[RescheduleProposalResponse]:
        rows = await list_proposals_for(session, current_user)
        return [RescheduleProposalResponse.model_validate(row) for row in rows]

    return await query_cache.get_or_load(proposals_cache_key(current_user), _load)


@router.get("/conflict/{conflict_id}", response_model=list[RescheduleProposalResponse])
async def list_conflict_proposals(
    conflict_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> list[RescheduleProposalResponse]:
    conflict = await load_conflict(session, conflict_id)
    if conflict is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Weather conflict not found"
        )
    if current_user.role != UserRole.ADMIN and not conflict.booking.is_party(
        current_user.id
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not authorized to view these proposals",
        )
    proposals = sorted(conflict.proposals, key=lambda proposal: -proposal.score)
    return [RescheduleProposalResponse.model_validate(row) for row in proposals]


@router.post("/{proposal_id}/accept", response_model=RescheduleProposalResponse)
async def accept_proposal(
    proposal_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> RescheduleProposalResponse:
    """Accept (student) or approve (instructor) a proposed time."""

    try:
        proposal = await respond_to_proposal(session, current_user, proposal_id, True)
    except RescheduleError as exc:
        raise service_error(exc) from None
    return RescheduleProposalResponse.model_validate(proposal)


@router.post("/{proposal_id}/reject", response_model=RescheduleProposalResponse)
async def reject_proposal(
    proposal_id: int,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> RescheduleProposalResponse:
    try:
        proposal = await respond_to_proposal(session, current_user, proposal_id, False)
    except RescheduleError as exc:
        raise service_error(exc) from None
    return RescheduleProposalResponse.model_validate(proposal)
