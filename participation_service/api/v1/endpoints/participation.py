# participation_service/api/v1/endpoints/participation.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from participation_service.api import deps
from participation_service.constants.participation import ParticipantKind
from participation_service.db.session import get_db
from participation_service.schemas.participation import (
    ActiveParticipants,
    CapacitySnapshot,
    ParticipationResult,
)
from participation_service.schemas.token import TokenPayload
from participation_service.services.participation_service import ParticipationService

router = APIRouter(tags=["Participation"])


@router.get("/sessions/capacity", response_model=List[CapacitySnapshot])
def get_session_capacities(
    ids: List[str] = Query(...),
    db: Session = Depends(get_db),
    service: ParticipationService = Depends(deps.get_participation_service),
):
    """Live capacity for a list of sessions. Unknown ids are omitted."""
    return service.get_snapshots(db, ids)


@router.get("/sessions/{sessionId}/capacity", response_model=CapacitySnapshot)
def get_session_capacity(
    sessionId: str,
    db: Session = Depends(get_db),
    service: ParticipationService = Depends(deps.get_participation_service),
):
    """Live used/available counts for a session."""
    return service.get_snapshot(db, sessionId)


@router.post("/sessions/{sessionId}/participants", response_model=ParticipationResult)
def join_session(
    sessionId: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: ParticipationService = Depends(deps.get_participation_service),
):
    """
    Join a session as the authenticated member.

    Joining twice is not an error; the second call returns ALREADY_JOINED.
    A full session returns 409 with category `capacity_exceeded`.
    """
    return service.request_join(db, sessionId, ParticipantKind.PRIVATE, current_user.sub)


@router.delete("/sessions/{sessionId}/participants/me", response_model=ParticipationResult)
def leave_session(
    sessionId: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: ParticipationService = Depends(deps.get_participation_service),
):
    """Leave a session. Leaving without having joined returns NOT_JOINED."""
    return service.request_leave(db, sessionId, ParticipantKind.PRIVATE, current_user.sub)


@router.get("/sessions/{sessionId}/participants", response_model=ActiveParticipants)
def list_participants(
    sessionId: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: ParticipationService = Depends(deps.get_participation_service),
):
    return service.list_participants(db, sessionId)


@router.delete(
    "/sessions/{sessionId}/participants/{participantId}",
    response_model=ParticipationResult,
)
def remove_participant(
    sessionId: str,
    participantId: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: ParticipationService = Depends(deps.get_participation_service),
):
    """Remove a member from a session. Owner only."""
    return service.remove_participant(db, sessionId, participantId, actor_id=current_user.sub)
