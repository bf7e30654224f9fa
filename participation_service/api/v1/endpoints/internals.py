# participation_service/api/v1/endpoints/internals.py
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from participation_service.api import deps
from participation_service.crud import crud_session
from participation_service.db.session import get_db
from participation_service.middleware.error_handler import NotFound
from participation_service.schemas.participation import CapacitySnapshot
from participation_service.schemas.session import (
    CapacityUpdate,
    Session as SessionSchema,
    SessionStatusUpdate,
    SessionUpsert,
)
from participation_service.services.participation_service import ParticipationService

router = APIRouter(tags=["Internal"])


@router.put("/internal/sessions/{sessionId}", response_model=SessionSchema)
def upsert_session(
    sessionId: str,
    session_in: SessionUpsert,
    response: Response,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    """
    Register a session or refresh its metadata.

    Called by the session metadata provider whenever a session is created or
    edited. Capacity is only taken on creation; use the capacity route to
    change it afterwards.
    """
    session_obj, created = crud_session.session.upsert(db, session_id=sessionId, obj_in=session_in)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return session_obj


@router.patch("/internal/sessions/{sessionId}/status", response_model=SessionSchema)
def update_session_status(
    sessionId: str,
    status_in: SessionStatusUpdate,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    session_obj = crud_session.session.get(db, sessionId)
    if session_obj is None:
        raise NotFound(details={"session_id": sessionId})
    return crud_session.session.update_status(db, db_obj=session_obj, status=status_in.status)


@router.patch("/internal/sessions/{sessionId}/capacity", response_model=CapacitySnapshot)
def update_session_capacity(
    sessionId: str,
    capacity_in: CapacityUpdate,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
    service: ParticipationService = Depends(deps.get_participation_service),
):
    """
    Change a session's capacity.

    Rejected with 409 `capacity_below_usage` when the new value is lower
    than the number of slots already taken.
    """
    return service.update_capacity(db, sessionId, capacity_in.capacity)
