# participation_service/api/v1/endpoints/public.py
"""
Public RSVP surface for attendees without an account.

No authentication: the attendee is identified by a keyed hash of the
contact email. Write routes are rate limited per client address.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from participation_service.api import deps
from participation_service.constants.participation import ParticipantKind
from participation_service.core.config import settings
from participation_service.core.limiter import limiter
from participation_service.crud import crud_session
from participation_service.crud.crud_public_rsvp import make_attendee_token
from participation_service.db.session import get_db
from participation_service.middleware.error_handler import NotFound
from participation_service.schemas.participation import (
    ParticipationResult,
    PublicRsvpCancel,
    PublicRsvpDetails,
)
from participation_service.schemas.session import PublicSession
from participation_service.services.participation_service import ParticipationService
from participation_service.services.session_metadata import session_metadata

router = APIRouter(tags=["Public"])


@router.get("/public/sessions/{sessionId}", response_model=PublicSession)
def get_public_session(
    sessionId: str,
    db: Session = Depends(get_db),
    service: ParticipationService = Depends(deps.get_participation_service),
):
    """
    Retrieves the publicly viewable details of a session with live capacity.
    """
    session_obj = crud_session.session.get(db, sessionId)
    if session_obj is None:
        raise NotFound(details={"session_id": sessionId})

    snapshot = service.get_snapshot(db, sessionId)
    return PublicSession(
        id=session_obj.id,
        title=session_obj.title,
        starts_at=session_obj.starts_at,
        status=session_obj.status,
        joinable=session_metadata.is_joinable(session_obj),
        capacity=snapshot.capacity,
        used=snapshot.used,
        available=snapshot.available,
    )


@router.post("/public/sessions/{sessionId}/rsvp", response_model=ParticipationResult)
@limiter.limit(settings.PUBLIC_RSVP_RATE_LIMIT)
def rsvp_public(
    sessionId: str,
    request: Request,
    rsvp_in: PublicRsvpDetails,
    db: Session = Depends(get_db),
    service: ParticipationService = Depends(deps.get_participation_service),
):
    """
    RSVP to a session through its public link.

    Counts against the same capacity as members. Re-submitting with the same
    email is idempotent and returns ALREADY_JOINED.
    """
    return service.request_join(
        db,
        sessionId,
        ParticipantKind.PUBLIC,
        make_attendee_token(rsvp_in.email),
        details=rsvp_in,
    )


@router.post("/public/sessions/{sessionId}/rsvp/cancel", response_model=ParticipationResult)
@limiter.limit(settings.PUBLIC_RSVP_RATE_LIMIT)
def cancel_public_rsvp(
    sessionId: str,
    request: Request,
    cancel_in: PublicRsvpCancel,
    db: Session = Depends(get_db),
    service: ParticipationService = Depends(deps.get_participation_service),
):
    """Withdraw a public RSVP. Unknown emails return NOT_JOINED."""
    return service.request_leave(
        db,
        sessionId,
        ParticipantKind.PUBLIC,
        make_attendee_token(cancel_in.email),
    )
