# participation_service/graphql/types.py
"""
GraphQL types for session capacity and participation.
"""

from datetime import datetime
from typing import Optional

import strawberry

from participation_service.constants.participation import ParticipationOutcome as OutcomeConstant
from participation_service.middleware.error_handler import AppError
from participation_service.schemas.participation import CapacitySnapshot, ParticipationResult

ParticipationOutcome = strawberry.enum(OutcomeConstant, name="ParticipationOutcome")


@strawberry.type
class CapacitySnapshotType:
    """Live used/available counts for a session."""
    session_id: str
    capacity: int
    private_count: int
    public_count: int
    used: int
    available: int
    version: int
    computed_at: datetime

    @strawberry.field
    def is_full(self) -> bool:
        return self.available <= 0


@strawberry.type
class ParticipationResponse:
    """Result of a join/leave mutation. Business errors are reported in-band."""
    success: bool
    outcome: Optional[ParticipationOutcome]
    error_code: Optional[str]
    message: Optional[str]
    snapshot: Optional[CapacitySnapshotType]


@strawberry.input
class JoinSessionInput:
    session_id: str


@strawberry.input
class LeaveSessionInput:
    session_id: str


@strawberry.input
class PublicRsvpInput:
    session_id: str
    name: str
    email: str
    phone: Optional[str] = None
    message: Optional[str] = None


@strawberry.input
class CancelPublicRsvpInput:
    session_id: str
    email: str


def to_snapshot_type(snapshot: CapacitySnapshot) -> CapacitySnapshotType:
    return CapacitySnapshotType(
        session_id=snapshot.session_id,
        capacity=snapshot.capacity,
        private_count=snapshot.private_count,
        public_count=snapshot.public_count,
        used=snapshot.used,
        available=snapshot.available,
        version=snapshot.version,
        computed_at=snapshot.computed_at,
    )


_OUTCOME_MESSAGES = {
    OutcomeConstant.JOINED: "Successfully joined",
    OutcomeConstant.ALREADY_JOINED: "Already joined",
    OutcomeConstant.LEFT: "Successfully left",
    OutcomeConstant.NOT_JOINED: "Not joined",
    OutcomeConstant.REMOVED: "Participant removed",
}


def to_response(result: ParticipationResult) -> ParticipationResponse:
    return ParticipationResponse(
        success=True,
        outcome=result.outcome,
        error_code=None,
        message=_OUTCOME_MESSAGES[result.outcome],
        snapshot=to_snapshot_type(result.snapshot),
    )


def error_response(error: AppError) -> ParticipationResponse:
    return ParticipationResponse(
        success=False,
        outcome=None,
        error_code=error.category,
        message=error.message,
        snapshot=None,
    )
