# participation_service/graphql/mutations.py
"""
GraphQL mutation resolvers for joining and leaving sessions.

Provides:
- joinSession / leaveSession for authenticated members
- rsvpPublic / cancelPublicRsvp for anonymous attendees (rate limited)

Business outcomes (full, not joinable, unknown session) come back in the
response envelope with an errorCode rather than as GraphQL errors.
"""

import logging

import pydantic
import strawberry
from fastapi import HTTPException
from strawberry.types import Info

from participation_service.constants.participation import ParticipantKind
from participation_service.crud.crud_public_rsvp import make_attendee_token
from participation_service.middleware.error_handler import AppError, ErrorCategory
from participation_service.schemas.participation import PublicRsvpDetails
from participation_service.services.participation_service import participation_service
from participation_service.utils.graphql_rate_limit import rate_limit
from .types import (
    CancelPublicRsvpInput,
    JoinSessionInput,
    LeaveSessionInput,
    ParticipationResponse,
    PublicRsvpInput,
    error_response,
    to_response,
)

logger = logging.getLogger(__name__)


def _require_user_id(info: Info) -> str:
    user = info.context.user
    if not user or not user.sub:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user.sub


@strawberry.type
class Mutation:
    """Participation mutation resolvers."""

    @strawberry.mutation
    def join_session(self, input: JoinSessionInput, info: Info) -> ParticipationResponse:
        """Join a session as the authenticated member."""
        user_id = _require_user_id(info)
        try:
            result = participation_service.request_join(
                info.context.db, input.session_id, ParticipantKind.PRIVATE, user_id
            )
        except AppError as e:
            return error_response(e)
        return to_response(result)

    @strawberry.mutation
    def leave_session(self, input: LeaveSessionInput, info: Info) -> ParticipationResponse:
        user_id = _require_user_id(info)
        try:
            result = participation_service.request_leave(
                info.context.db, input.session_id, ParticipantKind.PRIVATE, user_id
            )
        except AppError as e:
            return error_response(e)
        return to_response(result)

    @strawberry.mutation
    @rate_limit(max_calls=5, period_seconds=3600)  # 5 RSVPs per hour per client
    def rsvp_public(self, input: PublicRsvpInput, info: Info) -> ParticipationResponse:
        """RSVP through a session's public link. No account required."""
        try:
            details = PublicRsvpDetails(
                name=input.name,
                email=input.email,
                phone=input.phone,
                message=input.message,
            )
        except pydantic.ValidationError as e:
            return ParticipationResponse(
                success=False,
                outcome=None,
                error_code=ErrorCategory.VALIDATION,
                message=e.errors()[0]["msg"],
                snapshot=None,
            )

        try:
            result = participation_service.request_join(
                info.context.db,
                input.session_id,
                ParticipantKind.PUBLIC,
                make_attendee_token(details.email),
                details=details,
            )
        except AppError as e:
            return error_response(e)
        return to_response(result)

    @strawberry.mutation
    @rate_limit(max_calls=5, period_seconds=3600)
    def cancel_public_rsvp(self, input: CancelPublicRsvpInput, info: Info) -> ParticipationResponse:
        try:
            result = participation_service.request_leave(
                info.context.db,
                input.session_id,
                ParticipantKind.PUBLIC,
                make_attendee_token(input.email),
            )
        except AppError as e:
            return error_response(e)
        return to_response(result)
