# participation_service/services/participation_service.py
"""
Participation service: the only entry point that changes who is attending.

Every write runs as one transaction that:
1. takes the session's write lock,
2. checks joinability and capacity against a snapshot read under that lock,
3. writes through the matching store (members or public RSVPs),
4. computes the post-write snapshot, then commits.

The snapshot is published only after commit and only when state changed.
Because the capacity read and the insert share a lock, two concurrent joins
for the last slot cannot both succeed; whichever commits first wins.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt

from participation_service.constants.participation import (
    ParticipantKind,
    ParticipationOutcome,
)
from participation_service.core.config import settings
from participation_service.crud import crud_participation, crud_public_rsvp, crud_session
from participation_service.crud.crud_public_rsvp import make_attendee_token
from participation_service.db.session import begin_write_transaction
from participation_service.middleware.error_handler import (
    CapacityBelowUsage,
    CapacityExceeded,
    Conflict,
    NotAuthorized,
    NotFound,
    SessionNotJoinable,
    ValidationError,
)
from participation_service.models.session import Session as SessionModel
from participation_service.schemas.participation import (
    ActiveParticipants,
    CapacitySnapshot,
    ParticipationRecord as ParticipationRecordSchema,
    ParticipationResult,
    PublicRsvp as PublicRsvpSchema,
    PublicRsvpDetails,
)
from participation_service.services.capacity_aggregator import (
    CapacityAggregator,
    capacity_aggregator,
)
from participation_service.services.change_notifier import ChangeNotifier, change_notifier
from participation_service.services.session_metadata import (
    SessionMetadataProvider,
    session_metadata,
)

logger = logging.getLogger(__name__)

# Lock timeouts and concurrent first-inserts surface as Conflict; one
# immediate retry usually succeeds once the competing transaction commits.
retry_on_conflict = retry(
    stop=stop_after_attempt(settings.CONFLICT_RETRY_ATTEMPTS),
    retry=retry_if_exception_type(Conflict),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


class ParticipationService:
    def __init__(
        self,
        aggregator: Optional[CapacityAggregator] = None,
        notifier: Optional[ChangeNotifier] = None,
        metadata: Optional[SessionMetadataProvider] = None,
    ):
        self.aggregator = aggregator or capacity_aggregator
        self.notifier = notifier or change_notifier
        self.metadata = metadata or session_metadata

    @contextmanager
    def _locked_session(self, db: Session, session_id: str) -> Iterator[SessionModel]:
        """
        Run the block as one write transaction holding the session's lock.

        Commits on normal exit and rolls back on any error. Database
        contention is reported as Conflict.
        """
        try:
            begin_write_transaction(db)
            session_obj = crud_session.session.get_for_update(db, session_id=session_id)
            if session_obj is None:
                raise NotFound(details={"session_id": session_id})
            yield session_obj
            db.commit()
        except (OperationalError, IntegrityError) as e:
            db.rollback()
            logger.warning(
                f"Transaction conflict on session {session_id}: {type(e).__name__}",
                extra={"session_id": session_id},
            )
            raise Conflict(details={"session_id": session_id}) from e
        except Exception:
            db.rollback()
            raise

    def _active_record(self, db: Session, session_id: str, kind: ParticipantKind, identity: str):
        if kind == ParticipantKind.PRIVATE:
            return crud_participation.participation.get_active(
                db, session_id=session_id, participant_id=identity
            )
        return crud_public_rsvp.public_rsvp.get_active(
            db, session_id=session_id, attendee_token=identity
        )

    def _result(
        self,
        outcome: ParticipationOutcome,
        kind: ParticipantKind,
        changed: bool,
        snapshot: CapacitySnapshot,
        record=None,
    ) -> ParticipationResult:
        # Built before commit; ORM instances are expired afterwards.
        result = ParticipationResult(outcome=outcome, kind=kind, changed=changed, snapshot=snapshot)
        if record is None:
            return result
        if kind == ParticipantKind.PRIVATE:
            result.participation = ParticipationRecordSchema.model_validate(record)
        else:
            result.rsvp = PublicRsvpSchema.model_validate(record)
        return result

    @staticmethod
    def _resolve_identity(
        kind: ParticipantKind,
        identity: Optional[str],
        details: Optional[PublicRsvpDetails],
    ) -> str:
        if identity:
            return identity
        if kind == ParticipantKind.PUBLIC and details is not None:
            return make_attendee_token(details.email)
        raise ValidationError("A participant identity is required", field="identity")

    @retry_on_conflict
    def request_join(
        self,
        db: Session,
        session_id: str,
        kind: ParticipantKind,
        identity: Optional[str] = None,
        details: Optional[PublicRsvpDetails] = None,
    ) -> ParticipationResult:
        """
        Add a participant to a session.

        Private participants are identified by member id; public attendees by
        attendee token (derived from details.email when not given).

        Idempotent: a participant who already holds a slot gets outcome
        ALREADY_JOINED and nothing changes, even if the session has since
        closed. Raises SessionNotJoinable, CapacityExceeded, NotFound or
        Conflict.
        """
        kind = ParticipantKind(kind)
        identity = self._resolve_identity(kind, identity, details)

        with self._locked_session(db, session_id) as session_obj:
            existing = self._active_record(db, session_id, kind, identity)
            if existing is not None:
                snapshot = self.aggregator.snapshot_for(db, session_obj)
                result = self._result(
                    ParticipationOutcome.ALREADY_JOINED, kind, False, snapshot, existing
                )
            else:
                reason = self.metadata.reason_not_joinable(session_obj)
                if reason:
                    raise SessionNotJoinable(session_id, reason)

                before = self.aggregator.snapshot_for(db, session_obj)
                if before.is_full:
                    logger.info(
                        f"Join rejected, session {session_id} is full ({before.used}/{before.capacity})"
                    )
                    raise CapacityExceeded(session_id, before.capacity, before.used)

                if kind == ParticipantKind.PRIVATE:
                    record = crud_participation.participation.join(
                        db, session_id=session_id, participant_id=identity
                    )
                else:
                    if details is None:
                        raise ValidationError(
                            "Contact details are required to RSVP", field="details"
                        )
                    record = crud_public_rsvp.public_rsvp.rsvp(
                        db,
                        session_id=session_id,
                        attendee_token=identity,
                        attending=True,
                        details=details,
                    )

                snapshot = self.aggregator.snapshot_for(db, session_obj)
                result = self._result(ParticipationOutcome.JOINED, kind, True, snapshot, record)

        if result.changed:
            self.notifier.publish(session_id, result.snapshot)
        return result

    @retry_on_conflict
    def request_leave(
        self,
        db: Session,
        session_id: str,
        kind: ParticipantKind,
        identity: str,
    ) -> ParticipationResult:
        """
        Release a participant's slot.

        Never blocked by capacity or session status. Leaving without holding
        a slot returns outcome NOT_JOINED and publishes nothing.
        """
        kind = ParticipantKind(kind)

        with self._locked_session(db, session_id) as session_obj:
            active = self._active_record(db, session_id, kind, identity)
            if kind == ParticipantKind.PRIVATE:
                record = crud_participation.participation.leave(
                    db, session_id=session_id, participant_id=identity
                )
            else:
                record = crud_public_rsvp.public_rsvp.rsvp(
                    db, session_id=session_id, attendee_token=identity, attending=False
                )

            changed = active is not None
            outcome = ParticipationOutcome.LEFT if changed else ParticipationOutcome.NOT_JOINED
            snapshot = self.aggregator.snapshot_for(db, session_obj)
            result = self._result(outcome, kind, changed, snapshot, record)

        if result.changed:
            self.notifier.publish(session_id, result.snapshot)
        return result

    @retry_on_conflict
    def remove_participant(
        self,
        db: Session,
        session_id: str,
        participant_id: str,
        actor_id: str,
    ) -> ParticipationResult:
        """Owner removal of a member. Only the session owner may do this."""
        with self._locked_session(db, session_id) as session_obj:
            if session_obj.owner_id != actor_id:
                raise NotAuthorized("Only the session owner can remove participants")

            active = crud_participation.participation.get_active(
                db, session_id=session_id, participant_id=participant_id
            )
            record = crud_participation.participation.remove(
                db,
                session_id=session_id,
                participant_id=participant_id,
                removed_by=actor_id,
            )
            changed = active is not None
            outcome = ParticipationOutcome.REMOVED if changed else ParticipationOutcome.NOT_JOINED
            snapshot = self.aggregator.snapshot_for(db, session_obj)
            result = self._result(outcome, ParticipantKind.PRIVATE, changed, snapshot, record)

        if result.changed:
            self.notifier.publish(session_id, result.snapshot)
        return result

    @retry_on_conflict
    def update_capacity(
        self,
        db: Session,
        session_id: str,
        capacity: int,
        actor_id: Optional[str] = None,
    ) -> CapacitySnapshot:
        """
        Change a session's capacity.

        Raising is always allowed. Lowering is allowed down to the number of
        slots already taken; below that raises CapacityBelowUsage. Runs under
        the same lock as joins, so it cannot race one.
        """
        if capacity < 1:
            raise ValidationError("Capacity must be at least 1", field="capacity")

        with self._locked_session(db, session_id) as session_obj:
            current = self.aggregator.snapshot_for(db, session_obj)
            if capacity < current.used:
                raise CapacityBelowUsage(session_id, capacity, current.used)

            changed = capacity != session_obj.capacity
            if changed:
                previous = session_obj.capacity
                session_obj.capacity = capacity
                crud_session.session.bump_version(db, db_obj=session_obj)
                logger.info(
                    f"Session {session_id} capacity {previous} -> {capacity}",
                    extra={"actor_id": actor_id} if actor_id else None,
                )
            snapshot = self.aggregator.snapshot_for(db, session_obj) if changed else current

        if changed:
            self.notifier.publish(session_id, snapshot)
        return snapshot

    def get_snapshot(self, db: Session, session_id: str) -> CapacitySnapshot:
        return self.aggregator.get_snapshot(db, session_id)

    def get_snapshots(self, db: Session, session_ids: List[str]) -> List[CapacitySnapshot]:
        return self.aggregator.get_snapshots(db, session_ids)

    def list_participants(self, db: Session, session_id: str) -> ActiveParticipants:
        """Member ids currently holding a slot, sorted for stable output."""
        if crud_session.session.get(db, session_id) is None:
            raise NotFound(details={"session_id": session_id})
        participant_ids = crud_participation.participation.list_active(db, session_id=session_id)
        return ActiveParticipants(session_id=session_id, participant_ids=sorted(participant_ids))


# Shared instance used by the API and GraphQL surfaces
participation_service = ParticipationService()
