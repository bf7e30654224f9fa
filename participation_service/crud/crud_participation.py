# participation_service/crud/crud_participation.py
"""
Participation store: join/leave history of authenticated members.

State transitions act on one uniquely keyed row per (session, member).
Methods flush but never commit; the participation service owns the
transaction so the capacity check and the write commit together.
"""

import logging
from typing import Dict, List, Optional, Set

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from participation_service.constants.participation import ParticipationState
from participation_service.crud.crud_session import session as session_crud
from participation_service.models.participation import ParticipationRecord
from participation_service.models.session import Session as SessionModel
from participation_service.utils.time import utcnow

logger = logging.getLogger(__name__)


class CRUDParticipation:
    """Store operations for member participation records."""

    def get(
        self,
        db: Session,
        *,
        session_id: str,
        participant_id: str,
    ) -> Optional[ParticipationRecord]:
        """Get a member's participation row for a session (any state)."""
        return db.query(ParticipationRecord).filter(
            and_(
                ParticipationRecord.session_id == session_id,
                ParticipationRecord.participant_id == participant_id,
            )
        ).first()

    def get_active(
        self,
        db: Session,
        *,
        session_id: str,
        participant_id: str,
    ) -> Optional[ParticipationRecord]:
        """Get a member's JOINED row for a session."""
        return db.query(ParticipationRecord).filter(
            and_(
                ParticipationRecord.session_id == session_id,
                ParticipationRecord.participant_id == participant_id,
                ParticipationRecord.state == ParticipationState.JOINED,
            )
        ).first()

    def join(
        self,
        db: Session,
        *,
        session_id: str,
        participant_id: str,
    ) -> ParticipationRecord:
        """
        Move a member to JOINED.

        Idempotent: an already joined member gets the existing row back
        unchanged. A LEFT/REMOVED row is flipped back rather than duplicated.
        """
        record = self.get(db, session_id=session_id, participant_id=participant_id)
        if record is not None and record.state == ParticipationState.JOINED:
            return record

        now = utcnow()
        if record is None:
            record = ParticipationRecord(
                session_id=session_id,
                participant_id=participant_id,
                state=ParticipationState.JOINED,
                joined_at=now,
            )
            db.add(record)
        else:
            record.state = ParticipationState.JOINED
            record.joined_at = now
            record.left_at = None
            record.removed_by = None

        self._bump_session_version(db, session_id)
        logger.info(f"Member {participant_id} joined session {session_id}")
        return record

    def leave(
        self,
        db: Session,
        *,
        session_id: str,
        participant_id: str,
    ) -> Optional[ParticipationRecord]:
        """
        Move a member to LEFT.

        Not being joined is not an error: the current row (LEFT/REMOVED) or
        None is returned untouched.
        """
        return self._deactivate(
            db,
            session_id=session_id,
            participant_id=participant_id,
            state=ParticipationState.LEFT,
        )

    def remove(
        self,
        db: Session,
        *,
        session_id: str,
        participant_id: str,
        removed_by: str,
    ) -> Optional[ParticipationRecord]:
        """Owner removal. Same no-op rules as leave."""
        return self._deactivate(
            db,
            session_id=session_id,
            participant_id=participant_id,
            state=ParticipationState.REMOVED,
            removed_by=removed_by,
        )

    def list_active(self, db: Session, *, session_id: str) -> Set[str]:
        """Member ids currently joined to a session."""
        rows = db.query(ParticipationRecord.participant_id).filter(
            and_(
                ParticipationRecord.session_id == session_id,
                ParticipationRecord.state == ParticipationState.JOINED,
            )
        ).all()
        return {row.participant_id for row in rows}

    def list_for_participant(
        self,
        db: Session,
        *,
        participant_id: str,
        active_only: bool = True,
    ) -> List[ParticipationRecord]:
        """A member's sessions, most recently joined first."""
        query = db.query(ParticipationRecord).filter(
            ParticipationRecord.participant_id == participant_id
        )
        if active_only:
            query = query.filter(ParticipationRecord.state == ParticipationState.JOINED)
        return query.order_by(ParticipationRecord.joined_at.desc()).all()

    def count_active(self, db: Session, *, session_id: str) -> int:
        """Count JOINED members for a session."""
        return db.query(func.count(ParticipationRecord.id)).filter(
            and_(
                ParticipationRecord.session_id == session_id,
                ParticipationRecord.state == ParticipationState.JOINED,
            )
        ).scalar() or 0

    def count_active_by_session(self, db: Session, *, session_ids: List[str]) -> Dict[str, int]:
        """JOINED member counts for many sessions in one grouped query."""
        if not session_ids:
            return {}
        rows = (
            db.query(ParticipationRecord.session_id, func.count(ParticipationRecord.id))
            .filter(
                ParticipationRecord.session_id.in_(session_ids),
                ParticipationRecord.state == ParticipationState.JOINED,
            )
            .group_by(ParticipationRecord.session_id)
            .all()
        )
        return {session_id: count for session_id, count in rows}

    def _deactivate(
        self,
        db: Session,
        *,
        session_id: str,
        participant_id: str,
        state: str,
        removed_by: Optional[str] = None,
    ) -> Optional[ParticipationRecord]:
        record = self.get(db, session_id=session_id, participant_id=participant_id)
        if record is None or record.state != ParticipationState.JOINED:
            logger.info(
                f"No active participation for member {participant_id}, session {session_id}"
            )
            return record

        record.state = state
        record.left_at = utcnow()
        record.removed_by = removed_by

        self._bump_session_version(db, session_id)
        logger.info(
            f"Member {participant_id} moved to {state} in session {session_id}",
            extra={"removed_by": removed_by} if removed_by else None,
        )
        return record

    def _bump_session_version(self, db: Session, session_id: str) -> None:
        session_obj = db.get(SessionModel, session_id)
        if session_obj is not None:
            session_crud.bump_version(db, db_obj=session_obj)


# Singleton instance
participation = CRUDParticipation()
