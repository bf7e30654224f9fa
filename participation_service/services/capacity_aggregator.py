# participation_service/services/capacity_aggregator.py
"""
Capacity aggregator: the single place where used/available counts are derived.

Members and anonymous attendees live in two stores but share one capacity.
Every surface (list views, detail views, public pages, the join path itself)
reads counts through here, so both participant classes are always counted
by the same rules. Nothing is cached: each call recomputes from the stores.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from participation_service.crud import crud_participation, crud_public_rsvp, crud_session
from participation_service.middleware.error_handler import NotFound
from participation_service.models.session import Session as SessionModel
from participation_service.schemas.participation import CapacitySnapshot
from participation_service.utils.time import utcnow

logger = logging.getLogger(__name__)


def build_snapshot(session_obj: SessionModel, private_count: int, public_count: int) -> CapacitySnapshot:
    used = private_count + public_count
    return CapacitySnapshot(
        session_id=session_obj.id,
        capacity=session_obj.capacity,
        private_count=private_count,
        public_count=public_count,
        used=used,
        available=max(0, session_obj.capacity - used),
        version=session_obj.version or 0,
        computed_at=utcnow(),
    )


class CapacityAggregator:
    def snapshot_for(self, db: Session, session_obj: SessionModel) -> CapacitySnapshot:
        """
        Compute the snapshot for an already loaded session.

        Used inside the participation service's locked transaction, where it
        also sees that transaction's own uncommitted writes.
        """
        db.flush()
        private_count = crud_participation.participation.count_active(
            db, session_id=session_obj.id
        )
        public_count = crud_public_rsvp.public_rsvp.count_active(
            db, session_id=session_obj.id
        )
        return build_snapshot(session_obj, private_count, public_count)

    def get_snapshot(self, db: Session, session_id: str) -> CapacitySnapshot:
        """Live snapshot for one session. Raises NotFound for an unknown session."""
        session_obj = crud_session.session.get(db, session_id)
        if session_obj is None:
            raise NotFound(details={"session_id": session_id})
        return self.snapshot_for(db, session_obj)

    def get_snapshots(self, db: Session, session_ids: List[str]) -> List[CapacitySnapshot]:
        """
        Live snapshots for a list view.

        Two grouped count queries regardless of how many sessions are asked
        for. Unknown ids are skipped; order follows session_ids.
        """
        unique_ids = list(dict.fromkeys(session_ids))
        sessions = {
            s.id: s for s in crud_session.session.get_multi_by_ids(db, session_ids=unique_ids)
        }
        private_counts = crud_participation.participation.count_active_by_session(
            db, session_ids=list(sessions)
        )
        public_counts = crud_public_rsvp.public_rsvp.count_active_by_session(
            db, session_ids=list(sessions)
        )

        missing = [sid for sid in unique_ids if sid not in sessions]
        if missing:
            logger.debug(f"Skipping unknown sessions in batch snapshot: {missing}")

        return [
            build_snapshot(
                sessions[sid],
                private_counts.get(sid, 0),
                public_counts.get(sid, 0),
            )
            for sid in unique_ids
            if sid in sessions
        ]


# Singleton instance
capacity_aggregator = CapacityAggregator()
