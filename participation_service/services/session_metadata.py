# participation_service/services/session_metadata.py
"""
Joinability rules consulted before a join is allowed.

The session metadata provider owns session status and timing; this class is
the seam where its "joinable" predicate plugs in. Replace it by passing a
subclass to ParticipationService.
"""

from datetime import datetime, timedelta
from typing import Optional

from participation_service.constants.participation import SessionStatus
from participation_service.core.config import settings
from participation_service.models.session import Session
from participation_service.utils.time import utcnow_naive


class SessionMetadataProvider:
    def __init__(self, join_cutoff_minutes: Optional[int] = None):
        if join_cutoff_minutes is None:
            join_cutoff_minutes = settings.JOIN_CUTOFF_MINUTES
        self.join_cutoff = timedelta(minutes=join_cutoff_minutes)

    def reason_not_joinable(self, session: Session, now: Optional[datetime] = None) -> Optional[str]:
        """Return why the session refuses joins, or None if it accepts them."""
        if session.status != SessionStatus.SCHEDULED:
            return f"session is {session.status.lower()}"

        now = now or utcnow_naive()
        if now >= session.starts_at - self.join_cutoff:
            return "join window has closed"
        return None

    def is_joinable(self, session: Session, now: Optional[datetime] = None) -> bool:
        return self.reason_not_joinable(session, now) is None


# Singleton instance
session_metadata = SessionMetadataProvider()
