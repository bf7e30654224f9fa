# participation_service/crud/crud_public_rsvp.py
"""
Public RSVP store for anonymous attendees.

Deliberately permissive: no identity verification and no capacity check
here. Capacity is enforced one layer up by the participation service.
"""

import hashlib
import hmac
import logging
from typing import Dict, List, Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from participation_service.core.config import settings
from participation_service.crud.crud_session import session as session_crud
from participation_service.models.public_rsvp import PublicRsvp
from participation_service.models.session import Session as SessionModel
from participation_service.schemas.participation import PublicRsvpDetails
from participation_service.utils.time import utcnow

logger = logging.getLogger(__name__)


def make_attendee_token(email: str) -> str:
    """
    Opaque, stable attendee identifier derived from a contact email.

    Keyed so the email cannot be recovered from the token or guessed by
    hashing candidate addresses.
    """
    normalized = email.strip().lower().encode("utf-8")
    return hmac.new(
        settings.ATTENDEE_TOKEN_SECRET.encode("utf-8"), normalized, hashlib.sha256
    ).hexdigest()


class CRUDPublicRsvp:
    """Store operations for anonymous RSVPs."""

    def get(
        self,
        db: Session,
        *,
        session_id: str,
        attendee_token: str,
    ) -> Optional[PublicRsvp]:
        """Get an attendee's RSVP row for a session (attending or not)."""
        return db.query(PublicRsvp).filter(
            and_(
                PublicRsvp.session_id == session_id,
                PublicRsvp.attendee_token == attendee_token,
            )
        ).first()

    def get_active(
        self,
        db: Session,
        *,
        session_id: str,
        attendee_token: str,
    ) -> Optional[PublicRsvp]:
        return db.query(PublicRsvp).filter(
            and_(
                PublicRsvp.session_id == session_id,
                PublicRsvp.attendee_token == attendee_token,
                PublicRsvp.attending.is_(True),
            )
        ).first()

    def rsvp(
        self,
        db: Session,
        *,
        session_id: str,
        attendee_token: str,
        attending: bool,
        details: Optional[PublicRsvpDetails] = None,
    ) -> Optional[PublicRsvp]:
        """
        Set an attendee's RSVP state.

        attending=True on an active row and attending=False on a missing or
        inactive row are no-ops that return the current row (or None).
        """
        record = self.get(db, session_id=session_id, attendee_token=attendee_token)

        if not attending:
            if record is None or not record.attending:
                logger.info(f"No active public RSVP for session {session_id}")
                return record
            record.attending = False
            record.cancelled_at = utcnow()
            self._bump_session_version(db, session_id)
            logger.info(f"Public RSVP cancelled for session {session_id}")
            return record

        if record is not None and record.attending:
            return record

        if details is None:
            raise ValueError("Contact details are required to RSVP")

        now = utcnow()
        if record is None:
            record = PublicRsvp(
                session_id=session_id,
                attendee_token=attendee_token,
                attending=True,
                confirmed_at=now,
            )
            db.add(record)
        else:
            record.attending = True
            record.confirmed_at = now
            record.cancelled_at = None

        record.display_name = details.name
        record.email = details.email
        record.phone = details.phone
        record.message = details.message

        self._bump_session_version(db, session_id)
        logger.info(f"Public RSVP confirmed for session {session_id}")
        return record

    def list_active(self, db: Session, *, session_id: str) -> List[PublicRsvp]:
        """Attending RSVPs for a session, earliest confirmation first."""
        return db.query(PublicRsvp).filter(
            and_(
                PublicRsvp.session_id == session_id,
                PublicRsvp.attending.is_(True),
            )
        ).order_by(PublicRsvp.confirmed_at.asc()).all()

    def count_active(self, db: Session, *, session_id: str) -> int:
        """Count attending RSVPs for a session."""
        return db.query(func.count(PublicRsvp.id)).filter(
            and_(
                PublicRsvp.session_id == session_id,
                PublicRsvp.attending.is_(True),
            )
        ).scalar() or 0

    def count_active_by_session(self, db: Session, *, session_ids: List[str]) -> Dict[str, int]:
        if not session_ids:
            return {}
        rows = (
            db.query(PublicRsvp.session_id, func.count(PublicRsvp.id))
            .filter(
                PublicRsvp.session_id.in_(session_ids),
                PublicRsvp.attending.is_(True),
            )
            .group_by(PublicRsvp.session_id)
            .all()
        )
        return {session_id: count for session_id, count in rows}

    def _bump_session_version(self, db: Session, session_id: str) -> None:
        session_obj = db.get(SessionModel, session_id)
        if session_obj is not None:
            session_crud.bump_version(db, db_obj=session_obj)


# Singleton instance
public_rsvp = CRUDPublicRsvp()
