# participation_service/models/public_rsvp.py
"""
Public RSVP model for anonymous attendees arriving through a public link.

The attendee is identified only by an opaque token derived from their
contact email; it is never linked to a member identity.
"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, UniqueConstraint, text
from sqlalchemy.sql import func

from participation_service.db.base_class import Base


class PublicRsvp(Base):
    __tablename__ = "public_rsvps"

    id = Column(String, primary_key=True, default=lambda: f"prsvp_{uuid.uuid4().hex[:12]}")
    session_id = Column(String, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    attendee_token = Column(String(64), nullable=False, index=True)
    attending = Column(Boolean, nullable=False, server_default=text("true"))
    confirmed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    display_name = Column(String(120), nullable=False)
    email = Column(String(320), nullable=False)
    phone = Column(String(40), nullable=True)
    message = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("session_id", "attendee_token", name="unique_public_rsvp_token"),
        Index(
            "uq_public_rsvps_attending",
            "session_id",
            "attendee_token",
            unique=True,
            postgresql_where=text("attending = true"),
            sqlite_where=text("attending = 1"),
        ),
        Index("idx_public_rsvps_session_attending", "session_id", "attending"),
    )
