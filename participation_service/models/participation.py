# participation_service/models/participation.py
"""
Participation record for authenticated members.

One row per (session, member) pair. Leaving and rejoining flip the state of
that row; rows are never deleted so join/leave history is kept.
"""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint, text
from sqlalchemy.sql import func

from participation_service.db.base_class import Base


class ParticipationRecord(Base):
    __tablename__ = "session_participants"

    id = Column(String, primary_key=True, default=lambda: f"spart_{uuid.uuid4().hex[:12]}")
    session_id = Column(String, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(String, nullable=False, index=True)
    state = Column(String(20), nullable=False, server_default="JOINED")  # JOINED, LEFT, REMOVED
    joined_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    left_at = Column(DateTime(timezone=True), nullable=True)
    removed_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("session_id", "participant_id", name="unique_session_participant"),
        # At most one active participation per member per session
        Index(
            "uq_session_participants_active",
            "session_id",
            "participant_id",
            unique=True,
            postgresql_where=text("state = 'JOINED'"),
            sqlite_where=text("state = 'JOINED'"),
        ),
        Index("idx_session_participants_session_state", "session_id", "state"),
    )
