# participation_service/models/session.py
import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, func

from participation_service.db.base_class import Base


class Session(Base):
    """
    Local mirror of a scheduled activity supplied by the session metadata provider.

    There is deliberately no participant-count column here: counts are always
    derived from the participation and public RSVP tables.
    """
    __tablename__ = "sessions"

    id = Column(
        String, primary_key=True, default=lambda: f"ses_{uuid.uuid4().hex[:12]}"
    )
    owner_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=True)
    capacity = Column(Integer, nullable=False)
    starts_at = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, server_default="SCHEDULED")
    # Bumped on every participation state transition; carried on snapshots
    # so subscribers can discard stale deliveries.
    version = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("capacity >= 1", name="check_session_capacity_positive"),
        CheckConstraint("version >= 0", name="check_session_version_positive"),
    )
