# participation_service/constants/participation.py
"""
Constants for session status and participation state values.

Provides type-safe constants to replace hardcoded strings throughout the codebase.
"""

from enum import Enum


class SessionStatus:
    """Lifecycle status of a session, as supplied by the session metadata provider."""
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @classmethod
    def all_values(cls) -> list[str]:
        """Return all valid status values."""
        return [cls.SCHEDULED, cls.IN_PROGRESS, cls.COMPLETED, cls.CANCELLED]

    @classmethod
    def is_valid(cls, status: str) -> bool:
        """Check if a status value is valid."""
        return status in cls.all_values()


class ParticipationState:
    """State of a member's participation record."""
    JOINED = "JOINED"
    LEFT = "LEFT"
    REMOVED = "REMOVED"

    @classmethod
    def all_values(cls) -> list[str]:
        return [cls.JOINED, cls.LEFT, cls.REMOVED]

    @classmethod
    def is_valid(cls, state: str) -> bool:
        return state in cls.all_values()


class ParticipantKind(str, Enum):
    """Which store a participant lives in."""
    PRIVATE = "PRIVATE"
    PUBLIC = "PUBLIC"


class ParticipationOutcome(str, Enum):
    """What a join/leave request did. Lets callers tell 'joined' from 'already in'."""
    JOINED = "JOINED"
    ALREADY_JOINED = "ALREADY_JOINED"
    LEFT = "LEFT"
    NOT_JOINED = "NOT_JOINED"
    REMOVED = "REMOVED"
