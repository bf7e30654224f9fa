# participation_service/schemas/participation.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from participation_service.constants.participation import (
    ParticipantKind,
    ParticipationOutcome,
)


class ParticipationRecord(BaseModel):
    id: str
    session_id: str
    participant_id: str
    state: str
    joined_at: datetime
    left_at: Optional[datetime] = None
    removed_by: Optional[str] = None

    model_config = {"from_attributes": True}


class PublicRsvp(BaseModel):
    """Public view of an anonymous RSVP. Contact details are not echoed back."""
    id: str
    session_id: str
    attendee_token: str
    attending: bool
    display_name: str
    confirmed_at: datetime
    cancelled_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PublicRsvpDetails(BaseModel):
    """Contact details submitted through the public RSVP link."""
    name: str = Field(..., min_length=1, max_length=120)
    email: str = Field(..., min_length=3, max_length=320)
    phone: Optional[str] = Field(default=None, max_length=40)
    message: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("phone", "message")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        local, _, domain = value.partition("@")
        if not local or "." not in domain:
            raise ValueError("email must be a valid address")
        return value


class PublicRsvpCancel(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class CapacitySnapshot(BaseModel):
    """
    Computed used/available counts for a session.

    Never stored: every instance is derived from the live participation and
    public RSVP rows at the moment it was built.
    """
    session_id: str
    capacity: int
    private_count: int
    public_count: int
    used: int
    available: int
    version: int
    computed_at: datetime

    @property
    def is_full(self) -> bool:
        return self.available <= 0


class ParticipationResult(BaseModel):
    outcome: ParticipationOutcome
    kind: ParticipantKind
    changed: bool
    snapshot: CapacitySnapshot
    participation: Optional[ParticipationRecord] = None
    rsvp: Optional[PublicRsvp] = None


class ActiveParticipants(BaseModel):
    session_id: str
    participant_ids: List[str]
