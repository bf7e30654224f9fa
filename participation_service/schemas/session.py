# participation_service/schemas/session.py
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from participation_service.constants.participation import SessionStatus


def _to_naive_utc(value: datetime) -> datetime:
    # Stored without tzinfo; every datetime in the sessions table is UTC.
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Session(BaseModel):
    id: str
    owner_id: str
    title: Optional[str] = None
    capacity: int
    starts_at: datetime
    status: str
    version: int

    model_config = {"from_attributes": True}


class SessionUpsert(BaseModel):
    """Session metadata pushed by the session metadata provider."""
    owner_id: str
    title: Optional[str] = Field(default=None, max_length=200)
    capacity: int = Field(..., ge=1, json_schema_extra={"example": 10})
    starts_at: datetime
    status: str = SessionStatus.SCHEDULED

    @field_validator("starts_at")
    @classmethod
    def normalize_starts_at(cls, value: datetime) -> datetime:
        return _to_naive_utc(value)

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        value = value.upper()
        if not SessionStatus.is_valid(value):
            raise ValueError(f"status must be one of {SessionStatus.all_values()}")
        return value


class SessionStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        value = value.upper()
        if not SessionStatus.is_valid(value):
            raise ValueError(f"status must be one of {SessionStatus.all_values()}")
        return value


class CapacityUpdate(BaseModel):
    capacity: int = Field(..., ge=1)


class PublicSession(BaseModel):
    """What the public RSVP page shows. Owner identity is not exposed."""
    id: str
    title: Optional[str] = None
    starts_at: datetime
    status: str
    joinable: bool
    capacity: int
    used: int
    available: int
