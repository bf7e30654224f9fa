# participation_service/models/__init__.py

from .session import Session
from .participation import ParticipationRecord
from .public_rsvp import PublicRsvp
