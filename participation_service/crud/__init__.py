# participation_service/crud/__init__.py

from .crud_session import session
from .crud_participation import participation
from .crud_public_rsvp import public_rsvp, make_attendee_token
