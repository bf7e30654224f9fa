# participation_service/utils/time.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time, for audit timestamps."""
    return datetime.now(timezone.utc)


def utcnow_naive() -> datetime:
    """Current UTC time without tzinfo, comparable with Session.starts_at."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
