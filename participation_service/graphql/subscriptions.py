# participation_service/graphql/subscriptions.py
"""
Live capacity feed for UIs.

The first message is the current snapshot; after that one message per
committed change. Snapshots carry the session version, so a client that
reconnects can tell whether it missed anything.
"""

import asyncio
from typing import AsyncGenerator

import strawberry
from strawberry.types import Info

from participation_service.db.session import SessionLocal
from participation_service.schemas.participation import CapacitySnapshot
from participation_service.services.change_notifier import change_notifier
from participation_service.services.participation_service import participation_service
from .types import CapacitySnapshotType, to_snapshot_type


def _load_snapshot(session_id: str) -> CapacitySnapshot:
    # Subscriptions outlive any request-scoped DB session.
    db = SessionLocal()
    try:
        return participation_service.get_snapshot(db, session_id)
    finally:
        db.close()


@strawberry.type
class Subscription:
    @strawberry.subscription
    async def capacity_changed(
        self, session_id: str, info: Info
    ) -> AsyncGenerator[CapacitySnapshotType, None]:
        initial = await asyncio.to_thread(_load_snapshot, session_id)
        async for snapshot in change_notifier.stream(session_id, initial=initial):
            yield to_snapshot_type(snapshot)
