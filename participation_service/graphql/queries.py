# participation_service/graphql/queries.py
from typing import List, Optional

import strawberry
from strawberry.types import Info

from participation_service.middleware.error_handler import NotFound
from participation_service.services.participation_service import participation_service
from .types import CapacitySnapshotType, to_snapshot_type


@strawberry.type
class Query:
    @strawberry.field
    def session_capacity(self, session_id: str, info: Info) -> Optional[CapacitySnapshotType]:
        """Live capacity for one session, or null if the session is unknown."""
        try:
            snapshot = participation_service.get_snapshot(info.context.db, session_id)
        except NotFound:
            return None
        return to_snapshot_type(snapshot)

    @strawberry.field
    def session_capacities(self, session_ids: List[str], info: Info) -> List[CapacitySnapshotType]:
        snapshots = participation_service.get_snapshots(info.context.db, session_ids)
        return [to_snapshot_type(s) for s in snapshots]
