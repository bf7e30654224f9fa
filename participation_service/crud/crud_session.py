# participation_service/crud/crud_session.py
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from participation_service.crud.base import CRUDBase
from participation_service.models.session import Session as SessionModel
from participation_service.schemas.session import SessionUpsert

logger = logging.getLogger(__name__)


class CRUDSession(CRUDBase[SessionModel, SessionUpsert, SessionUpsert]):
    def get_multi_by_ids(self, db: Session, *, session_ids: List[str]) -> List[SessionModel]:
        if not session_ids:
            return []
        return db.query(self.model).filter(self.model.id.in_(session_ids)).all()

    def get_for_update(self, db: Session, *, session_id: str) -> Optional[SessionModel]:
        """
        Load a session row and lock it for the rest of the transaction.

        Every write that can change the session's counts goes through this
        lock, so concurrent joins for one session are serialized while joins
        for different sessions proceed in parallel.
        """
        return (
            db.query(self.model)
            .filter(self.model.id == session_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def upsert(self, db: Session, *, session_id: str, obj_in: SessionUpsert) -> tuple[SessionModel, bool]:
        """
        Create the session, or refresh its metadata if it already exists.

        Capacity is only set on creation; changes to an existing session's
        capacity must go through the participation service so they are
        validated against live usage.

        Returns (session, created).
        """
        db_obj = self.get(db, session_id)
        if db_obj is None:
            db_obj = self.model(id=session_id, version=0, **obj_in.model_dump())
            db.add(db_obj)
            db.commit()
            db.refresh(db_obj)
            logger.info(f"Session {session_id} registered with capacity {db_obj.capacity}")
            return db_obj, True

        update_data = obj_in.model_dump(exclude={"capacity"}, exclude_unset=True)
        return self.update(db, db_obj=db_obj, obj_in=update_data), False

    def update_status(self, db: Session, *, db_obj: SessionModel, status: str) -> SessionModel:
        logger.info(f"Session {db_obj.id} status {db_obj.status} -> {status}")
        return self.update(db, db_obj=db_obj, obj_in={"status": status})

    def bump_version(self, db: Session, *, db_obj: SessionModel) -> int:
        """Increment the session's version inside the caller's transaction (no commit)."""
        db_obj.version = (db_obj.version or 0) + 1
        db.flush()
        return db_obj.version


session = CRUDSession(SessionModel)
