import pytest

from participation_service.crud import crud_participation, crud_public_rsvp
from participation_service.crud.crud_public_rsvp import make_attendee_token
from participation_service.middleware.error_handler import NotFound
from participation_service.services.capacity_aggregator import capacity_aggregator
from tests.utils.session import create_test_session, public_details


def _add_members(db, session_id, count):
    for n in range(count):
        crud_participation.participation.join(db, session_id=session_id, participant_id=f"user_{n}")


def _add_guests(db, session_id, count):
    for n in range(count):
        crud_public_rsvp.public_rsvp.rsvp(
            db,
            session_id=session_id,
            attendee_token=make_attendee_token(f"guest{n}@example.com"),
            attending=True,
            details=public_details(n),
        )


class TestCapacityAggregator:
    """Snapshots are always the live sum of both participant stores."""

    def test_empty_session_has_full_availability(self, db_session):
        create_test_session(db_session, capacity=8)

        snapshot = capacity_aggregator.get_snapshot(db_session, "ses_test")

        assert snapshot.used == 0
        assert snapshot.available == 8
        assert snapshot.private_count == 0
        assert snapshot.public_count == 0
        assert snapshot.version == 0
        assert not snapshot.is_full

    def test_counts_members_and_guests_together(self, db_session):
        create_test_session(db_session, capacity=10)
        _add_members(db_session, "ses_test", 6)
        _add_guests(db_session, "ses_test", 3)
        db_session.commit()

        snapshot = capacity_aggregator.get_snapshot(db_session, "ses_test")

        assert snapshot.private_count == 6
        assert snapshot.public_count == 3
        assert snapshot.used == 9
        assert snapshot.available == 1

    def test_inactive_records_are_not_counted(self, db_session):
        create_test_session(db_session, capacity=5)
        _add_members(db_session, "ses_test", 2)
        _add_guests(db_session, "ses_test", 2)
        crud_participation.participation.leave(db_session, session_id="ses_test", participant_id="user_0")
        crud_public_rsvp.public_rsvp.rsvp(
            db_session,
            session_id="ses_test",
            attendee_token=make_attendee_token("guest0@example.com"),
            attending=False,
        )
        db_session.commit()

        snapshot = capacity_aggregator.get_snapshot(db_session, "ses_test")

        assert snapshot.used == 2
        assert snapshot.available == 3

    def test_available_never_negative(self, db_session):
        # Capacity lowered outside the service: the counts stand, availability floors at 0.
        session_obj = create_test_session(db_session, capacity=3)
        _add_members(db_session, "ses_test", 3)
        session_obj.capacity = 2
        db_session.commit()

        snapshot = capacity_aggregator.get_snapshot(db_session, "ses_test")

        assert snapshot.used == 3
        assert snapshot.available == 0
        assert snapshot.is_full

    def test_unknown_session_raises_not_found(self, db_session):
        with pytest.raises(NotFound):
            capacity_aggregator.get_snapshot(db_session, "ses_missing")

    def test_batch_snapshots_skip_unknown_and_keep_order(self, db_session):
        create_test_session(db_session, session_id="ses_a", capacity=4)
        create_test_session(db_session, session_id="ses_b", capacity=6)
        _add_members(db_session, "ses_b", 2)
        _add_guests(db_session, "ses_a", 1)
        db_session.commit()

        snapshots = capacity_aggregator.get_snapshots(
            db_session, ["ses_b", "ses_missing", "ses_a", "ses_b"]
        )

        assert [s.session_id for s in snapshots] == ["ses_b", "ses_a"]
        assert (snapshots[0].used, snapshots[0].available) == (2, 4)
        assert (snapshots[1].used, snapshots[1].available) == (1, 3)
