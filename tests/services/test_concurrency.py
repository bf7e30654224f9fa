"""
Concurrent joins against one session, each on its own connection.

The write lock is the only thing serializing these requests; nothing in the
service guards the counts in memory.
"""

import threading

from participation_service.constants.participation import ParticipantKind, ParticipationOutcome
from participation_service.middleware.error_handler import CapacityExceeded
from tests.utils.session import create_test_session, public_details


def _run_concurrently(session_factory, calls):
    """Run each call(db) on its own thread and DB session; return outcomes or exceptions."""
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)

    def worker(index, call):
        db = session_factory()
        try:
            barrier.wait()
            results[index] = call(db)
        except Exception as e:
            results[index] = e
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=(i, c)) for i, c in enumerate(calls)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results


def test_no_overbooking_under_concurrent_joins(db_session, session_factory, service):
    capacity, extra = 5, 3
    create_test_session(db_session, capacity=capacity)

    calls = [
        (lambda db, n=n: service.request_join(db, "ses_test", ParticipantKind.PRIVATE, f"user_{n}"))
        for n in range(capacity + extra)
    ]
    results = _run_concurrently(session_factory, calls)

    joined = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, CapacityExceeded)]
    assert len(joined) == capacity
    assert all(r.outcome == ParticipationOutcome.JOINED for r in joined)
    assert len(rejected) == extra

    snapshot = service.get_snapshot(db_session, "ses_test")
    assert snapshot.used == capacity
    assert snapshot.available == 0
    assert snapshot.version == capacity


def test_members_and_guests_race_for_the_same_slots(db_session, session_factory, service):
    create_test_session(db_session, capacity=4)

    calls = []
    for n in range(3):
        calls.append(
            lambda db, n=n: service.request_join(db, "ses_test", ParticipantKind.PRIVATE, f"user_{n}")
        )
        calls.append(
            lambda db, n=n: service.request_join(
                db, "ses_test", ParticipantKind.PUBLIC, details=public_details(n)
            )
        )
    results = _run_concurrently(session_factory, calls)

    assert len([r for r in results if not isinstance(r, Exception)]) == 4
    assert len([r for r in results if isinstance(r, CapacityExceeded)]) == 2

    snapshot = service.get_snapshot(db_session, "ses_test")
    assert snapshot.private_count + snapshot.public_count == 4


def test_same_member_joining_concurrently_takes_one_slot(db_session, session_factory, service):
    create_test_session(db_session, capacity=3)

    calls = [
        (lambda db: service.request_join(db, "ses_test", ParticipantKind.PRIVATE, "user_1"))
        for _ in range(4)
    ]
    results = _run_concurrently(session_factory, calls)

    outcomes = sorted(r.outcome.value for r in results)
    assert outcomes == ["ALREADY_JOINED"] * 3 + ["JOINED"]
    assert service.get_snapshot(db_session, "ses_test").used == 1
