import pytest

from participation_service.crud import crud_public_rsvp, crud_session
from participation_service.crud.crud_public_rsvp import make_attendee_token
from tests.utils.session import create_test_session, public_details


def test_attendee_token_is_stable_and_case_insensitive():
    token = make_attendee_token("Guest@Example.com ")

    assert token == make_attendee_token("guest@example.com")
    assert token != make_attendee_token("other@example.com")
    assert len(token) == 64
    assert "guest" not in token


def test_rsvp_creates_attending_record(db_session):
    create_test_session(db_session)
    token = make_attendee_token("guest1@example.com")

    record = crud_public_rsvp.public_rsvp.rsvp(
        db_session,
        session_id="ses_test",
        attendee_token=token,
        attending=True,
        details=public_details(1, phone="+15550100", message="Bringing a ball"),
    )
    db_session.commit()

    assert record.id.startswith("prsvp_")
    assert record.attending is True
    assert record.display_name == "Guest 1"
    assert record.email == "guest1@example.com"
    assert record.phone == "+15550100"
    assert crud_public_rsvp.public_rsvp.count_active(db_session, session_id="ses_test") == 1


def test_rsvp_requires_details_for_a_new_attendee(db_session):
    create_test_session(db_session)

    with pytest.raises(ValueError):
        crud_public_rsvp.public_rsvp.rsvp(
            db_session,
            session_id="ses_test",
            attendee_token=make_attendee_token("guest1@example.com"),
            attending=True,
        )


def test_repeat_rsvp_is_idempotent(db_session):
    create_test_session(db_session)
    token = make_attendee_token("guest1@example.com")
    first = crud_public_rsvp.public_rsvp.rsvp(
        db_session, session_id="ses_test", attendee_token=token, attending=True, details=public_details(1)
    )
    version = crud_session.session.get(db_session, "ses_test").version

    second = crud_public_rsvp.public_rsvp.rsvp(
        db_session,
        session_id="ses_test",
        attendee_token=token,
        attending=True,
        details=public_details(1, name="Renamed"),
    )

    assert second.id == first.id
    assert second.display_name == "Guest 1"
    assert crud_session.session.get(db_session, "ses_test").version == version


def test_cancel_and_reconfirm_toggle_one_row(db_session):
    create_test_session(db_session)
    token = make_attendee_token("guest1@example.com")
    created = crud_public_rsvp.public_rsvp.rsvp(
        db_session, session_id="ses_test", attendee_token=token, attending=True, details=public_details(1)
    )
    record_id = created.id

    cancelled = crud_public_rsvp.public_rsvp.rsvp(
        db_session, session_id="ses_test", attendee_token=token, attending=False
    )
    assert cancelled.attending is False
    assert cancelled.cancelled_at is not None
    assert crud_public_rsvp.public_rsvp.count_active(db_session, session_id="ses_test") == 0

    reconfirmed = crud_public_rsvp.public_rsvp.rsvp(
        db_session,
        session_id="ses_test",
        attendee_token=token,
        attending=True,
        details=public_details(1, message="Back in"),
    )
    db_session.commit()

    assert reconfirmed.id == record_id
    assert reconfirmed.attending is True
    assert reconfirmed.cancelled_at is None
    assert reconfirmed.message == "Back in"


def test_cancel_without_rsvp_is_a_no_op(db_session):
    create_test_session(db_session)

    result = crud_public_rsvp.public_rsvp.rsvp(
        db_session,
        session_id="ses_test",
        attendee_token=make_attendee_token("nobody@example.com"),
        attending=False,
    )

    assert result is None
    assert crud_session.session.get(db_session, "ses_test").version == 0


def test_list_and_grouped_counts(db_session):
    create_test_session(db_session, session_id="ses_a")
    create_test_session(db_session, session_id="ses_b")
    for n in (1, 2):
        crud_public_rsvp.public_rsvp.rsvp(
            db_session,
            session_id="ses_a",
            attendee_token=make_attendee_token(f"guest{n}@example.com"),
            attending=True,
            details=public_details(n),
        )
    db_session.commit()

    active = crud_public_rsvp.public_rsvp.list_active(db_session, session_id="ses_a")

    assert {r.display_name for r in active} == {"Guest 1", "Guest 2"}
    assert crud_public_rsvp.public_rsvp.count_active_by_session(
        db_session, session_ids=["ses_a", "ses_b"]
    ) == {"ses_a": 2}
