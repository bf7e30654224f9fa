# tests/api/v1/test_public_api.py

import pytest
from starlette.testclient import TestClient

from participation_service.core.limiter import limiter
from tests.utils.auth import get_user_authentication_headers
from tests.utils.session import create_test_session

RSVP_BODY = {
    "name": "Sam Guest",
    "email": "Sam.Guest@Example.com",
    "phone": "+15550100",
    "message": "First time playing",
}


@pytest.fixture
def rate_limited():
    limiter.reset()
    limiter.enabled = True
    yield limiter
    limiter.enabled = False
    limiter.reset()


def test_public_session_view(test_client: TestClient, db_session):
    create_test_session(db_session, capacity=6, owner_id="owner_1", title="Sunday doubles")

    response = test_client.get("/api/v1/public/sessions/ses_test")

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Sunday doubles"
    assert body["joinable"] is True
    assert body["available"] == 6
    assert "owner_id" not in body


def test_public_session_view_unknown(test_client: TestClient):
    response = test_client.get("/api/v1/public/sessions/ses_missing")

    assert response.status_code == 404


def test_rsvp_and_repeat(test_client: TestClient, db_session):
    create_test_session(db_session, capacity=4)

    first = test_client.post("/api/v1/public/sessions/ses_test/rsvp", json=RSVP_BODY)
    second = test_client.post(
        "/api/v1/public/sessions/ses_test/rsvp",
        json={**RSVP_BODY, "email": "sam.guest@example.com"},
    )

    assert first.status_code == 200
    assert first.json()["outcome"] == "JOINED"
    assert first.json()["kind"] == "PUBLIC"
    assert first.json()["rsvp"]["display_name"] == "Sam Guest"
    assert "email" not in first.json()["rsvp"]
    assert second.json()["outcome"] == "ALREADY_JOINED"
    assert second.json()["snapshot"]["public_count"] == 1


def test_rsvp_counts_against_member_capacity(test_client: TestClient, db_session):
    create_test_session(db_session, capacity=1)
    test_client.post(
        "/api/v1/sessions/ses_test/participants",
        headers=get_user_authentication_headers(user_id="user_1"),
    )

    response = test_client.post("/api/v1/public/sessions/ses_test/rsvp", json=RSVP_BODY)

    assert response.status_code == 409
    assert response.json()["error"]["category"] == "capacity_exceeded"


def test_rsvp_invalid_email(test_client: TestClient, db_session):
    create_test_session(db_session)

    response = test_client.post(
        "/api/v1/public/sessions/ses_test/rsvp",
        json={**RSVP_BODY, "email": "not-an-email"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["category"] == "validation_error"


def test_rsvp_blank_name(test_client: TestClient, db_session):
    create_test_session(db_session)

    response = test_client.post(
        "/api/v1/public/sessions/ses_test/rsvp",
        json={**RSVP_BODY, "name": "   "},
    )

    assert response.status_code == 400


def test_cancel_rsvp(test_client: TestClient, db_session):
    create_test_session(db_session)
    test_client.post("/api/v1/public/sessions/ses_test/rsvp", json=RSVP_BODY)

    response = test_client.post(
        "/api/v1/public/sessions/ses_test/rsvp/cancel", json={"email": RSVP_BODY["email"]}
    )
    unknown = test_client.post(
        "/api/v1/public/sessions/ses_test/rsvp/cancel", json={"email": "stranger@example.com"}
    )

    assert response.status_code == 200
    assert response.json()["outcome"] == "LEFT"
    assert response.json()["snapshot"]["used"] == 0
    assert unknown.json()["outcome"] == "NOT_JOINED"


def test_rsvp_is_rate_limited(test_client: TestClient, db_session, rate_limited):
    create_test_session(db_session, capacity=50)

    statuses = [
        test_client.post(
            "/api/v1/public/sessions/ses_test/rsvp",
            json={**RSVP_BODY, "email": f"guest{n}@example.com"},
        ).status_code
        for n in range(6)
    ]

    assert statuses == [200] * 5 + [429]
