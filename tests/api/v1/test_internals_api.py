# tests/api/v1/test_internals_api.py

from starlette.testclient import TestClient

from tests.utils.auth import get_internal_headers, get_user_authentication_headers
from tests.utils.session import create_test_session

SESSION_BODY = {
    "owner_id": "owner_1",
    "title": "Wednesday league",
    "capacity": 8,
    "starts_at": "2099-05-01T18:00:00+02:00",
}


def test_internal_routes_require_api_key(test_client: TestClient):
    response = test_client.put("/api/v1/internal/sessions/ses_new", json=SESSION_BODY)

    assert response.status_code == 401


def test_upsert_creates_then_updates(test_client: TestClient):
    created = test_client.put(
        "/api/v1/internal/sessions/ses_new", json=SESSION_BODY, headers=get_internal_headers()
    )

    assert created.status_code == 201
    assert created.json()["capacity"] == 8
    assert created.json()["status"] == "SCHEDULED"
    assert created.json()["starts_at"].startswith("2099-05-01T16:00:00")

    updated = test_client.put(
        "/api/v1/internal/sessions/ses_new",
        json={**SESSION_BODY, "title": "Moved", "capacity": 99},
        headers=get_internal_headers(),
    )

    assert updated.status_code == 200
    assert updated.json()["title"] == "Moved"
    # Capacity changes only go through the capacity route
    assert updated.json()["capacity"] == 8


def test_upsert_rejects_invalid_capacity(test_client: TestClient):
    response = test_client.put(
        "/api/v1/internal/sessions/ses_new",
        json={**SESSION_BODY, "capacity": 0},
        headers=get_internal_headers(),
    )

    assert response.status_code == 400


def test_update_status(test_client: TestClient, db_session):
    create_test_session(db_session)

    response = test_client.patch(
        "/api/v1/internal/sessions/ses_test/status",
        json={"status": "cancelled"},
        headers=get_internal_headers(),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"


def test_update_status_unknown_session(test_client: TestClient):
    response = test_client.patch(
        "/api/v1/internal/sessions/ses_missing/status",
        json={"status": "CANCELLED"},
        headers=get_internal_headers(),
    )

    assert response.status_code == 404


def test_update_capacity(test_client: TestClient, db_session):
    create_test_session(db_session, capacity=3)
    test_client.post(
        "/api/v1/sessions/ses_test/participants",
        headers=get_user_authentication_headers(user_id="user_1"),
    )

    raised = test_client.patch(
        "/api/v1/internal/sessions/ses_test/capacity",
        json={"capacity": 6},
        headers=get_internal_headers(),
    )
    lowered = test_client.patch(
        "/api/v1/internal/sessions/ses_test/capacity",
        json={"capacity": 1},
        headers=get_internal_headers(),
    )

    assert raised.status_code == 200
    assert raised.json()["capacity"] == 6
    assert raised.json()["available"] == 5
    assert lowered.status_code == 200
    assert lowered.json()["available"] == 0


def test_update_capacity_below_usage(test_client: TestClient, db_session):
    create_test_session(db_session, capacity=3)
    for user in ("user_1", "user_2"):
        test_client.post(
            "/api/v1/sessions/ses_test/participants",
            headers=get_user_authentication_headers(user_id=user),
        )

    response = test_client.patch(
        "/api/v1/internal/sessions/ses_test/capacity",
        json={"capacity": 1},
        headers=get_internal_headers(),
    )

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["category"] == "capacity_below_usage"
    assert error["used"] == 2
