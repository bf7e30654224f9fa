# tests/graphql/test_graphql_rate_limit.py

from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from participation_service.core.config import settings
from participation_service.utils import graphql_rate_limit
from participation_service.utils.graphql_rate_limit import rate_limit, reset_rate_limits


def _info(host: str):
    request = SimpleNamespace(client=SimpleNamespace(host=host))
    return SimpleNamespace(context=SimpleNamespace(request=request))


@pytest.fixture
def clock(monkeypatch):
    """Controllable time source for the limiter."""
    now = {"t": 1000.0}
    monkeypatch.setattr(graphql_rate_limit, "time", SimpleNamespace(time=lambda: now["t"]))
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    reset_rate_limits()
    yield now
    reset_rate_limits()


@rate_limit(max_calls=2, period_seconds=60)
def limited_operation(info):
    return "ok"


def test_blocks_after_max_calls(clock):
    assert limited_operation(info=_info("10.0.0.1")) == "ok"
    assert limited_operation(info=_info("10.0.0.1")) == "ok"

    with pytest.raises(HTTPException) as exc_info:
        limited_operation(info=_info("10.0.0.1"))

    assert exc_info.value.status_code == 429
    # Other clients have their own window
    assert limited_operation(info=_info("10.0.0.2")) == "ok"


def test_window_resets_after_period(clock):
    limited_operation(info=_info("10.0.0.1"))
    limited_operation(info=_info("10.0.0.1"))

    clock["t"] += 61

    assert limited_operation(info=_info("10.0.0.1")) == "ok"


def test_expired_windows_are_evicted(clock):
    for n in range(5):
        limited_operation(info=_info(f"10.0.1.{n}"))
    assert len(graphql_rate_limit._rate_limit_store) == 5

    clock["t"] += 61
    limited_operation(info=_info("10.0.2.1"))

    assert len(graphql_rate_limit._rate_limit_store) == 1


def test_disabled_limiter_counts_nothing(clock, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)

    for _ in range(5):
        assert limited_operation(info=_info("10.0.0.1")) == "ok"

    assert len(graphql_rate_limit._rate_limit_store) == 0
