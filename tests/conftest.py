# tests/conftest.py

import os

# Settings are read at import time; keep tests off Redis and the rate limiter.
os.environ["ENV"] = "local"
os.environ["NOTIFIER_REDIS_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL_LOCAL"] = "sqlite:///./participation_test.db"

import pytest
from sqlalchemy.orm import sessionmaker
from starlette.testclient import TestClient

from participation_service.db.base_class import Base
from participation_service.db.session import create_db_engine, get_db
from participation_service.main import app
from participation_service.models import *  # noqa: F401,F403
from participation_service.services.change_notifier import ChangeNotifier
from participation_service.services.participation_service import ParticipationService
from participation_service.services.session_metadata import SessionMetadataProvider


# --- Test Database Setup ---
# A file-backed SQLite database per test: every connection sees the same
# data and the database write lock behaves as in a real deployment.
@pytest.fixture(scope="function")
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'participation.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


# --- Service Fixtures ---
@pytest.fixture(scope="function")
def notifier():
    """In-process notifier with no Redis behind it."""
    return ChangeNotifier()


@pytest.fixture(scope="function")
def service(notifier):
    return ParticipationService(notifier=notifier, metadata=SessionMetadataProvider(join_cutoff_minutes=0))


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def test_client(session_factory):
    """
    Provides a TestClient backed by the per-test SQLite database.
    Each request gets its own DB session, as in production.
    """

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
