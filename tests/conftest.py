"""
Pytest configuration for testing
"""

import json
import os
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import sessionmaker

# Firebase credentials path must exist for settings; Certificate itself is mocked
credentials_path = "/tmp/test-creds.json"
if not os.path.exists(credentials_path):
    os.makedirs(os.path.dirname(credentials_path), exist_ok=True)
    with open(credentials_path, "w") as f:
        json.dump({"type": "service_account", "project_id": "test-project"}, f)

# Set up environment variables for testing before any imports
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["FIREBASE_PROJECT_ID"] = "test-project"
os.environ["FIREBASE_CREDENTIALS_PATH"] = credentials_path
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REDIS_URL"] = "redis://localhost:6379/1"
os.environ["REDIS_PASSWORD"] = ""
os.environ["ADMIN_EMAILS"] = ""



@pytest.fixture(autouse=True)
def mock_firebase_admin(monkeypatch):
    """Mock Firebase Admin SDK to avoid initialization issues in tests"""
    mock_credentials = MagicMock()
    monkeypatch.setattr("firebase_admin.credentials.Certificate", mock_credentials.Certificate)
    monkeypatch.setattr("firebase_admin.initialize_app", MagicMock())

    mock_auth = MagicMock()
    monkeypatch.setattr("firebase_admin.auth", mock_auth)
    monkeypatch.setattr("app.core.firebase.auth", mock_auth)

    monkeypatch.setattr("firebase_admin.firestore.client", MagicMock())

    yield mock_auth


@pytest.fixture(autouse=True)
def mock_cache(monkeypatch):
    """Redis stand-in: the workflow lock is always granted"""
    cache = MagicMock()
    cache.acquire_lock.return_value = True
    cache.get_int.return_value = 0
    monkeypatch.setattr("app.core.cache.get_cache", lambda: cache)
    return cache


@pytest.fixture
def ctx():
    """Transition context pinned to a fixed clock"""
    from app.workflow.state import TransitionContext
    from tests.factories import NOW
    return TransitionContext(now=NOW, grace_period_days=7, notification_cap=0)


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with a fresh schema per test"""
    from app import models  # noqa: F401
    from app.core.database import Base, engine

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(db_engine):
    """Create a new database session for a test"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()

    yield session

    session.rollback()
    session.close()
