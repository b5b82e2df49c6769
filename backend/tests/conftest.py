"""Pytest configuration and fixtures."""

import os

# Settings are read at import time
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["BASE_URL"] = "https://sho.rt"

import pytest
from fastapi.testclient import TestClient

from shortlink.core.security import create_access_token
from shortlink.database import Database
from shortlink.main import create_app
from shortlink.models import User
from shortlink.services.allocator import NewLink, create_link
from shortlink.store import LinkStore


@pytest.fixture
def database(tmp_path):
    """Fresh SQLite file database per test."""
    db = Database(f"sqlite:///{tmp_path / 'shortlinks.db'}").open()
    yield db
    db.close()


@pytest.fixture
def db_session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def store(db_session):
    return LinkStore(db_session)


def _make_user(session, username):
    user = User(
        username=username,
        email=f"{username}@company.org",
        hashed_password="unused-in-tests",
        is_active=True,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def user(db_session):
    return _make_user(db_session, "alice")


@pytest.fixture
def other_user(db_session):
    return _make_user(db_session, "mallory")


@pytest.fixture
def make_link(store, user):
    """Create links through the allocator."""
    def _make(original_url="https://example.com/page", owner=None, **kwargs):
        owner_id = (owner or user).id
        return create_link(store, owner_id, NewLink(original_url=original_url, **kwargs))
    return _make


@pytest.fixture
def app(database):
    return create_app(database)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def _headers(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': user.username})}"}


@pytest.fixture
def auth_headers(user):
    return _headers(user)


@pytest.fixture
def other_headers(other_user):
    return _headers(other_user)
