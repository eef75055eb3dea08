"""
Shared pytest fixtures for the SGLD Project Planning test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - member / reviewer: Actors for service-level tests
    - member_headers / reviewer_headers: request headers for API tests
"""

import pytest

from sgld import create_app
from sgld.domain.actor import Actor
from sgld.models import db as _db


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Actors ───────────────────────────────────────────────────────────────


@pytest.fixture()
def member():
    return Actor(id="member-1", role="member")


@pytest.fixture()
def other_member():
    return Actor(id="member-2", role="member")


@pytest.fixture()
def reviewer():
    return Actor(id="admin-1", role="admin")


@pytest.fixture()
def member_headers(member):
    return {"X-User-Id": member.id, "X-User-Role": member.role}


@pytest.fixture()
def reviewer_headers(reviewer):
    return {"X-User-Id": reviewer.id, "X-User-Role": reviewer.role}
