"""
Shared pytest fixtures for the Board Records Management test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - users: one active user per role, keyed by role
    - headers: builds the X-User-Id header for a role
    - make_document: creates a document and optionally parks it at a status
"""

import pytest

from rms import create_app
from rms.models import db as _db
from rms.services import document_store
from rms.services.user_service import seed_users
from rms.services.workflow_engine import STATUS_HANDLER


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


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


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def users():
    """Seed the default users and return them keyed by role."""
    return {u.role: u for u in seed_users()}


@pytest.fixture()
def headers(users):
    """headers("boardChair") -> {"X-User-Id": "<id of the chair>"}"""
    def _headers(role):
        return {"X-User-Id": str(users[role].id)}
    return _headers


@pytest.fixture()
def make_document(users):
    """Create a document at intake, optionally parked at another status.

    Parking writes status/handler directly (bypassing the engine) so tests
    can start from any point of the workflow.
    """
    def _make(status=None, **fields):
        data = {
            "subject": "Request for annual leave policy review",
            "initiator_department": "Finance",
            "priority": "normal",
        }
        data.update(fields)
        officer = users["recordsOfficer"]
        doc = document_store.create_document(data, actor_id=officer.id, actor_role=officer.role)
        if status:
            doc.status = status
            doc.current_handler = STATUS_HANDLER[status]
            _db.session.commit()
        return doc
    return _make
