"""
Shared pytest fixtures for the TechLedger test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - subject: X-User-Id header for write requests
    - hierarchy: System → Department → PracticeGroup created via the services
"""

import pytest

from techledger import create_app
from techledger.models import db as _db
from techledger.services import hierarchy_service

TEST_SUBJECT = "user-test-001"


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


@pytest.fixture()
def subject():
    """Identity header the gateway would set for an authenticated caller."""
    return {"X-User-Id": TEST_SUBJECT}


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def hierarchy():
    """QuickBooks → Finance → Accounts Payable, as plain dicts."""
    system = hierarchy_service.create_system({"name": "QuickBooks"}, owner_id=TEST_SUBJECT)
    department = hierarchy_service.create_department(system["id"], {"name": "Finance"})
    group = hierarchy_service.create_practice_group(
        department["id"], {"name": "Accounts Payable"},
    )
    return {"system": system, "department": department, "practice_group": group}
