"""
Shared pytest fixtures for the Operational Excellence Manager test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - element / process: Pre-created framework rows via the API
"""

import pytest

from app import create_app
from app.models import db as _db


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


# ── Convenience helpers & fixtures ───────────────────────────────────────


def _create_element(client, number=1, title="Transition Plan", **kw):
    payload = {"element_number": number, "title": title}
    payload.update(kw)
    res = client.post("/api/v1/elements", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _create_process(client, element_id, number="OE-1.1", name="Transition Governance", **kw):
    payload = {"element_id": element_id, "process_number": number, "name": name}
    payload.update(kw)
    res = client.post("/api/v1/processes", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


@pytest.fixture()
def element(client):
    """Element 1 created via the API."""
    return _create_element(client)


@pytest.fixture()
def process(client, element):
    """Process OE-1.1 with three steps and one measure."""
    return _create_process(
        client, element["id"],
        steps=[
            {"step_number": 1, "step_type": "start", "step_name": "Initiate"},
            {"step_number": 2, "step_type": "decision", "step_name": "Review"},
            {"step_number": 3, "step_type": "end", "step_name": "Close"},
        ],
        measures=[
            {"measure_name": "On-time milestones", "scorecard_category": "Internal Process",
             "target": ">= 95%"},
        ],
    )


@pytest.fixture()
def make_element(client):
    """Factory: ``make_element(number, title, **fields)`` via the API."""
    return lambda *args, **kw: _create_element(client, *args, **kw)


@pytest.fixture()
def make_process(client):
    """Factory: ``make_process(element_id, number, name, **fields)`` via the API."""
    return lambda *args, **kw: _create_process(client, *args, **kw)
