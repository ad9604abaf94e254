"""
Pytest fixtures for branchpos backend tests.

Provides an in-memory application, a per-test table wipe, the test client
and small factories for branches, workers and stock.
"""

import pytest

from branchpos import create_app
from branchpos.config import TestConfig
from branchpos.extensions import db, feed
from branchpos.records import WorkerRecord
from branchpos.services import branch_service, inventory_service, worker_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(config_object=TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        feed.close_all()
        db.session.rollback()


@pytest.fixture(scope='function')
def branch(db_session):
    """Create the main branch."""
    return branch_service.create_branch(name="Main Branch", location="Downtown")


@pytest.fixture(scope='function')
def other_branch(db_session):
    """Create a second branch."""
    return branch_service.create_branch(name="Harbor Branch", location="Harbor")


@pytest.fixture(scope='function')
def admin(db_session):
    """Create an admin worker (global, never clocks in)."""
    return worker_service.create_worker(name="Ada Admin", email="admin@example.com", is_admin=True)


@pytest.fixture(scope='function')
def manager(db_session, branch, admin):
    """Create a manager of the main branch."""
    worker = worker_service.create_worker(name="Max Manager", email="manager@example.com", employee_code="M-1")
    worker_service.assign_role(worker_id=worker.id, branch_id=branch.id, role="manager", assigned_by_id=admin.id)
    return worker


@pytest.fixture(scope='function')
def worker(db_session, branch, admin):
    """Create a plain worker of the main branch."""
    w = worker_service.create_worker(name="Wendy Worker", email="worker@example.com", employee_code="W-1")
    worker_service.assign_role(worker_id=w.id, branch_id=branch.id, role="worker", assigned_by_id=admin.id)
    return w


@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory: make_item(branch, name, stock=10, price_cents=100, **extra)."""
    def _make(branch, name, stock=10, price_cents=100, **extra):
        payload = {"name": name, "stock": stock, "price_cents": price_cents, **extra}
        return inventory_service.create_item(branch_id=branch.id, payload=payload)
    return _make


@pytest.fixture(scope='function')
def as_record(db_session):
    """Factory: fresh WorkerRecord for a worker model."""
    def _record(worker):
        db_session.refresh(worker)
        return WorkerRecord.from_model(worker)
    return _record


def headers_for(worker) -> dict:
    """Helper to create the acting-worker header."""
    return {'X-Worker-Id': str(worker.id)}


@pytest.fixture(scope='function')
def auth(db_session):
    """Factory: auth(worker) -> request headers identifying the worker."""
    return headers_for
