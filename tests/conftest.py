"""
Pytest fixtures for the ledger backend.

Provides:
- a Flask app on an in-memory SQLite database, seeded with one tenant
- logged in test clients (owner of the parent company)
- a service level session + TenantContext for tests that skip HTTP
"""

from decimal import Decimal

import pytest

from app import create_app
from config import TestingConfig
from models import db
from models.company import Company
from models.membership import Area
from models.user import User
from seed import seed_tenant
from services.tenant import TenantContext


PARENT_NAME = "Test Holding"
OWNER = {"username": "owner", "password": "owner-pass"}


@pytest.fixture
def app(tmp_path):
    class Config(TestingConfig):
        LOG_DIR = str(tmp_path / "logs")

    app = create_app(Config)
    with app.app_context():
        db.create_all()
        seed_tenant(db.session, company_name=PARENT_NAME, **OWNER)

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def parent_id(app) -> int:
    with app.app_context():
        return db.session.query(Company.id).filter_by(name=PARENT_NAME).scalar()


def login(client, username: str, password: str):
    resp = client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp


@pytest.fixture
def client(app):
    """Owner of the parent company, context already selected."""
    c = app.test_client()
    login(c, **OWNER)
    return c


@pytest.fixture
def read(app):
    """Fresh read of one column, as Decimal for numeric columns."""

    def _read(model, pk, field="balance"):
        with app.app_context():
            value = getattr(db.session.get(model, pk), field)
        return Decimal(str(value)) if isinstance(value, Decimal) else value

    return _read


@pytest.fixture
def svc(app, parent_id):
    """(session, ctx) inside an app context for calling services directly."""
    with app.app_context():
        owner = db.session.query(User).filter_by(username=OWNER["username"]).one()
        ctx = TenantContext(
            company_id=parent_id,
            root_company_id=parent_id,
            is_parent=True,
            permissions=frozenset(Area.ALL),
            user_id=owner.id,
        )
        yield db.session, ctx
