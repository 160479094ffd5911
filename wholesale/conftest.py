# wholesale/conftest.py
import os

# In-memory SQLite unless a test database is provided; must be set before
# wholesale.core.database creates its engine.
os.environ.setdefault("TEST_DATABASE_URL", "sqlite://")

import pytest

from wholesale.core.config import settings
from wholesale.core.database import reset_database


@pytest.fixture(scope="function", autouse=True)
def reset_db_and_seed(monkeypatch):
    """Fresh schema, seeded plans and no billing/auth secrets for every test."""
    from wholesale.features.plans.service import seed_plans

    monkeypatch.setattr(settings, "JWT_SECRET", None)
    monkeypatch.setattr(settings, "ADMIN_KEY", None)
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", None)
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", None)
    monkeypatch.setattr(settings, "AUDIT_ENABLED", True)

    reset_database()
    seed_plans()
    yield


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from wholesale.main import app

    return TestClient(app)
