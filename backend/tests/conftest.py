"""Pytest configuration and fixtures."""

import os
import secrets
from datetime import datetime, timedelta, timezone

import pytest

# Generate a unique test secret for this test run to prevent token forgery
_TEST_JWT_SECRET = f"test-only-{secrets.token_urlsafe(32)}"

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET_KEY", _TEST_JWT_SECRET)
# Never reach a real model from unit tests
os.environ.setdefault("ORACLE_PROVIDER", "none")

from app.database import get_store  # noqa: E402
from app.main import app  # noqa: E402
from app.rate_limit import limiter  # noqa: E402
from app.routes.engine import get_oracle  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from weave import ModelOracle  # noqa: E402
from weave.storage import InMemoryContentStore  # noqa: E402
from weave.types import ContentItem, ContentKind, Topic  # noqa: E402

# Use clearly invalid test ID that cannot collide with production IDs
TEST_USER_ID = "usr_TEST_ONLY_000000"


def _item(item_id, kind, title, body, days_old, score, topic_id=None):
    return ContentItem(
        id=item_id,
        owner_id=TEST_USER_ID,
        kind=kind,
        title=title,
        body=body,
        topic_id=topic_id,
        created_at=datetime.now(timezone.utc) - timedelta(days=days_old),
        relevance_score=score,
    )


@pytest.fixture
def store():
    """In-memory store with a few items for the test user."""
    store = InMemoryContentStore()
    store.add_topic(TEST_USER_ID, Topic(id="t-sleep", name="Sleep"))
    store.add_item(
        _item("i-1", ContentKind.INSIGHT, "Evening wind-down", "Reading before bed helps sleep", 2, 0.8)
    )
    store.add_item(_item("i-2", ContentKind.INSIGHT, "Morning pages", "Three pages daily", 5, 0.6))
    store.add_item(
        _item("d-1", ContentKind.DOCUMENT, "Sleep science notes", "Circadian rhythm", 40, 0.7)
    )
    return store


@pytest.fixture
def oracle():
    """Oracle with no model: every engine call runs on its fallback path."""
    return ModelOracle(None)


@pytest.fixture
def client(store, oracle):
    """Create a test client wired to the in-memory store."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_oracle] = lambda: oracle
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user_id():
    return TEST_USER_ID


@pytest.fixture
def auth_headers():
    """Create auth headers with a test token."""
    from app.auth import create_access_token
    from app.config import get_settings

    settings = get_settings()
    token = create_access_token(settings, user_id=TEST_USER_ID)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def disable_rate_limits():
    """Keep per-client request budgets out of route tests."""
    limiter.enabled = False
    yield
    limiter.enabled = True
