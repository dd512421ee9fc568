"""
tests/conftest.py -- Shared test fixtures for Budget Tracker integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + budget data
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus an admin JWT for API integration tests
  - make_user: factory fixture that creates a user of any role and returns
    (user_id, token)
  - stub_http: requests.Session wired to a StubAdapter for client tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.

The DEBUG env var must be set before any auth module import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import json
import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
os.environ.pop("BYPASS_AUTH", None)

import pytest
import requests
from fastapi.testclient import TestClient
from requests.adapters import BaseAdapter

from api.limiter import limiter
from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from budget.store import BudgetStore

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "testpass123"

# Login/register limits would trip across a module's worth of requests.
limiter.enabled = False


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, BudgetStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    users_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    budget_url = f"sqlite:///file:test_budget_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=users_url), BudgetStore(db_url=budget_url)


def _patch_lifespan(user_store: UserStore, budget_store: BudgetStore):
    """Return a lifespan that installs the given test stores on app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.budget_store = budget_store
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, str], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The admin user (ADMIN_EMAIL / ADMIN_PASSWORD) is created before the
    client starts. Each test module gets its own databases.
    """
    user_store, budget_store = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])

    admin = User(
        email=ADMIN_EMAIL,
        first_name="Test",
        last_name="Admin",
        role="admin",
        hashed_password=hash_password(ADMIN_PASSWORD),
    )
    uid = user_store.create_user(admin)
    token = create_access_token(user_id=uid, email=ADMIN_EMAIL, role="admin", expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store, budget_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    budget_store.close()
    user_store.close()


@pytest.fixture
def make_user(api_client) -> Callable[..., tuple[str, str]]:
    """Return a factory creating a user directly in the store.

    make_user(role="readonly") -> (user_id, token). Emails are unique per call.
    """
    client, _token, _uid = api_client
    store: UserStore = client.app.state.user_store

    def factory(role: str = "user", password: str = "userpass123", is_active: bool = True) -> tuple[str, str]:
        email = f"{role}-{uuid.uuid4().hex[:8]}@example.com"
        user_id = store.create_user(
            User(
                email=email,
                first_name=role.capitalize(),
                last_name="Tester",
                role=role,
                hashed_password=hash_password(password),
                is_active=is_active,
            )
        )
        return user_id, create_access_token(user_id=user_id, email=email, role=role, expire_seconds=3600)

    return factory


# ---------------------------------------------------------------------------
# Client-side fixtures -- a requests transport that never touches the network
# ---------------------------------------------------------------------------


class StubAdapter(BaseAdapter):
    """requests transport adapter that records requests and replays canned responses.

    queue() responses in order; once the queue is down to one entry that
    entry is replayed for every further request.
    """

    def __init__(self) -> None:
        super().__init__()
        self.sent: list[requests.PreparedRequest] = []
        self._responses: list[tuple[int, object]] = [(200, {})]

    def queue(self, *responses: tuple[int, object]) -> None:
        self._responses = list(responses)

    def send(self, request, **kwargs):
        self.sent.append(request)
        status, body = self._responses[0] if len(self._responses) == 1 else self._responses.pop(0)
        response = requests.Response()
        response.status_code = status
        response._content = b"" if body is None else json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self) -> None:
        pass


@pytest.fixture
def stub_http() -> tuple[requests.Session, StubAdapter]:
    """A requests.Session whose http:// and https:// traffic goes to a StubAdapter."""
    adapter = StubAdapter()
    http = requests.Session()
    http.trust_env = False
    http.mount("http://", adapter)
    http.mount("https://", adapter)
    return http, adapter


@pytest.fixture
def navigations() -> list[str]:
    """Collects every path passed to the navigate callable."""
    return []
