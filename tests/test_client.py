"""
tests/test_client.py -- Unit tests for client/api.py (BudgetClient).

Covers:
  - URL building against base_url
  - login() stores token + user; logout() clears without navigating
  - token attached to subsequent calls; 401 mid-session resets and raises
  - endpoint helpers hit the expected paths
  - 204 / empty bodies decode to None

No network: requests go through the StubAdapter from conftest.py.
"""

from __future__ import annotations

import json

import pytest
import requests

from client.api import USER_KEY, BudgetClient
from client.session import TOKEN_KEY, MemorySessionStore

BASE_URL = "http://api.test/api"

USER = {
    "id": "4b0b8c1e-0000-4000-8000-000000000001",
    "email": "admin@example.com",
    "first_name": "Test",
    "last_name": "Admin",
    "role": "admin",
    "is_active": True,
}


@pytest.fixture
def client_parts(stub_http, navigations):
    http, adapter = stub_http
    store = MemorySessionStore()
    client = BudgetClient(store, navigations.append, base_url=BASE_URL + "/", http=http)
    return client, store, adapter


class TestRequest:
    def test_builds_url_from_base(self, client_parts) -> None:
        client, _store, adapter = client_parts
        client.get("/budget/dashboard-summary")
        client.get("commitments")
        assert adapter.sent[0].url == f"{BASE_URL}/budget/dashboard-summary"
        assert adapter.sent[1].url == f"{BASE_URL}/commitments"

    def test_returns_decoded_json(self, client_parts) -> None:
        client, _store, adapter = client_parts
        adapter.queue((200, [{"id": "1"}]))
        assert client.get("commitments") == [{"id": "1"}]

    def test_empty_body_returns_none(self, client_parts) -> None:
        client, _store, adapter = client_parts
        adapter.queue((204, None))
        assert client.delete("commitments/4b0b8c1e-0000-4000-8000-000000000001") is None

    def test_redirect_limit_lowered(self, client_parts) -> None:
        client, _store, _adapter = client_parts
        assert client._http.max_redirects == 3


class TestLoginLogout:
    def test_login_stores_token_and_user(self, client_parts, navigations) -> None:
        client, store, adapter = client_parts
        adapter.queue((200, {"token": "abc123", "token_type": "bearer", "expires_in": 86400, "user": USER}))
        user = client.login("admin@example.com", "testpass123")
        assert user == USER
        assert store.get(TOKEN_KEY) == "abc123"
        assert json.loads(store.get(USER_KEY)) == USER
        assert client.is_authenticated
        assert client.cached_user() == USER
        assert json.loads(adapter.sent[0].body) == {"email": "admin@example.com", "password": "testpass123"}
        assert "Authorization" not in adapter.sent[0].headers
        assert navigations == []

    def test_token_sent_after_login(self, client_parts) -> None:
        client, _store, adapter = client_parts
        adapter.queue(
            (200, {"token": "abc123", "token_type": "bearer", "expires_in": 86400, "user": USER}),
            (200, USER),
        )
        client.login("admin@example.com", "testpass123")
        assert client.profile() == USER
        assert adapter.sent[1].url == f"{BASE_URL}/auth/profile"
        assert adapter.sent[1].headers["Authorization"] == "Bearer abc123"

    def test_bad_credentials_raise_and_reset(self, client_parts, navigations) -> None:
        """A rejected login is a 401 like any other: the store is wiped and /login is visited."""
        client, store, adapter = client_parts
        store.set("stale", "value")
        adapter.queue((401, {"error": {"code": "bad_credentials", "message": "Invalid email or password."}}))
        with pytest.raises(requests.HTTPError):
            client.login("admin@example.com", "wrong")
        assert store.get("stale") is None
        assert navigations == ["/login"]

    def test_logout_clears_without_navigating(self, client_parts, navigations) -> None:
        client, store, _adapter = client_parts
        store.set(TOKEN_KEY, "abc123")
        store.set(USER_KEY, json.dumps(USER))
        client.logout()
        assert not client.is_authenticated
        assert client.cached_user() is None
        assert navigations == []


class TestSessionExpiry:
    def test_401_mid_session_resets(self, client_parts, navigations) -> None:
        client, store, adapter = client_parts
        store.set(TOKEN_KEY, "expired")
        store.set(USER_KEY, json.dumps(USER))
        adapter.queue((401, {"error": {"code": "unauthorized", "message": "Invalid or expired token."}}))
        with pytest.raises(requests.HTTPError) as exc_info:
            client.dashboard_summary()
        assert exc_info.value.response.status_code == 401
        assert store.get(TOKEN_KEY) is None
        assert store.get(USER_KEY) is None
        assert navigations == ["/login"]

    def test_next_request_after_reset_is_unauthenticated(self, client_parts) -> None:
        client, store, adapter = client_parts
        store.set(TOKEN_KEY, "expired")
        adapter.queue((401, None), (200, []))
        with pytest.raises(requests.HTTPError):
            client.list_commitments()
        client.list_commitments()
        assert adapter.sent[0].headers["Authorization"] == "Bearer expired"
        assert "Authorization" not in adapter.sent[1].headers

    def test_403_keeps_session(self, client_parts, navigations) -> None:
        client, store, adapter = client_parts
        store.set(TOKEN_KEY, "abc123")
        adapter.queue((403, {"error": {"code": "forbidden", "message": "Access denied."}}))
        with pytest.raises(requests.HTTPError):
            client.delete("commitments/4b0b8c1e-0000-4000-8000-000000000001")
        assert store.get(TOKEN_KEY) == "abc123"
        assert navigations == []


class TestTransportFailures:
    """Failures below HTTP reach the caller untouched; the session survives."""

    @pytest.mark.parametrize(
        "failure",
        [requests.ConnectionError("connection refused"), requests.Timeout("read timed out")],
    )
    def test_reraised_without_reset(self, client_parts, navigations, monkeypatch, failure) -> None:
        client, store, adapter = client_parts
        store.set(TOKEN_KEY, "abc123")
        store.set(USER_KEY, json.dumps(USER))

        def fail(request, **kwargs):
            adapter.sent.append(request)
            raise failure

        monkeypatch.setattr(adapter, "send", fail)
        with pytest.raises(type(failure)) as exc_info:
            client.get("commitments")
        assert exc_info.value is failure
        assert adapter.sent[0].headers["Authorization"] == "Bearer abc123"
        assert store.get(TOKEN_KEY) == "abc123"
        assert store.get(USER_KEY) is not None
        assert navigations == []


class TestEndpoints:
    @pytest.mark.parametrize(
        ("call", "path"),
        [
            (lambda c: c.dashboard_summary(), "budget/dashboard-summary"),
            (lambda c: c.list_budget_authorities(), "budget/budget-authorities"),
            (lambda c: c.list_commitments(), "commitments"),
            (lambda c: c.list_commitments(commitment_type="capital_fund"), "commitments?commitment_type=capital_fund"),
            (lambda c: c.list_commitments(status="obligated"), "commitments?status=obligated"),
            (
                lambda c: c.list_commitments(commitment_type="capital_fund", status="obligated"),
                "commitments?commitment_type=capital_fund&status=obligated",
            ),
            (lambda c: c.list_expenditures(), "expenditures"),
            (lambda c: c.list_expenditures(expenditure_type="hcv_admin"), "expenditures/type/hcv_admin"),
        ],
    )
    def test_paths(self, client_parts, call, path: str) -> None:
        client, _store, adapter = client_parts
        call(client)
        assert adapter.sent[0].method == "GET"
        assert adapter.sent[0].url == f"{BASE_URL}/{path}"
