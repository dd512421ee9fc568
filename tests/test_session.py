"""
tests/test_session.py -- Unit tests for client/session.py.

Covers:
  - attach(): Bearer header with the exact stored token; no header without one
  - on_response(): 401 wipes the store and navigates to /login, then raises
  - on_response(): any other status leaves the store alone and never navigates
  - reset_session(): idempotent (two back-to-back 401s)
  - MemorySessionStore / FileSessionStore get/set/remove/clear semantics

No network: requests go through the StubAdapter from conftest.py.
"""

from __future__ import annotations

import json
import stat

import pytest
import requests

from client.session import LOGIN_PATH, TOKEN_KEY, FileSessionStore, MemorySessionStore, SessionManager

BUDGET_URL = "http://api.test/budget"


def _manager(store, navigations: list[str]) -> SessionManager:
    return SessionManager(store, navigations.append)


class TestAttach:
    """The stored token rides on every outbound request, and nothing else does."""

    def test_stored_token_sent_as_bearer(self, stub_http, navigations) -> None:
        """Token "abc123" stored -> request to /budget carries Authorization: Bearer abc123."""
        http, adapter = stub_http
        http.auth = _manager(MemorySessionStore({TOKEN_KEY: "abc123"}), navigations)
        http.get(BUDGET_URL)
        assert adapter.sent[0].headers["Authorization"] == "Bearer abc123"

    def test_no_token_no_header(self, stub_http, navigations) -> None:
        """No token stored -> request to /budget has no Authorization header at all."""
        http, adapter = stub_http
        http.auth = _manager(MemorySessionStore(), navigations)
        http.get(BUDGET_URL)
        assert "Authorization" not in adapter.sent[0].headers

    def test_empty_token_treated_as_absent(self, stub_http, navigations) -> None:
        http, adapter = stub_http
        http.auth = _manager(MemorySessionStore({TOKEN_KEY: ""}), navigations)
        http.get(BUDGET_URL)
        assert "Authorization" not in adapter.sent[0].headers

    def test_token_read_fresh_for_each_request(self, stub_http, navigations) -> None:
        """A token stored after the manager was built is picked up on the next request."""
        http, adapter = stub_http
        store = MemorySessionStore()
        http.auth = _manager(store, navigations)
        http.get(BUDGET_URL)
        store.set(TOKEN_KEY, "later-token")
        http.post(BUDGET_URL, json={})
        assert "Authorization" not in adapter.sent[0].headers
        assert adapter.sent[1].headers["Authorization"] == "Bearer later-token"

    def test_attach_works_for_every_method(self, stub_http, navigations) -> None:
        http, adapter = stub_http
        http.auth = _manager(MemorySessionStore({TOKEN_KEY: "t0k"}), navigations)
        for method in ("GET", "POST", "PUT", "DELETE"):
            http.request(method, BUDGET_URL)
        assert [r.headers["Authorization"] for r in adapter.sent] == ["Bearer t0k"] * 4


class TestOnResponse:
    """401 ends the session; every other status leaves it untouched."""

    def test_401_clears_store_and_navigates_to_login(self, stub_http, navigations) -> None:
        http, adapter = stub_http
        store = MemorySessionStore({TOKEN_KEY: "abc123", "user": "{}"})
        manager = _manager(store, navigations)
        http.auth = manager
        adapter.queue((401, {"error": {"code": "unauthorized", "message": "Invalid or expired token."}}))
        resp = http.get(BUDGET_URL)
        with pytest.raises(requests.HTTPError):
            manager.on_response(resp)
        assert store.snapshot() == {}
        assert navigations == [LOGIN_PATH]

    def test_401_on_request_without_token_still_navigates(self, stub_http, navigations) -> None:
        http, adapter = stub_http
        store = MemorySessionStore()
        manager = _manager(store, navigations)
        adapter.queue((401, None))
        with pytest.raises(requests.HTTPError):
            manager.on_response(http.get(BUDGET_URL))
        assert navigations == ["/login"]

    @pytest.mark.parametrize("status", [200, 201, 204])
    def test_success_passes_through(self, stub_http, navigations, status: int) -> None:
        http, adapter = stub_http
        store = MemorySessionStore({TOKEN_KEY: "abc123"})
        manager = _manager(store, navigations)
        adapter.queue((status, None))
        resp = http.get(BUDGET_URL)
        assert manager.on_response(resp) is resp
        assert store.snapshot() == {TOKEN_KEY: "abc123"}
        assert navigations == []

    @pytest.mark.parametrize("status", [400, 403, 404, 409, 422, 429, 500, 503])
    def test_other_errors_raise_without_reset(self, stub_http, navigations, status: int) -> None:
        """403 in particular must not log the user out -- only 401 does."""
        http, adapter = stub_http
        store = MemorySessionStore({TOKEN_KEY: "abc123", "user": '{"email": "a@b.co"}'})
        manager = _manager(store, navigations)
        adapter.queue((status, {"error": {"code": "x", "message": "y"}}))
        with pytest.raises(requests.HTTPError) as exc_info:
            manager.on_response(http.get(BUDGET_URL))
        assert exc_info.value.response.status_code == status
        assert store.snapshot() == {TOKEN_KEY: "abc123", "user": '{"email": "a@b.co"}'}
        assert navigations == []


class TestResetSession:
    def test_reset_twice_is_safe(self, navigations) -> None:
        """Two concurrent 401s reset twice; the second clear of an empty store must not raise."""
        store = MemorySessionStore({TOKEN_KEY: "abc123"})
        manager = _manager(store, navigations)
        manager.reset_session()
        manager.reset_session()
        assert store.snapshot() == {}
        assert navigations == [LOGIN_PATH, LOGIN_PATH]

    def test_reset_with_file_store_twice(self, tmp_path, navigations) -> None:
        store = FileSessionStore(tmp_path / "session.json")
        store.set(TOKEN_KEY, "abc123")
        manager = _manager(store, navigations)
        manager.reset_session()
        manager.reset_session()
        assert store.get(TOKEN_KEY) is None
        assert not (tmp_path / "session.json").exists()


class TestMemorySessionStore:
    def test_get_set_remove(self) -> None:
        store = MemorySessionStore()
        assert store.get(TOKEN_KEY) is None
        store.set(TOKEN_KEY, "abc")
        assert store.get(TOKEN_KEY) == "abc"
        store.remove(TOKEN_KEY)
        assert store.get(TOKEN_KEY) is None
        store.remove(TOKEN_KEY)  # removing a missing key is a no-op

    def test_initial_dict_is_copied(self) -> None:
        initial = {TOKEN_KEY: "abc"}
        store = MemorySessionStore(initial)
        store.clear()
        assert initial == {TOKEN_KEY: "abc"}


class TestFileSessionStore:
    def test_persists_across_instances(self, tmp_path) -> None:
        path = tmp_path / "nested" / "session.json"
        FileSessionStore(path).set(TOKEN_KEY, "abc123")
        assert FileSessionStore(path).get(TOKEN_KEY) == "abc123"
        assert json.loads(path.read_text()) == {TOKEN_KEY: "abc123"}

    def test_file_is_private(self, tmp_path) -> None:
        path = tmp_path / "session.json"
        FileSessionStore(path).set(TOKEN_KEY, "abc123")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_remove_keeps_other_keys(self, tmp_path) -> None:
        store = FileSessionStore(tmp_path / "session.json")
        store.set(TOKEN_KEY, "abc123")
        store.set("user", "{}")
        store.remove(TOKEN_KEY)
        assert store.get(TOKEN_KEY) is None
        assert store.get("user") == "{}"

    def test_corrupt_file_reads_as_empty(self, tmp_path) -> None:
        path = tmp_path / "session.json"
        path.write_text("{not json")
        store = FileSessionStore(path)
        assert store.get(TOKEN_KEY) is None
        store.set(TOKEN_KEY, "fresh")
        assert store.get(TOKEN_KEY) == "fresh"

    def test_clear_missing_file_is_noop(self, tmp_path) -> None:
        FileSessionStore(tmp_path / "absent.json").clear()
