"""
client/api.py -- requests-based client for the Budget Tracker REST API.

Every call goes through one requests.Session whose auth hook is the
SessionManager, so the stored token rides along automatically and any 401
ends the session. Non-2xx responses raise requests.HTTPError; network
failures raise the underlying requests.RequestException. Nothing is retried.

Usage:
    client = BudgetClient(FileSessionStore("~/.budget-tracker/session.json"), navigate=print)
    client.login("admin@example.com", "secret123")
    summary = client.dashboard_summary()
"""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from client.session import TOKEN_KEY, Navigator, SessionManager, SessionStore
from core.config import get_client_settings

logger = logging.getLogger("budgettracker.client")

USER_KEY = "user"


class BudgetClient:
    def __init__(
        self,
        store: SessionStore,
        navigate: Navigator,
        base_url: str | None = None,
        http: requests.Session | None = None,
        timeout: float = 10,
    ) -> None:
        self.base_url = (base_url or get_client_settings().api_url).rstrip("/")
        self.timeout = timeout
        self.session_manager = SessionManager(store, navigate)
        self._http = http or requests.Session()
        # max_redirects=3 instead of the requests default of 30; the API never
        # chains redirects and the token must not wander.
        self._http.max_redirects = 3
        self._http.auth = self.session_manager

    @property
    def store(self) -> SessionStore:
        return self.session_manager.store

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request relative to base_url and return the decoded JSON body.

        Returns None for empty bodies (e.g. 204 No Content).
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        kwargs.setdefault("timeout", self.timeout)
        response = self._http.request(method, url, **kwargs)
        self.session_manager.on_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def get(self, path: str, **kwargs) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> Any:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs) -> Any:
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        return self.request("DELETE", path, **kwargs)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> dict:
        """Exchange credentials for a token and remember it.

        Bad credentials come back as 401, which -- like any 401 -- clears the
        store and navigates to the login page before HTTPError is raised.
        """
        body = self.post("auth/login", json={"email": email, "password": password})
        self.store.set(TOKEN_KEY, body["token"])
        self.store.set(USER_KEY, json.dumps(body["user"]))
        logger.info("Logged in as %s", body["user"]["email"])
        return body["user"]

    def logout(self) -> None:
        """Forget the token and everything else cached for this session."""
        self.store.clear()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.store.get(TOKEN_KEY))

    def cached_user(self) -> dict | None:
        """Return the user recorded at login without a round trip, or None."""
        raw = self.store.get(USER_KEY)
        return json.loads(raw) if raw else None

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def profile(self) -> dict:
        return self.get("auth/profile")

    def dashboard_summary(self) -> dict:
        return self.get("budget/dashboard-summary")

    def list_budget_authorities(self) -> list[dict]:
        return self.get("budget/budget-authorities")

    def list_commitments(self, commitment_type: str | None = None, status: str | None = None) -> list[dict]:
        """List commitments, optionally filtered by type, status or both."""
        params = {}
        if commitment_type is not None:
            params["commitment_type"] = commitment_type
        if status is not None:
            params["status"] = status
        return self.get("commitments", params=params)

    def list_expenditures(self, expenditure_type: str | None = None) -> list[dict]:
        if expenditure_type is not None:
            return self.get(f"expenditures/type/{expenditure_type}")
        return self.get("expenditures")
