"""
client/session.py -- Client-side session state and the 401 boundary.

Two collaborators are injected rather than reached for globally:

  SessionStore -- a small key-value store holding the bearer token under
      the "token" key (plus whatever else the client caches, e.g. "user").
      MemorySessionStore backs tests and embedded use; FileSessionStore
      persists between CLI invocations.

  navigate -- a callable taking a path. On a 401 the session manager calls
      navigate("/login") after wiping the store. The CLI prints a prompt to
      sign in again; tests record the call.

SessionManager plugs into requests as an AuthBase, so attach() runs for
every request prepared by the owning requests.Session. on_response() is
called by the client after every response.

Policy: any 401 ends the session. There is no refresh-token retry and no
distinction between an expired and an invalid token.

Known gap: in-flight requests are not cancelled when the session resets.
A response that arrives after the reset is returned to its caller as-is.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

import requests
from requests.auth import AuthBase

logger = logging.getLogger("budgettracker.client")

TOKEN_KEY = "token"
LOGIN_PATH = "/login"

Navigator = Callable[[str], None]


# ---------------------------------------------------------------------------
# Session stores
# ---------------------------------------------------------------------------


class SessionStore(Protocol):
    """Key-value slot storage for client session state. Values are strings."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemorySessionStore:
    """Process-local store. Thread-safe; every operation takes the lock once."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def snapshot(self) -> dict[str, str]:
        """Return a copy of everything currently stored."""
        with self._lock:
            return dict(self._data)


class FileSessionStore:
    """JSON-file store that survives process restarts.

    The whole file is rewritten on every change (write to a temp file in the
    same directory, then os.replace), so readers never see a half-written
    file. The file is created with 0600 permissions since it holds a bearer
    token. clear() removes the file; clearing an already-empty store is a no-op.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Session file %s is corrupt -- ignoring it", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".session-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)

    def clear(self) -> None:
        with self._lock:
            self.path.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Session manager
# ---------------------------------------------------------------------------


class SessionManager(AuthBase):
    """Attaches the stored bearer token and enforces the 401 session reset.

    Usage:
        manager = SessionManager(MemorySessionStore(), navigate=print)
        http = requests.Session()
        http.auth = manager                 # attach() now runs on every request
        resp = http.get(url)
        manager.on_response(resp)           # resets on 401, raises on any error
    """

    def __init__(self, store: SessionStore, navigate: Navigator) -> None:
        self.store = store
        self._navigate = navigate

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        return self.attach(request)

    def attach(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        """Set "Authorization: Bearer <token>" when a token is stored.

        Without a stored token the request is returned untouched and goes out
        unauthenticated -- the server decides whether that is acceptable.
        """
        token = self.store.get(TOKEN_KEY)
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        return request

    def on_response(self, response: requests.Response) -> requests.Response:
        """Pass successful responses through; reset the session on 401.

        Every error response (401 included) is raised to the caller as
        requests.HTTPError after any reset has happened.
        """
        if response.ok:
            return response
        if response.status_code == 401:
            method = response.request.method if response.request is not None else "?"
            logger.warning("%s %s returned 401 -- ending session", method, response.url)
            self.reset_session()
        response.raise_for_status()
        return response

    def reset_session(self) -> None:
        """Wipe every key in the store and navigate to the login page.

        Safe to call repeatedly, e.g. when several concurrent requests all
        come back 401.
        """
        self.store.clear()
        self._navigate(LOGIN_PATH)
