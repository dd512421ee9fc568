"""
tests/test_auth_routes.py -- Integration tests for /api/auth.

Covers:
  - POST /register: 201, default "user" role, duplicate email, weak passwords
  - POST /login: 200 with token + user, 401 bad_credentials, inactive user,
    Cache-Control: no-store, last_login stamped
  - GET /profile: 200 with token, 401 without / with a bad or expired token

Fixtures used (from conftest.py):
  - api_client: (client, token, uid) -- admin is admin@example.com / testpass123
  - make_user: creates users of other roles directly in the store
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from auth.tokens import create_access_token

REGISTER_BODY = {
    "first_name": "Rita",
    "last_name": "Register",
    "email": "rita@example.com",
    "password": "goodpass1",
}


class TestRegister:
    def test_register_creates_user_role(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/auth/register", json=REGISTER_BODY)
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["email"] == "rita@example.com"
        assert data["role"] == "user"
        assert data["is_active"] is True
        assert "hashed_password" not in data
        assert "password" not in data

    def test_register_ignores_role_field(self, api_client: tuple[TestClient, str, str]) -> None:
        """Self-registration can never grant admin."""
        client, _token, _uid = api_client
        body = {**REGISTER_BODY, "email": "sneaky@example.com", "role": "admin"}
        resp = client.post("/api/auth/register", json=body)
        assert resp.status_code == 201, resp.text
        assert resp.json()["role"] == "user"

    def test_register_duplicate_email(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        body = {**REGISTER_BODY, "email": "dupe@example.com"}
        assert client.post("/api/auth/register", json=body).status_code == 201
        resp = client.post("/api/auth/register", json={**body, "email": "DUPE@example.com"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "conflict"

    def test_register_rejects_weak_password(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        for password in ("short1", "lettersonly", "12345678"):
            body = {**REGISTER_BODY, "email": "weak@example.com", "password": password}
            resp = client.post("/api/auth/register", json=body)
            assert resp.status_code == 422, f"{password!r} should be rejected"
            assert resp.json()["error"]["code"] == "validation_error"

    def test_register_rejects_bad_email(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/auth/register", json={**REGISTER_BODY, "email": "not-an-email"})
        assert resp.status_code == 422


class TestLogin:
    def test_login_valid_credentials(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, uid = api_client
        resp = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "testpass123"})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["token"]
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 86400
        assert data["user"]["id"] == uid
        assert data["user"]["role"] == "admin"
        assert data["user"]["last_login"] is not None
        assert resp.headers["Cache-Control"] == "no-store"

    def test_login_token_works_for_profile(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        token = client.post(
            "/api/auth/login", json={"email": "Admin@Example.com", "password": "testpass123"}
        ).json()["token"]
        resp = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["email"] == "admin@example.com"

    def test_login_wrong_password(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "wrongpass1"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "bad_credentials"
        assert resp.headers["Cache-Control"] == "no-store"

    def test_login_unknown_email_same_error(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "testpass123"})
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Invalid email or password."

    def test_login_inactive_user(self, api_client: tuple[TestClient, str, str], make_user) -> None:
        client, _token, _uid = api_client
        user_id, _ = make_user(role="user", password="userpass123", is_active=False)
        email = client.app.state.user_store.get_by_id(user_id).email
        resp = client.post("/api/auth/login", json={"email": email, "password": "userpass123"})
        assert resp.status_code == 401


class TestProfile:
    def test_profile_with_token(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, uid = api_client
        resp = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["id"] == uid

    def test_profile_without_token(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/auth/profile")
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"
        error = resp.json()["error"]
        assert error["code"] == "unauthorized"
        assert error["message"] == "Authentication required. Please log in."

    def test_profile_with_garbage_token(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Invalid or expired token."

    def test_profile_with_expired_token(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, uid = api_client
        expired = create_access_token(uid, "admin@example.com", "admin", expire_seconds=-60)
        resp = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {expired}"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_profile_for_deleted_user(self, api_client: tuple[TestClient, str, str], make_user) -> None:
        client, _token, _uid = api_client
        user_id, token = make_user(role="user")
        client.app.state.user_store.delete_user(user_id)
        resp = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
