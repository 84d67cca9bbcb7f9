"""Integration tests for Google sign-in and the current user."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING
from urllib.parse import parse_qs, urlsplit

from imagineer.auth.tokens import decode_access_token
from imagineer.core.constants import OAUTH_STATE_COOKIE
from imagineer.storage.users import UserRepository

if TYPE_CHECKING:
    from fastapi.testclient import TestClient

    from conftest import FakeOAuth
    from imagineer.core.config import Settings
    from imagineer.storage.database import Database
    from imagineer.storage.users import UserRecord


def _callback_params(location: str) -> dict[str, str]:
    parts = urlsplit(location)
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "http://frontend.test/auth/callback"
    return {key: values[0] for key, values in parse_qs(parts.query).items()}


class TestGoogleLogin:
    """Tests for starting sign-in."""

    def test_redirects_with_state_cookie(self, anonymous_client: TestClient) -> None:
        """Test the redirect carries the same state as the cookie."""
        response = anonymous_client.get("/api/auth/google", follow_redirects=False)

        assert response.status_code == 307
        state = response.cookies[OAUTH_STATE_COOKIE]
        assert response.headers["location"] == f"https://accounts.example.com/auth?state={state}"
        assert "httponly" in response.headers["set-cookie"].lower()
        assert f"{OAUTH_STATE_COOKIE}={state};" in response.headers["set-cookie"]


class TestGoogleCallback:
    """Tests for finishing sign-in."""

    def test_signs_in_new_user(
        self,
        anonymous_client: TestClient,
        oauth: FakeOAuth,
        db: Database,
        settings: Settings,
    ) -> None:
        """Test a valid callback creates the user and hands over a token."""
        start = anonymous_client.get("/api/auth/google", follow_redirects=False)
        state = start.cookies[OAUTH_STATE_COOKIE]

        response = anonymous_client.get(
            "/api/auth/google/callback",
            params={"code": "abc", "state": state},
            follow_redirects=False,
        )

        assert response.status_code == 307
        params = _callback_params(response.headers["location"])
        created = UserRepository(db).get_by_google_id("google-new")
        assert created is not None
        assert decode_access_token(params["token"], settings.auth).user_id == created.id
        assert json.loads(params["user"])["email"] == "new@example.com"
        assert json.loads(params["user"])["avatarUrl"] == "https://example.com/avatar.png"
        assert oauth.exchanged == ["abc"]

    def test_state_mismatch(self, anonymous_client: TestClient, oauth: FakeOAuth) -> None:
        """Test a forged state is refused without exchanging the code."""
        anonymous_client.get("/api/auth/google", follow_redirects=False)

        response = anonymous_client.get(
            "/api/auth/google/callback",
            params={"code": "abc", "state": "forged"},
            follow_redirects=False,
        )

        assert _callback_params(response.headers["location"]) == {"error": "Invalid OAuth state"}
        assert oauth.exchanged == []

    def test_missing_state_cookie(self, anonymous_client: TestClient) -> None:
        """Test a callback without the cookie is refused."""
        response = anonymous_client.get(
            "/api/auth/google/callback",
            params={"code": "abc", "state": "anything"},
            follow_redirects=False,
        )

        assert _callback_params(response.headers["location"]) == {"error": "Invalid OAuth state"}

    def test_provider_error(self, anonymous_client: TestClient) -> None:
        """Test an error from Google is passed to the frontend."""
        response = anonymous_client.get(
            "/api/auth/google/callback",
            params={"error": "access_denied"},
            follow_redirects=False,
        )

        assert _callback_params(response.headers["location"]) == {
            "error": "Google sign-in failed: access_denied",
        }

    def test_missing_code(self, anonymous_client: TestClient) -> None:
        """Test a callback without a code is refused."""
        start = anonymous_client.get("/api/auth/google", follow_redirects=False)

        response = anonymous_client.get(
            "/api/auth/google/callback",
            params={"state": start.cookies[OAUTH_STATE_COOKIE]},
            follow_redirects=False,
        )

        assert _callback_params(response.headers["location"]) == {"error": "Missing authorization code"}


class TestCurrentUser:
    """Tests for GET /api/auth/me."""

    def test_returns_user(self, client: TestClient, user: UserRecord) -> None:
        """Test the token's user is returned in camelCase."""
        response = client.get("/api/auth/me")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == user.id
        assert body["googleId"] == "google-gm"
        assert body["name"] == "Game Master"

    def test_requires_token(self, anonymous_client: TestClient) -> None:
        """Test anonymous requests are rejected."""
        response = anonymous_client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["code"] == "unauthorized"

    def test_rejects_bad_token(self, anonymous_client: TestClient) -> None:
        """Test a garbage token is rejected."""
        response = anonymous_client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_deleted_user(self, client: TestClient, db: Database, user: UserRecord) -> None:
        """Test a token for a removed user is rejected."""
        with db.connection() as conn:
            conn.execute("DELETE FROM users WHERE id = ?", (user.id,))

        assert client.get("/api/auth/me").status_code == 401
