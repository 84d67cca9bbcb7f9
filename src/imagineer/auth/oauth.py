"""Google OAuth 2.0 sign-in.

The flow is the standard authorization-code grant: redirect the browser
to Google with a random state, then exchange the returned code for an
access token and read the user's profile.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import requests

from imagineer.core.config import AuthSettings, get_settings
from imagineer.core.exceptions import AuthenticationError
from imagineer.core.logging import get_logger

logger = get_logger(__name__)

AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
USERINFO_ENDPOINT = "https://www.googleapis.com/oauth2/v2/userinfo"
SCOPES = "openid email profile"
REQUEST_TIMEOUT = 15


def generate_state() -> str:
    """32 random bytes as unpadded URL-safe base64, used as the OAuth state.

    Without padding the value is a plain cookie token, so it is stored
    unquoted and reads back exactly as sent in the redirect.
    """
    return secrets.token_urlsafe(32)


@dataclass
class GoogleUserInfo:
    """Profile returned by the userinfo endpoint."""

    google_id: str
    email: str
    name: str
    avatar_url: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> GoogleUserInfo:
        google_id = payload.get("id") or payload.get("sub")
        email = payload.get("email")
        if not google_id or not email:
            raise AuthenticationError("Google profile is missing id or email")
        return cls(
            google_id=str(google_id),
            email=email,
            name=payload.get("name") or email,
            avatar_url=payload.get("picture"),
        )


class GoogleOAuthClient:
    """Talks to Google's OAuth endpoints."""

    def __init__(self, settings: AuthSettings | None = None, *, session: requests.Session | None = None) -> None:
        self.settings = settings or get_settings().auth
        self._session = session or requests.Session()

    def authorization_url(self, state: str) -> str:
        """Consent screen URL for the given state."""
        query = urlencode({
            "client_id": self.settings.google_client_id,
            "redirect_uri": self.settings.google_redirect_url,
            "response_type": "code",
            "scope": SCOPES,
            "state": state,
            "access_type": "offline",
        })
        return f"{AUTHORIZATION_ENDPOINT}?{query}"

    def exchange_code(self, code: str) -> str:
        """Exchange an authorization code for an access token.

        Raises:
            AuthenticationError: If Google rejects the code or is unreachable.
        """
        try:
            response = self._session.post(
                TOKEN_ENDPOINT,
                timeout=REQUEST_TIMEOUT,
                data={
                    "code": code,
                    "client_id": self.settings.google_client_id,
                    "client_secret": self.settings.google_client_secret.get_secret_value(),
                    "redirect_uri": self.settings.google_redirect_url,
                    "grant_type": "authorization_code",
                },
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("OAuth code exchange failed", error=str(exc))
            raise AuthenticationError("Failed to exchange authorization code") from exc

        access_token = response.json().get("access_token")
        if not access_token:
            raise AuthenticationError("Token response did not include an access token")
        return access_token

    def fetch_user_info(self, access_token: str) -> GoogleUserInfo:
        """Read the signed-in user's profile.

        Raises:
            AuthenticationError: If the request fails or the profile is incomplete.
        """
        try:
            response = self._session.get(
                USERINFO_ENDPOINT,
                timeout=REQUEST_TIMEOUT,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Fetching Google user info failed", error=str(exc))
            raise AuthenticationError("Failed to fetch user info") from exc
        return GoogleUserInfo.from_payload(response.json())


__all__ = [
    "AUTHORIZATION_ENDPOINT",
    "TOKEN_ENDPOINT",
    "USERINFO_ENDPOINT",
    "SCOPES",
    "generate_state",
    "GoogleUserInfo",
    "GoogleOAuthClient",
]
