"""Signed access tokens for API requests.

Tokens are HS256 JWTs carrying the user id as ``sub`` plus the email and
display name, signed with the configured secret.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from imagineer.core.config import AuthSettings, get_settings
from imagineer.core.exceptions import AuthenticationError
from imagineer.core.logging import get_logger
from imagineer.storage.users import UserRecord

logger = get_logger(__name__)

ALGORITHM = "HS256"


@dataclass
class TokenClaims:
    """Verified contents of an access token."""

    user_id: int
    email: str
    name: str
    expires_at: datetime


def create_access_token(user: UserRecord, settings: AuthSettings | None = None) -> str:
    """Issue an access token for a user.

    Args:
        user: The signed-in user.
        settings: Auth settings, defaults to the application settings.

    Returns:
        The encoded JWT.
    """
    settings = settings or get_settings().auth
    now = datetime.now(tz=timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=settings.jwt_expiry_hours)).timestamp()),
    }
    token = jwt.encode(payload, settings.jwt_secret.get_secret_value(), algorithm=ALGORITHM)
    logger.debug("Access token issued", user_id=user.id, expiry_hours=settings.jwt_expiry_hours)
    return token


def decode_access_token(token: str, settings: AuthSettings | None = None) -> TokenClaims:
    """Verify a token's signature and expiry.

    Raises:
        AuthenticationError: If the token is malformed, expired, badly
            signed or lacks a numeric subject.
    """
    settings = settings or get_settings().auth
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret.get_secret_value(),
            algorithms=[ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token has expired") from exc
    except jwt.PyJWTError as exc:
        raise AuthenticationError("Invalid token", details={"reason": str(exc)}) from exc

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("Invalid token subject") from exc

    return TokenClaims(
        user_id=user_id,
        email=payload.get("email", ""),
        name=payload.get("name", ""),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


__all__ = [
    "ALGORITHM",
    "TokenClaims",
    "create_access_token",
    "decode_access_token",
]
