"""User accounts and per-user LLM settings."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime

from imagineer.core.exceptions import NotFoundError
from imagineer.core.logging import get_logger
from imagineer.storage.base import Repository, parse_timestamp, to_timestamp

logger = get_logger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class UserRecord:
    """A user authenticated through Google OAuth.

    Attributes:
        id: Primary key.
        google_id: Subject identifier issued by Google.
        email: Account email.
        name: Display name.
        avatar_url: Profile picture URL.
        created_at: When the account was first seen.
        updated_at: When the profile was last refreshed.
    """

    id: int
    google_id: str
    email: str
    name: str
    avatar_url: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> UserRecord:
        """Create from database row."""
        return cls(
            id=row["id"],
            google_id=row["google_id"],
            email=row["email"],
            name=row["name"],
            avatar_url=row["avatar_url"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )


@dataclass
class UserSettingsRecord:
    """Stored LLM preferences for a user.

    The API key is kept exactly as stored, which is normally the
    ``enc:``-prefixed ciphertext produced by ``ApiKeyCipher``.
    """

    user_id: int
    content_gen_service: str | None
    content_gen_api_key: str | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> UserSettingsRecord:
        """Create from database row."""
        return cls(
            user_id=row["user_id"],
            content_gen_service=row["content_gen_service"],
            content_gen_api_key=row["content_gen_api_key"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )

    @classmethod
    def empty(cls, user_id: int) -> UserSettingsRecord:
        """Settings for a user who has never saved any."""
        return cls(
            user_id=user_id,
            content_gen_service=None,
            content_gen_api_key=None,
            created_at=None,
            updated_at=None,
        )


# =============================================================================
# Repository
# =============================================================================


_UNSET = object()


class UserRepository(Repository):
    """Reads and writes users and their settings."""

    def get(self, user_id: int) -> UserRecord | None:
        """Get a user by id, or None."""
        row = self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
        return UserRecord.from_row(row) if row else None

    def require(self, user_id: int) -> UserRecord:
        """Get a user by id.

        Raises:
            NotFoundError: If the user does not exist.
        """
        user = self.get(user_id)
        if user is None:
            raise NotFoundError("User not found", resource="user", resource_id=user_id)
        return user

    def get_by_google_id(self, google_id: str) -> UserRecord | None:
        """Get a user by their Google subject id, or None."""
        row = self._fetch_one("SELECT * FROM users WHERE google_id = ?", (google_id,))
        return UserRecord.from_row(row) if row else None

    def upsert_google_user(
        self,
        *,
        google_id: str,
        email: str,
        name: str,
        avatar_url: str | None = None,
    ) -> UserRecord:
        """Find or create a user by Google id, refreshing their profile.

        Args:
            google_id: Subject identifier from Google.
            email: Current email.
            name: Current display name.
            avatar_url: Current profile picture URL.

        Returns:
            The stored user.
        """
        now = to_timestamp()
        with self.db.connection() as conn:
            conn.execute(
                """
                INSERT INTO users (google_id, email, name, avatar_url, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (google_id) DO UPDATE SET
                    email = excluded.email,
                    name = excluded.name,
                    avatar_url = excluded.avatar_url,
                    updated_at = excluded.updated_at
                """,
                (google_id, email, name, avatar_url, now, now),
            )
            row = conn.execute(
                "SELECT * FROM users WHERE google_id = ?", (google_id,)
            ).fetchone()

        user = UserRecord.from_row(row)
        logger.info("User signed in", user_id=user.id)
        return user

    # =========================================================================
    # Settings
    # =========================================================================

    def get_settings(self, user_id: int) -> UserSettingsRecord:
        """Get a user's settings, or empty settings if none are stored."""
        row = self._fetch_one("SELECT * FROM user_settings WHERE user_id = ?", (user_id,))
        return UserSettingsRecord.from_row(row) if row else UserSettingsRecord.empty(user_id)

    def update_settings(
        self,
        user_id: int,
        *,
        content_gen_service: str | None | object = _UNSET,
        content_gen_api_key: str | None | object = _UNSET,
    ) -> UserSettingsRecord:
        """Update a user's settings, leaving omitted fields unchanged.

        Args:
            user_id: Owner of the settings.
            content_gen_service: New service, None to clear, omitted to keep.
            content_gen_api_key: New stored key, None to clear, omitted to keep.

        Returns:
            The stored settings.
        """
        current = self.get_settings(user_id)
        service = (
            current.content_gen_service if content_gen_service is _UNSET else content_gen_service
        )
        api_key = (
            current.content_gen_api_key if content_gen_api_key is _UNSET else content_gen_api_key
        )
        now = to_timestamp()

        with self.db.connection() as conn:
            conn.execute(
                """
                INSERT INTO user_settings
                    (user_id, content_gen_service, content_gen_api_key, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (user_id) DO UPDATE SET
                    content_gen_service = excluded.content_gen_service,
                    content_gen_api_key = excluded.content_gen_api_key,
                    updated_at = excluded.updated_at
                """,
                (user_id, service, api_key, now, now),
            )

        return self.get_settings(user_id)


__all__ = [
    "UserRecord",
    "UserSettingsRecord",
    "UserRepository",
]
