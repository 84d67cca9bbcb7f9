"""Server-side drafts of unsaved editor changes.

A draft belongs to one user and points at one record (or at a record
that does not exist yet, with ``source_id`` 0 and ``is_new`` set). Saving
the real record discards every draft pointing at it.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from imagineer.core.exceptions import NotFoundError, ValidationError
from imagineer.core.logging import get_logger
from imagineer.models.enums import DraftSourceTable
from imagineer.storage.base import Repository, from_json, parse_timestamp, to_json, to_timestamp

logger = get_logger(__name__)


@dataclass
class DraftRecord:
    """A saved snapshot of in-progress form fields."""

    id: int
    campaign_id: int
    user_id: int
    source_table: str
    source_id: int
    is_new: bool
    draft_data: Any
    server_version: int | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> DraftRecord:
        """Create from database row."""
        return cls(
            id=row["id"],
            campaign_id=row["campaign_id"],
            user_id=row["user_id"],
            source_table=row["source_table"],
            source_id=row["source_id"],
            is_new=bool(row["is_new"]),
            draft_data=from_json(row["draft_data"]),
            server_version=row["server_version"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )


@dataclass
class DraftIndicator:
    """Lightweight marker telling a list view that a record has a draft."""

    source_table: str
    source_id: int
    is_new: bool
    updated_at: datetime


def validate_source_table(source_table: str) -> str:
    """Check that drafts may be stored for this table.

    Raises:
        ValidationError: If the table is not one of entities, chapters, sessions.
    """
    try:
        return DraftSourceTable(source_table).value
    except ValueError as exc:
        raise ValidationError(
            f"Invalid source table: {source_table}",
            field_name="source_table",
            invalid_value=source_table,
        ) from exc


def delete_drafts_for_source(conn: sqlite3.Connection, source_table: str, source_id: int) -> int:
    """Discard every user's drafts of a record that was just saved.

    Args:
        conn: Open connection, so the delete joins the update's transaction.
        source_table: Table of the saved record.
        source_id: Id of the saved record.

    Returns:
        Number of drafts removed.
    """
    cursor = conn.execute(
        "DELETE FROM drafts WHERE source_table = ? AND source_id = ?",
        (source_table, source_id),
    )
    if cursor.rowcount:
        logger.debug("Stale drafts removed", source_table=source_table, source_id=source_id)
    return cursor.rowcount


class DraftRepository(Repository):
    """Upsert, list and delete drafts for a user within a campaign."""

    def save(
        self,
        *,
        campaign_id: int,
        user_id: int,
        source_table: str,
        source_id: int,
        draft_data: Any,
        is_new: bool = False,
        server_version: int | None = None,
    ) -> DraftRecord:
        """Create or replace the user's draft of a record.

        Raises:
            ValidationError: If the table is unsupported or draft_data is missing.
        """
        source_table = validate_source_table(source_table)
        if draft_data is None:
            raise ValidationError("draftData is required", field_name="draft_data")

        now = to_timestamp()
        with self.db.connection() as conn:
            conn.execute(
                """
                INSERT INTO drafts
                    (campaign_id, user_id, source_table, source_id, is_new,
                     draft_data, server_version, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (user_id, source_table, source_id, campaign_id) DO UPDATE SET
                    draft_data = excluded.draft_data,
                    server_version = excluded.server_version,
                    is_new = excluded.is_new,
                    updated_at = excluded.updated_at
                """,
                (campaign_id, user_id, source_table, source_id, int(is_new),
                 to_json(draft_data), server_version, now, now),
            )
            row = conn.execute(
                """
                SELECT * FROM drafts
                WHERE user_id = ? AND source_table = ? AND source_id = ? AND campaign_id = ?
                """,
                (user_id, source_table, source_id, campaign_id),
            ).fetchone()

        return DraftRecord.from_row(row)

    def get(self, campaign_id: int, user_id: int, source_table: str, source_id: int) -> DraftRecord:
        """Get the user's draft of a record.

        Raises:
            NotFoundError: If there is no draft.
        """
        source_table = validate_source_table(source_table)
        row = self._fetch_one(
            """
            SELECT * FROM drafts
            WHERE user_id = ? AND source_table = ? AND source_id = ? AND campaign_id = ?
            """,
            (user_id, source_table, source_id, campaign_id),
        )
        if row is None:
            raise NotFoundError("Draft not found", resource="draft", resource_id=source_id)
        return DraftRecord.from_row(row)

    def list_indicators(
        self,
        campaign_id: int,
        user_id: int,
        source_table: str | None = None,
    ) -> list[DraftIndicator]:
        """List which records have drafts, without their contents."""
        query = """
            SELECT source_table, source_id, is_new, updated_at FROM drafts
            WHERE campaign_id = ? AND user_id = ?
        """
        params: list[Any] = [campaign_id, user_id]
        if source_table:
            query += " AND source_table = ?"
            params.append(validate_source_table(source_table))
        query += " ORDER BY updated_at DESC"

        return [
            DraftIndicator(
                source_table=row["source_table"],
                source_id=row["source_id"],
                is_new=bool(row["is_new"]),
                updated_at=parse_timestamp(row["updated_at"]),
            )
            for row in self._fetch_all(query, tuple(params))
        ]

    def delete(self, campaign_id: int, user_id: int, source_table: str, source_id: int) -> None:
        """Delete the user's draft of a record.

        Raises:
            NotFoundError: If there is no draft.
        """
        source_table = validate_source_table(source_table)
        with self.db.connection() as conn:
            cursor = conn.execute(
                """
                DELETE FROM drafts
                WHERE user_id = ? AND source_table = ? AND source_id = ? AND campaign_id = ?
                """,
                (user_id, source_table, source_id, campaign_id),
            )
            deleted = cursor.rowcount > 0
        if not deleted:
            raise NotFoundError("Draft not found", resource="draft", resource_id=source_id)


__all__ = [
    "DraftRecord",
    "DraftIndicator",
    "DraftRepository",
    "delete_drafts_for_source",
    "validate_source_table",
]
