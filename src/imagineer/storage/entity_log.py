"""Chronological log entries attached to an entity."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from imagineer.core.exceptions import NotFoundError, ValidationError
from imagineer.storage.base import Repository, build_update, parse_timestamp, to_timestamp

_UPDATABLE = ("content", "occurred_at", "chapter_id", "session_id", "sort_order")


@dataclass
class EntityLogRecord:
    """One thing that happened to or about an entity."""

    id: int
    entity_id: int
    campaign_id: int
    chapter_id: int | None
    session_id: int | None
    source_table: str | None
    source_id: int | None
    content: str
    occurred_at: str | None
    sort_order: int | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> EntityLogRecord:
        """Create from database row."""
        return cls(
            id=row["id"],
            entity_id=row["entity_id"],
            campaign_id=row["campaign_id"],
            chapter_id=row["chapter_id"],
            session_id=row["session_id"],
            source_table=row["source_table"],
            source_id=row["source_id"],
            content=row["content"],
            occurred_at=row["occurred_at"],
            sort_order=row["sort_order"],
            created_at=parse_timestamp(row["created_at"]),
        )


class EntityLogRepository(Repository):
    """CRUD for entity log entries."""

    def list_for_entity(self, entity_id: int) -> list[EntityLogRecord]:
        """Entries ordered by sort_order (unordered last), then creation time."""
        rows = self._fetch_all(
            """
            SELECT * FROM entity_log
            WHERE entity_id = ?
            ORDER BY sort_order IS NULL, sort_order ASC, created_at ASC, id ASC
            """,
            (entity_id,),
        )
        return [EntityLogRecord.from_row(row) for row in rows]

    def get(self, entity_id: int, log_id: int) -> EntityLogRecord:
        """Get an entry belonging to the entity.

        Raises:
            NotFoundError: If the entry is missing or belongs elsewhere.
        """
        row = self._fetch_one(
            "SELECT * FROM entity_log WHERE id = ? AND entity_id = ?",
            (log_id, entity_id),
        )
        if row is None:
            raise NotFoundError("Log entry not found", resource="entity_log", resource_id=log_id)
        return EntityLogRecord.from_row(row)

    def create(
        self,
        *,
        entity_id: int,
        campaign_id: int,
        content: str,
        occurred_at: str | None = None,
        chapter_id: int | None = None,
        session_id: int | None = None,
        sort_order: int | None = None,
        source_table: str | None = None,
        source_id: int | None = None,
    ) -> EntityLogRecord:
        """Append a log entry.

        Raises:
            ValidationError: If the content is blank.
        """
        if not content or not content.strip():
            raise ValidationError("Log content is required", field_name="content")

        with self.db.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO entity_log
                    (entity_id, campaign_id, chapter_id, session_id, source_table,
                     source_id, content, occurred_at, sort_order, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (entity_id, campaign_id, chapter_id, session_id, source_table,
                 source_id, content.strip(), occurred_at, sort_order, to_timestamp()),
            )
            log_id = cursor.lastrowid
        return self.get(entity_id, log_id)

    def update(self, entity_id: int, log_id: int, fields: dict[str, Any]) -> EntityLogRecord:
        """Apply a partial update.

        Raises:
            ValidationError: If the content is set blank.
            NotFoundError: If the entry does not exist.
        """
        self.get(entity_id, log_id)
        if "content" in fields and (not fields["content"] or not str(fields["content"]).strip()):
            raise ValidationError("Log content is required", field_name="content")
        if not fields:
            return self.get(entity_id, log_id)

        clauses, params = build_update(fields, _UPDATABLE)
        with self.db.connection() as conn:
            conn.execute(
                f"UPDATE entity_log SET {', '.join(clauses)} WHERE id = ?",
                (*params, log_id),
            )
        return self.get(entity_id, log_id)

    def delete(self, entity_id: int, log_id: int) -> None:
        """Delete an entry.

        Raises:
            NotFoundError: If the entry does not exist.
        """
        self.get(entity_id, log_id)
        with self.db.connection() as conn:
            conn.execute("DELETE FROM entity_log WHERE id = ?", (log_id,))


__all__ = [
    "EntityLogRecord",
    "EntityLogRepository",
]
