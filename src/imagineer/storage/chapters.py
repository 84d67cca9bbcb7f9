"""Chapters: story arcs that group sessions."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from imagineer.core.exceptions import NotFoundError, ValidationError
from imagineer.core.logging import get_logger
from imagineer.storage.base import Repository, build_update, parse_timestamp, to_timestamp
from imagineer.storage.drafts import delete_drafts_for_source

logger = get_logger(__name__)

_UPDATABLE = ("title", "overview", "sort_order")


@dataclass
class ChapterRecord:
    """A story arc within a campaign."""

    id: int
    campaign_id: int
    title: str
    overview: str | None
    sort_order: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> ChapterRecord:
        """Create from database row."""
        return cls(
            id=row["id"],
            campaign_id=row["campaign_id"],
            title=row["title"],
            overview=row["overview"],
            sort_order=row["sort_order"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )


class ChapterRepository(Repository):
    """CRUD for chapters."""

    def list_for_campaign(self, campaign_id: int) -> list[ChapterRecord]:
        """Chapters in display order."""
        rows = self._fetch_all(
            "SELECT * FROM chapters WHERE campaign_id = ? ORDER BY sort_order, id",
            (campaign_id,),
        )
        return [ChapterRecord.from_row(row) for row in rows]

    def get(self, campaign_id: int, chapter_id: int) -> ChapterRecord:
        """Get a chapter of the campaign.

        Raises:
            NotFoundError: If it is missing or belongs elsewhere.
        """
        row = self._fetch_one(
            "SELECT * FROM chapters WHERE id = ? AND campaign_id = ?",
            (chapter_id, campaign_id),
        )
        if row is None:
            raise NotFoundError("Chapter not found", resource="chapter", resource_id=chapter_id)
        return ChapterRecord.from_row(row)

    def create(
        self,
        campaign_id: int,
        *,
        title: str,
        overview: str | None = None,
        sort_order: int | None = None,
    ) -> ChapterRecord:
        """Create a chapter, appending it after the last one by default.

        Raises:
            ValidationError: If the title is blank.
        """
        if not title or not title.strip():
            raise ValidationError("Chapter title is required", field_name="title")

        now = to_timestamp()
        with self.db.connection() as conn:
            if sort_order is None:
                sort_order = conn.execute(
                    "SELECT COALESCE(MAX(sort_order) + 1, 0) FROM chapters WHERE campaign_id = ?",
                    (campaign_id,),
                ).fetchone()[0]
            cursor = conn.execute(
                """
                INSERT INTO chapters (campaign_id, title, overview, sort_order, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (campaign_id, title.strip(), overview, sort_order, now, now),
            )
            chapter_id = cursor.lastrowid

        logger.info("Chapter created", campaign_id=campaign_id, chapter_id=chapter_id)
        return self.get(campaign_id, chapter_id)

    def update(self, campaign_id: int, chapter_id: int, fields: dict[str, Any]) -> ChapterRecord:
        """Apply a partial update and discard drafts of the chapter.

        Raises:
            ValidationError: If the title is set blank.
            NotFoundError: If the chapter does not exist.
        """
        self.get(campaign_id, chapter_id)
        if "title" in fields:
            if not fields["title"] or not str(fields["title"]).strip():
                raise ValidationError("Chapter title is required", field_name="title")
            fields = {**fields, "title": fields["title"].strip()}

        clauses, params = build_update(fields, _UPDATABLE)
        clauses.append("updated_at = ?")
        params.append(to_timestamp())
        with self.db.connection() as conn:
            conn.execute(
                f"UPDATE chapters SET {', '.join(clauses)} WHERE id = ?",
                (*params, chapter_id),
            )
            delete_drafts_for_source(conn, "chapters", chapter_id)

        return self.get(campaign_id, chapter_id)

    def delete(self, campaign_id: int, chapter_id: int) -> None:
        """Delete a chapter; its sessions become uncategorized.

        Raises:
            NotFoundError: If the chapter does not exist.
        """
        self.get(campaign_id, chapter_id)
        with self.db.connection() as conn:
            conn.execute("DELETE FROM chapters WHERE id = ?", (chapter_id,))


__all__ = [
    "ChapterRecord",
    "ChapterRepository",
]
