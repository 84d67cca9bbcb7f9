"""Game sessions within a campaign."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from imagineer.core.exceptions import ConflictError, NotFoundError, ValidationError
from imagineer.core.logging import get_logger
from imagineer.models.enums import SessionStage, SessionStatus
from imagineer.storage.base import (
    Repository,
    build_update,
    from_json,
    parse_timestamp,
    to_json,
    to_timestamp,
)
from imagineer.storage.drafts import delete_drafts_for_source

logger = get_logger(__name__)

_UPDATABLE = (
    "chapter_id",
    "title",
    "session_number",
    "planned_date",
    "actual_date",
    "status",
    "stage",
    "prep_notes",
    "planned_scenes",
    "actual_notes",
    "discoveries",
    "player_decisions",
    "consequences",
)
_JSON_FIELDS = ("planned_scenes", "discoveries", "player_decisions", "consequences")


@dataclass
class SessionRecord:
    """A single game session.

    Attributes:
        id: Primary key.
        campaign_id: Owning campaign.
        chapter_id: Chapter the session belongs to, if any.
        title: Session title.
        session_number: Sequence number, unique per campaign.
        planned_date: ISO date the session is planned for.
        actual_date: ISO date the session was played.
        status: SessionStatus value.
        stage: SessionStage value.
        prep_notes: Preparation notes.
        planned_scenes: Planned scene outlines.
        actual_notes: Notes taken during or after play.
        discoveries: What the players found out.
        player_decisions: Notable player choices.
        consequences: Fallout to carry forward.
        created_at: Creation time.
        updated_at: Last modification time.
    """

    id: int
    campaign_id: int
    chapter_id: int | None
    title: str | None
    session_number: int | None
    planned_date: str | None
    actual_date: str | None
    status: str
    stage: str
    prep_notes: str | None
    planned_scenes: list[Any] | None
    actual_notes: str | None
    discoveries: list[Any] = field(default_factory=list)
    player_decisions: list[Any] = field(default_factory=list)
    consequences: list[Any] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> SessionRecord:
        """Create from database row."""
        return cls(
            id=row["id"],
            campaign_id=row["campaign_id"],
            chapter_id=row["chapter_id"],
            title=row["title"],
            session_number=row["session_number"],
            planned_date=row["planned_date"],
            actual_date=row["actual_date"],
            status=row["status"],
            stage=row["stage"],
            prep_notes=row["prep_notes"],
            planned_scenes=from_json(row["planned_scenes"]),
            actual_notes=row["actual_notes"],
            discoveries=from_json(row["discoveries"], []),
            player_decisions=from_json(row["player_decisions"], []),
            consequences=from_json(row["consequences"], []),
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )


def _validate_fields(fields: dict[str, Any]) -> dict[str, Any]:
    cleaned = dict(fields)
    if cleaned.get("status") is not None:
        try:
            cleaned["status"] = SessionStatus(cleaned["status"]).value
        except ValueError as exc:
            raise ValidationError(
                f"Invalid session status: {cleaned['status']}", field_name="status"
            ) from exc
    if cleaned.get("stage") is not None:
        try:
            cleaned["stage"] = SessionStage(cleaned["stage"]).value
        except ValueError as exc:
            raise ValidationError(f"Invalid session stage: {cleaned['stage']}", field_name="stage") from exc
    for name in ("discoveries", "player_decisions", "consequences"):
        if name in cleaned and cleaned[name] is None:
            cleaned[name] = []
    return cleaned


class SessionRepository(Repository):
    """CRUD for sessions."""

    def list_for_campaign(self, campaign_id: int, *, chapter_id: int | None = None) -> list[SessionRecord]:
        """Sessions ordered by session number, optionally within one chapter."""
        query = "SELECT * FROM sessions WHERE campaign_id = ?"
        params: list[Any] = [campaign_id]
        if chapter_id is not None:
            query += " AND chapter_id = ?"
            params.append(chapter_id)
        query += " ORDER BY session_number IS NULL, session_number, id"
        return [SessionRecord.from_row(row) for row in self._fetch_all(query, tuple(params))]

    def get(self, campaign_id: int, session_id: int) -> SessionRecord:
        """Get a session of the campaign.

        Raises:
            NotFoundError: If it is missing or belongs elsewhere.
        """
        row = self._fetch_one(
            "SELECT * FROM sessions WHERE id = ? AND campaign_id = ?",
            (session_id, campaign_id),
        )
        if row is None:
            raise NotFoundError("Session not found", resource="session", resource_id=session_id)
        return SessionRecord.from_row(row)

    def create(self, campaign_id: int, fields: dict[str, Any]) -> SessionRecord:
        """Create a session, numbering it after the last one by default.

        Raises:
            ValidationError: If the chapter is foreign or a value is invalid.
            ConflictError: If the session number is taken.
        """
        values = _validate_fields(fields)
        values.setdefault("status", SessionStatus.PLANNED.value)
        values.setdefault("stage", SessionStage.PREP.value)
        if values.get("status") is None:
            values["status"] = SessionStatus.PLANNED.value
        if values.get("stage") is None:
            values["stage"] = SessionStage.PREP.value
        now = to_timestamp()

        try:
            with self.db.connection() as conn:
                self._check_chapter(conn, campaign_id, values.get("chapter_id"))
                if values.get("session_number") is None:
                    values["session_number"] = conn.execute(
                        "SELECT COALESCE(MAX(session_number), 0) + 1 FROM sessions WHERE campaign_id = ?",
                        (campaign_id,),
                    ).fetchone()[0]
                columns = [name for name in _UPDATABLE if name in values]
                params = [
                    to_json(values[name]) if name in _JSON_FIELDS else values[name] for name in columns
                ]
                for name in ("discoveries", "player_decisions", "consequences"):
                    if name not in columns:
                        columns.append(name)
                        params.append("[]")
                cursor = conn.execute(
                    f"""
                    INSERT INTO sessions (campaign_id, {', '.join(columns)}, created_at, updated_at)
                    VALUES (?, {', '.join('?' for _ in columns)}, ?, ?)
                    """,
                    (campaign_id, *params, now, now),
                )
                session_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            raise ConflictError(
                "Session number already exists in this campaign",
                details={"session_number": values.get("session_number")},
            ) from exc

        logger.info("Session created", campaign_id=campaign_id, session_id=session_id)
        return self.get(campaign_id, session_id)

    def update(self, campaign_id: int, session_id: int, fields: dict[str, Any]) -> SessionRecord:
        """Apply a partial update and discard drafts of the session.

        Raises:
            ValidationError: If the chapter is foreign or a value is invalid.
            ConflictError: If the new session number is taken.
            NotFoundError: If the session does not exist.
        """
        self.get(campaign_id, session_id)
        values = _validate_fields(fields)
        for name in ("status", "stage"):
            if name in values and values[name] is None:
                del values[name]

        clauses, params = build_update(values, _UPDATABLE, json_fields=_JSON_FIELDS)
        clauses.append("updated_at = ?")
        params.append(to_timestamp())
        try:
            with self.db.connection() as conn:
                if values.get("chapter_id") is not None:
                    self._check_chapter(conn, campaign_id, values["chapter_id"])
                conn.execute(
                    f"UPDATE sessions SET {', '.join(clauses)} WHERE id = ?",
                    (*params, session_id),
                )
                delete_drafts_for_source(conn, "sessions", session_id)
        except sqlite3.IntegrityError as exc:
            raise ConflictError(
                "Session number already exists in this campaign",
                details={"session_number": values.get("session_number")},
            ) from exc

        return self.get(campaign_id, session_id)

    def delete(self, campaign_id: int, session_id: int) -> None:
        """Delete a session.

        Raises:
            NotFoundError: If the session does not exist.
        """
        self.get(campaign_id, session_id)
        with self.db.connection() as conn:
            conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))

    @staticmethod
    def _check_chapter(conn: sqlite3.Connection, campaign_id: int, chapter_id: int | None) -> None:
        if chapter_id is None:
            return
        row = conn.execute(
            "SELECT 1 FROM chapters WHERE id = ? AND campaign_id = ?",
            (chapter_id, campaign_id),
        ).fetchone()
        if row is None:
            raise ValidationError(
                "Chapter does not belong to this campaign",
                field_name="chapter_id",
                invalid_value=chapter_id,
            )


__all__ = [
    "SessionRecord",
    "SessionRepository",
]
