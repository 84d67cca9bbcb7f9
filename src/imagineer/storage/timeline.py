"""Timeline events of a campaign's in-world chronology."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from imagineer.core.exceptions import NotFoundError, ValidationError
from imagineer.models.enums import DatePrecision
from imagineer.storage.base import (
    Repository,
    build_update,
    from_json,
    parse_timestamp,
    to_json,
    to_timestamp,
)

_UPDATABLE = (
    "event_date",
    "event_time",
    "date_precision",
    "description",
    "entity_ids",
    "session_id",
    "is_player_known",
    "source_document",
)

_ORDER = " ORDER BY event_date IS NULL, event_date, id"


@dataclass
class TimelineEventRecord:
    """Something that happened in the game world."""

    id: int
    campaign_id: int
    event_date: str | None
    event_time: str | None
    date_precision: str
    description: str
    entity_ids: list[int] = field(default_factory=list)
    session_id: int | None = None
    is_player_known: bool = False
    source_document: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> TimelineEventRecord:
        """Create from database row."""
        return cls(
            id=row["id"],
            campaign_id=row["campaign_id"],
            event_date=row["event_date"],
            event_time=row["event_time"],
            date_precision=row["date_precision"],
            description=row["description"],
            entity_ids=from_json(row["entity_ids"], []),
            session_id=row["session_id"],
            is_player_known=bool(row["is_player_known"]),
            source_document=row["source_document"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )


def _validate_fields(fields: dict[str, Any]) -> dict[str, Any]:
    cleaned = dict(fields)
    if "description" in cleaned:
        if not cleaned["description"] or not str(cleaned["description"]).strip():
            raise ValidationError("Event description is required", field_name="description")
    if cleaned.get("date_precision") is not None:
        try:
            cleaned["date_precision"] = DatePrecision(cleaned["date_precision"]).value
        except ValueError as exc:
            raise ValidationError(
                f"Invalid date precision: {cleaned['date_precision']}",
                field_name="date_precision",
            ) from exc
    elif "date_precision" in cleaned:
        cleaned["date_precision"] = DatePrecision.EXACT.value
    if "entity_ids" in cleaned and cleaned["entity_ids"] is None:
        cleaned["entity_ids"] = []
    if "is_player_known" in cleaned:
        cleaned["is_player_known"] = int(bool(cleaned["is_player_known"]))
    return cleaned


class TimelineRepository(Repository):
    """CRUD for timeline events."""

    def list_for_campaign(self, campaign_id: int, *, entity_id: int | None = None) -> list[TimelineEventRecord]:
        """Events in chronological order, optionally only those naming an entity."""
        query = "SELECT * FROM timeline_events WHERE campaign_id = ?"
        params: list[Any] = [campaign_id]
        if entity_id is not None:
            query += " AND EXISTS (SELECT 1 FROM json_each(timeline_events.entity_ids) WHERE json_each.value = ?)"
            params.append(entity_id)
        rows = self._fetch_all(query + _ORDER, tuple(params))
        return [TimelineEventRecord.from_row(row) for row in rows]

    def get(self, campaign_id: int, event_id: int) -> TimelineEventRecord:
        """Get an event of the campaign.

        Raises:
            NotFoundError: If it is missing or belongs elsewhere.
        """
        row = self._fetch_one(
            "SELECT * FROM timeline_events WHERE id = ? AND campaign_id = ?",
            (event_id, campaign_id),
        )
        if row is None:
            raise NotFoundError("Timeline event not found", resource="timeline_event", resource_id=event_id)
        return TimelineEventRecord.from_row(row)

    def create(self, campaign_id: int, fields: dict[str, Any]) -> TimelineEventRecord:
        """Create an event.

        Raises:
            ValidationError: If the description is missing or a value is invalid.
        """
        if "description" not in fields:
            raise ValidationError("Event description is required", field_name="description")
        values = _validate_fields(fields)
        values.setdefault("date_precision", DatePrecision.EXACT.value)
        values.setdefault("entity_ids", [])
        values.setdefault("is_player_known", 0)

        columns = [name for name in _UPDATABLE if name in values]
        params = [to_json(values[name]) if name == "entity_ids" else values[name] for name in columns]
        now = to_timestamp()
        with self.db.connection() as conn:
            cursor = conn.execute(
                f"""
                INSERT INTO timeline_events (campaign_id, {', '.join(columns)}, created_at, updated_at)
                VALUES (?, {', '.join('?' for _ in columns)}, ?, ?)
                """,
                (campaign_id, *params, now, now),
            )
            event_id = cursor.lastrowid
        return self.get(campaign_id, event_id)

    def update(self, campaign_id: int, event_id: int, fields: dict[str, Any]) -> TimelineEventRecord:
        """Apply a partial update.

        Raises:
            ValidationError: If a value is invalid.
            NotFoundError: If the event does not exist.
        """
        self.get(campaign_id, event_id)
        values = _validate_fields(fields)
        clauses, params = build_update(values, _UPDATABLE, json_fields=("entity_ids",))
        clauses.append("updated_at = ?")
        params.append(to_timestamp())
        with self.db.connection() as conn:
            conn.execute(
                f"UPDATE timeline_events SET {', '.join(clauses)} WHERE id = ?",
                (*params, event_id),
            )
        return self.get(campaign_id, event_id)

    def delete(self, campaign_id: int, event_id: int) -> None:
        """Delete an event.

        Raises:
            NotFoundError: If the event does not exist.
        """
        self.get(campaign_id, event_id)
        with self.db.connection() as conn:
            conn.execute("DELETE FROM timeline_events WHERE id = ?", (event_id,))


__all__ = [
    "TimelineEventRecord",
    "TimelineRepository",
]
