"""Read-only queries behind the campaign consistency check.

Timeline events list their entities as a JSON array, so those lookups go
through SQLite's ``json_each``.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field

from imagineer.models.enums import DatePrecision, SessionStatus
from imagineer.storage.base import Repository


@dataclass
class EntityRef:
    """Id, name and type of an entity."""

    id: int
    name: str
    entity_type: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> EntityRef:
        return cls(id=row["id"], name=row["name"], entity_type=row["entity_type"])


@dataclass
class TimelineConflict:
    """An entity placed in several exactly dated events on the same date."""

    entity_id: int
    entity_name: str
    event_date: str
    event_ids: list[int] = field(default_factory=list)


@dataclass
class InvalidReference:
    """A relationship or timeline event pointing at a missing entity.

    Attributes:
        record_id: Id of the relationship or timeline event.
        missing_entity_id: The id that no longer resolves in the campaign.
        reference_type: ``source`` or ``target`` for relationships,
            ``timeline`` for events.
    """

    record_id: int
    missing_entity_id: int
    reference_type: str


@dataclass
class EmptySession:
    """A completed session that recorded no discoveries."""

    id: int
    session_number: int


class ConsistencyRepository(Repository):
    """Queries that look for gaps and contradictions in a campaign."""

    def entity_names(self, campaign_id: int) -> list[EntityRef]:
        """Every entity of the campaign, by id."""
        rows = self._fetch_all(
            "SELECT id, name, entity_type FROM entities WHERE campaign_id = ? ORDER BY id",
            (campaign_id,),
        )
        return [EntityRef.from_row(row) for row in rows]

    def orphaned_entities(self, campaign_id: int, entity_type: str | None = None) -> list[EntityRef]:
        """Entities with no relationships and no timeline references.

        Args:
            campaign_id: Campaign to check.
            entity_type: Only report entities of this type.
        """
        rows = self._fetch_all(
            """
            SELECT e.id, e.name, e.entity_type
            FROM entities e
            WHERE e.campaign_id = :campaign_id
              AND NOT EXISTS (
                SELECT 1 FROM relationships r
                WHERE r.source_entity_id = e.id OR r.target_entity_id = e.id
              )
              AND NOT EXISTS (
                SELECT 1 FROM timeline_events t JOIN json_each(t.entity_ids) j
                WHERE t.campaign_id = e.campaign_id AND j.value = e.id
              )
              AND (:entity_type IS NULL OR e.entity_type = :entity_type)
            ORDER BY e.name COLLATE NOCASE, e.id
            """,
            {"campaign_id": campaign_id, "entity_type": entity_type},
        )
        return [EntityRef.from_row(row) for row in rows]

    def timeline_conflicts(self, campaign_id: int) -> list[TimelineConflict]:
        """Entities that appear in more than one exactly dated event per date."""
        rows = self._fetch_all(
            """
            SELECT e.id AS entity_id, e.name AS entity_name, t.event_date,
                   group_concat(t.id) AS event_ids
            FROM timeline_events t
            JOIN json_each(t.entity_ids) j
            JOIN entities e ON e.id = j.value AND e.campaign_id = t.campaign_id
            WHERE t.campaign_id = ?
              AND t.event_date IS NOT NULL
              AND t.date_precision = ?
            GROUP BY e.id, t.event_date
            HAVING COUNT(DISTINCT t.id) > 1
            ORDER BY t.event_date, e.name COLLATE NOCASE
            """,
            (campaign_id, DatePrecision.EXACT.value),
        )
        return [
            TimelineConflict(
                entity_id=row["entity_id"],
                entity_name=row["entity_name"],
                event_date=row["event_date"],
                event_ids=sorted({int(event_id) for event_id in row["event_ids"].split(",")}),
            )
            for row in rows
        ]

    def invalid_references(self, campaign_id: int) -> list[InvalidReference]:
        """Relationship ends and timeline entity ids that do not resolve in the campaign."""
        rows = self._fetch_all(
            """
            SELECT r.id AS record_id, r.source_entity_id AS missing_entity_id, 'source' AS reference_type
            FROM relationships r
            WHERE r.campaign_id = :campaign_id
              AND NOT EXISTS (
                SELECT 1 FROM entities e
                WHERE e.id = r.source_entity_id AND e.campaign_id = r.campaign_id
              )
            UNION ALL
            SELECT r.id, r.target_entity_id, 'target'
            FROM relationships r
            WHERE r.campaign_id = :campaign_id
              AND NOT EXISTS (
                SELECT 1 FROM entities e
                WHERE e.id = r.target_entity_id AND e.campaign_id = r.campaign_id
              )
            UNION ALL
            SELECT t.id, j.value, 'timeline'
            FROM timeline_events t JOIN json_each(t.entity_ids) j
            WHERE t.campaign_id = :campaign_id
              AND NOT EXISTS (
                SELECT 1 FROM entities e
                WHERE e.id = j.value AND e.campaign_id = t.campaign_id
              )
            ORDER BY reference_type, record_id
            """,
            {"campaign_id": campaign_id},
        )
        return [
            InvalidReference(
                record_id=row["record_id"],
                missing_entity_id=row["missing_entity_id"],
                reference_type=row["reference_type"],
            )
            for row in rows
        ]

    def sessions_without_discoveries(self, campaign_id: int) -> list[EmptySession]:
        """Completed sessions with no discoveries and no entity discovered in them."""
        rows = self._fetch_all(
            """
            SELECT s.id, COALESCE(s.session_number, 0) AS session_number
            FROM sessions s
            WHERE s.campaign_id = ?
              AND s.status = ?
              AND NOT EXISTS (SELECT 1 FROM entities e WHERE e.discovered_session = s.id)
              AND (s.discoveries IS NULL OR s.discoveries IN ('[]', 'null', ''))
            ORDER BY s.session_number, s.id
            """,
            (campaign_id, SessionStatus.COMPLETED.value),
        )
        return [EmptySession(id=row["id"], session_number=row["session_number"]) for row in rows]


__all__ = [
    "EntityRef",
    "TimelineConflict",
    "InvalidReference",
    "EmptySession",
    "ConsistencyRepository",
]
