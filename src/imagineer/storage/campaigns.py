"""Campaigns, their ownership checks and aggregate statistics."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from imagineer.core.constants import RECENT_CAMPAIGNS_LIMIT
from imagineer.core.exceptions import NotFoundError, ValidationError
from imagineer.core.logging import get_logger
from imagineer.storage.base import (
    Repository,
    build_update,
    from_json,
    parse_timestamp,
    to_json,
    to_timestamp,
)
from imagineer.storage.relationship_types import seed_campaign_types

logger = get_logger(__name__)

_UPDATABLE = (
    "name",
    "system_id",
    "description",
    "settings",
    "genre",
    "image_style_prompt",
)


@dataclass
class CampaignRecord:
    """A campaign owned by a single user.

    Attributes:
        id: Primary key.
        name: Campaign name.
        system_id: Game system, if chosen.
        description: Campaign premise.
        settings: Free-form campaign settings object.
        owner_id: Owning user.
        genre: Genre code.
        image_style_prompt: Default style hint for generated art.
        created_at: Creation time.
        updated_at: Last modification time.
    """

    id: int
    name: str
    system_id: int | None
    description: str | None
    settings: dict[str, Any]
    owner_id: int | None
    genre: str | None
    image_style_prompt: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> CampaignRecord:
        """Create from database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            system_id=row["system_id"],
            description=row["description"],
            settings=from_json(row["settings"], {}),
            owner_id=row["owner_id"],
            genre=row["genre"],
            image_style_prompt=row["image_style_prompt"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )


@dataclass
class CampaignStats:
    """Counts shown on a campaign's overview."""

    entity_counts: dict[str, int]
    relationship_count: int
    timeline_event_count: int
    session_count: int
    chapter_count: int


@dataclass
class DashboardStats:
    """Counts across every campaign a user owns."""

    campaign_count: int
    npc_count: int
    location_count: int
    timeline_event_count: int
    total_entity_count: int


@dataclass
class OverviewStats:
    """Totals across a user's campaigns with the latest ones listed."""

    total_campaigns: int
    total_entities: int
    total_relationships: int
    total_sessions: int
    entities_by_type: dict[str, int]
    recent_campaigns: list[CampaignRecord]


class CampaignRepository(Repository):
    """CRUD and ownership checks for campaigns."""

    def list_for_owner(self, owner_id: int) -> list[CampaignRecord]:
        """The user's campaigns, most recently updated first."""
        rows = self._fetch_all(
            "SELECT * FROM campaigns WHERE owner_id = ? ORDER BY updated_at DESC, id DESC",
            (owner_id,),
        )
        return [CampaignRecord.from_row(row) for row in rows]

    def get(self, campaign_id: int) -> CampaignRecord | None:
        """Get a campaign regardless of owner, or None."""
        row = self._fetch_one("SELECT * FROM campaigns WHERE id = ?", (campaign_id,))
        return CampaignRecord.from_row(row) if row else None

    def get_owned(self, campaign_id: int, owner_id: int) -> CampaignRecord:
        """Get a campaign the user owns.

        Raises:
            NotFoundError: If the campaign is missing or owned by someone else.
        """
        campaign = self.get(campaign_id)
        if campaign is None or campaign.owner_id != owner_id:
            raise NotFoundError("Campaign not found", resource="campaign", resource_id=campaign_id)
        return campaign

    def create(
        self,
        owner_id: int,
        *,
        name: str,
        system_id: int | None = None,
        description: str | None = None,
        settings: dict[str, Any] | None = None,
        genre: str | None = None,
        image_style_prompt: str | None = None,
    ) -> CampaignRecord:
        """Create a campaign and seed its relationship types.

        Raises:
            ValidationError: If the name is blank or the game system is unknown.
        """
        if not name or not name.strip():
            raise ValidationError("Campaign name is required", field_name="name")

        now = to_timestamp()
        with self.db.connection() as conn:
            if system_id is not None:
                self._check_system(conn, system_id)
            cursor = conn.execute(
                """
                INSERT INTO campaigns
                    (name, system_id, description, settings, owner_id, genre,
                     image_style_prompt, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (name.strip(), system_id, description, to_json(settings or {}), owner_id,
                 genre, image_style_prompt, now, now),
            )
            campaign_id = cursor.lastrowid
            seed_campaign_types(conn, campaign_id)

        logger.info("Campaign created", campaign_id=campaign_id, owner_id=owner_id)
        return self.get(campaign_id)

    def update(self, campaign_id: int, fields: dict[str, Any]) -> CampaignRecord:
        """Apply a partial update.

        Raises:
            ValidationError: If the new name is blank or the game system is unknown.
            NotFoundError: If the campaign does not exist.
        """
        if "name" in fields:
            if not fields["name"] or not str(fields["name"]).strip():
                raise ValidationError("Campaign name is required", field_name="name")
            fields = {**fields, "name": fields["name"].strip()}

        clauses, params = build_update(fields, _UPDATABLE, json_fields=("settings",))
        with self.db.connection() as conn:
            if fields.get("system_id") is not None:
                self._check_system(conn, fields["system_id"])
            clauses.append("updated_at = ?")
            params.append(to_timestamp())
            cursor = conn.execute(
                f"UPDATE campaigns SET {', '.join(clauses)} WHERE id = ?",
                (*params, campaign_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Campaign not found", resource="campaign", resource_id=campaign_id)

        return self.get(campaign_id)

    def delete(self, campaign_id: int) -> None:
        """Delete a campaign and everything scoped to it."""
        with self.db.connection() as conn:
            # Relationships reference types without cascade, so drop them first
            conn.execute("DELETE FROM relationships WHERE campaign_id = ?", (campaign_id,))
            conn.execute("DELETE FROM campaigns WHERE id = ?", (campaign_id,))
        logger.info("Campaign deleted", campaign_id=campaign_id)

    def touch(self, campaign_id: int) -> None:
        """Bump a campaign's updated_at."""
        with self.db.connection() as conn:
            conn.execute(
                "UPDATE campaigns SET updated_at = ? WHERE id = ?",
                (to_timestamp(), campaign_id),
            )

    # =========================================================================
    # Statistics
    # =========================================================================

    def stats(self, campaign_id: int) -> CampaignStats:
        """Aggregate counts for a single campaign."""
        with self.db.connection() as conn:
            entity_counts = {
                row["entity_type"]: row["n"]
                for row in conn.execute(
                    """
                    SELECT entity_type, COUNT(*) AS n FROM entities
                    WHERE campaign_id = ? GROUP BY entity_type
                    """,
                    (campaign_id,),
                )
            }

            def count(table: str) -> int:
                return conn.execute(
                    f"SELECT COUNT(*) FROM {table} WHERE campaign_id = ?", (campaign_id,)
                ).fetchone()[0]

            return CampaignStats(
                entity_counts=entity_counts,
                relationship_count=count("relationships"),
                timeline_event_count=count("timeline_events"),
                session_count=count("sessions"),
                chapter_count=count("chapters"),
            )

    def dashboard_stats(self, owner_id: int) -> DashboardStats:
        """Aggregate counts across all of a user's campaigns."""
        with self.db.connection() as conn:
            campaign_count = conn.execute(
                "SELECT COUNT(*) FROM campaigns WHERE owner_id = ?", (owner_id,)
            ).fetchone()[0]
            entity_row = conn.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    COALESCE(SUM(CASE WHEN e.entity_type = 'npc' THEN 1 ELSE 0 END), 0) AS npcs,
                    COALESCE(SUM(CASE WHEN e.entity_type = 'location' THEN 1 ELSE 0 END), 0) AS locations
                FROM entities e
                JOIN campaigns c ON c.id = e.campaign_id
                WHERE c.owner_id = ?
                """,
                (owner_id,),
            ).fetchone()
            timeline_count = conn.execute(
                """
                SELECT COUNT(*) FROM timeline_events t
                JOIN campaigns c ON c.id = t.campaign_id
                WHERE c.owner_id = ?
                """,
                (owner_id,),
            ).fetchone()[0]

        return DashboardStats(
            campaign_count=campaign_count,
            npc_count=entity_row["npcs"],
            location_count=entity_row["locations"],
            timeline_event_count=timeline_count,
            total_entity_count=entity_row["total"],
        )

    def overview_stats(self, owner_id: int, *, recent_limit: int = RECENT_CAMPAIGNS_LIMIT) -> OverviewStats:
        """Record totals across a user's campaigns, plus the most recently updated ones."""
        with self.db.connection() as conn:

            def count(table: str) -> int:
                return conn.execute(
                    f"""
                    SELECT COUNT(*) FROM {table} x
                    JOIN campaigns c ON c.id = x.campaign_id
                    WHERE c.owner_id = ?
                    """,
                    (owner_id,),
                ).fetchone()[0]

            entities_by_type = {
                row["entity_type"]: row["n"]
                for row in conn.execute(
                    """
                    SELECT e.entity_type, COUNT(*) AS n FROM entities e
                    JOIN campaigns c ON c.id = e.campaign_id
                    WHERE c.owner_id = ?
                    GROUP BY e.entity_type
                    """,
                    (owner_id,),
                )
            }
            recent_rows = conn.execute(
                "SELECT * FROM campaigns WHERE owner_id = ? ORDER BY updated_at DESC, id DESC LIMIT ?",
                (owner_id, recent_limit),
            ).fetchall()
            total_campaigns = conn.execute(
                "SELECT COUNT(*) FROM campaigns WHERE owner_id = ?", (owner_id,)
            ).fetchone()[0]

            return OverviewStats(
                total_campaigns=total_campaigns,
                total_entities=sum(entities_by_type.values()),
                total_relationships=count("relationships"),
                total_sessions=count("sessions"),
                entities_by_type=entities_by_type,
                recent_campaigns=[CampaignRecord.from_row(row) for row in recent_rows],
            )

    @staticmethod
    def _check_system(conn: sqlite3.Connection, system_id: int) -> None:
        if conn.execute("SELECT 1 FROM game_systems WHERE id = ?", (system_id,)).fetchone() is None:
            raise ValidationError(
                "Unknown game system",
                field_name="system_id",
                invalid_value=system_id,
            )


__all__ = [
    "CampaignRecord",
    "CampaignStats",
    "DashboardStats",
    "OverviewStats",
    "CampaignRepository",
]
