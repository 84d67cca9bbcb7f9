"""Per-campaign relationship type vocabulary.

Each relationship type has a forward name and an inverse name so a single
stored edge can be read from either end. Symmetric types use the same
name in both directions.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime

from imagineer.core.exceptions import ConflictError, NotFoundError, ValidationError
from imagineer.core.logging import get_logger
from imagineer.storage.base import Repository, parse_timestamp, to_timestamp
from imagineer.storage.seeds import RELATIONSHIP_TYPE_TEMPLATES

logger = get_logger(__name__)


@dataclass
class RelationshipTypeRecord:
    """A named, directed relationship kind within a campaign."""

    id: int
    campaign_id: int
    name: str
    inverse_name: str
    is_symmetric: bool
    display_label: str
    inverse_display_label: str
    description: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> RelationshipTypeRecord:
        """Create from database row."""
        return cls(
            id=row["id"],
            campaign_id=row["campaign_id"],
            name=row["name"],
            inverse_name=row["inverse_name"],
            is_symmetric=bool(row["is_symmetric"]),
            display_label=row["display_label"],
            inverse_display_label=row["inverse_display_label"],
            description=row["description"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )


def seed_campaign_types(conn: sqlite3.Connection, campaign_id: int) -> None:
    """Copy the default relationship types into a new campaign.

    Args:
        conn: Open connection, so seeding joins the campaign's transaction.
        campaign_id: Campaign to seed.
    """
    now = to_timestamp()
    conn.executemany(
        """
        INSERT OR IGNORE INTO relationship_types
            (campaign_id, name, inverse_name, is_symmetric, display_label,
             inverse_display_label, description, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                campaign_id,
                template["name"],
                template["inverse_name"],
                int(template["is_symmetric"]),
                template["display_label"],
                template["inverse_display_label"],
                template["description"],
                now,
                now,
            )
            for template in RELATIONSHIP_TYPE_TEMPLATES
        ],
    )


class RelationshipTypeRepository(Repository):
    """CRUD for a campaign's relationship types."""

    def list_for_campaign(self, campaign_id: int) -> list[RelationshipTypeRecord]:
        """All types of a campaign ordered by name."""
        rows = self._fetch_all(
            "SELECT * FROM relationship_types WHERE campaign_id = ? ORDER BY name",
            (campaign_id,),
        )
        return [RelationshipTypeRecord.from_row(row) for row in rows]

    def get(self, campaign_id: int, type_id: int) -> RelationshipTypeRecord:
        """Get a type that belongs to the campaign.

        Raises:
            NotFoundError: If the type is missing or belongs elsewhere.
        """
        row = self._fetch_one(
            "SELECT * FROM relationship_types WHERE id = ? AND campaign_id = ?",
            (type_id, campaign_id),
        )
        if row is None:
            raise NotFoundError(
                "Relationship type not found", resource="relationship_type", resource_id=type_id
            )
        return RelationshipTypeRecord.from_row(row)

    def get_by_name(self, campaign_id: int, name: str) -> RelationshipTypeRecord | None:
        """Look a type up by its forward name, or None."""
        row = self._fetch_one(
            "SELECT * FROM relationship_types WHERE campaign_id = ? AND name = ?",
            (campaign_id, name),
        )
        return RelationshipTypeRecord.from_row(row) if row else None

    def create(
        self,
        campaign_id: int,
        *,
        name: str,
        inverse_name: str,
        is_symmetric: bool = False,
        display_label: str,
        inverse_display_label: str,
        description: str | None = None,
    ) -> RelationshipTypeRecord:
        """Create a custom relationship type.

        Raises:
            ValidationError: If a symmetric type has a different inverse name.
            ConflictError: If the campaign already has a type with this name.
        """
        name = name.strip()
        inverse_name = inverse_name.strip()
        if not name or not inverse_name:
            raise ValidationError("Relationship type name and inverse name are required", field_name="name")
        if is_symmetric and name != inverse_name:
            raise ValidationError(
                "Symmetric relationship types must have name equal to inverse name",
                field_name="inverse_name",
                invalid_value=inverse_name,
            )

        now = to_timestamp()
        try:
            with self.db.connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO relationship_types
                        (campaign_id, name, inverse_name, is_symmetric, display_label,
                         inverse_display_label, description, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (campaign_id, name, inverse_name, int(is_symmetric), display_label,
                     inverse_display_label, description, now, now),
                )
                type_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            raise ConflictError(
                f"Relationship type already exists: {name}",
                details={"name": name},
            ) from exc

        logger.info("Relationship type created", campaign_id=campaign_id, name=name)
        return self.get(campaign_id, type_id)

    def delete(self, campaign_id: int, type_id: int) -> None:
        """Delete a relationship type.

        Raises:
            NotFoundError: If the type is missing or belongs elsewhere.
            ConflictError: If relationships still use the type.
        """
        self.get(campaign_id, type_id)
        try:
            with self.db.connection() as conn:
                conn.execute("DELETE FROM relationship_types WHERE id = ?", (type_id,))
        except sqlite3.IntegrityError as exc:
            raise ConflictError(
                "Relationship type is in use",
                details={"relationship_type_id": type_id},
            ) from exc


__all__ = [
    "RelationshipTypeRecord",
    "RelationshipTypeRepository",
    "seed_campaign_types",
]
