"""Single-edge relationships between entities.

Each link is stored once, in its forward direction. Reading it from the
target's side swaps the endpoints and uses the type's inverse name and
label, so "A owns B" reads as "B is owned by A".
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from imagineer.core.exceptions import ConflictError, NotFoundError, ValidationError
from imagineer.core.logging import get_logger
from imagineer.models.enums import RelationshipTone
from imagineer.storage.base import Repository, build_update, parse_timestamp, to_timestamp

logger = get_logger(__name__)

_UPDATABLE = ("relationship_type_id", "tone", "description", "strength")

_SELECT = """
    SELECT
        r.*,
        rt.name AS type_name,
        rt.inverse_name AS type_inverse_name,
        rt.is_symmetric AS type_is_symmetric,
        rt.display_label AS type_display_label,
        rt.inverse_display_label AS type_inverse_display_label,
        se.name AS source_entity_name,
        se.entity_type AS source_entity_type,
        te.name AS target_entity_name,
        te.entity_type AS target_entity_type
    FROM relationships r
    JOIN relationship_types rt ON rt.id = r.relationship_type_id
    JOIN entities se ON se.id = r.source_entity_id
    JOIN entities te ON te.id = r.target_entity_id
"""


@dataclass
class RelationshipRecord:
    """A relationship as seen from one of its endpoints.

    ``direction`` is ``forward`` when the record reads as stored and
    ``inverse`` when it was flipped to the target entity's point of view.
    """

    id: int
    campaign_id: int
    source_entity_id: int
    target_entity_id: int
    source_entity_name: str
    source_entity_type: str
    target_entity_name: str
    target_entity_type: str
    relationship_type_id: int
    relationship_type: str
    display_label: str
    is_symmetric: bool
    tone: str | None
    description: str | None
    strength: int | None
    direction: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> RelationshipRecord:
        """Create the forward view from a joined database row."""
        return cls(
            id=row["id"],
            campaign_id=row["campaign_id"],
            source_entity_id=row["source_entity_id"],
            target_entity_id=row["target_entity_id"],
            source_entity_name=row["source_entity_name"],
            source_entity_type=row["source_entity_type"],
            target_entity_name=row["target_entity_name"],
            target_entity_type=row["target_entity_type"],
            relationship_type_id=row["relationship_type_id"],
            relationship_type=row["type_name"],
            display_label=row["type_display_label"],
            is_symmetric=bool(row["type_is_symmetric"]),
            tone=row["tone"],
            description=row["description"],
            strength=row["strength"],
            direction="forward",
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )

    @classmethod
    def inverse_from_row(cls, row: sqlite3.Row) -> RelationshipRecord:
        """Create the view from the target entity's side."""
        forward = cls.from_row(row)
        return replace(
            forward,
            source_entity_id=forward.target_entity_id,
            target_entity_id=forward.source_entity_id,
            source_entity_name=forward.target_entity_name,
            source_entity_type=forward.target_entity_type,
            target_entity_name=forward.source_entity_name,
            target_entity_type=forward.source_entity_type,
            relationship_type=row["type_inverse_name"],
            display_label=row["type_inverse_display_label"],
            direction="inverse",
        )


def _validate_values(fields: dict[str, Any]) -> None:
    tone = fields.get("tone")
    if tone is not None:
        try:
            RelationshipTone(tone)
        except ValueError as exc:
            raise ValidationError(f"Invalid tone: {tone}", field_name="tone", invalid_value=tone) from exc
    strength = fields.get("strength")
    if strength is not None and not 1 <= int(strength) <= 10:
        raise ValidationError(
            "Strength must be between 1 and 10", field_name="strength", invalid_value=strength
        )


class RelationshipRepository(Repository):
    """CRUD for relationships with duplicate detection."""

    def list_for_campaign(self, campaign_id: int) -> list[RelationshipRecord]:
        """All relationships of a campaign in their stored direction."""
        rows = self._fetch_all(
            _SELECT + " WHERE r.campaign_id = ? ORDER BY r.id",
            (campaign_id,),
        )
        return [RelationshipRecord.from_row(row) for row in rows]

    def list_for_entity(self, campaign_id: int, entity_id: int) -> list[RelationshipRecord]:
        """Every relationship touching the entity, read from its side."""
        rows = self._fetch_all(
            _SELECT
            + """
            WHERE r.campaign_id = ? AND (r.source_entity_id = ? OR r.target_entity_id = ?)
            ORDER BY r.id
            """,
            (campaign_id, entity_id, entity_id),
        )
        return [
            RelationshipRecord.from_row(row)
            if row["source_entity_id"] == entity_id
            else RelationshipRecord.inverse_from_row(row)
            for row in rows
        ]

    def get(self, campaign_id: int, relationship_id: int) -> RelationshipRecord:
        """Get a relationship of the campaign in its stored direction.

        Raises:
            NotFoundError: If it is missing or belongs elsewhere.
        """
        row = self._fetch_one(
            _SELECT + " WHERE r.id = ? AND r.campaign_id = ?",
            (relationship_id, campaign_id),
        )
        if row is None:
            raise NotFoundError(
                "Relationship not found", resource="relationship", resource_id=relationship_id
            )
        return RelationshipRecord.from_row(row)

    def create(
        self,
        campaign_id: int,
        *,
        source_entity_id: int,
        target_entity_id: int,
        relationship_type_id: int,
        tone: str | None = None,
        description: str | None = None,
        strength: int | None = None,
    ) -> RelationshipRecord:
        """Create a relationship.

        Raises:
            ValidationError: For self-links, foreign entities or bad values.
            NotFoundError: If the relationship type is not in the campaign.
            ConflictError: If the same link already exists.
        """
        if source_entity_id == target_entity_id:
            raise ValidationError(
                "An entity cannot have a relationship with itself",
                field_name="target_entity_id",
                invalid_value=target_entity_id,
            )
        _validate_values({"tone": tone, "strength": strength})

        with self.db.connection() as conn:
            self._check_entities(conn, campaign_id, source_entity_id, target_entity_id)
            rel_type = self._load_type(conn, campaign_id, relationship_type_id)
            self._check_duplicate(
                conn, source_entity_id, target_entity_id, relationship_type_id,
                symmetric=bool(rel_type["is_symmetric"]),
            )
            now = to_timestamp()
            cursor = conn.execute(
                """
                INSERT INTO relationships
                    (campaign_id, source_entity_id, target_entity_id, relationship_type_id,
                     tone, description, strength, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (campaign_id, source_entity_id, target_entity_id, relationship_type_id,
                 tone, description, strength, now, now),
            )
            relationship_id = cursor.lastrowid

        logger.info(
            "Relationship created",
            campaign_id=campaign_id,
            relationship_id=relationship_id,
            relationship_type=rel_type["name"],
        )
        return self.get(campaign_id, relationship_id)

    def update(self, campaign_id: int, relationship_id: int, fields: dict[str, Any]) -> RelationshipRecord:
        """Apply a partial update.

        Raises:
            ValidationError: For bad tone or strength values.
            NotFoundError: If the relationship or new type does not exist.
            ConflictError: If the change duplicates another link.
        """
        current = self.get(campaign_id, relationship_id)
        _validate_values(fields)
        if not fields:
            return current

        clauses, params = build_update(fields, _UPDATABLE)
        clauses.append("updated_at = ?")
        params.append(to_timestamp())
        try:
            with self.db.connection() as conn:
                new_type_id = fields.get("relationship_type_id")
                if new_type_id is not None and new_type_id != current.relationship_type_id:
                    rel_type = self._load_type(conn, campaign_id, new_type_id)
                    self._check_duplicate(
                        conn, current.source_entity_id, current.target_entity_id, new_type_id,
                        symmetric=bool(rel_type["is_symmetric"]),
                    )
                conn.execute(
                    f"UPDATE relationships SET {', '.join(clauses)} WHERE id = ?",
                    (*params, relationship_id),
                )
        except sqlite3.IntegrityError as exc:
            raise ConflictError("Relationship already exists") from exc

        return self.get(campaign_id, relationship_id)

    def delete(self, campaign_id: int, relationship_id: int) -> None:
        """Delete a relationship.

        Raises:
            NotFoundError: If it is missing or belongs elsewhere.
        """
        self.get(campaign_id, relationship_id)
        with self.db.connection() as conn:
            conn.execute("DELETE FROM relationships WHERE id = ?", (relationship_id,))

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _check_entities(conn: sqlite3.Connection, campaign_id: int, *entity_ids: int) -> None:
        for entity_id in entity_ids:
            row = conn.execute(
                "SELECT 1 FROM entities WHERE id = ? AND campaign_id = ?",
                (entity_id, campaign_id),
            ).fetchone()
            if row is None:
                raise ValidationError(
                    "Entity does not belong to this campaign",
                    field_name="entity_id",
                    invalid_value=entity_id,
                )

    @staticmethod
    def _load_type(conn: sqlite3.Connection, campaign_id: int, type_id: int) -> sqlite3.Row:
        row = conn.execute(
            "SELECT * FROM relationship_types WHERE id = ? AND campaign_id = ?",
            (type_id, campaign_id),
        ).fetchone()
        if row is None:
            raise NotFoundError(
                "Relationship type not found", resource="relationship_type", resource_id=type_id
            )
        return row

    @staticmethod
    def _check_duplicate(
        conn: sqlite3.Connection,
        source_id: int,
        target_id: int,
        type_id: int,
        *,
        symmetric: bool,
    ) -> None:
        query = """
            SELECT id FROM relationships
            WHERE relationship_type_id = ?
              AND ((source_entity_id = ? AND target_entity_id = ?)
        """
        params: list[Any] = [type_id, source_id, target_id]
        if symmetric:
            query += " OR (source_entity_id = ? AND target_entity_id = ?)"
            params.extend([target_id, source_id])
        query += ")"
        existing = conn.execute(query, tuple(params)).fetchone()
        if existing is not None:
            raise ConflictError(
                "Relationship already exists",
                details={"relationship_id": existing["id"]},
            )


__all__ = [
    "RelationshipRecord",
    "RelationshipRepository",
]
