"""Campaign entities: NPCs, locations, items, factions and the rest."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from imagineer.analysis.matching import rank_matches
from imagineer.core.constants import RESOLVE_ENTITY_THRESHOLD
from imagineer.core.exceptions import NotFoundError, ValidationError
from imagineer.core.logging import get_logger
from imagineer.models.enums import EntityType, SourceConfidence
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
    "entity_type",
    "name",
    "description",
    "attributes",
    "tags",
    "gm_notes",
    "discovered_session",
    "source_document",
    "source_confidence",
)
_JSON_FIELDS = ("attributes", "tags")


@dataclass
class EntityRecord:
    """A campaign entity.

    Attributes:
        id: Primary key.
        campaign_id: Owning campaign.
        entity_type: EntityType value.
        name: Display name.
        description: Player-facing description.
        attributes: System-specific properties.
        tags: Free-form labels.
        gm_notes: GM-only notes.
        discovered_session: Session in which players discovered the entity.
        source_document: Where the entity was first written down.
        source_confidence: Canon status.
        version: Incremented on every update.
        created_at: Creation time.
        updated_at: Last modification time.
    """

    id: int
    campaign_id: int
    entity_type: str
    name: str
    description: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    gm_notes: str | None = None
    discovered_session: int | None = None
    source_document: str | None = None
    source_confidence: str = SourceConfidence.DRAFT.value
    version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> EntityRecord:
        """Create from database row."""
        return cls(
            id=row["id"],
            campaign_id=row["campaign_id"],
            entity_type=row["entity_type"],
            name=row["name"],
            description=row["description"],
            attributes=from_json(row["attributes"], {}),
            tags=from_json(row["tags"], []),
            gm_notes=row["gm_notes"],
            discovered_session=row["discovered_session"],
            source_document=row["source_document"],
            source_confidence=row["source_confidence"],
            version=row["version"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )


@dataclass
class EntityMatch:
    """An entity returned by fuzzy name resolution."""

    id: int
    name: str
    entity_type: str
    description: str | None
    similarity: float


def _validate_fields(fields: dict[str, Any]) -> dict[str, Any]:
    cleaned = dict(fields)
    if "name" in cleaned:
        if cleaned["name"] is None or not str(cleaned["name"]).strip():
            raise ValidationError("Entity name is required", field_name="name")
        cleaned["name"] = str(cleaned["name"]).strip()
    if "entity_type" in cleaned:
        try:
            cleaned["entity_type"] = EntityType(cleaned["entity_type"]).value
        except ValueError as exc:
            raise ValidationError(
                f"Invalid entity type: {cleaned['entity_type']}",
                field_name="entity_type",
                invalid_value=cleaned["entity_type"],
            ) from exc
    if "attributes" in cleaned:
        if cleaned["attributes"] is None:
            cleaned["attributes"] = {}
        elif not isinstance(cleaned["attributes"], dict):
            raise ValidationError("attributes must be a JSON object", field_name="attributes")
    if "tags" in cleaned and cleaned["tags"] is None:
        cleaned["tags"] = []
    if "source_confidence" in cleaned and cleaned["source_confidence"] is not None:
        try:
            cleaned["source_confidence"] = SourceConfidence(cleaned["source_confidence"]).value
        except ValueError as exc:
            raise ValidationError(
                f"Invalid source confidence: {cleaned['source_confidence']}",
                field_name="source_confidence",
                invalid_value=cleaned["source_confidence"],
            ) from exc
    return cleaned


class EntityRepository(Repository):
    """CRUD, search and fuzzy resolution for entities."""

    def list_for_campaign(
        self,
        campaign_id: int,
        *,
        entity_type: str | None = None,
        tag: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[EntityRecord]:
        """List a campaign's entities ordered by name.

        Args:
            campaign_id: Campaign to list.
            entity_type: Keep only this type.
            tag: Keep only entities carrying this tag.
            limit: Maximum rows, None for all.
            offset: Rows to skip.
        """
        query = "SELECT * FROM entities WHERE campaign_id = ?"
        params: list[Any] = [campaign_id]
        if entity_type:
            query += " AND entity_type = ?"
            params.append(entity_type)
        if tag:
            query += " AND EXISTS (SELECT 1 FROM json_each(entities.tags) WHERE json_each.value = ?)"
            params.append(tag)
        query += " ORDER BY name COLLATE NOCASE, id"
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])

        return [EntityRecord.from_row(row) for row in self._fetch_all(query, tuple(params))]

    def get(self, entity_id: int) -> EntityRecord | None:
        """Get an entity by id regardless of campaign, or None."""
        row = self._fetch_one("SELECT * FROM entities WHERE id = ?", (entity_id,))
        return EntityRecord.from_row(row) if row else None

    def get_in_campaign(self, campaign_id: int, entity_id: int) -> EntityRecord:
        """Get an entity that belongs to the campaign.

        Raises:
            NotFoundError: If the entity is missing or belongs elsewhere.
        """
        entity = self.get(entity_id)
        if entity is None or entity.campaign_id != campaign_id:
            raise NotFoundError("Entity not found", resource="entity", resource_id=entity_id)
        return entity

    def get_many(self, campaign_id: int, entity_ids: list[int]) -> list[EntityRecord]:
        """Fetch the campaign's entities with the given ids, skipping unknown ids."""
        if not entity_ids:
            return []
        placeholders = ", ".join("?" for _ in entity_ids)
        rows = self._fetch_all(
            f"SELECT * FROM entities WHERE campaign_id = ? AND id IN ({placeholders}) ORDER BY id",
            (campaign_id, *entity_ids),
        )
        return [EntityRecord.from_row(row) for row in rows]

    def find_by_name(self, campaign_id: int, name: str) -> EntityRecord | None:
        """Find an entity by exact, case-insensitive name."""
        row = self._fetch_one(
            "SELECT * FROM entities WHERE campaign_id = ? AND lower(name) = lower(?) ORDER BY id LIMIT 1",
            (campaign_id, name.strip()),
        )
        return EntityRecord.from_row(row) if row else None

    def create(
        self,
        campaign_id: int,
        *,
        entity_type: str,
        name: str,
        description: str | None = None,
        attributes: dict[str, Any] | None = None,
        tags: list[str] | None = None,
        gm_notes: str | None = None,
        discovered_session: int | None = None,
        source_document: str | None = None,
        source_confidence: str | None = None,
    ) -> EntityRecord:
        """Create an entity.

        Raises:
            ValidationError: If the type, name or attributes are invalid.
        """
        fields = _validate_fields({
            "entity_type": entity_type,
            "name": name,
            "attributes": attributes,
            "tags": tags,
            "source_confidence": source_confidence or SourceConfidence.DRAFT.value,
        })
        now = to_timestamp()
        with self.db.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO entities
                    (campaign_id, entity_type, name, description, attributes, tags,
                     gm_notes, discovered_session, source_document, source_confidence,
                     version, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
                """,
                (
                    campaign_id,
                    fields["entity_type"],
                    fields["name"],
                    description,
                    to_json(fields["attributes"]),
                    to_json(fields["tags"]),
                    gm_notes,
                    discovered_session,
                    source_document,
                    fields["source_confidence"],
                    now,
                    now,
                ),
            )
            entity_id = cursor.lastrowid

        logger.info("Entity created", campaign_id=campaign_id, entity_id=entity_id, name=fields["name"])
        return self.get(entity_id)

    def update(self, entity_id: int, fields: dict[str, Any]) -> EntityRecord:
        """Apply a partial update, bump the version and discard drafts.

        Raises:
            ValidationError: If a field value is invalid.
            NotFoundError: If the entity does not exist.
        """
        fields = _validate_fields(fields)
        clauses, params = build_update(fields, _UPDATABLE, json_fields=_JSON_FIELDS)
        clauses.extend(["version = version + 1", "updated_at = ?"])
        params.append(to_timestamp())

        with self.db.connection() as conn:
            cursor = conn.execute(
                f"UPDATE entities SET {', '.join(clauses)} WHERE id = ?",
                (*params, entity_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Entity not found", resource="entity", resource_id=entity_id)
            delete_drafts_for_source(conn, "entities", entity_id)

        return self.get(entity_id)

    def delete(self, entity_id: int) -> None:
        """Delete an entity with its log entries and relationships.

        Raises:
            NotFoundError: If the entity does not exist.
        """
        with self.db.connection() as conn:
            cursor = conn.execute("DELETE FROM entities WHERE id = ?", (entity_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("Entity not found", resource="entity", resource_id=entity_id)
        logger.info("Entity deleted", entity_id=entity_id)

    # =========================================================================
    # Search
    # =========================================================================

    def search(self, campaign_id: int, query: str, limit: int = 20) -> list[EntityRecord]:
        """Case-insensitive substring search over names, ordered by name."""
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        rows = self._fetch_all(
            """
            SELECT * FROM entities
            WHERE campaign_id = ? AND name LIKE ? ESCAPE '\\'
            ORDER BY name COLLATE NOCASE, id
            LIMIT ?
            """,
            (campaign_id, f"%{escaped}%", limit),
        )
        return [EntityRecord.from_row(row) for row in rows]

    def resolve(self, campaign_id: int, name: str, limit: int = 10) -> list[EntityMatch]:
        """Fuzzy-match a name against the campaign's entity names.

        Candidates scoring below the resolve threshold are dropped.

        Returns:
            Matches ordered by similarity, best first.
        """
        if not name.strip():
            return []
        entities = self.list_for_campaign(campaign_id)
        ranked = rank_matches(name, entities, threshold=RESOLVE_ENTITY_THRESHOLD, limit=limit)
        return [
            EntityMatch(
                id=entity.id,
                name=entity.name,
                entity_type=entity.entity_type,
                description=entity.description,
                similarity=round(score, 4),
            )
            for entity, score in ranked
        ]


__all__ = [
    "EntityRecord",
    "EntityMatch",
    "EntityRepository",
]
