"""Schemas for entities, their log, relationship types and relationships."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from imagineer.models.base import ApiModel


# =============================================================================
# Entities
# =============================================================================


class EntityCreate(ApiModel):
    """Body of an entity creation request."""

    entity_type: str
    name: str
    description: str | None = None
    attributes: dict[str, Any] | None = None
    tags: list[str] | None = None
    gm_notes: str | None = None
    discovered_session: int | None = None
    source_document: str | None = None
    source_confidence: str | None = None


class EntityUpdate(ApiModel):
    """Partial entity update."""

    entity_type: str | None = None
    name: str | None = None
    description: str | None = None
    attributes: dict[str, Any] | None = None
    tags: list[str] | None = None
    gm_notes: str | None = None
    discovered_session: int | None = None
    source_document: str | None = None
    source_confidence: str | None = None


class EntityResponse(ApiModel):
    """A stored entity."""

    id: int
    campaign_id: int
    entity_type: str
    name: str
    description: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    gm_notes: str | None = None
    discovered_session: int | None = None
    source_document: str | None = None
    source_confidence: str
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EntityMatchResponse(ApiModel):
    """An entity found by fuzzy name resolution."""

    id: int
    name: str
    entity_type: str
    description: str | None = None
    similarity: float


# =============================================================================
# Entity log
# =============================================================================


class EntityLogCreate(ApiModel):
    """Body of a log entry creation request."""

    content: str
    occurred_at: str | None = None
    chapter_id: int | None = None
    session_id: int | None = None
    sort_order: int | None = None
    source_table: str | None = None
    source_id: int | None = None


class EntityLogUpdate(ApiModel):
    """Partial log entry update."""

    content: str | None = None
    occurred_at: str | None = None
    chapter_id: int | None = None
    session_id: int | None = None
    sort_order: int | None = None


class EntityLogResponse(ApiModel):
    """A stored log entry."""

    id: int
    entity_id: int
    campaign_id: int
    chapter_id: int | None = None
    session_id: int | None = None
    source_table: str | None = None
    source_id: int | None = None
    content: str
    occurred_at: str | None = None
    sort_order: int | None = None
    created_at: datetime | None = None


# =============================================================================
# Relationship types
# =============================================================================


class RelationshipTypeCreate(ApiModel):
    """Body of a custom relationship type."""

    name: str
    inverse_name: str
    is_symmetric: bool = False
    display_label: str
    inverse_display_label: str
    description: str | None = None


class RelationshipTypeResponse(ApiModel):
    """A campaign relationship type."""

    id: int
    campaign_id: int
    name: str
    inverse_name: str
    is_symmetric: bool
    display_label: str
    inverse_display_label: str
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# =============================================================================
# Relationships
# =============================================================================


class RelationshipCreate(ApiModel):
    """Body of a relationship creation request."""

    source_entity_id: int
    target_entity_id: int
    relationship_type_id: int
    tone: str | None = None
    description: str | None = None
    strength: int | None = None


class RelationshipUpdate(ApiModel):
    """Partial relationship update."""

    relationship_type_id: int | None = None
    tone: str | None = None
    description: str | None = None
    strength: int | None = None


class RelationshipResponse(ApiModel):
    """A relationship seen from its source entity."""

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
    tone: str | None = None
    description: str | None = None
    strength: int | None = None
    direction: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


__all__ = [
    "EntityCreate",
    "EntityUpdate",
    "EntityResponse",
    "EntityMatchResponse",
    "EntityLogCreate",
    "EntityLogUpdate",
    "EntityLogResponse",
    "RelationshipTypeCreate",
    "RelationshipTypeResponse",
    "RelationshipCreate",
    "RelationshipUpdate",
    "RelationshipResponse",
]
