"""Schemas for chapters, sessions, timeline events and drafts."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from imagineer.models.base import ApiModel


# =============================================================================
# Chapters
# =============================================================================


class ChapterCreate(ApiModel):
    """Body of a chapter creation request."""

    title: str
    overview: str | None = None
    sort_order: int | None = None


class ChapterUpdate(ApiModel):
    """Partial chapter update."""

    title: str | None = None
    overview: str | None = None
    sort_order: int | None = None


class ChapterResponse(ApiModel):
    """A stored chapter."""

    id: int
    campaign_id: int
    title: str
    overview: str | None = None
    sort_order: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


# =============================================================================
# Sessions
# =============================================================================


class SessionFields(ApiModel):
    """Writable session fields, all optional."""

    chapter_id: int | None = None
    title: str | None = None
    session_number: int | None = None
    planned_date: str | None = None
    actual_date: str | None = None
    status: str | None = None
    stage: str | None = None
    prep_notes: str | None = None
    planned_scenes: list[Any] | None = None
    actual_notes: str | None = None
    discoveries: list[Any] | None = None
    player_decisions: list[Any] | None = None
    consequences: list[Any] | None = None


class SessionResponse(ApiModel):
    """A stored session."""

    id: int
    campaign_id: int
    chapter_id: int | None = None
    title: str | None = None
    session_number: int | None = None
    planned_date: str | None = None
    actual_date: str | None = None
    status: str
    stage: str
    prep_notes: str | None = None
    planned_scenes: list[Any] | None = None
    actual_notes: str | None = None
    discoveries: list[Any] = Field(default_factory=list)
    player_decisions: list[Any] = Field(default_factory=list)
    consequences: list[Any] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


# =============================================================================
# Timeline
# =============================================================================


class TimelineEventFields(ApiModel):
    """Writable timeline event fields, all optional."""

    event_date: str | None = None
    event_time: str | None = None
    date_precision: str | None = None
    description: str | None = None
    entity_ids: list[int] | None = None
    session_id: int | None = None
    is_player_known: bool | None = None
    source_document: str | None = None


class TimelineEventResponse(ApiModel):
    """A stored timeline event."""

    id: int
    campaign_id: int
    event_date: str | None = None
    event_time: str | None = None
    date_precision: str
    description: str
    entity_ids: list[int] = Field(default_factory=list)
    session_id: int | None = None
    is_player_known: bool = False
    source_document: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# =============================================================================
# Drafts
# =============================================================================


class DraftSave(ApiModel):
    """Body of a draft save, also sent by the unload beacon."""

    source_table: str
    source_id: int
    draft_data: Any = None
    is_new: bool = False
    server_version: int | None = None


class DraftResponse(ApiModel):
    """A stored draft with its contents."""

    id: int
    campaign_id: int
    user_id: int
    source_table: str
    source_id: int
    is_new: bool
    draft_data: Any = None
    server_version: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DraftIndicatorResponse(ApiModel):
    """Which record has a draft, without the draft itself."""

    source_table: str
    source_id: int
    is_new: bool
    updated_at: datetime | None = None


__all__ = [
    "ChapterCreate",
    "ChapterUpdate",
    "ChapterResponse",
    "SessionFields",
    "SessionResponse",
    "TimelineEventFields",
    "TimelineEventResponse",
    "DraftSave",
    "DraftResponse",
    "DraftIndicatorResponse",
]
