"""Schemas for users, settings, game systems and campaigns."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from imagineer.models.base import ApiModel
from imagineer.models.enums import Genre


# =============================================================================
# Users
# =============================================================================


class UserResponse(ApiModel):
    """The signed-in user."""

    id: int
    google_id: str
    email: str
    name: str
    avatar_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserSettingsResponse(ApiModel):
    """LLM preferences as shown to the client; the key itself never leaves."""

    user_id: int
    content_gen_service: str | None = None
    content_gen_api_key_masked: str = ""
    has_content_gen_api_key: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserSettingsUpdate(ApiModel):
    """Partial settings update; an empty string clears a field."""

    content_gen_service: str | None = None
    content_gen_api_key: str | None = None


# =============================================================================
# Game systems
# =============================================================================


class GameSystemResponse(ApiModel):
    """A built-in rules system."""

    id: int
    name: str
    code: str
    attribute_schema: dict[str, Any] = Field(default_factory=dict)
    skill_schema: dict[str, Any] = Field(default_factory=dict)
    dice_conventions: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


# =============================================================================
# Campaigns
# =============================================================================


class CampaignCreate(ApiModel):
    """Body of a campaign creation request."""

    name: str
    system_id: int | None = None
    description: str | None = None
    settings: dict[str, Any] | None = None
    genre: Genre | None = None
    image_style_prompt: str | None = None


class CampaignUpdate(ApiModel):
    """Partial campaign update."""

    name: str | None = None
    system_id: int | None = None
    description: str | None = None
    settings: dict[str, Any] | None = None
    genre: Genre | None = None
    image_style_prompt: str | None = None


class CampaignResponse(ApiModel):
    """A stored campaign."""

    id: int
    name: str
    system_id: int | None = None
    description: str | None = None
    settings: dict[str, Any] = Field(default_factory=dict)
    owner_id: int | None = None
    genre: str | None = None
    image_style_prompt: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CampaignStatsResponse(ApiModel):
    """Record counts of one campaign."""

    entity_counts: dict[str, int]
    relationship_count: int
    timeline_event_count: int
    session_count: int
    chapter_count: int


class DashboardStatsResponse(ApiModel):
    """Totals across the user's campaigns."""

    campaign_count: int
    npc_count: int
    location_count: int
    timeline_event_count: int
    total_entity_count: int


class OverviewStatsResponse(ApiModel):
    """Totals across the user's campaigns and the latest ones."""

    total_campaigns: int
    total_entities: int
    total_relationships: int
    total_sessions: int
    entities_by_type: dict[str, int]
    recent_campaigns: list[CampaignResponse]


__all__ = [
    "UserResponse",
    "UserSettingsResponse",
    "UserSettingsUpdate",
    "GameSystemResponse",
    "CampaignCreate",
    "CampaignUpdate",
    "CampaignResponse",
    "CampaignStatsResponse",
    "DashboardStatsResponse",
    "OverviewStatsResponse",
]
