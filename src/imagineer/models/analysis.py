"""Schemas for content analysis jobs, items and revisions."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from imagineer.models.base import ApiModel


class AnalysisJobResponse(ApiModel):
    """An analysis job with its review counters."""

    id: int
    campaign_id: int
    source_table: str
    source_id: int
    source_field: str
    status: str
    total_items: int
    resolved_items: int
    enrichment_total: int
    enrichment_resolved: int
    failure_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AnalysisItemResponse(ApiModel):
    """A review item with its entity's name and type."""

    id: int
    job_id: int
    detection_type: str
    matched_text: str
    entity_id: int | None = None
    similarity: float | None = None
    context_snippet: str | None = None
    position_start: int | None = None
    position_end: int | None = None
    resolution: str
    resolved_entity_id: int | None = None
    resolved_at: datetime | None = None
    suggested_content: dict[str, Any] | None = None
    phase: str
    agent_name: str | None = None
    pipeline_run_id: str | None = None
    created_at: datetime | None = None
    entity_name: str | None = None
    entity_type: str | None = None


class AnalysisResultResponse(ApiModel):
    """A freshly created job and its identification items."""

    job: AnalysisJobResponse
    items: list[AnalysisItemResponse]


class TriggerAnalysisRequest(ApiModel):
    """Which text field to analyse."""

    source_table: str
    source_id: int
    source_field: str


class ResolveItemRequest(ApiModel):
    """A review decision on one item."""

    resolution: str
    entity_type: str | None = None
    entity_name: str | None = None
    suggested_content_override: dict[str, Any] | None = None


class BatchResolveRequest(ApiModel):
    """A review decision applied to every pending item of one type."""

    detection_type: str | None = None
    resolution: str


class RevisionResponse(ApiModel):
    """A proposed revision next to the text it revises."""

    revised_content: str
    summary: str
    original_content: str


class ApplyRevisionRequest(ApiModel):
    """Revised text to write back to the source field."""

    revised_content: str | None = None


# =============================================================================
# Consistency check
# =============================================================================


class ConsistencyCheckRequest(ApiModel):
    """Optional filter for a consistency check."""

    entity_type: str | None = None


class ConsistencyIssueResponse(ApiModel):
    """One problem found in a campaign."""

    type: str
    severity: str
    description: str
    suggestion: str
    entity_id: int | None = None
    entity_name: str | None = None
    related_ids: list[int] = []


class IssueSummaryResponse(ApiModel):
    """Issue counts by severity."""

    total: int
    critical: int
    major: int
    minor: int


class ConsistencyReportResponse(ApiModel):
    """Result of a consistency check."""

    campaign_id: int
    issues: list[ConsistencyIssueResponse]
    summary: IssueSummaryResponse


__all__ = [
    "AnalysisJobResponse",
    "AnalysisItemResponse",
    "AnalysisResultResponse",
    "TriggerAnalysisRequest",
    "ResolveItemRequest",
    "BatchResolveRequest",
    "RevisionResponse",
    "ApplyRevisionRequest",
    "ConsistencyCheckRequest",
    "ConsistencyIssueResponse",
    "IssueSummaryResponse",
    "ConsistencyReportResponse",
]
