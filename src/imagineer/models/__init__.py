"""Request and response schemas of the REST API."""

from imagineer.models.analysis import (
    AnalysisItemResponse,
    AnalysisJobResponse,
    AnalysisResultResponse,
    ApplyRevisionRequest,
    BatchResolveRequest,
    ConsistencyCheckRequest,
    ConsistencyIssueResponse,
    ConsistencyReportResponse,
    IssueSummaryResponse,
    ResolveItemRequest,
    RevisionResponse,
    TriggerAnalysisRequest,
)
from imagineer.models.base import ApiModel
from imagineer.models.campaigns import (
    CampaignCreate,
    CampaignResponse,
    CampaignStatsResponse,
    CampaignUpdate,
    DashboardStatsResponse,
    GameSystemResponse,
    OverviewStatsResponse,
    UserResponse,
    UserSettingsResponse,
    UserSettingsUpdate,
)
from imagineer.models.content import (
    ChapterCreate,
    ChapterResponse,
    ChapterUpdate,
    DraftIndicatorResponse,
    DraftResponse,
    DraftSave,
    SessionFields,
    SessionResponse,
    TimelineEventFields,
    TimelineEventResponse,
)
from imagineer.models.entities import (
    EntityCreate,
    EntityLogCreate,
    EntityLogResponse,
    EntityLogUpdate,
    EntityMatchResponse,
    EntityResponse,
    EntityUpdate,
    RelationshipCreate,
    RelationshipResponse,
    RelationshipTypeCreate,
    RelationshipTypeResponse,
    RelationshipUpdate,
)
from imagineer.models.enums import (
    ConsistencyIssueType,
    DatePrecision,
    DetectionType,
    DraftSourceTable,
    EntityType,
    Genre,
    IssueSeverity,
    JobStatus,
    LLMService,
    Phase,
    RelationshipTone,
    Resolution,
    SessionStage,
    SessionStatus,
    SourceConfidence,
)

__all__ = [
    # Base
    "ApiModel",
    # Enums
    "EntityType",
    "SourceConfidence",
    "SessionStatus",
    "SessionStage",
    "RelationshipTone",
    "DatePrecision",
    "Genre",
    "LLMService",
    "Phase",
    "DetectionType",
    "Resolution",
    "JobStatus",
    "DraftSourceTable",
    "IssueSeverity",
    "ConsistencyIssueType",
    # Users and campaigns
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
    # Entities
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
    # Content
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
    # Analysis
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
