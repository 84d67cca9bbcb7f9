"""Storage module for Imagineer persistence.

Provides SQLite-based storage for:
- Users, their LLM settings and OAuth identities
- Campaigns with their entities, relationships, chapters, sessions and timeline
- Server-side drafts of unsaved edits
- Content analysis jobs and review items
"""

from imagineer.storage.analysis import (
    AnalysisItemRecord,
    AnalysisJobRecord,
    AnalysisRepository,
    DetectedItem,
)
from imagineer.storage.campaigns import CampaignRecord, CampaignRepository
from imagineer.storage.chapters import ChapterRecord, ChapterRepository
from imagineer.storage.database import Database, get_database, set_database
from imagineer.storage.drafts import DraftIndicator, DraftRecord, DraftRepository
from imagineer.storage.entities import EntityMatch, EntityRecord, EntityRepository
from imagineer.storage.entity_log import EntityLogRecord, EntityLogRepository
from imagineer.storage.game_systems import GameSystemRecord, GameSystemRepository
from imagineer.storage.relationship_types import RelationshipTypeRecord, RelationshipTypeRepository
from imagineer.storage.relationships import RelationshipRecord, RelationshipRepository
from imagineer.storage.sessions import SessionRecord, SessionRepository
from imagineer.storage.timeline import TimelineEventRecord, TimelineRepository
from imagineer.storage.users import UserRecord, UserRepository, UserSettingsRecord

__all__ = [
    "Database",
    "get_database",
    "set_database",
    "AnalysisItemRecord",
    "AnalysisJobRecord",
    "AnalysisRepository",
    "DetectedItem",
    "CampaignRecord",
    "CampaignRepository",
    "ChapterRecord",
    "ChapterRepository",
    "DraftIndicator",
    "DraftRecord",
    "DraftRepository",
    "EntityMatch",
    "EntityRecord",
    "EntityRepository",
    "EntityLogRecord",
    "EntityLogRepository",
    "GameSystemRecord",
    "GameSystemRepository",
    "RelationshipTypeRecord",
    "RelationshipTypeRepository",
    "RelationshipRecord",
    "RelationshipRepository",
    "SessionRecord",
    "SessionRepository",
    "TimelineEventRecord",
    "TimelineRepository",
    "UserRecord",
    "UserRepository",
    "UserSettingsRecord",
]
