"""Enumeration types for the Imagineer campaign backend.

This module defines the enumeration types shared by storage, content
analysis and the HTTP layer. Values are the exact strings stored in the
database and exchanged with clients.
"""

from __future__ import annotations

from enum import StrEnum


class EntityType(StrEnum):
    """Kinds of campaign entity."""

    NPC = "npc"
    LOCATION = "location"
    ITEM = "item"
    FACTION = "faction"
    CLUE = "clue"
    CREATURE = "creature"
    ORGANIZATION = "organization"
    EVENT = "event"
    DOCUMENT = "document"
    OTHER = "other"


class SourceConfidence(StrEnum):
    """Canon status of an entity."""

    DRAFT = "DRAFT"
    AUTHORITATIVE = "AUTHORITATIVE"
    SUPERSEDED = "SUPERSEDED"


class SessionStatus(StrEnum):
    """Whether a session has been played."""

    PLANNED = "PLANNED"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class SessionStage(StrEnum):
    """Workflow stage of a session."""

    PREP = "prep"
    PLAY = "play"
    WRAP_UP = "wrap_up"


class RelationshipTone(StrEnum):
    """Emotional tone of a relationship between two entities."""

    FRIENDLY = "friendly"
    HOSTILE = "hostile"
    NEUTRAL = "neutral"
    ROMANTIC = "romantic"
    PROFESSIONAL = "professional"
    FEARFUL = "fearful"
    RESPECTFUL = "respectful"
    UNKNOWN = "unknown"


class DatePrecision(StrEnum):
    """How precisely a timeline event's date is known."""

    EXACT = "exact"
    APPROXIMATE = "approximate"
    MONTH = "month"
    YEAR = "year"
    UNKNOWN = "unknown"


class Genre(StrEnum):
    """Campaign genre, used as context for generated content."""

    ANIME_MANGA = "anime_manga"
    CYBERPUNK = "cyberpunk"
    ESPIONAGE = "espionage"
    FANTASY = "fantasy"
    GOTHIC = "gothic"
    HISTORICAL = "historical"
    HORROR = "horror"
    LOVECRAFTIAN = "lovecraftian"
    MILITARY = "military"
    MODERN_URBAN_FANTASY = "modern_urban_fantasy"
    MYSTERY = "mystery"
    POST_APOCALYPTIC = "post_apocalyptic"
    PULP_ADVENTURE = "pulp_adventure"
    SCIENCE_FICTION = "science_fiction"
    SPACE_OPERA = "space_opera"
    STEAMPUNK = "steampunk"
    SUPERHERO = "superhero"
    TIME_TRAVEL = "time_travel"
    WESTERN = "western"
    OTHER = "other"


class LLMService(StrEnum):
    """LLM services a user can configure for content generation."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    OLLAMA = "ollama"

    @property
    def requires_api_key(self) -> bool:
        """Whether the service needs a user-supplied key.

        Returns:
            False for locally hosted services.
        """
        return self is not LLMService.OLLAMA


class Phase(StrEnum):
    """Phase of a content analysis job that produced an item."""

    IDENTIFICATION = "identification"
    ANALYSIS = "analysis"
    ENRICHMENT = "enrichment"


class DetectionType(StrEnum):
    """What a content analysis item reports.

    Identification-phase types come from deterministic text scanning,
    the rest are produced by LLM agents.
    """

    # Identification
    WIKI_LINK_RESOLVED = "wiki_link_resolved"
    WIKI_LINK_UNRESOLVED = "wiki_link_unresolved"
    UNTAGGED_MENTION = "untagged_mention"
    POTENTIAL_ALIAS = "potential_alias"
    MISSPELLING = "misspelling"

    # Enrichment
    DESCRIPTION_UPDATE = "description_update"
    LOG_ENTRY = "log_entry"
    RELATIONSHIP_SUGGESTION = "relationship_suggestion"
    NEW_ENTITY_SUGGESTION = "new_entity_suggestion"
    ORPHAN_WARNING = "orphan_warning"
    REDUNDANT_EDGE = "redundant_edge"
    IMPLIED_EDGE = "implied_edge"

    # Analysis
    ANALYSIS_REPORT = "analysis_report"
    PACING_NOTE = "pacing_note"
    INVESTIGATION_GAP = "investigation_gap"
    MECHANICS_WARNING = "mechanics_warning"
    CONTENT_SUGGESTION = "content_suggestion"
    CANON_CONTRADICTION = "canon_contradiction"
    TEMPORAL_INCONSISTENCY = "temporal_inconsistency"
    CHARACTER_INCONSISTENCY = "character_inconsistency"

    @property
    def is_wiki_link(self) -> bool:
        """Whether the detection already points at an existing wiki link.

        Returns:
            True for wiki link detections, which never rewrite text.
        """
        return self.value.startswith("wiki_link_")


class Resolution(StrEnum):
    """Review outcome of a content analysis item."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    NEW_ENTITY = "new_entity"
    DISMISSED = "dismissed"
    ACKNOWLEDGED = "acknowledged"


class JobStatus(StrEnum):
    """Lifecycle state of a content analysis job."""

    COMPLETED = "completed"
    ENRICHING = "enriching"
    FAILED = "failed"


class DraftSourceTable(StrEnum):
    """Records that can carry a server-side draft."""

    ENTITIES = "entities"
    CHAPTERS = "chapters"
    SESSIONS = "sessions"


class IssueSeverity(StrEnum):
    """How urgently a consistency issue needs attention."""

    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


class ConsistencyIssueType(StrEnum):
    """Kinds of problem the consistency check reports."""

    ORPHANED_ENTITY = "orphaned_entity"
    DUPLICATE_NAME = "duplicate_name"
    TIMELINE_CONFLICT = "timeline_conflict"
    INVALID_REFERENCE = "invalid_reference"
    SESSION_WITHOUT_DISCOVERIES = "session_without_discoveries"


__all__ = [
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
]
