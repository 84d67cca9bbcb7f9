"""Campaign-wide consistency check.

Looks for gaps and contradictions in the stored campaign data without
calling an LLM:

- orphaned entities (no relationships, no timeline references)
- entities with near-identical names
- entities in two exactly dated events on the same date
- relationships and timeline events pointing at missing entities
- completed sessions without any discoveries

Example:
    >>> checker = ConsistencyChecker(db)
    >>> report = checker.run(campaign_id=3, entity_type="npc")
    >>> report.summary.total
    4
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from itertools import combinations

from imagineer.analysis.matching import name_similarity
from imagineer.core.constants import DUPLICATE_NAME_THRESHOLD
from imagineer.core.exceptions import ValidationError
from imagineer.core.logging import get_logger
from imagineer.models.enums import ConsistencyIssueType, EntityType, IssueSeverity
from imagineer.storage.consistency import ConsistencyRepository
from imagineer.storage.database import Database

logger = get_logger(__name__)


@dataclass
class ConsistencyIssue:
    """One problem found in a campaign.

    Attributes:
        type: What kind of problem this is.
        severity: minor, major or critical.
        description: Human-readable explanation.
        suggestion: What the GM could do about it.
        entity_id: The record the issue is about: an entity, or the
            relationship, event or session for reference and session issues.
        entity_name: Display name of that record.
        related_ids: Other records involved.
    """

    type: str
    severity: str
    description: str
    suggestion: str
    entity_id: int | None = None
    entity_name: str | None = None
    related_ids: list[int] = field(default_factory=list)


@dataclass
class IssueSummary:
    """Issue counts by severity."""

    total: int = 0
    critical: int = 0
    major: int = 0
    minor: int = 0

    @classmethod
    def of(cls, issues: list[ConsistencyIssue]) -> IssueSummary:
        counts = Counter(issue.severity for issue in issues)
        return cls(
            total=len(issues),
            critical=counts[IssueSeverity.CRITICAL],
            major=counts[IssueSeverity.MAJOR],
            minor=counts[IssueSeverity.MINOR],
        )


@dataclass
class ConsistencyReport:
    """Everything one consistency check found."""

    campaign_id: int
    issues: list[ConsistencyIssue]
    summary: IssueSummary


class ConsistencyChecker:
    """Runs every consistency check over one campaign."""

    name = "consistency-checker"
    description = (
        "Analyzes campaign data to find plot holes, timeline conflicts, "
        "orphaned entities, and other inconsistencies"
    )

    def __init__(self, db: Database, *, duplicate_threshold: float = DUPLICATE_NAME_THRESHOLD) -> None:
        self.queries = ConsistencyRepository(db)
        self.duplicate_threshold = duplicate_threshold

    def run(self, campaign_id: int, entity_type: str | None = None) -> ConsistencyReport:
        """Check a campaign.

        Args:
            campaign_id: Campaign to check. Ownership is checked by the caller.
            entity_type: Limit the orphaned-entity check to one type.

        Raises:
            ValidationError: If ``entity_type`` is not a known type.
        """
        if entity_type:
            try:
                entity_type = EntityType(entity_type).value
            except ValueError as exc:
                raise ValidationError(
                    f"Invalid entity type: {entity_type}",
                    field_name="entity_type",
                    invalid_value=entity_type,
                ) from exc
        else:
            entity_type = None

        issues = [
            *self._orphaned_entities(campaign_id, entity_type),
            *self._duplicate_names(campaign_id),
            *self._timeline_conflicts(campaign_id),
            *self._invalid_references(campaign_id),
            *self._sessions_without_discoveries(campaign_id),
        ]
        report = ConsistencyReport(campaign_id=campaign_id, issues=issues, summary=IssueSummary.of(issues))
        logger.info(
            "Consistency check finished",
            campaign_id=campaign_id,
            entity_type=entity_type,
            issues=report.summary.total,
            critical=report.summary.critical,
        )
        return report

    # =========================================================================
    # Checks
    # =========================================================================

    def _orphaned_entities(self, campaign_id: int, entity_type: str | None) -> list[ConsistencyIssue]:
        return [
            ConsistencyIssue(
                type=ConsistencyIssueType.ORPHANED_ENTITY.value,
                severity=IssueSeverity.MINOR.value,
                entity_id=orphan.id,
                entity_name=orphan.name,
                description=(
                    f"Entity '{orphan.name}' ({orphan.entity_type}) has no relationships "
                    "or timeline references"
                ),
                suggestion="Consider linking this entity to others or removing if unused",
            )
            for orphan in self.queries.orphaned_entities(campaign_id, entity_type)
        ]

    def _duplicate_names(self, campaign_id: int) -> list[ConsistencyIssue]:
        scored = []
        for first, second in combinations(self.queries.entity_names(campaign_id), 2):
            similarity = name_similarity(first.name, second.name)
            if similarity > self.duplicate_threshold:
                scored.append((similarity, first, second))
        scored.sort(key=lambda entry: entry[0], reverse=True)

        return [
            ConsistencyIssue(
                type=ConsistencyIssueType.DUPLICATE_NAME.value,
                severity=IssueSeverity.MAJOR.value,
                entity_id=first.id,
                entity_name=first.name,
                description=(
                    f"Entities '{first.name}' and '{second.name}' have very similar names "
                    f"({similarity * 100:.0f}% similarity)"
                ),
                suggestion="These entities may be duplicates. Consider merging.",
                related_ids=[second.id],
            )
            for similarity, first, second in scored
        ]

    def _timeline_conflicts(self, campaign_id: int) -> list[ConsistencyIssue]:
        return [
            ConsistencyIssue(
                type=ConsistencyIssueType.TIMELINE_CONFLICT.value,
                severity=IssueSeverity.CRITICAL.value,
                entity_id=conflict.entity_id,
                entity_name=conflict.entity_name,
                description=(
                    f"Entity '{conflict.entity_name}' appears in {len(conflict.event_ids)} "
                    f"events on {conflict.event_date}"
                ),
                suggestion="Entity cannot be in two places at once. Verify timeline.",
                related_ids=conflict.event_ids,
            )
            for conflict in self.queries.timeline_conflicts(campaign_id)
        ]

    def _invalid_references(self, campaign_id: int) -> list[ConsistencyIssue]:
        issues = []
        for ref in self.queries.invalid_references(campaign_id):
            holder = "Timeline event" if ref.reference_type == "timeline" else "Relationship"
            issues.append(
                ConsistencyIssue(
                    type=ConsistencyIssueType.INVALID_REFERENCE.value,
                    severity=IssueSeverity.CRITICAL.value,
                    entity_id=ref.record_id,
                    description=f"{holder} {ref.record_id} references missing entity (ID: {ref.missing_entity_id})",
                    suggestion="Reference points to missing entity. Update or remove.",
                    related_ids=[ref.missing_entity_id],
                )
            )
        return issues

    def _sessions_without_discoveries(self, campaign_id: int) -> list[ConsistencyIssue]:
        return [
            ConsistencyIssue(
                type=ConsistencyIssueType.SESSION_WITHOUT_DISCOVERIES.value,
                severity=IssueSeverity.MINOR.value,
                entity_id=session.id,
                entity_name=f"Session {session.session_number}",
                description=(
                    f"Completed session {session.session_number} has no entity discoveries or references"
                ),
                suggestion="Consider adding discovered entities to this session.",
            )
            for session in self.queries.sessions_without_discoveries(campaign_id)
        ]


__all__ = [
    "ConsistencyIssue",
    "IssueSummary",
    "ConsistencyReport",
    "ConsistencyChecker",
]
