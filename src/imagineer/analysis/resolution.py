"""Review decisions on content analysis items.

Accepting an identification item wraps the matched text in a wiki link in
the source field; reverting removes the link again. Both edits move the
offsets of the job's remaining pending items so they keep pointing at
their text. Accepting an enrichment item applies its suggestion (a new
relationship, description, log entry or entity).
"""

from __future__ import annotations

from typing import Any, Callable

from imagineer.analysis.analyzer import find_wiki_links
from imagineer.analysis.sources import read_source, write_source
from imagineer.core.constants import REVERT_SEARCH_RADIUS
from imagineer.core.exceptions import (
    ConflictError,
    NotFoundError,
    StaleOffsetError,
    ValidationError,
)
from imagineer.core.logging import get_logger
from imagineer.models.enums import DetectionType, EntityType, Phase, Resolution
from imagineer.storage.analysis import (
    AnalysisItemRecord,
    AnalysisJobRecord,
    AnalysisRepository,
    item_span,
    mark_resolution,
    shift_pending_positions,
)
from imagineer.storage.database import Database
from imagineer.storage.entities import EntityRepository
from imagineer.storage.entity_log import EntityLogRepository
from imagineer.storage.relationship_types import RelationshipTypeRepository
from imagineer.storage.relationships import RelationshipRepository

logger = get_logger(__name__)

AutoEnrichHook = Callable[[int, int], None]

_REVIEW_RESOLUTIONS = frozenset({
    Resolution.ACCEPTED,
    Resolution.NEW_ENTITY,
    Resolution.DISMISSED,
    Resolution.ACKNOWLEDGED,
})
_BATCH_RESOLUTIONS = frozenset({Resolution.ACCEPTED, Resolution.DISMISSED})
_LINKING_RESOLUTIONS = frozenset({Resolution.ACCEPTED, Resolution.NEW_ENTITY})


def _parse_resolution(value: str, allowed: frozenset[Resolution]) -> Resolution:
    try:
        resolution = Resolution(value)
    except ValueError:
        resolution = None
    if resolution not in allowed:
        raise ValidationError(
            "Resolution must be one of: " + ", ".join(sorted(r.value for r in allowed)),
            field_name="resolution",
            invalid_value=value,
        )
    return resolution


def build_replacement(
    item: AnalysisItemRecord,
    resolution: Resolution,
    *,
    entity_name: str | None = None,
) -> str:
    """Wiki link text that replaces an accepted item's matched text.

    Args:
        item: The item being accepted.
        resolution: accepted or new_entity.
        entity_name: Name of the entity created for a new_entity resolution.
    """
    if resolution is Resolution.NEW_ENTITY and entity_name:
        return f"[[{entity_name}]]"
    if item.detection_type == DetectionType.POTENTIAL_ALIAS and item.entity_name:
        return f"[[{item.entity_name}|{item.matched_text}]]"
    return f"[[{item.matched_text}]]"


class ResolutionService:
    """Apply, batch-apply and revert review decisions.

    Attributes:
        db: Database shared by the repositories.
        auto_enrich: Called with ``(job_id, user_id)`` once every
            identification item of a job has been reviewed.
    """

    def __init__(self, db: Database, *, auto_enrich: AutoEnrichHook | None = None) -> None:
        self.db = db
        self.auto_enrich = auto_enrich
        self.analysis = AnalysisRepository(db)
        self.entities = EntityRepository(db)
        self.entity_log = EntityLogRepository(db)
        self.relationships = RelationshipRepository(db)
        self.relationship_types = RelationshipTypeRepository(db)

    # =========================================================================
    # Single item
    # =========================================================================

    def resolve_item(
        self,
        campaign_id: int,
        item_id: int,
        resolution: str,
        *,
        user_id: int,
        entity_type: str | None = None,
        entity_name: str | None = None,
        suggested_content_override: dict[str, Any] | None = None,
    ) -> AnalysisItemRecord:
        """Record a review decision and apply its side effects.

        Args:
            campaign_id: Campaign the item must belong to.
            item_id: Item to resolve.
            resolution: accepted, new_entity, dismissed or acknowledged.
            user_id: Reviewer, used when enrichment starts automatically.
            entity_type: Type of the entity to create for new_entity.
            entity_name: Name of the entity to create for new_entity.
            suggested_content_override: Reviewer edits merged over the
                item's suggested content before it is applied.

        Returns:
            The updated item.

        Raises:
            NotFoundError: If the item is not in the campaign.
            ValidationError: If the resolution or new entity fields are invalid.
        """
        item = self.analysis.get_item(campaign_id, item_id)
        job = self.analysis.get_job(campaign_id, item.job_id)
        chosen = _parse_resolution(resolution, _REVIEW_RESOLUTIONS)

        if chosen is Resolution.ACKNOWLEDGED and item.phase != Phase.ANALYSIS:
            raise ValidationError(
                "Only analysis findings can be acknowledged",
                field_name="resolution",
                invalid_value=resolution,
            )

        resolved_entity_id: int | None = None
        if chosen is Resolution.NEW_ENTITY:
            resolved_entity_id = self._create_entity_for_item(campaign_id, entity_type, entity_name)
        elif chosen is Resolution.ACCEPTED:
            resolved_entity_id = item.entity_id

        if chosen is Resolution.ACCEPTED:
            resolved_entity_id = self._apply_suggestion(
                campaign_id, item, suggested_content_override
            ) or resolved_entity_id

        if chosen in _LINKING_RESOLUTIONS:
            replacement = build_replacement(item, chosen, entity_name=entity_name)
            self._link_content(job, item, chosen, resolved_entity_id, replacement)
        else:
            self.analysis.set_resolution(item.id, chosen, resolved_entity_id)

        logger.info(
            "Analysis item resolved",
            job_id=job.id,
            item_id=item.id,
            resolution=chosen.value,
            detection_type=item.detection_type,
        )
        self._finish(job.id, user_id)
        return self.analysis.get_item(campaign_id, item_id)

    def batch_resolve(
        self,
        campaign_id: int,
        job_id: int,
        detection_type: str | None,
        resolution: str,
        *,
        user_id: int,
    ) -> int:
        """Resolve every pending item of one detection type.

        Items are handled from the end of the text backwards, so a fix
        never moves the offsets of an item still to be processed.

        Returns:
            Number of items resolved.

        Raises:
            NotFoundError: If the job is not in the campaign.
            ValidationError: If the type is missing or the resolution is not
                accepted or dismissed.
        """
        job = self.analysis.get_job(campaign_id, job_id)
        if not detection_type:
            raise ValidationError("detectionType is required", field_name="detection_type")
        chosen = _parse_resolution(resolution, _BATCH_RESOLUTIONS)

        items = self.analysis.pending_of_type(job.id, detection_type)
        for item in items:
            resolved_entity_id = item.entity_id if chosen is Resolution.ACCEPTED else None
            if chosen is Resolution.ACCEPTED:
                resolved_entity_id = self._apply_suggestion(campaign_id, item, None) or resolved_entity_id
            if chosen is Resolution.ACCEPTED:
                self._link_content(job, item, chosen, resolved_entity_id, build_replacement(item, chosen))
            else:
                self.analysis.set_resolution(item.id, chosen, resolved_entity_id)

        logger.info(
            "Analysis items batch resolved",
            job_id=job.id,
            detection_type=detection_type,
            resolution=chosen.value,
            resolved=len(items),
        )
        self._finish(job.id, user_id)
        return len(items)

    def revert_item(self, campaign_id: int, item_id: int) -> AnalysisItemRecord:
        """Undo a review decision and set the item back to pending.

        For items that inserted a wiki link, the link near the item's
        position whose shown text equals the matched text is replaced by
        the plain text again. A link that cannot be found is logged and
        the item is reverted anyway.

        Raises:
            NotFoundError: If the item is not in the campaign.
            ValidationError: If the item is still pending.
        """
        item = self.analysis.get_item(campaign_id, item_id)
        if item.resolution == Resolution.PENDING:
            raise ValidationError(
                "Item is already pending and cannot be reverted",
                field_name="resolution",
                invalid_value=item.resolution,
            )
        job = self.analysis.get_job(campaign_id, item.job_id)

        if item.resolution in _LINKING_RESOLUTIONS and item.has_position:
            self._unlink_content(job, item)
        else:
            self.analysis.set_resolution(item.id, Resolution.PENDING)
        self.analysis.recount(job.id)
        logger.info("Analysis item reverted", job_id=job.id, item_id=item.id)
        return self.analysis.get_item(campaign_id, item_id)

    def pending_count(
        self,
        campaign_id: int,
        source_table: str | None = None,
        source_id: int | None = None,
    ) -> int:
        """Pending items across the campaign's jobs, optionally for one record."""
        return self.analysis.pending_count(campaign_id, source_table=source_table, source_id=source_id)

    # =========================================================================
    # Content edits
    # =========================================================================

    def _link_content(
        self,
        job: AnalysisJobRecord,
        item: AnalysisItemRecord,
        resolution: Resolution,
        resolved_entity_id: int | None,
        replacement: str,
    ) -> None:
        """Record an accept and wrap the item's text in a wiki link.

        The offsets are re-read under the write lock, since an edit that
        committed meanwhile may have shifted them. The decision commits in
        the same transaction as the edit.
        """
        if not item.has_position or DetectionType(item.detection_type).is_wiki_link:
            self.analysis.set_resolution(item.id, resolution, resolved_entity_id)
            return
        try:
            with self.db.connection(immediate=True) as conn:
                start, end = item_span(conn, item.id)
                content = read_source(conn, job.campaign_id, job.source_table, job.source_id, job.source_field)
                current = content[start:end]
                if current != item.matched_text:
                    raise StaleOffsetError(
                        "Content changed since analysis",
                        expected=item.matched_text,
                        actual=current,
                    )
                write_source(
                    conn,
                    job.campaign_id,
                    job.source_table,
                    job.source_id,
                    job.source_field,
                    content[:start] + replacement + content[end:],
                )
                shifted = shift_pending_positions(
                    conn,
                    job.id,
                    after=end,
                    delta=len(replacement) - (end - start),
                    exclude_item_id=item.id,
                )
                mark_resolution(conn, item.id, resolution, resolved_entity_id)
        except (StaleOffsetError, NotFoundError) as exc:
            logger.warning("Content fix skipped", job_id=job.id, item_id=item.id, reason=str(exc))
            self.analysis.set_resolution(item.id, resolution, resolved_entity_id)
            return
        logger.debug("Content fix applied", job_id=job.id, item_id=item.id, shifted=shifted)

    def _unlink_content(self, job: AnalysisJobRecord, item: AnalysisItemRecord) -> None:
        """Replace the item's wiki link by its plain text and set it pending."""
        try:
            with self.db.connection(immediate=True) as conn:
                content = read_source(conn, job.campaign_id, job.source_table, job.source_id, job.source_field)
                window_start = max(0, item.position_start - REVERT_SEARCH_RADIUS)
                window_end = min(
                    len(content), item.position_start + len(item.matched_text) + REVERT_SEARCH_RADIUS
                )
                window = content[window_start:window_end]
                link = next(
                    (lk for lk in find_wiki_links(window) if lk.shown_text == item.matched_text),
                    None,
                )
                if link is None:
                    logger.warning(
                        "Wiki link not found for revert",
                        job_id=job.id,
                        item_id=item.id,
                        matched_text=item.matched_text,
                    )
                    mark_resolution(conn, item.id, Resolution.PENDING)
                    return

                start = window_start + link.start
                end = window_start + link.end
                write_source(
                    conn,
                    job.campaign_id,
                    job.source_table,
                    job.source_id,
                    job.source_field,
                    content[:start] + item.matched_text + content[end:],
                )
                shift_pending_positions(
                    conn,
                    job.id,
                    after=end,
                    delta=len(item.matched_text) - (end - start),
                    exclude_item_id=item.id,
                )
                mark_resolution(
                    conn, item.id, Resolution.PENDING, span=(start, start + len(item.matched_text))
                )
        except NotFoundError as exc:
            logger.warning("Content revert skipped", job_id=job.id, item_id=item.id, reason=str(exc))
            self.analysis.set_resolution(item.id, Resolution.PENDING)

    # =========================================================================
    # Suggestions
    # =========================================================================

    def _create_entity_for_item(
        self,
        campaign_id: int,
        entity_type: str | None,
        entity_name: str | None,
    ) -> int:
        if not entity_type:
            raise ValidationError(
                "Entity type is required for new_entity resolution", field_name="entity_type"
            )
        if not entity_name or not entity_name.strip():
            raise ValidationError(
                "Entity name is required for new_entity resolution", field_name="entity_name"
            )
        entity = self.entities.create(campaign_id, entity_type=entity_type, name=entity_name)
        return entity.id

    def _apply_suggestion(
        self,
        campaign_id: int,
        item: AnalysisItemRecord,
        override: dict[str, Any] | None,
    ) -> int | None:
        """Carry out an accepted enrichment suggestion.

        Returns:
            Id of the entity the suggestion resolved to, when it has one.
        """
        suggested = {**(item.suggested_content or {}), **(override or {})}
        detection = item.detection_type

        if detection == DetectionType.RELATIONSHIP_SUGGESTION:
            self._create_suggested_relationship(campaign_id, item, suggested)
        elif detection == DetectionType.DESCRIPTION_UPDATE and item.entity_id is not None:
            description = suggested.get("suggestedDescription")
            if description:
                try:
                    self.entities.update(item.entity_id, {"description": description})
                except NotFoundError:
                    logger.warning("Description update target is gone", item_id=item.id)
        elif detection == DetectionType.LOG_ENTRY and item.entity_id is not None:
            try:
                self.entity_log.create(
                    entity_id=item.entity_id,
                    campaign_id=campaign_id,
                    content=suggested.get("content") or "",
                    occurred_at=suggested.get("occurredAt"),
                )
            except ValidationError as exc:
                logger.warning("Log entry suggestion skipped", item_id=item.id, reason=str(exc))
        elif detection == DetectionType.NEW_ENTITY_SUGGESTION:
            return self._create_suggested_entity(campaign_id, item, suggested)
        return None

    def _create_suggested_relationship(
        self,
        campaign_id: int,
        item: AnalysisItemRecord,
        suggested: dict[str, Any],
    ) -> None:
        type_name = suggested.get("relationshipType") or ""
        rel_type = self.relationship_types.get_by_name(campaign_id, type_name)
        if rel_type is None:
            logger.warning(
                "Suggested relationship type not found",
                item_id=item.id,
                relationship_type=type_name,
            )
            return
        try:
            self.relationships.create(
                campaign_id,
                source_entity_id=int(suggested["sourceEntityId"]),
                target_entity_id=int(suggested["targetEntityId"]),
                relationship_type_id=rel_type.id,
                description=suggested.get("description"),
            )
        except (ConflictError, ValidationError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Suggested relationship skipped", item_id=item.id, reason=str(exc))

    def _create_suggested_entity(
        self,
        campaign_id: int,
        item: AnalysisItemRecord,
        suggested: dict[str, Any],
    ) -> int | None:
        name = (suggested.get("name") or item.matched_text or "").strip()
        if not name:
            return None
        existing = self.entities.find_by_name(campaign_id, name)
        if existing is not None:
            return existing.id
        try:
            entity_type = EntityType(suggested.get("entityType") or EntityType.OTHER).value
        except ValueError:
            entity_type = EntityType.OTHER.value
        entity = self.entities.create(
            campaign_id,
            entity_type=entity_type,
            name=name,
            description=suggested.get("description"),
        )
        return entity.id

    # =========================================================================
    # Bookkeeping
    # =========================================================================

    def _finish(self, job_id: int, user_id: int) -> None:
        job = self.analysis.recount(job_id)
        if (
            self.auto_enrich is not None
            and job.total_items > 0
            and job.resolved_items == job.total_items
            and job.enrichment_total == 0
        ):
            self.auto_enrich(job.id, user_id)


__all__ = [
    "AutoEnrichHook",
    "build_replacement",
    "ResolutionService",
]
