"""LLM enrichment of campaign entities.

The engine asks the configured provider what a piece of content reveals
about one entity and turns the reply into enrichment-phase review items:
description updates, log entries and relationship suggestions. It also
spots named things in the content that are not yet entities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from imagineer.core.constants import (
    ENRICHMENT_MAX_TOKENS,
    ENRICHMENT_TEMPERATURE,
    NEW_ENTITY_MAX_TOKENS,
    NEW_ENTITY_TEMPERATURE,
)
from imagineer.core.logging import get_logger
from imagineer.enrichment.parsing import as_list, clean_str, parse_json_object
from imagineer.enrichment.prompts import (
    ENRICHMENT_SYSTEM_PROMPT,
    NEW_ENTITY_SYSTEM_PROMPT,
    build_enrichment_prompt,
    build_new_entity_prompt,
)
from imagineer.llm.provider import CompletionRequest, LLMProvider
from imagineer.models.enums import DetectionType, EntityType, Phase
from imagineer.storage.analysis import DetectedItem
from imagineer.storage.entities import EntityRecord
from imagineer.storage.relationships import RelationshipRecord

logger = get_logger(__name__)

_ENTITY_TYPES = frozenset(t.value for t in EntityType)


@dataclass
class EnrichmentInput:
    """Everything needed to enrich one entity.

    Attributes:
        campaign_id: Campaign being enriched.
        job_id: Analysis job the items belong to.
        content: Source text the entity appears in.
        entity: The entity to enrich.
        other_entities: Other entities that may appear in the content.
        relationships: Known relationships of the campaign.
    """

    campaign_id: int
    job_id: int
    content: str
    entity: EntityRecord
    other_entities: list[EntityRecord] = field(default_factory=list)
    relationships: list[RelationshipRecord] = field(default_factory=list)


def _pair(first: int, second: int) -> frozenset[int]:
    return frozenset((first, second))


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class EnrichmentEngine:
    """Turns LLM replies into enrichment review items."""

    def enrich_entity(self, provider: LLMProvider, data: EnrichmentInput) -> list[DetectedItem]:
        """Suggest enrichments for one entity.

        Args:
            provider: LLM provider to call.
            data: The entity, its neighbours and the source content.

        Returns:
            Enrichment-phase items. A reply that cannot be parsed yields
            an empty list.

        Raises:
            LLMError: If the provider call fails.
        """
        entity = data.entity
        own_relationships = [
            rel for rel in data.relationships
            if entity.id in (rel.source_entity_id, rel.target_entity_id)
        ]
        response = provider.complete(
            CompletionRequest(
                system_prompt=ENRICHMENT_SYSTEM_PROMPT,
                user_prompt=build_enrichment_prompt(
                    data.content, entity, own_relationships, data.other_entities
                ),
                max_tokens=ENRICHMENT_MAX_TOKENS,
                temperature=ENRICHMENT_TEMPERATURE,
            )
        )
        parsed = parse_json_object(response.content)
        if parsed is None:
            logger.warning("Discarding unparseable enrichment reply", entity_id=entity.id, job_id=data.job_id)
            return []

        items: list[DetectedItem] = []
        for update in as_list(parsed.get("descriptionUpdates")):
            if not isinstance(update, dict) or not clean_str(update.get("suggestedDescription")):
                continue
            items.append(self._item(DetectionType.DESCRIPTION_UPDATE, entity, {
                "currentDescription": entity.description or "",
                "suggestedDescription": clean_str(update.get("suggestedDescription")),
                "rationale": clean_str(update.get("rationale")),
            }))

        for entry in as_list(parsed.get("logEntries")):
            if not isinstance(entry, dict) or not clean_str(entry.get("content")):
                continue
            suggestion: dict[str, Any] = {"content": clean_str(entry.get("content"))}
            if clean_str(entry.get("occurredAt")):
                suggestion["occurredAt"] = clean_str(entry.get("occurredAt"))
            items.append(self._item(DetectionType.LOG_ENTRY, entity, suggestion))

        items.extend(self._relationship_items(data, as_list(parsed.get("relationships"))))

        logger.info(
            "Entity enriched",
            entity_id=entity.id,
            job_id=data.job_id,
            items=len(items),
            tokens_used=response.tokens_used,
        )
        return items

    def detect_new_entities(
        self,
        provider: LLMProvider,
        campaign_id: int,
        job_id: int,
        content: str,
        known_entities: list[EntityRecord],
    ) -> list[DetectedItem]:
        """Suggest named things in the content that are not entities yet.

        Returns:
            One ``new_entity_suggestion`` item per unknown name.

        Raises:
            LLMError: If the provider call fails.
        """
        response = provider.complete(
            CompletionRequest(
                system_prompt=NEW_ENTITY_SYSTEM_PROMPT,
                user_prompt=build_new_entity_prompt(content, known_entities),
                max_tokens=NEW_ENTITY_MAX_TOKENS,
                temperature=NEW_ENTITY_TEMPERATURE,
            )
        )
        parsed = parse_json_object(response.content)
        if parsed is None:
            logger.warning("Discarding unparseable new entity reply", campaign_id=campaign_id, job_id=job_id)
            return []

        known = {entity.name.strip().lower() for entity in known_entities}
        items: list[DetectedItem] = []
        for candidate in as_list(parsed.get("new_entities")):
            if not isinstance(candidate, dict):
                continue
            name = clean_str(candidate.get("name"))
            if not name or name.lower() in known:
                continue
            known.add(name.lower())

            entity_type = clean_str(candidate.get("entity_type")).lower()
            if entity_type not in _ENTITY_TYPES:
                entity_type = EntityType.OTHER.value

            items.append(DetectedItem(
                detection_type=DetectionType.NEW_ENTITY_SUGGESTION.value,
                matched_text=name,
                suggested_content={
                    "name": name,
                    "entityType": entity_type,
                    "description": clean_str(candidate.get("description")),
                    "reasoning": clean_str(candidate.get("reasoning")),
                },
                phase=Phase.ENRICHMENT.value,
            ))

        logger.info("New entities detected", campaign_id=campaign_id, job_id=job_id, count=len(items))
        return items

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _item(detection_type: DetectionType, entity: EntityRecord, suggestion: dict[str, Any]) -> DetectedItem:
        return DetectedItem(
            detection_type=detection_type.value,
            matched_text=entity.name,
            entity_id=entity.id,
            suggested_content=suggestion,
            phase=Phase.ENRICHMENT.value,
        )

    def _relationship_items(self, data: EnrichmentInput, suggestions: list[Any]) -> list[DetectedItem]:
        known = {entity.id: entity for entity in [data.entity, *data.other_entities]}
        taken = {_pair(rel.source_entity_id, rel.target_entity_id) for rel in data.relationships}

        items: list[DetectedItem] = []
        for suggestion in suggestions:
            if not isinstance(suggestion, dict):
                continue
            source_id = _as_int(suggestion.get("sourceEntityId"))
            target_id = _as_int(suggestion.get("targetEntityId"))
            relationship_type = clean_str(suggestion.get("relationshipType"))
            if source_id not in known or target_id not in known or source_id == target_id:
                logger.debug(
                    "Dropping relationship with unknown entities",
                    source_entity_id=suggestion.get("sourceEntityId"),
                    target_entity_id=suggestion.get("targetEntityId"),
                )
                continue
            if not relationship_type:
                continue
            pair = _pair(source_id, target_id)
            if pair in taken:
                continue
            taken.add(pair)

            items.append(self._item(DetectionType.RELATIONSHIP_SUGGESTION, data.entity, {
                "sourceEntityId": source_id,
                "sourceEntityName": known[source_id].name,
                "targetEntityId": target_id,
                "targetEntityName": known[target_id].name,
                "relationshipType": relationship_type,
                "description": clean_str(suggestion.get("description")),
            }))
        return items


__all__ = [
    "EnrichmentInput",
    "EnrichmentEngine",
]
