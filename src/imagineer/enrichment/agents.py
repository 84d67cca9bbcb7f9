"""Pipeline agents that review campaign content with an LLM.

Each agent has a unique ``name``, the names of agents it must run after
(``depends_on``) and a ``run`` method returning unsaved review items.
The pipeline tags every item with the agent's name and stage phase.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from imagineer.core.constants import (
    CANON_EXPERT_TEMPERATURE,
    EXPERT_MAX_TOKENS,
    GRAPH_EXPERT_MAX_TOKENS,
    GRAPH_EXPERT_TEMPERATURE,
    MIN_MENTION_LENGTH,
    TTRPG_EXPERT_TEMPERATURE,
)
from imagineer.core.exceptions import LLMError, QuotaExceededError
from imagineer.core.logging import get_logger
from imagineer.enrichment.engine import EnrichmentEngine, EnrichmentInput
from imagineer.enrichment.parsing import as_list, clean_str, parse_json_object
from imagineer.enrichment.prompts import (
    CANON_EXPERT_SYSTEM_PROMPT,
    GRAPH_EXPERT_SYSTEM_PROMPT,
    build_canon_prompt,
    build_expert_prompt,
    build_graph_prompt,
    build_ttrpg_system_prompt,
)
from imagineer.llm.provider import CompletionRequest, LLMProvider
from imagineer.models.enums import DetectionType
from imagineer.storage.analysis import DetectedItem
from imagineer.storage.entities import EntityRecord
from imagineer.storage.relationships import RelationshipRecord

logger = get_logger(__name__)


# =============================================================================
# Pipeline input
# =============================================================================


@dataclass
class PipelineInput:
    """Everything an agent may look at during one pipeline run.

    Attributes:
        campaign_id: Campaign being reviewed.
        job_id: Analysis job the items will be saved under.
        source_table: Table of the reviewed record.
        source_id: Id of the reviewed record.
        source_field: Reviewed text column.
        content: The text under review.
        entities: Entities the run focuses on.
        campaign_entities: Every entity of the campaign.
        relationships: Every relationship of the campaign.
        game_system: Name of the campaign's game system, if any.
        prior_results: Items produced earlier in the same run.
    """

    campaign_id: int
    job_id: int
    source_table: str
    source_id: int
    source_field: str
    content: str
    entities: list[EntityRecord] = field(default_factory=list)
    campaign_entities: list[EntityRecord] = field(default_factory=list)
    relationships: list[RelationshipRecord] = field(default_factory=list)
    game_system: str | None = None
    prior_results: list[DetectedItem] = field(default_factory=list)


def mentioned_entities(content: str, entities: list[EntityRecord]) -> list[EntityRecord]:
    """Entities whose name occurs in the content, ignoring case."""
    lowered = content.lower()
    return [
        entity for entity in entities
        if len(entity.name) >= MIN_MENTION_LENGTH and entity.name.lower() in lowered
    ]


class PipelineAgent(ABC):
    """A named step of the enrichment pipeline."""

    name: str = ""
    depends_on: tuple[str, ...] = ()

    @abstractmethod
    def run(self, provider: LLMProvider, data: PipelineInput) -> list[DetectedItem]:
        """Review the input and return unsaved items.

        Raises:
            LLMError: If the provider fails in a way the agent cannot absorb.
        """


# =============================================================================
# TTRPG expert
# =============================================================================


_TTRPG_CATEGORIES = frozenset({
    "pacing",
    "investigation",
    "spotlight",
    "npc_development",
    "mechanics",
    "pc_agency",
    "continuity",
    "setting",
    "scenario_writing",
})
_CATEGORY_DETECTION = {
    "pacing": DetectionType.PACING_NOTE,
    "investigation": DetectionType.INVESTIGATION_GAP,
    "mechanics": DetectionType.MECHANICS_WARNING,
}
_SEVERITIES = frozenset({"info", "warning", "error"})


def _severity(value: Any, default: str) -> str:
    severity = clean_str(value).lower()
    return severity if severity in _SEVERITIES else default


class TTRPGExpert(PipelineAgent):
    """Reviews content for quality as material run at the table."""

    name = "ttrpg-expert"

    def run(self, provider: LLMProvider, data: PipelineInput) -> list[DetectedItem]:
        if not data.content.strip():
            return []

        response = provider.complete(
            CompletionRequest(
                system_prompt=build_ttrpg_system_prompt(data.source_table),
                user_prompt=build_expert_prompt(
                    data.content,
                    source_table=data.source_table,
                    source_id=data.source_id,
                    source_field=data.source_field,
                    entities=data.entities,
                    relationships=data.relationships,
                    game_system=data.game_system,
                ),
                max_tokens=EXPERT_MAX_TOKENS,
                temperature=TTRPG_EXPERT_TEMPERATURE,
            )
        )
        parsed = parse_json_object(response.content)
        if parsed is None:
            logger.warning("Discarding unparseable quality review", job_id=data.job_id)
            return []

        items: list[DetectedItem] = []
        report = clean_str(parsed.get("report"))
        if report:
            items.append(DetectedItem(
                detection_type=DetectionType.ANALYSIS_REPORT.value,
                matched_text=self.name,
                suggested_content={"report": report},
            ))

        for finding in as_list(parsed.get("findings")):
            if not isinstance(finding, dict):
                continue
            category = clean_str(finding.get("category")).lower()
            description = clean_str(finding.get("description"))
            if category not in _TTRPG_CATEGORIES or not description:
                logger.debug("Skipping quality finding", category=finding.get("category"))
                continue
            items.append(DetectedItem(
                detection_type=_CATEGORY_DETECTION.get(category, DetectionType.CONTENT_SUGGESTION).value,
                matched_text=category,
                suggested_content={
                    "category": category,
                    "severity": _severity(finding.get("severity"), "info"),
                    "description": description,
                    "suggestion": clean_str(finding.get("suggestion")),
                    "lineReference": clean_str(finding.get("lineReference")),
                },
            ))
        return items


# =============================================================================
# Canon expert
# =============================================================================


_CONTRADICTION_DETECTION = {
    "factual": DetectionType.CANON_CONTRADICTION,
    "temporal": DetectionType.TEMPORAL_INCONSISTENCY,
    "character": DetectionType.CHARACTER_INCONSISTENCY,
}


class CanonExpert(PipelineAgent):
    """Flags contradictions with what the campaign already established.

    The established facts are the descriptions of the campaign entities
    mentioned in the content. Without any such facts the agent does not
    call the LLM.
    """

    name = "canon-expert"

    def run(self, provider: LLMProvider, data: PipelineInput) -> list[DetectedItem]:
        if not data.content.strip():
            return []
        facts = [
            (entity.name, entity.description.strip())
            for entity in mentioned_entities(data.content, data.campaign_entities)
            if entity.description and entity.description.strip()
        ]
        if not facts:
            logger.debug("No established facts to check against", job_id=data.job_id)
            return []

        response = provider.complete(
            CompletionRequest(
                system_prompt=CANON_EXPERT_SYSTEM_PROMPT,
                user_prompt=build_canon_prompt(data.content, facts),
                max_tokens=EXPERT_MAX_TOKENS,
                temperature=CANON_EXPERT_TEMPERATURE,
            )
        )
        parsed = parse_json_object(response.content)
        if parsed is None:
            logger.warning("Discarding unparseable canon review", job_id=data.job_id)
            return []

        items: list[DetectedItem] = []
        for contradiction in as_list(parsed.get("contradictions")):
            if not isinstance(contradiction, dict):
                continue
            kind = clean_str(contradiction.get("contradictionType")).lower()
            if kind not in _CONTRADICTION_DETECTION:
                kind = "factual"
            conflicting = clean_str(contradiction.get("conflictingText"))
            description = clean_str(contradiction.get("description"))
            if not conflicting and not description:
                continue
            items.append(DetectedItem(
                detection_type=_CONTRADICTION_DETECTION[kind].value,
                matched_text=conflicting or description,
                suggested_content={
                    "contradictionType": kind,
                    "severity": _severity(contradiction.get("severity"), "warning"),
                    "conflictingText": conflicting,
                    "establishedFact": clean_str(contradiction.get("establishedFact")),
                    "source": clean_str(contradiction.get("source")),
                    "description": description,
                    "suggestion": clean_str(contradiction.get("suggestion")),
                },
            ))
        return items


# =============================================================================
# Enrichment
# =============================================================================


class EnrichmentAgent(PipelineAgent):
    """Enriches entities found in the content, then looks for new ones."""

    name = "enrichment"

    def __init__(self, engine: EnrichmentEngine | None = None) -> None:
        self.engine = engine or EnrichmentEngine()

    def run(self, provider: LLMProvider, data: PipelineInput) -> list[DetectedItem]:
        targets = data.entities or mentioned_entities(data.content, data.campaign_entities)
        others_pool = targets if data.entities else data.campaign_entities
        items: list[DetectedItem] = []

        for entity in targets:
            others = [other for other in others_pool if other.id != entity.id]
            try:
                items.extend(self.engine.enrich_entity(provider, EnrichmentInput(
                    campaign_id=data.campaign_id,
                    job_id=data.job_id,
                    content=data.content,
                    entity=entity,
                    other_entities=others,
                    relationships=data.relationships,
                )))
            except QuotaExceededError:
                raise
            except LLMError as exc:
                logger.warning("Skipping entity after enrichment failure", entity_id=entity.id, error=str(exc))

        items = [
            item for item in items if item.detection_type != DetectionType.RELATIONSHIP_SUGGESTION
        ] + self._dedupe_relationships(items)

        items.extend(self.engine.detect_new_entities(
            provider,
            data.campaign_id,
            data.job_id,
            data.content,
            data.campaign_entities or targets,
        ))
        return items

    @staticmethod
    def _dedupe_relationships(items: list[DetectedItem]) -> list[DetectedItem]:
        seen: set[frozenset[int]] = set()
        unique: list[DetectedItem] = []
        for item in items:
            if item.detection_type != DetectionType.RELATIONSHIP_SUGGESTION:
                continue
            suggested = item.suggested_content or {}
            pair = frozenset((suggested.get("sourceEntityId"), suggested.get("targetEntityId")))
            if pair in seen:
                continue
            seen.add(pair)
            unique.append(item)
        return unique


# =============================================================================
# Graph expert
# =============================================================================


_GRAPH_FINDINGS = {
    "redundant_edge": DetectionType.REDUNDANT_EDGE,
    "implied_edge": DetectionType.IMPLIED_EDGE,
}


class GraphExpert(PipelineAgent):
    """Checks the relationship graph around the run's entities.

    Orphans are found structurally. Redundant and implied edges need the
    LLM; when that call fails the structural findings still stand.
    """

    name = "graph-expert"
    depends_on = ("enrichment",)

    def run(self, provider: LLMProvider, data: PipelineInput) -> list[DetectedItem]:
        if not data.entities:
            return []

        proposed = [
            item.suggested_content or {}
            for item in data.prior_results
            if item.detection_type == DetectionType.RELATIONSHIP_SUGGESTION
        ]
        items = self._orphans(data)

        entity_ids = {entity.id for entity in data.entities}
        existing = [
            rel for rel in data.relationships
            if rel.source_entity_id in entity_ids or rel.target_entity_id in entity_ids
        ]
        if existing or proposed:
            items.extend(self._semantic_findings(provider, data, existing, proposed))
        return items

    @staticmethod
    def _orphans(data: PipelineInput) -> list[DetectedItem]:
        connected: set[int] = set()
        for rel in data.relationships:
            connected.update((rel.source_entity_id, rel.target_entity_id))

        items: list[DetectedItem] = []
        for entity in data.entities:
            if entity.id in connected:
                continue
            items.append(DetectedItem(
                detection_type=DetectionType.ORPHAN_WARNING.value,
                matched_text=entity.name,
                entity_id=entity.id,
                suggested_content={
                    "entityId": entity.id,
                    "entityName": entity.name,
                    "entityType": entity.entity_type,
                    "description": (
                        "Entity has no relationships. Consider connecting it to other "
                        "entities or checking that it is still relevant."
                    ),
                },
            ))
        return items

    def _semantic_findings(
        self,
        provider: LLMProvider,
        data: PipelineInput,
        existing: list[RelationshipRecord],
        proposed: list[dict[str, Any]],
    ) -> list[DetectedItem]:
        existing_lines = [
            f"{rel.source_entity_name} -[{rel.relationship_type}]-> {rel.target_entity_name}"
            for rel in existing
        ]
        proposed_lines = [
            f"{edge.get('sourceEntityName')} -[{edge.get('relationshipType')}]-> {edge.get('targetEntityName')}"
            for edge in proposed
        ]
        try:
            response = provider.complete(
                CompletionRequest(
                    system_prompt=GRAPH_EXPERT_SYSTEM_PROMPT,
                    user_prompt=build_graph_prompt(existing_lines, proposed_lines),
                    max_tokens=GRAPH_EXPERT_MAX_TOKENS,
                    temperature=GRAPH_EXPERT_TEMPERATURE,
                )
            )
        except QuotaExceededError:
            raise
        except LLMError as exc:
            logger.warning("Graph check failed, keeping structural findings", job_id=data.job_id, error=str(exc))
            return []

        parsed = parse_json_object(response.content)
        if parsed is None:
            return []

        items: list[DetectedItem] = []
        for finding in as_list(parsed.get("findings")):
            if not isinstance(finding, dict):
                continue
            description = clean_str(finding.get("description"))
            if not description:
                continue
            finding_type = clean_str(finding.get("findingType")).lower()
            if finding_type not in _GRAPH_FINDINGS:
                finding_type = "redundant_edge"
            involved = [name for name in as_list(finding.get("involvedEntities")) if isinstance(name, str)]
            items.append(DetectedItem(
                detection_type=_GRAPH_FINDINGS[finding_type].value,
                matched_text=description,
                suggested_content={
                    "findingType": finding_type,
                    "description": description,
                    "involvedEntities": involved,
                    "suggestion": clean_str(finding.get("suggestion")),
                },
            ))
        return items


__all__ = [
    "PipelineInput",
    "PipelineAgent",
    "TTRPGExpert",
    "CanonExpert",
    "EnrichmentAgent",
    "GraphExpert",
    "mentioned_entities",
]
