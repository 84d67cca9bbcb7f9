"""Tests for the pipeline agents."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from imagineer.core.exceptions import LLMError, QuotaExceededError
from imagineer.enrichment.agents import (
    CanonExpert,
    EnrichmentAgent,
    GraphExpert,
    PipelineInput,
    TTRPGExpert,
    mentioned_entities,
)
from imagineer.storage.analysis import DetectedItem
from imagineer.storage.campaigns import CampaignRecord
from imagineer.storage.database import Database
from imagineer.storage.entities import EntityRecord
from imagineer.storage.relationship_types import RelationshipTypeRepository
from imagineer.storage.relationships import RelationshipRecord, RelationshipRepository

if TYPE_CHECKING:
    from conftest import ScriptedProvider


ENRICH = "analyst assistant"
NEW_ENTITY = "Read campaign content"
TTRPG = "experienced tabletop RPG game master"
CANON = "continuity editor"
GRAPH = "relationship graph"

CONTENT = "Captain Vex dropped anchor off Port Azure. Henry Armitage watched from the pier."


def make_input(
    campaign: CampaignRecord,
    entities: dict[str, EntityRecord],
    *,
    content: str = CONTENT,
    focus: list[EntityRecord] | None = None,
    relationships: list[RelationshipRecord] | None = None,
    prior_results: list[DetectedItem] | None = None,
) -> PipelineInput:
    """Pipeline input over the test campaign."""
    return PipelineInput(
        campaign_id=campaign.id,
        job_id=1,
        source_table="chapters",
        source_id=1,
        source_field="overview",
        content=content,
        entities=focus or [],
        campaign_entities=list(entities.values()),
        relationships=relationships or [],
        game_system="Call of Cthulhu 7th Edition",
        prior_results=prior_results or [],
    )


def relate(db: Database, campaign: CampaignRecord, source: EntityRecord, target: EntityRecord) -> RelationshipRecord:
    """Create a ``knows`` relationship."""
    knows = RelationshipTypeRepository(db).get_by_name(campaign.id, "knows")
    return RelationshipRepository(db).create(
        campaign.id,
        source_entity_id=source.id,
        target_entity_id=target.id,
        relationship_type_id=knows.id,
    )


class TestMentionedEntities:
    """Tests for mentioned_entities."""

    def test_case_insensitive(self, entities: dict[str, EntityRecord]) -> None:
        """Test names are found regardless of case."""
        found = mentioned_entities("the port azure docks", list(entities.values()))

        assert [e.name for e in found] == ["Port Azure"]


class TestTTRPGExpert:
    """Tests for the quality review agent."""

    def test_report_and_categories(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test findings map to detection types by category."""
        provider.route(TTRPG, json.dumps({
            "report": "Solid opening, slow middle.",
            "findings": [
                {"category": "pacing", "description": "Middle drags", "severity": "warning"},
                {"category": "investigation", "description": "Single clue path", "severity": "error"},
                {"category": "mechanics", "description": "Wrong skill", "severity": "loud"},
                {"category": "spotlight", "description": "Armitage gets nothing to do"},
                {"category": "vibes", "description": "Unknown category"},
                {"category": "pacing", "description": ""},
            ],
        }))

        items = TTRPGExpert().run(provider, make_input(campaign, entities))

        assert [item.detection_type for item in items] == [
            "analysis_report",
            "pacing_note",
            "investigation_gap",
            "mechanics_warning",
            "content_suggestion",
        ]
        assert items[0].suggested_content == {"report": "Solid opening, slow middle."}
        assert items[2].suggested_content["severity"] == "error"
        assert items[3].suggested_content["severity"] == "info"

    def test_prompt_carries_game_system(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test the game system reaches the prompt."""
        TTRPGExpert().run(provider, make_input(campaign, entities))

        assert "Call of Cthulhu 7th Edition" in provider.requests[0].user_prompt

    def test_blank_content(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test blank content is not sent."""
        assert TTRPGExpert().run(provider, make_input(campaign, entities, content="  ")) == []
        assert provider.requests == []


class TestCanonExpert:
    """Tests for the continuity agent."""

    def test_contradictions(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test contradictions map to detection types by kind."""
        provider.route(CANON, json.dumps({
            "contradictions": [
                {
                    "contradictionType": "factual",
                    "conflictingText": "Vex's wooden leg",
                    "establishedFact": "A silver hook",
                    "source": "Captain Vex",
                    "description": "Wrong prosthetic",
                },
                {"contradictionType": "temporal", "description": "Arrives before leaving"},
                {"contradictionType": "character", "description": "Vex shows mercy"},
                {"contradictionType": "weird", "description": "Defaults to factual"},
                {"contradictionType": "factual"},
            ],
        }))

        items = CanonExpert().run(provider, make_input(campaign, entities))

        assert [item.detection_type for item in items] == [
            "canon_contradiction",
            "temporal_inconsistency",
            "character_inconsistency",
            "canon_contradiction",
        ]
        assert items[0].matched_text == "Vex's wooden leg"
        assert items[0].suggested_content["severity"] == "warning"
        assert "A ruthless pirate captain" in provider.requests[0].user_prompt

    def test_no_facts_no_call(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test content mentioning only undescribed entities is not checked."""
        items = CanonExpert().run(provider, make_input(campaign, entities, content="Henry Armitage waits."))

        assert items == []
        assert provider.requests == []


class TestEnrichmentAgent:
    """Tests for the enrichment agent."""

    def test_enriches_mentioned_entities(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test every mentioned entity is enriched, then new entities are detected."""
        provider.route(ENRICH, json.dumps({"logEntries": [{"content": "Seen at the docks"}]}))
        provider.route(NEW_ENTITY, json.dumps({"new_entities": [{"name": "The Pier", "entity_type": "location"}]}))

        items = EnrichmentAgent().run(provider, make_input(campaign, entities))

        assert sorted(item.matched_text for item in items if item.detection_type == "log_entry") == [
            "Captain Vex",
            "Henry Armitage",
            "Port Azure",
        ]
        assert [item.matched_text for item in items if item.detection_type == "new_entity_suggestion"] == [
            "The Pier"
        ]

    def test_focus_entities_only(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test given entities are enriched instead of every mention."""
        provider.route(ENRICH, json.dumps({"logEntries": [{"content": "Seen at the docks"}]}))

        items = EnrichmentAgent().run(
            provider, make_input(campaign, entities, focus=[entities["Captain Vex"]])
        )

        assert [item.entity_id for item in items] == [entities["Captain Vex"].id]

    def test_relationship_suggestions_deduplicated(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test the same pair suggested from both ends is kept once."""
        vex, port = entities["Captain Vex"], entities["Port Azure"]
        provider.route(ENRICH, json.dumps({
            "relationships": [
                {"sourceEntityId": vex.id, "targetEntityId": port.id, "relationshipType": "located_at"},
            ],
        }))

        items = EnrichmentAgent().run(provider, make_input(campaign, entities, focus=[vex, port]))

        assert len([i for i in items if i.detection_type == "relationship_suggestion"]) == 1

    def test_entity_failure_is_skipped(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test an LLM error for one entity does not stop the agent."""
        provider.route(ENRICH, LLMError("bad gateway", provider="scripted"))
        provider.route(NEW_ENTITY, json.dumps({"new_entities": [{"name": "The Pier"}]}))

        items = EnrichmentAgent().run(provider, make_input(campaign, entities))

        assert [item.detection_type for item in items] == ["new_entity_suggestion"]

    def test_quota_propagates(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test quota errors stop the agent."""
        provider.route(ENRICH, QuotaExceededError("out of credit", provider="scripted"))

        with pytest.raises(QuotaExceededError):
            EnrichmentAgent().run(provider, make_input(campaign, entities))


class TestGraphExpert:
    """Tests for the relationship graph agent."""

    def test_orphans_without_llm(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test unconnected entities are flagged without calling the LLM."""
        items = GraphExpert().run(
            provider, make_input(campaign, entities, focus=[entities["Henry Armitage"]])
        )

        assert [item.detection_type for item in items] == ["orphan_warning"]
        assert items[0].entity_id == entities["Henry Armitage"].id
        assert provider.requests == []

    def test_semantic_findings(
        self,
        db: Database,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test redundant and implied edges come from the LLM."""
        vex, armitage = entities["Captain Vex"], entities["Henry Armitage"]
        rel = relate(db, campaign, vex, armitage)
        provider.route(GRAPH, json.dumps({
            "findings": [
                {
                    "findingType": "implied_edge",
                    "description": "Armitage likely serves aboard Vex's ship",
                    "involvedEntities": ["Captain Vex", "Henry Armitage", 3],
                    "suggestion": "Add employs",
                },
                {"findingType": "redundant_edge", "description": ""},
            ],
        }))

        items = GraphExpert().run(
            provider, make_input(campaign, entities, focus=[vex, armitage], relationships=[rel])
        )

        assert [item.detection_type for item in items] == ["implied_edge"]
        assert items[0].suggested_content["involvedEntities"] == ["Captain Vex", "Henry Armitage"]
        assert "Captain Vex -[knows]-> Henry Armitage" in provider.requests[0].user_prompt

    def test_proposed_edges_trigger_check(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test suggestions from earlier agents are checked too."""
        vex = entities["Captain Vex"]
        proposed = DetectedItem(
            detection_type="relationship_suggestion",
            matched_text="Captain Vex",
            suggested_content={
                "sourceEntityName": "Captain Vex",
                "targetEntityName": "Port Azure",
                "relationshipType": "located_at",
            },
        )

        items = GraphExpert().run(
            provider, make_input(campaign, entities, focus=[vex], prior_results=[proposed])
        )

        assert [item.detection_type for item in items] == ["orphan_warning"]
        assert "Captain Vex -[located_at]-> Port Azure" in provider.requests[0].user_prompt

    def test_llm_failure_keeps_orphans(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a failing graph check keeps the structural findings."""
        provider.route(GRAPH, LLMError("timeout", provider="scripted"))
        proposed = DetectedItem(
            detection_type="relationship_suggestion",
            matched_text="Captain Vex",
            suggested_content={"sourceEntityName": "Captain Vex", "targetEntityName": "Port Azure"},
        )

        items = GraphExpert().run(
            provider,
            make_input(campaign, entities, focus=[entities["Captain Vex"]], prior_results=[proposed]),
        )

        assert [item.detection_type for item in items] == ["orphan_warning"]

    def test_no_focus_entities(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a run without focus entities has nothing to check."""
        assert GraphExpert().run(provider, make_input(campaign, entities)) == []
