"""Tests for the entity enrichment engine."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from imagineer.core.exceptions import QuotaExceededError
from imagineer.enrichment.engine import EnrichmentEngine, EnrichmentInput
from imagineer.storage.campaigns import CampaignRecord
from imagineer.storage.database import Database
from imagineer.storage.entities import EntityRecord
from imagineer.storage.relationship_types import RelationshipTypeRepository
from imagineer.storage.relationships import RelationshipRepository

if TYPE_CHECKING:
    from conftest import ScriptedProvider


CONTENT = "Captain Vex dropped anchor off Port Azure and hired Henry Armitage as navigator."


def _input(campaign: CampaignRecord, entities: dict[str, EntityRecord], **kwargs) -> EnrichmentInput:
    vex = entities["Captain Vex"]
    return EnrichmentInput(
        campaign_id=campaign.id,
        job_id=1,
        content=CONTENT,
        entity=vex,
        other_entities=[e for e in entities.values() if e.id != vex.id],
        **kwargs,
    )


class TestEnrichEntity:
    """Tests for EnrichmentEngine.enrich_entity."""

    def test_all_item_kinds(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test descriptions, log entries and relationships become items."""
        vex, port = entities["Captain Vex"], entities["Port Azure"]
        provider.default = json.dumps({
            "descriptionUpdates": [
                {"suggestedDescription": "A pirate captain anchored off Port Azure.", "rationale": "New base"},
            ],
            "logEntries": [{"content": "Dropped anchor off Port Azure", "occurredAt": "Session 2"}],
            "relationships": [{
                "sourceEntityId": vex.id,
                "targetEntityId": port.id,
                "relationshipType": "located_at",
                "description": "Anchored offshore",
            }],
        })

        items = EnrichmentEngine().enrich_entity(provider, _input(campaign, entities))

        kinds = [item.detection_type for item in items]
        assert kinds == ["description_update", "log_entry", "relationship_suggestion"]
        assert all(item.phase == "enrichment" and item.entity_id == vex.id for item in items)
        assert items[0].suggested_content == {
            "currentDescription": vex.description,
            "suggestedDescription": "A pirate captain anchored off Port Azure.",
            "rationale": "New base",
        }
        assert items[1].suggested_content == {"content": "Dropped anchor off Port Azure", "occurredAt": "Session 2"}
        assert items[2].suggested_content["targetEntityName"] == "Port Azure"

    def test_prompt_mentions_entity(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test the request carries the entity and the content."""
        EnrichmentEngine().enrich_entity(provider, _input(campaign, entities))

        request = provider.requests[0]
        assert request.system_prompt.startswith("You are a TTRPG campaign analyst assistant")
        assert "Captain Vex" in request.user_prompt
        assert "hired Henry Armitage" in request.user_prompt

    def test_invalid_relationships_dropped(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test unknown, self and untyped relationships are ignored."""
        vex, port = entities["Captain Vex"], entities["Port Azure"]
        provider.default = json.dumps({
            "relationships": [
                {"sourceEntityId": vex.id, "targetEntityId": 9999, "relationshipType": "knows"},
                {"sourceEntityId": vex.id, "targetEntityId": vex.id, "relationshipType": "knows"},
                {"sourceEntityId": vex.id, "targetEntityId": port.id, "relationshipType": ""},
                {"sourceEntityId": str(vex.id), "targetEntityId": str(port.id), "relationshipType": "rules"},
                {"sourceEntityId": port.id, "targetEntityId": vex.id, "relationshipType": "located_at"},
            ],
        })

        items = EnrichmentEngine().enrich_entity(provider, _input(campaign, entities))

        assert [item.suggested_content["relationshipType"] for item in items] == ["rules"]

    def test_existing_relationship_not_suggested(
        self,
        db: Database,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test pairs that are already related are skipped."""
        vex, armitage = entities["Captain Vex"], entities["Henry Armitage"]
        knows = RelationshipTypeRepository(db).get_by_name(campaign.id, "knows")
        existing = RelationshipRepository(db).create(
            campaign.id,
            source_entity_id=vex.id,
            target_entity_id=armitage.id,
            relationship_type_id=knows.id,
        )
        provider.default = json.dumps({
            "relationships": [
                {"sourceEntityId": armitage.id, "targetEntityId": vex.id, "relationshipType": "employs"},
            ],
        })

        items = EnrichmentEngine().enrich_entity(
            provider, _input(campaign, entities, relationships=[existing])
        )

        assert items == []

    def test_blank_suggestions_skipped(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test entries without text are ignored."""
        provider.default = json.dumps({
            "descriptionUpdates": [{"suggestedDescription": "  "}, "nonsense"],
            "logEntries": [{"content": ""}],
        })

        assert EnrichmentEngine().enrich_entity(provider, _input(campaign, entities)) == []

    def test_unparseable_reply(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a reply that is not JSON yields nothing."""
        provider.default = "I could not find anything useful."

        assert EnrichmentEngine().enrich_entity(provider, _input(campaign, entities)) == []

    def test_provider_errors_propagate(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test provider failures are not swallowed."""
        provider.default = QuotaExceededError("out of credit", provider="scripted")

        with pytest.raises(QuotaExceededError):
            EnrichmentEngine().enrich_entity(provider, _input(campaign, entities))


class TestDetectNewEntities:
    """Tests for EnrichmentEngine.detect_new_entities."""

    def test_unknown_names_suggested(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test new names become suggestions and known names are skipped."""
        provider.default = json.dumps({
            "new_entities": [
                {"name": "The Drowned Bell", "entity_type": "Item", "description": "A cursed bell", "reasoning": "Named"},
                {"name": "captain vex", "entity_type": "npc"},
                {"name": "Salt Witch", "entity_type": "sorceress"},
                {"name": "The Drowned Bell", "entity_type": "item"},
                {"name": ""},
            ],
        })

        items = EnrichmentEngine().detect_new_entities(
            provider, campaign.id, 1, CONTENT, list(entities.values())
        )

        assert [item.matched_text for item in items] == ["The Drowned Bell", "Salt Witch"]
        assert items[0].suggested_content == {
            "name": "The Drowned Bell",
            "entityType": "item",
            "description": "A cursed bell",
            "reasoning": "Named",
        }
        assert items[1].suggested_content["entityType"] == "other"
        assert all(item.detection_type == "new_entity_suggestion" for item in items)
        assert provider.requests[0].system_prompt.startswith(
            "You are a TTRPG campaign analyst. Read campaign content"
        )

    def test_unparseable_reply(
        self,
        provider: ScriptedProvider,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a reply that is not JSON yields nothing."""
        provider.default = "none"

        assert EnrichmentEngine().detect_new_entities(provider, campaign.id, 1, CONTENT, []) == []
