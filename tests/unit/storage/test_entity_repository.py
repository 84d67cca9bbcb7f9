"""Tests for entity persistence, search and fuzzy resolution."""

from __future__ import annotations

import pytest

from imagineer.core.exceptions import NotFoundError, ValidationError
from imagineer.storage.campaigns import CampaignRecord, CampaignRepository
from imagineer.storage.database import Database
from imagineer.storage.drafts import DraftRepository
from imagineer.storage.entities import EntityRecord, EntityRepository
from imagineer.storage.entity_log import EntityLogRepository
from imagineer.storage.users import UserRecord


class TestEntityCreate:
    """Tests for creating entities."""

    def test_defaults(self, db: Database, campaign: CampaignRecord) -> None:
        """Test a new entity starts as a version 1 draft."""
        entity = EntityRepository(db).create(campaign.id, entity_type="clue", name=" Bloody Letter ")

        assert entity.name == "Bloody Letter"
        assert entity.version == 1
        assert entity.source_confidence == "DRAFT"
        assert entity.attributes == {}
        assert entity.tags == []

    def test_json_fields_round_trip(self, db: Database, campaign: CampaignRecord) -> None:
        """Test attributes and tags survive storage."""
        entity = EntityRepository(db).create(
            campaign.id,
            entity_type="npc",
            name="Dr. Crane",
            attributes={"STR": 45, "occupation": "Professor"},
            tags=["miskatonic", "ally"],
        )

        assert entity.attributes == {"STR": 45, "occupation": "Professor"}
        assert entity.tags == ["miskatonic", "ally"]

    @pytest.mark.parametrize(
        ("field", "kwargs"),
        [
            ("entity_type", {"entity_type": "dragon", "name": "Smaug"}),
            ("name", {"entity_type": "npc", "name": "  "}),
            ("source_confidence", {"entity_type": "npc", "name": "Vex", "source_confidence": "MAYBE"}),
        ],
    )
    def test_invalid_values(
        self,
        db: Database,
        campaign: CampaignRecord,
        field: str,
        kwargs: dict[str, str],
    ) -> None:
        """Test invalid values raise ValidationError naming the field."""
        with pytest.raises(ValidationError) as exc_info:
            EntityRepository(db).create(campaign.id, **kwargs)

        assert exc_info.value.details["field_name"] == field


class TestEntityUpdateDelete:
    """Tests for updating and deleting entities."""

    def test_update_bumps_version(self, db: Database, entities: dict[str, EntityRecord]) -> None:
        """Test every update increments the version."""
        vex = entities["Captain Vex"]
        repo = EntityRepository(db)

        updated = repo.update(vex.id, {"gm_notes": "Secretly a cultist."})
        updated = repo.update(vex.id, {"tags": ["pirate"]})

        assert updated.version == 3
        assert updated.gm_notes == "Secretly a cultist."
        assert updated.description == vex.description

    def test_update_discards_drafts(
        self,
        db: Database,
        user: UserRecord,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test saving an entity removes drafts of it."""
        vex = entities["Captain Vex"]
        drafts = DraftRepository(db)
        drafts.save(
            campaign_id=campaign.id,
            user_id=user.id,
            source_table="entities",
            source_id=vex.id,
            draft_data={"name": "Captain Vex (draft)"},
        )

        EntityRepository(db).update(vex.id, {"name": "Captain Vex"})

        assert drafts.list_indicators(campaign.id, user.id) == []

    def test_update_missing(self, db: Database) -> None:
        """Test updating a missing entity raises NotFoundError."""
        with pytest.raises(NotFoundError):
            EntityRepository(db).update(9999, {"name": "Ghost"})

    def test_delete_cascades_log(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test deleting an entity removes its log entries."""
        vex = entities["Captain Vex"]
        EntityLogRepository(db).create(entity_id=vex.id, campaign_id=campaign.id, content="Sank a frigate")

        EntityRepository(db).delete(vex.id)

        assert EntityRepository(db).get(vex.id) is None
        assert EntityLogRepository(db).list_for_entity(vex.id) == []

    def test_delete_missing(self, db: Database) -> None:
        """Test deleting a missing entity raises NotFoundError."""
        with pytest.raises(NotFoundError):
            EntityRepository(db).delete(9999)


class TestEntityQueries:
    """Tests for listing, searching and scoping."""

    def test_list_filters(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test filtering by type and tag."""
        repo = EntityRepository(db)
        repo.update(entities["Port Azure"].id, {"tags": ["coast", "hub"]})

        npcs = repo.list_for_campaign(campaign.id, entity_type="npc")
        tagged = repo.list_for_campaign(campaign.id, tag="coast")

        assert [e.name for e in npcs] == ["Captain Vex", "Henry Armitage"]
        assert [e.name for e in tagged] == ["Port Azure"]

    def test_list_pagination(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test limit and offset page through name order."""
        page = EntityRepository(db).list_for_campaign(campaign.id, limit=1, offset=1)

        assert [e.name for e in page] == ["Henry Armitage"]

    def test_get_in_other_campaign(
        self,
        db: Database,
        user: UserRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test an entity is not visible through another campaign."""
        other = CampaignRepository(db).create(user.id, name="Elsewhere")

        with pytest.raises(NotFoundError):
            EntityRepository(db).get_in_campaign(other.id, entities["Captain Vex"].id)

    def test_search_is_case_insensitive_substring(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test search matches any part of the name."""
        results = EntityRepository(db).search(campaign.id, "AZU")

        assert [e.name for e in results] == ["Port Azure"]

    def test_search_escapes_wildcards(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test LIKE wildcards in the query are matched literally."""
        assert EntityRepository(db).search(campaign.id, "%") == []

    def test_find_by_name(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test exact lookup ignores case."""
        found = EntityRepository(db).find_by_name(campaign.id, "captain vex")

        assert found is not None
        assert found.id == entities["Captain Vex"].id


class TestEntityResolve:
    """Tests for fuzzy name resolution."""

    def test_exact_match_scores_one(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test an exact name is the top match with similarity 1."""
        matches = EntityRepository(db).resolve(campaign.id, "Captain Vex")

        assert matches[0].id == entities["Captain Vex"].id
        assert matches[0].similarity == 1.0

    def test_misspelling_ranks_first(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a misspelled name still finds the intended entity first."""
        matches = EntityRepository(db).resolve(campaign.id, "Henri Armitage")

        assert matches[0].name == "Henry Armitage"
        assert 0.3 <= matches[0].similarity < 1.0

    def test_unrelated_name_has_no_matches(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test candidates below the threshold are dropped."""
        assert EntityRepository(db).resolve(campaign.id, "Qzxw") == []

    def test_blank_name(self, db: Database, campaign: CampaignRecord) -> None:
        """Test a blank query returns nothing."""
        assert EntityRepository(db).resolve(campaign.id, "  ") == []
