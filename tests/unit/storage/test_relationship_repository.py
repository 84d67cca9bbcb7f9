"""Tests for relationships and relationship types."""

from __future__ import annotations

import pytest

from imagineer.core.exceptions import ConflictError, NotFoundError, ValidationError
from imagineer.storage.campaigns import CampaignRecord, CampaignRepository
from imagineer.storage.database import Database
from imagineer.storage.entities import EntityRecord, EntityRepository
from imagineer.storage.relationship_types import RelationshipTypeRepository
from imagineer.storage.relationships import RelationshipRepository
from imagineer.storage.users import UserRecord


def _type_id(db: Database, campaign_id: int, name: str) -> int:
    rel_type = RelationshipTypeRepository(db).get_by_name(campaign_id, name)
    assert rel_type is not None
    return rel_type.id


class TestRelationshipTypes:
    """Tests for custom relationship types."""

    def test_create_custom_type(self, db: Database, campaign: CampaignRecord) -> None:
        """Test a campaign can add its own vocabulary."""
        created = RelationshipTypeRepository(db).create(
            campaign.id,
            name="haunts",
            inverse_name="haunted_by",
            is_symmetric=False,
            display_label="Haunts",
            inverse_display_label="Is haunted by",
        )

        assert created.name == "haunts"
        assert created.is_symmetric is False

    def test_symmetric_needs_matching_inverse(self, db: Database, campaign: CampaignRecord) -> None:
        """Test a symmetric type must be its own inverse."""
        with pytest.raises(ValidationError):
            RelationshipTypeRepository(db).create(
                campaign.id,
                name="rivals",
                inverse_name="rivalled_by",
                is_symmetric=True,
                display_label="Rivals",
                inverse_display_label="Rivalled by",
            )

    def test_duplicate_name_conflicts(self, db: Database, campaign: CampaignRecord) -> None:
        """Test a name can only be used once per campaign."""
        with pytest.raises(ConflictError):
            RelationshipTypeRepository(db).create(
                campaign.id,
                name="knows",
                inverse_name="knows",
                is_symmetric=True,
                display_label="Knows",
                inverse_display_label="Knows",
            )

    def test_types_are_per_campaign(
        self,
        db: Database,
        user: UserRecord,
        campaign: CampaignRecord,
    ) -> None:
        """Test another campaign's type is not visible."""
        other = CampaignRepository(db).create(user.id, name="Other")
        foreign_id = _type_id(db, other.id, "knows")

        with pytest.raises(NotFoundError):
            RelationshipTypeRepository(db).get(campaign.id, foreign_id)

    def test_delete_in_use_conflicts(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a type with relationships cannot be deleted."""
        knows = _type_id(db, campaign.id, "knows")
        RelationshipRepository(db).create(
            campaign.id,
            source_entity_id=entities["Captain Vex"].id,
            target_entity_id=entities["Henry Armitage"].id,
            relationship_type_id=knows,
        )

        with pytest.raises(ConflictError):
            RelationshipTypeRepository(db).delete(campaign.id, knows)

    def test_delete_unused(self, db: Database, campaign: CampaignRecord) -> None:
        """Test an unused type can be deleted."""
        repo = RelationshipTypeRepository(db)
        rules = _type_id(db, campaign.id, "rules")

        repo.delete(campaign.id, rules)

        assert repo.get_by_name(campaign.id, "rules") is None


class TestRelationships:
    """Tests for relationships between entities."""

    def test_create_and_read_both_directions(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test the target entity sees the inverse label."""
        vex, port = entities["Captain Vex"], entities["Port Azure"]
        repo = RelationshipRepository(db)
        created = repo.create(
            campaign.id,
            source_entity_id=vex.id,
            target_entity_id=port.id,
            relationship_type_id=_type_id(db, campaign.id, "located_at"),
            tone="neutral",
            strength=6,
        )

        from_port = repo.list_for_entity(campaign.id, port.id)

        assert created.direction == "forward"
        assert created.display_label == "Located at"
        assert from_port[0].direction == "inverse"
        assert from_port[0].relationship_type == "location_of"
        assert from_port[0].display_label == "Location of"
        assert from_port[0].target_entity_name == "Captain Vex"

    def test_self_link_rejected(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test an entity cannot be related to itself."""
        vex = entities["Captain Vex"]

        with pytest.raises(ValidationError):
            RelationshipRepository(db).create(
                campaign.id,
                source_entity_id=vex.id,
                target_entity_id=vex.id,
                relationship_type_id=_type_id(db, campaign.id, "knows"),
            )

    def test_symmetric_duplicate_in_reverse(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a symmetric link cannot be added again the other way round."""
        vex, armitage = entities["Captain Vex"], entities["Henry Armitage"]
        knows = _type_id(db, campaign.id, "knows")
        repo = RelationshipRepository(db)
        repo.create(campaign.id, source_entity_id=vex.id, target_entity_id=armitage.id, relationship_type_id=knows)

        with pytest.raises(ConflictError):
            repo.create(
                campaign.id,
                source_entity_id=armitage.id,
                target_entity_id=vex.id,
                relationship_type_id=knows,
            )

    def test_asymmetric_reverse_allowed(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test the reverse of an asymmetric link is a different relationship."""
        vex, armitage = entities["Captain Vex"], entities["Henry Armitage"]
        employs = _type_id(db, campaign.id, "employs")
        repo = RelationshipRepository(db)
        repo.create(campaign.id, source_entity_id=vex.id, target_entity_id=armitage.id, relationship_type_id=employs)

        repo.create(campaign.id, source_entity_id=armitage.id, target_entity_id=vex.id, relationship_type_id=employs)

        assert len(repo.list_for_campaign(campaign.id)) == 2

    def test_entity_from_other_campaign(
        self,
        db: Database,
        user: UserRecord,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test both ends must belong to the campaign."""
        other = CampaignRepository(db).create(user.id, name="Other")
        stranger = EntityRepository(db).create(other.id, entity_type="npc", name="Stranger")

        with pytest.raises(ValidationError):
            RelationshipRepository(db).create(
                campaign.id,
                source_entity_id=entities["Captain Vex"].id,
                target_entity_id=stranger.id,
                relationship_type_id=_type_id(db, campaign.id, "knows"),
            )

    @pytest.mark.parametrize(("tone", "strength"), [("smug", None), (None, 11), (None, 0)])
    def test_invalid_values(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
        tone: str | None,
        strength: int | None,
    ) -> None:
        """Test tone must be known and strength between 1 and 10."""
        with pytest.raises(ValidationError):
            RelationshipRepository(db).create(
                campaign.id,
                source_entity_id=entities["Captain Vex"].id,
                target_entity_id=entities["Port Azure"].id,
                relationship_type_id=_type_id(db, campaign.id, "located_at"),
                tone=tone,
                strength=strength,
            )

    def test_update_and_delete(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test updating fields and then deleting a relationship."""
        repo = RelationshipRepository(db)
        created = repo.create(
            campaign.id,
            source_entity_id=entities["Captain Vex"].id,
            target_entity_id=entities["Henry Armitage"].id,
            relationship_type_id=_type_id(db, campaign.id, "knows"),
        )

        updated = repo.update(campaign.id, created.id, {
            "relationship_type_id": _type_id(db, campaign.id, "enemy_of"),
            "tone": "hostile",
        })
        repo.delete(campaign.id, created.id)

        assert updated.relationship_type == "enemy_of"
        assert updated.tone == "hostile"
        with pytest.raises(NotFoundError):
            repo.get(campaign.id, created.id)

    def test_deleting_entity_removes_relationships(
        self,
        db: Database,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test relationships go away with either endpoint."""
        repo = RelationshipRepository(db)
        repo.create(
            campaign.id,
            source_entity_id=entities["Captain Vex"].id,
            target_entity_id=entities["Port Azure"].id,
            relationship_type_id=_type_id(db, campaign.id, "located_at"),
        )

        EntityRepository(db).delete(entities["Port Azure"].id)

        assert repo.list_for_campaign(campaign.id) == []
