"""Integration tests for relationship types and relationships."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from fastapi.testclient import TestClient

    from imagineer.storage.campaigns import CampaignRecord
    from imagineer.storage.entities import EntityRecord


@pytest.fixture
def types(client: TestClient, campaign: CampaignRecord) -> dict[str, dict[str, Any]]:
    """The campaign's relationship types keyed by name."""
    return {t["name"]: t for t in client.get(f"/api/campaigns/{campaign.id}/relationship-types").json()}


class TestRelationshipTypes:
    """Tests for custom relationship types."""

    def test_create_and_delete(self, client: TestClient, campaign: CampaignRecord) -> None:
        """Test a custom type can be added and removed."""
        url = f"/api/campaigns/{campaign.id}/relationship-types"
        created = client.post(url, json={
            "name": "sworn_enemy_of",
            "inverseName": "sworn_enemy_of",
            "isSymmetric": True,
            "displayLabel": "Sworn enemy of",
            "inverseDisplayLabel": "Sworn enemy of",
        })

        assert created.status_code == 201
        assert created.json()["isSymmetric"] is True
        assert client.delete(f"{url}/{created.json()['id']}").status_code == 204
        assert "sworn_enemy_of" not in {t["name"] for t in client.get(url).json()}

    def test_duplicate_name(self, client: TestClient, campaign: CampaignRecord) -> None:
        """Test type names are unique per campaign."""
        response = client.post(f"/api/campaigns/{campaign.id}/relationship-types", json={
            "name": "knows",
            "inverseName": "knows",
            "isSymmetric": True,
            "displayLabel": "Knows",
            "inverseDisplayLabel": "Knows",
        })

        assert response.status_code == 409

    def test_type_in_use(
        self,
        client: TestClient,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
        types: dict[str, dict[str, Any]],
    ) -> None:
        """Test a type with relationships cannot be deleted."""
        client.post(f"/api/campaigns/{campaign.id}/relationships", json={
            "sourceEntityId": entities["Captain Vex"].id,
            "targetEntityId": entities["Henry Armitage"].id,
            "relationshipTypeId": types["knows"]["id"],
        })

        response = client.delete(f"/api/campaigns/{campaign.id}/relationship-types/{types['knows']['id']}")

        assert response.status_code == 409


class TestRelationships:
    """Tests for relationship CRUD."""

    def test_crud(
        self,
        client: TestClient,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
        types: dict[str, dict[str, Any]],
    ) -> None:
        """Test a relationship can be created, edited and deleted."""
        url = f"/api/campaigns/{campaign.id}/relationships"
        vex, armitage = entities["Captain Vex"], entities["Henry Armitage"]

        created = client.post(url, json={
            "sourceEntityId": vex.id,
            "targetEntityId": armitage.id,
            "relationshipTypeId": types["employs"]["id"],
            "tone": "professional",
            "strength": 3,
        })
        assert created.status_code == 201
        rel = created.json()
        assert rel["relationshipType"] == "employs"
        assert rel["direction"] == "forward"
        assert rel["sourceEntityName"] == "Captain Vex"

        edited = client.put(f"{url}/{rel['id']}", json={"tone": "hostile", "description": "Unpaid wages"}).json()
        assert edited["tone"] == "hostile"
        assert edited["strength"] == 3
        assert [r["id"] for r in client.get(url).json()] == [rel["id"]]

        assert client.delete(f"{url}/{rel['id']}").status_code == 204
        assert client.get(f"{url}/{rel['id']}").status_code == 404

    def test_symmetric_duplicate(
        self,
        client: TestClient,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
        types: dict[str, dict[str, Any]],
    ) -> None:
        """Test a symmetric relationship cannot be added in reverse."""
        url = f"/api/campaigns/{campaign.id}/relationships"
        vex, armitage = entities["Captain Vex"], entities["Henry Armitage"]
        knows = types["knows"]["id"]
        client.post(url, json={"sourceEntityId": vex.id, "targetEntityId": armitage.id, "relationshipTypeId": knows})

        response = client.post(
            url, json={"sourceEntityId": armitage.id, "targetEntityId": vex.id, "relationshipTypeId": knows}
        )

        assert response.status_code == 409
        assert response.json()["code"] == "conflict"

    def test_invalid_tone(
        self,
        client: TestClient,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
        types: dict[str, dict[str, Any]],
    ) -> None:
        """Test unknown tones are refused."""
        response = client.post(f"/api/campaigns/{campaign.id}/relationships", json={
            "sourceEntityId": entities["Captain Vex"].id,
            "targetEntityId": entities["Port Azure"].id,
            "relationshipTypeId": types["located_at"]["id"],
            "tone": "smug",
        })

        assert response.status_code == 400

    def test_entity_from_other_campaign(
        self,
        client: TestClient,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
        types: dict[str, dict[str, Any]],
    ) -> None:
        """Test both ends must belong to the campaign."""
        other = client.post("/api/campaigns", json={"name": "Second table"}).json()
        stranger = client.post(
            f"/api/campaigns/{other['id']}/entities", json={"entityType": "npc", "name": "Stranger"}
        ).json()

        response = client.post(f"/api/campaigns/{campaign.id}/relationships", json={
            "sourceEntityId": entities["Captain Vex"].id,
            "targetEntityId": stranger["id"],
            "relationshipTypeId": types["knows"]["id"],
        })

        assert response.status_code == 400
