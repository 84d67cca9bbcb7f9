"""Integration tests for entities and their log."""

from __future__ import annotations

from typing import TYPE_CHECKING

from imagineer.storage.drafts import DraftRepository

if TYPE_CHECKING:
    from fastapi.testclient import TestClient

    from imagineer.storage.campaigns import CampaignRecord
    from imagineer.storage.database import Database
    from imagineer.storage.entities import EntityRecord
    from imagineer.storage.users import UserRecord


class TestCampaignEntities:
    """Tests for the campaign-scoped entity endpoints."""

    def test_create(self, client: TestClient, campaign: CampaignRecord) -> None:
        """Test a created entity starts at version 1 as a draft."""
        response = client.post(f"/api/campaigns/{campaign.id}/entities", json={
            "entityType": "faction",
            "name": " The Brine Cult ",
            "tags": ["cult", "coastal"],
            "attributes": {"members": 40},
        })

        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "The Brine Cult"
        assert body["entityType"] == "faction"
        assert body["tags"] == ["cult", "coastal"]
        assert body["attributes"] == {"members": 40}
        assert body["sourceConfidence"] == "DRAFT"
        assert body["version"] == 1

    def test_invalid_type(self, client: TestClient, campaign: CampaignRecord) -> None:
        """Test unknown entity types are refused."""
        response = client.post(
            f"/api/campaigns/{campaign.id}/entities", json={"entityType": "spaceship", "name": "Nautilus"}
        )

        assert response.status_code == 400
        assert response.json()["details"]["field_name"] == "entity_type"

    def test_list_filters(self, client: TestClient, campaign: CampaignRecord, entities: dict[str, EntityRecord]) -> None:
        """Test listing is ordered by name and filtered by type."""
        url = f"/api/campaigns/{campaign.id}/entities"

        all_names = [e["name"] for e in client.get(url).json()]
        npcs = [e["name"] for e in client.get(url, params={"entityType": "npc"}).json()]
        page = [e["name"] for e in client.get(url, params={"limit": 1, "offset": 1}).json()]

        assert all_names == ["Captain Vex", "Henry Armitage", "Port Azure"]
        assert npcs == ["Captain Vex", "Henry Armitage"]
        assert page == ["Henry Armitage"]

    def test_list_by_tag(self, client: TestClient, campaign: CampaignRecord, entities: dict[str, EntityRecord]) -> None:
        """Test the tag filter matches whole tags."""
        client.put(f"/api/entities/{entities['Port Azure'].id}", json={"tags": ["harbour"]})

        names = [
            e["name"] for e in client.get(f"/api/campaigns/{campaign.id}/entities", params={"tag": "harbour"}).json()
        ]

        assert names == ["Port Azure"]

    def test_search(self, client: TestClient, campaign: CampaignRecord, entities: dict[str, EntityRecord]) -> None:
        """Test search is a case-insensitive substring match."""
        url = f"/api/campaigns/{campaign.id}/entities/search"

        assert [e["name"] for e in client.get(url, params={"q": "AZU"}).json()] == ["Port Azure"]
        assert client.get(url, params={"q": "  "}).json() == []
        assert client.get(url, params={"q": "%"}).json() == []

    def test_resolve(self, client: TestClient, campaign: CampaignRecord, entities: dict[str, EntityRecord]) -> None:
        """Test fuzzy resolution ranks the exact name first."""
        matches = client.get(
            f"/api/campaigns/{campaign.id}/entities/resolve", params={"name": "captain  vex"}
        ).json()

        assert matches[0]["id"] == entities["Captain Vex"].id
        assert matches[0]["similarity"] == 1.0
        assert all(m["similarity"] >= 0.3 for m in matches)

    def test_update_bumps_version_and_drops_drafts(
        self,
        client: TestClient,
        db: Database,
        user: UserRecord,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a saved edit bumps the version and discards drafts of the entity."""
        vex = entities["Captain Vex"]
        drafts = DraftRepository(db)
        drafts.save(
            campaign_id=campaign.id,
            user_id=user.id,
            source_table="entities",
            source_id=vex.id,
            draft_data={"description": "unsaved"},
        )

        response = client.put(
            f"/api/campaigns/{campaign.id}/entities/{vex.id}", json={"description": "Now an admiral."}
        )

        body = response.json()
        assert body["description"] == "Now an admiral."
        assert body["version"] == 2
        assert drafts.list_indicators(campaign.id, user.id) == []

    def test_delete(self, client: TestClient, campaign: CampaignRecord, entities: dict[str, EntityRecord]) -> None:
        """Test a deleted entity is gone."""
        vex = entities["Captain Vex"]

        assert client.delete(f"/api/campaigns/{campaign.id}/entities/{vex.id}").status_code == 204
        assert client.get(f"/api/campaigns/{campaign.id}/entities/{vex.id}").status_code == 404

    def test_entity_of_other_campaign(
        self,
        client: TestClient,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test an entity is only reachable through its own campaign."""
        other = client.post("/api/campaigns", json={"name": "Second table"}).json()

        response = client.get(f"/api/campaigns/{other['id']}/entities/{entities['Captain Vex'].id}")

        assert response.status_code == 404


class TestEntitiesById:
    """Tests for the /api/entities/{id} endpoints."""

    def test_get_and_update(self, client: TestClient, entities: dict[str, EntityRecord]) -> None:
        """Test the owner can read and edit by id."""
        port = entities["Port Azure"]

        assert client.get(f"/api/entities/{port.id}").json()["name"] == "Port Azure"
        updated = client.put(f"/api/entities/{port.id}", json={"sourceConfidence": "AUTHORITATIVE"}).json()
        assert updated["sourceConfidence"] == "AUTHORITATIVE"

    def test_invalid_confidence(self, client: TestClient, entities: dict[str, EntityRecord]) -> None:
        """Test unknown confidence values are refused."""
        response = client.put(f"/api/entities/{entities['Port Azure'].id}", json={"sourceConfidence": "MAYBE"})

        assert response.status_code == 400

    def test_other_owner_sees_not_found(self, rival_client: TestClient, entities: dict[str, EntityRecord]) -> None:
        """Test another user's entity is reported as missing."""
        port = entities["Port Azure"]

        assert rival_client.get(f"/api/entities/{port.id}").status_code == 404
        assert rival_client.put(f"/api/entities/{port.id}", json={"name": "Mine"}).status_code == 404
        assert rival_client.delete(f"/api/entities/{port.id}").status_code == 404

    def test_delete(self, client: TestClient, entities: dict[str, EntityRecord]) -> None:
        """Test deleting by id."""
        armitage = entities["Henry Armitage"]

        assert client.delete(f"/api/entities/{armitage.id}").status_code == 204
        assert client.get(f"/api/entities/{armitage.id}").status_code == 404


class TestEntityLog:
    """Tests for the entity log endpoints."""

    def test_crud(self, client: TestClient, campaign: CampaignRecord, entities: dict[str, EntityRecord]) -> None:
        """Test log entries can be added, edited and removed."""
        url = f"/api/campaigns/{campaign.id}/entities/{entities['Captain Vex'].id}/log"

        created = client.post(url, json={"content": "Sank the Merrow", "occurredAt": "Session 1"})
        assert created.status_code == 201
        entry = created.json()
        assert entry["content"] == "Sank the Merrow"
        assert entry["occurredAt"] == "Session 1"

        edited = client.put(f"{url}/{entry['id']}", json={"content": "Sank the Merrow at dawn"}).json()
        assert edited["content"] == "Sank the Merrow at dawn"
        assert [e["id"] for e in client.get(url).json()] == [entry["id"]]

        assert client.delete(f"{url}/{entry['id']}").status_code == 204
        assert client.get(f"{url}/{entry['id']}").status_code == 404

    def test_blank_content(self, client: TestClient, campaign: CampaignRecord, entities: dict[str, EntityRecord]) -> None:
        """Test empty log entries are refused."""
        url = f"/api/campaigns/{campaign.id}/entities/{entities['Captain Vex'].id}/log"

        assert client.post(url, json={"content": "  "}).status_code == 400

    def test_entry_of_other_entity(
        self,
        client: TestClient,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test an entry is only reachable through its own entity."""
        base = f"/api/campaigns/{campaign.id}/entities"
        entry = client.post(f"{base}/{entities['Captain Vex'].id}/log", json={"content": "Sank the Merrow"}).json()

        response = client.get(f"{base}/{entities['Port Azure'].id}/log/{entry['id']}")

        assert response.status_code == 404


class TestEntityViews:
    """Tests for an entity's relationships and timeline."""

    def test_relationships_from_both_sides(
        self,
        client: TestClient,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test the target sees the inverse label."""
        types = {t["name"]: t for t in client.get(f"/api/campaigns/{campaign.id}/relationship-types").json()}
        vex, port = entities["Captain Vex"], entities["Port Azure"]
        client.post(f"/api/campaigns/{campaign.id}/relationships", json={
            "sourceEntityId": vex.id,
            "targetEntityId": port.id,
            "relationshipTypeId": types["located_at"]["id"],
        })

        seen = client.get(f"/api/campaigns/{campaign.id}/entities/{port.id}/relationships").json()

        assert len(seen) == 1
        assert seen[0]["direction"] == "inverse"
        assert seen[0]["relationshipType"] == "location_of"
        assert seen[0]["sourceEntityId"] == port.id
        assert seen[0]["targetEntityName"] == "Captain Vex"

    def test_timeline(self, client: TestClient, campaign: CampaignRecord, entities: dict[str, EntityRecord]) -> None:
        """Test only events naming the entity are listed."""
        vex, port = entities["Captain Vex"], entities["Port Azure"]
        url = f"/api/campaigns/{campaign.id}/timeline"
        client.post(url, json={"description": "Vex arrives", "entityIds": [vex.id, port.id]})
        client.post(url, json={"description": "Storm", "entityIds": [port.id]})

        events = client.get(f"/api/campaigns/{campaign.id}/entities/{vex.id}/timeline").json()

        assert [e["description"] for e in events] == ["Vex arrives"]
