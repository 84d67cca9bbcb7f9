"""Integration tests for drafts and the unload beacon."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from imagineer.storage.drafts import DraftRepository

if TYPE_CHECKING:
    from fastapi.testclient import TestClient

    from imagineer.storage.campaigns import CampaignRecord
    from imagineer.storage.database import Database
    from imagineer.storage.entities import EntityRecord
    from imagineer.storage.users import UserRecord


class TestDrafts:
    """Tests for saving, listing and discarding drafts."""

    def test_save_and_get(self, client: TestClient, campaign: CampaignRecord, entities: dict[str, EntityRecord]) -> None:
        """Test a draft is stored with its data and version."""
        vex = entities["Captain Vex"]
        url = f"/api/campaigns/{campaign.id}/drafts"

        saved = client.put(url, json={
            "sourceTable": "entities",
            "sourceId": vex.id,
            "draftData": {"description": "Half written"},
            "serverVersion": 1,
        })

        assert saved.status_code == 200
        body = client.get(f"{url}/entities/{vex.id}").json()
        assert body["draftData"] == {"description": "Half written"}
        assert body["serverVersion"] == 1
        assert body["isNew"] is False

    def test_save_replaces(self, client: TestClient, campaign: CampaignRecord) -> None:
        """Test saving again overwrites the previous draft."""
        url = f"/api/campaigns/{campaign.id}/drafts"
        client.put(url, json={"sourceTable": "chapters", "sourceId": 0, "draftData": {"title": "A"}, "isNew": True})
        client.put(url, json={"sourceTable": "chapters", "sourceId": 0, "draftData": {"title": "B"}, "isNew": True})

        indicators = client.get(url).json()

        assert len(indicators) == 1
        assert indicators[0]["sourceTable"] == "chapters"
        assert indicators[0]["isNew"] is True
        assert client.get(f"{url}/chapters/0").json()["draftData"] == {"title": "B"}

    def test_list_filtered_by_table(self, client: TestClient, campaign: CampaignRecord) -> None:
        """Test indicators can be limited to one table."""
        url = f"/api/campaigns/{campaign.id}/drafts"
        client.put(url, json={"sourceTable": "chapters", "sourceId": 1, "draftData": {}})
        client.put(url, json={"sourceTable": "sessions", "sourceId": 1, "draftData": {}})

        tables = [d["sourceTable"] for d in client.get(url, params={"source_table": "sessions"}).json()]

        assert tables == ["sessions"]

    def test_drafts_are_per_user(
        self,
        client: TestClient,
        db: Database,
        other_user: UserRecord,
        campaign: CampaignRecord,
    ) -> None:
        """Test another user's drafts are not listed."""
        DraftRepository(db).save(
            campaign_id=campaign.id,
            user_id=other_user.id,
            source_table="chapters",
            source_id=1,
            draft_data={"title": "Theirs"},
        )

        assert client.get(f"/api/campaigns/{campaign.id}/drafts").json() == []

    def test_invalid_table(self, client: TestClient, campaign: CampaignRecord) -> None:
        """Test drafts are limited to editable tables."""
        response = client.put(
            f"/api/campaigns/{campaign.id}/drafts",
            json={"sourceTable": "users", "sourceId": 1, "draftData": {}},
        )

        assert response.status_code == 400

    def test_delete(self, client: TestClient, campaign: CampaignRecord) -> None:
        """Test a discarded draft is gone."""
        url = f"/api/campaigns/{campaign.id}/drafts"
        client.put(url, json={"sourceTable": "chapters", "sourceId": 3, "draftData": {"title": "A"}})

        assert client.delete(f"{url}/chapters/3").status_code == 204
        assert client.get(f"{url}/chapters/3").status_code == 404
        assert client.delete(f"{url}/chapters/3").status_code == 404


class TestBeacon:
    """Tests for drafts sent while the page unloads."""

    def test_token_in_query(
        self,
        anonymous_client: TestClient,
        db: Database,
        token: str,
        user: UserRecord,
        campaign: CampaignRecord,
    ) -> None:
        """Test a text/plain beacon authenticated by query token is saved."""
        payload = {"sourceTable": "chapters", "sourceId": 2, "draftData": {"title": "Beacon"}}

        response = anonymous_client.post(
            f"/api/campaigns/{campaign.id}/drafts/beacon",
            params={"token": token},
            content=json.dumps(payload),
            headers={"Content-Type": "text/plain"},
        )

        assert response.status_code == 204
        draft = DraftRepository(db).get(campaign.id, user.id, "chapters", 2)
        assert draft.draft_data == {"title": "Beacon"}

    def test_bad_payload_still_204(
        self,
        anonymous_client: TestClient,
        db: Database,
        token: str,
        user: UserRecord,
        campaign: CampaignRecord,
    ) -> None:
        """Test malformed beacons are dropped quietly."""
        response = anonymous_client.post(
            f"/api/campaigns/{campaign.id}/drafts/beacon",
            params={"token": token},
            content="not json",
        )

        assert response.status_code == 204
        assert DraftRepository(db).list_indicators(campaign.id, user.id) == []

    def test_foreign_campaign_not_saved(
        self,
        rival_client: TestClient,
        db: Database,
        other_user: UserRecord,
        campaign: CampaignRecord,
    ) -> None:
        """Test a beacon for someone else's campaign is ignored."""
        payload = {"sourceTable": "chapters", "sourceId": 2, "draftData": {"title": "Sneaky"}}

        response = rival_client.post(f"/api/campaigns/{campaign.id}/drafts/beacon", content=json.dumps(payload))

        assert response.status_code == 204
        assert DraftRepository(db).list_indicators(campaign.id, other_user.id) == []

    def test_requires_token(self, anonymous_client: TestClient, campaign: CampaignRecord) -> None:
        """Test an anonymous beacon is rejected."""
        response = anonymous_client.post(f"/api/campaigns/{campaign.id}/drafts/beacon", content="{}")

        assert response.status_code == 401
