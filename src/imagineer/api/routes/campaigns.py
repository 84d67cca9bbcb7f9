"""Campaign CRUD and statistics."""

from fastapi import APIRouter, Response, status

from imagineer.api.deps import CurrentUser, Db, OwnedCampaign
from imagineer.models.campaigns import (
    CampaignCreate,
    CampaignResponse,
    CampaignStatsResponse,
    CampaignUpdate,
    DashboardStatsResponse,
    OverviewStatsResponse,
)
from imagineer.storage.campaigns import CampaignRepository

router = APIRouter(tags=["campaigns"])


@router.get("/api/campaigns", response_model=list[CampaignResponse])
def list_campaigns(user: CurrentUser, db: Db) -> list[CampaignResponse]:
    campaigns = CampaignRepository(db).list_for_owner(user.id)
    return [CampaignResponse.model_validate(campaign) for campaign in campaigns]


@router.post("/api/campaigns", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
def create_campaign(body: CampaignCreate, user: CurrentUser, db: Db) -> CampaignResponse:
    fields = body.changes()
    campaign = CampaignRepository(db).create(
        user.id,
        name=fields.get("name", ""),
        system_id=fields.get("system_id"),
        description=fields.get("description"),
        settings=fields.get("settings"),
        genre=fields.get("genre"),
        image_style_prompt=fields.get("image_style_prompt"),
    )
    return CampaignResponse.model_validate(campaign)


@router.get("/api/campaigns/{campaign_id}", response_model=CampaignResponse)
def get_campaign(campaign: OwnedCampaign) -> CampaignResponse:
    return CampaignResponse.model_validate(campaign)


@router.put("/api/campaigns/{campaign_id}", response_model=CampaignResponse)
def update_campaign(campaign: OwnedCampaign, body: CampaignUpdate, db: Db) -> CampaignResponse:
    updated = CampaignRepository(db).update(campaign.id, body.changes())
    return CampaignResponse.model_validate(updated)


@router.delete("/api/campaigns/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_campaign(campaign: OwnedCampaign, db: Db) -> Response:
    CampaignRepository(db).delete(campaign.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Statistics
# =============================================================================


@router.get("/api/campaigns/{campaign_id}/stats", response_model=CampaignStatsResponse)
def campaign_stats(campaign: OwnedCampaign, db: Db) -> CampaignStatsResponse:
    return CampaignStatsResponse.model_validate(CampaignRepository(db).stats(campaign.id))


@router.get("/api/stats/dashboard", response_model=DashboardStatsResponse)
def dashboard_stats(user: CurrentUser, db: Db) -> DashboardStatsResponse:
    return DashboardStatsResponse.model_validate(CampaignRepository(db).dashboard_stats(user.id))


@router.get("/api/stats", response_model=OverviewStatsResponse)
def overview_stats(user: CurrentUser, db: Db) -> OverviewStatsResponse:
    return OverviewStatsResponse.model_validate(CampaignRepository(db).overview_stats(user.id))


__all__ = ["router"]
