"""Campaign agents that run on demand."""

from fastapi import APIRouter

from imagineer.analysis.consistency import ConsistencyChecker
from imagineer.api.deps import Db, OwnedCampaign
from imagineer.models.analysis import ConsistencyCheckRequest, ConsistencyReportResponse

router = APIRouter(prefix="/api/campaigns/{campaign_id}/agents", tags=["agents"])


@router.post("/consistency-check", response_model=ConsistencyReportResponse)
def consistency_check(
    campaign: OwnedCampaign,
    db: Db,
    body: ConsistencyCheckRequest | None = None,
) -> ConsistencyReportResponse:
    entity_type = body.entity_type if body is not None else None
    report = ConsistencyChecker(db).run(campaign.id, entity_type=entity_type)
    return ConsistencyReportResponse.model_validate(report)


__all__ = ["router"]
