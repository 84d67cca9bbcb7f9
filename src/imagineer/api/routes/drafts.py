"""Server-side drafts of unsaved edits."""

import pydantic
from fastapi import APIRouter, Request, Response, status
from starlette.concurrency import run_in_threadpool

from imagineer.api.deps import BeaconUser, CurrentUser, Db, OwnedCampaign
from imagineer.core.exceptions import ImagineerError, ValidationError
from imagineer.core.logging import get_logger
from imagineer.models.content import DraftIndicatorResponse, DraftResponse, DraftSave
from imagineer.storage.campaigns import CampaignRepository
from imagineer.storage.database import Database
from imagineer.storage.drafts import DraftRecord, DraftRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/api/campaigns/{campaign_id}/drafts", tags=["drafts"])


def _save(db: Database, campaign_id: int, user_id: int, body: DraftSave) -> DraftRecord:
    return DraftRepository(db).save(
        campaign_id=campaign_id,
        user_id=user_id,
        source_table=body.source_table,
        source_id=body.source_id,
        draft_data=body.draft_data,
        is_new=body.is_new,
        server_version=body.server_version,
    )


def _save_owned(db: Database, campaign_id: int, user_id: int, body: DraftSave) -> None:
    CampaignRepository(db).get_owned(campaign_id, user_id)
    _save(db, campaign_id, user_id, body)


@router.put("", response_model=DraftResponse)
def save_draft(campaign: OwnedCampaign, body: DraftSave, user: CurrentUser, db: Db) -> DraftResponse:
    return DraftResponse.model_validate(_save(db, campaign.id, user.id, body))


@router.get("", response_model=list[DraftIndicatorResponse])
def list_drafts(
    campaign: OwnedCampaign,
    user: CurrentUser,
    db: Db,
    source_table: str | None = None,
) -> list[DraftIndicatorResponse]:
    indicators = DraftRepository(db).list_indicators(campaign.id, user.id, source_table)
    return [DraftIndicatorResponse.model_validate(indicator) for indicator in indicators]


@router.post("/beacon", status_code=status.HTTP_204_NO_CONTENT)
async def save_draft_beacon(campaign_id: int, request: Request, user: BeaconUser, db: Db) -> Response:
    """Save a draft sent by ``navigator.sendBeacon`` while the page unloads.

    Beacons arrive as ``text/plain`` and nobody reads the reply, so the
    body is parsed by hand and failures are only logged.
    """
    raw = await request.body()
    try:
        try:
            body = DraftSave.model_validate_json(raw)
        except pydantic.ValidationError as exc:
            raise ValidationError("Invalid draft payload", details={"errors": exc.errors()}) from exc
        await run_in_threadpool(_save_owned, db, campaign_id, user.id, body)
    except ImagineerError as exc:
        logger.warning("Beacon draft not saved", campaign_id=campaign_id, error=exc.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{source_table}/{source_id}", response_model=DraftResponse)
def get_draft(
    campaign: OwnedCampaign, source_table: str, source_id: int, user: CurrentUser, db: Db
) -> DraftResponse:
    return DraftResponse.model_validate(DraftRepository(db).get(campaign.id, user.id, source_table, source_id))


@router.delete("/{source_table}/{source_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_draft(campaign: OwnedCampaign, source_table: str, source_id: int, user: CurrentUser, db: Db) -> Response:
    DraftRepository(db).delete(campaign.id, user.id, source_table, source_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
