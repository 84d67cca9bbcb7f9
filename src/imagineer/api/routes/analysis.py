"""Content analysis jobs: identification, review, enrichment and revision."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from imagineer.analysis.analyzer import ContentAnalyzer
from imagineer.analysis.sources import check_source, read_source, write_source
from imagineer.api.deps import CurrentUser, Db, OwnedCampaign, Resolution, Runner
from imagineer.core.exceptions import ValidationError
from imagineer.core.logging import get_logger
from imagineer.enrichment.revision import RevisionAgent, RevisionInput
from imagineer.models.analysis import (
    AnalysisItemResponse,
    AnalysisJobResponse,
    AnalysisResultResponse,
    ApplyRevisionRequest,
    BatchResolveRequest,
    ResolveItemRequest,
    RevisionResponse,
    TriggerAnalysisRequest,
)
from imagineer.storage.analysis import AnalysisRepository
from imagineer.storage.entities import EntityRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/api/campaigns/{campaign_id}/analysis", tags=["analysis"])


# =============================================================================
# Jobs and items
# =============================================================================


@router.get("/jobs", response_model=list[AnalysisJobResponse])
def list_jobs(campaign: OwnedCampaign, db: Db) -> list[AnalysisJobResponse]:
    return [AnalysisJobResponse.model_validate(job) for job in AnalysisRepository(db).list_jobs(campaign.id)]


@router.get("/jobs/{job_id}", response_model=AnalysisJobResponse)
def get_job(campaign: OwnedCampaign, job_id: int, db: Db) -> AnalysisJobResponse:
    return AnalysisJobResponse.model_validate(AnalysisRepository(db).get_job(campaign.id, job_id))


@router.get("/jobs/{job_id}/items", response_model=list[AnalysisItemResponse])
def list_items(
    campaign: OwnedCampaign,
    job_id: int,
    db: Db,
    resolution: str | None = None,
    phase: str | None = None,
) -> list[AnalysisItemResponse]:
    repo = AnalysisRepository(db)
    job = repo.get_job(campaign.id, job_id)
    items = repo.list_items(job.id, resolution=resolution, phase=phase)
    return [AnalysisItemResponse.model_validate(item) for item in items]


@router.post("/trigger", response_model=AnalysisResultResponse, status_code=status.HTTP_201_CREATED)
def trigger_analysis(campaign: OwnedCampaign, body: TriggerAnalysisRequest, db: Db) -> AnalysisResultResponse:
    """Analyse the stored text of one field, replacing earlier jobs for it."""
    check_source(body.source_table, body.source_field)
    with db.connection() as conn:
        content = read_source(conn, campaign.id, body.source_table, body.source_id, body.source_field)

    analysis = AnalysisRepository(db)
    result = ContentAnalyzer(EntityRepository(db), analysis).analyze(
        campaign.id, body.source_table, body.source_field, body.source_id, content
    )
    logger.info(
        "Analysis job created",
        campaign_id=campaign.id,
        job_id=result.job.id,
        source=f"{body.source_table}.{body.source_field}",
        items=len(result.items),
    )
    return AnalysisResultResponse(
        job=AnalysisJobResponse.model_validate(result.job),
        items=[AnalysisItemResponse.model_validate(item) for item in analysis.list_items(result.job.id)],
    )


# =============================================================================
# Review
# =============================================================================


@router.put("/items/{item_id}")
def resolve_item(
    campaign: OwnedCampaign,
    item_id: int,
    body: ResolveItemRequest,
    user: CurrentUser,
    resolution: Resolution,
) -> dict[str, str]:
    resolution.resolve_item(
        campaign.id,
        item_id,
        body.resolution,
        user_id=user.id,
        entity_type=body.entity_type,
        entity_name=body.entity_name,
        suggested_content_override=body.suggested_content_override,
    )
    return {"status": "resolved"}


@router.put("/jobs/{job_id}/resolve-all")
def resolve_all(
    campaign: OwnedCampaign,
    job_id: int,
    body: BatchResolveRequest,
    user: CurrentUser,
    resolution: Resolution,
) -> dict[str, int]:
    resolved = resolution.batch_resolve(
        campaign.id, job_id, body.detection_type, body.resolution, user_id=user.id
    )
    return {"resolved": resolved}


@router.put("/items/{item_id}/revert")
def revert_item(campaign: OwnedCampaign, item_id: int, resolution: Resolution) -> dict[str, str]:
    resolution.revert_item(campaign.id, item_id)
    return {"status": "reverted"}


@router.get("/pending-count")
def pending_count(
    campaign: OwnedCampaign,
    resolution: Resolution,
    source_table: Annotated[str | None, Query(alias="sourceTable")] = None,
    source_id: Annotated[int | None, Query(alias="sourceId")] = None,
) -> dict[str, int]:
    return {"count": resolution.pending_count(campaign.id, source_table, source_id)}


# =============================================================================
# Enrichment
# =============================================================================


@router.post("/jobs/{job_id}/enrich", status_code=status.HTTP_202_ACCEPTED)
def enrich_job(campaign: OwnedCampaign, job_id: int, user: CurrentUser, db: Db, runner: Runner) -> dict[str, str]:
    """Start enrichment in the background; poll the job for its status."""
    job = AnalysisRepository(db).get_job(campaign.id, job_id)
    with db.connection() as conn:
        content = read_source(conn, campaign.id, job.source_table, job.source_id, job.source_field)
    runner.start(job, content, user.id)
    return {"status": "enriching"}


@router.post("/jobs/{job_id}/cancel-enrichment")
def cancel_enrichment(campaign: OwnedCampaign, job_id: int, db: Db, runner: Runner) -> dict[str, str]:
    job = AnalysisRepository(db).get_job(campaign.id, job_id)
    return runner.cancel(job.id)


# =============================================================================
# Revision
# =============================================================================


@router.post("/jobs/{job_id}/revision", response_model=RevisionResponse)
def generate_revision(
    campaign: OwnedCampaign, job_id: int, user: CurrentUser, db: Db, runner: Runner
) -> RevisionResponse:
    """Ask the LLM to rewrite the source text for the acknowledged findings."""
    analysis = AnalysisRepository(db)
    job = analysis.get_job(campaign.id, job_id)
    check_source(job.source_table, job.source_field, revisable=True)
    with db.connection() as conn:
        original = read_source(conn, campaign.id, job.source_table, job.source_id, job.source_field)

    acknowledged = analysis.acknowledged_items(job.id)
    provider = runner.provider_for(user.id) if acknowledged else None
    result = RevisionAgent().generate_revision(
        provider,
        RevisionInput(
            original_content=original,
            acknowledged_items=acknowledged,
            source_table=job.source_table,
            source_id=job.source_id,
            game_system=runner.game_system_name(campaign.id),
        ),
    )
    return RevisionResponse(
        revised_content=result.revised_content,
        summary=result.summary,
        original_content=original,
    )


@router.put("/jobs/{job_id}/revision/apply")
def apply_revision(campaign: OwnedCampaign, job_id: int, body: ApplyRevisionRequest, db: Db) -> dict[str, str]:
    """Write the revised text back to the job's source field."""
    job = AnalysisRepository(db).get_job(campaign.id, job_id)
    check_source(job.source_table, job.source_field, revisable=True)
    if not body.revised_content or not body.revised_content.strip():
        raise ValidationError("revisedContent is required", field_name="revised_content")

    with db.connection() as conn:
        write_source(conn, campaign.id, job.source_table, job.source_id, job.source_field, body.revised_content)
    logger.info("Revision applied", job_id=job.id, source=f"{job.source_table}.{job.source_field}")
    return {"status": "applied"}


__all__ = ["router"]
