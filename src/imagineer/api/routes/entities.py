"""Entities with their log, relationships and timeline."""

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from imagineer.api.deps import CurrentUser, Db, OwnedCampaign
from imagineer.core.constants import DEFAULT_PAGE_SIZE, DEFAULT_SEARCH_LIMIT, MAX_PAGE_SIZE
from imagineer.core.exceptions import NotFoundError
from imagineer.models.content import TimelineEventResponse
from imagineer.models.entities import (
    EntityCreate,
    EntityLogCreate,
    EntityLogResponse,
    EntityLogUpdate,
    EntityMatchResponse,
    EntityResponse,
    EntityUpdate,
    RelationshipResponse,
)
from imagineer.storage.campaigns import CampaignRepository
from imagineer.storage.database import Database
from imagineer.storage.entities import EntityRecord, EntityRepository
from imagineer.storage.entity_log import EntityLogRepository
from imagineer.storage.relationships import RelationshipRepository
from imagineer.storage.timeline import TimelineRepository

router = APIRouter(tags=["entities"])


def _create_entity(db: Database, campaign_id: int, body: EntityCreate) -> EntityResponse:
    fields = body.changes()
    entity = EntityRepository(db).create(
        campaign_id,
        entity_type=fields["entity_type"],
        name=fields["name"],
        description=fields.get("description"),
        attributes=fields.get("attributes"),
        tags=fields.get("tags"),
        gm_notes=fields.get("gm_notes"),
        discovered_session=fields.get("discovered_session"),
        source_document=fields.get("source_document"),
        source_confidence=fields.get("source_confidence"),
    )
    CampaignRepository(db).touch(campaign_id)
    return EntityResponse.model_validate(entity)


def _owned_entity(db: Database, user_id: int, entity_id: int) -> EntityRecord:
    """Load an entity by id, checking ownership through its campaign."""
    entity = EntityRepository(db).get(entity_id)
    if entity is None:
        raise NotFoundError("Entity not found", resource="entity", resource_id=entity_id)
    CampaignRepository(db).get_owned(entity.campaign_id, user_id)
    return entity


# =============================================================================
# Campaign-scoped entities
# =============================================================================


@router.get("/api/campaigns/{campaign_id}/entities", response_model=list[EntityResponse])
def list_entities(
    campaign: OwnedCampaign,
    db: Db,
    entity_type: Annotated[str | None, Query(alias="entityType")] = None,
    tag: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> list[EntityResponse]:
    """List entities by name; limit is clamped to 1..MAX_PAGE_SIZE."""
    entities = EntityRepository(db).list_for_campaign(
        campaign.id,
        entity_type=entity_type,
        tag=tag,
        limit=min(max(limit, 1), MAX_PAGE_SIZE),
        offset=max(offset, 0),
    )
    return [EntityResponse.model_validate(entity) for entity in entities]


@router.post(
    "/api/campaigns/{campaign_id}/entities",
    response_model=EntityResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_entity(campaign: OwnedCampaign, body: EntityCreate, db: Db) -> EntityResponse:
    return _create_entity(db, campaign.id, body)


@router.get("/api/campaigns/{campaign_id}/entities/search", response_model=list[EntityResponse])
def search_entities(
    campaign: OwnedCampaign,
    db: Db,
    q: str = "",
    limit: int = DEFAULT_SEARCH_LIMIT,
) -> list[EntityResponse]:
    if not q.strip():
        return []
    entities = EntityRepository(db).search(campaign.id, q.strip(), min(max(limit, 1), MAX_PAGE_SIZE))
    return [EntityResponse.model_validate(entity) for entity in entities]


@router.get("/api/campaigns/{campaign_id}/entities/resolve", response_model=list[EntityMatchResponse])
def resolve_entities(
    campaign: OwnedCampaign,
    db: Db,
    name: str = "",
    limit: int = 10,
) -> list[EntityMatchResponse]:
    """Fuzzy-match a name, best candidates first."""
    matches = EntityRepository(db).resolve(campaign.id, name, min(max(limit, 1), MAX_PAGE_SIZE))
    return [EntityMatchResponse.model_validate(match) for match in matches]


@router.get("/api/campaigns/{campaign_id}/entities/{entity_id}", response_model=EntityResponse)
def get_campaign_entity(campaign: OwnedCampaign, entity_id: int, db: Db) -> EntityResponse:
    return EntityResponse.model_validate(EntityRepository(db).get_in_campaign(campaign.id, entity_id))


@router.put("/api/campaigns/{campaign_id}/entities/{entity_id}", response_model=EntityResponse)
def update_campaign_entity(
    campaign: OwnedCampaign, entity_id: int, body: EntityUpdate, db: Db
) -> EntityResponse:
    repo = EntityRepository(db)
    repo.get_in_campaign(campaign.id, entity_id)
    return EntityResponse.model_validate(repo.update(entity_id, body.changes()))


@router.delete("/api/campaigns/{campaign_id}/entities/{entity_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_campaign_entity(campaign: OwnedCampaign, entity_id: int, db: Db) -> Response:
    repo = EntityRepository(db)
    repo.get_in_campaign(campaign.id, entity_id)
    repo.delete(entity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/api/campaigns/{campaign_id}/entities/{entity_id}/relationships",
    response_model=list[RelationshipResponse],
)
def entity_relationships(campaign: OwnedCampaign, entity_id: int, db: Db) -> list[RelationshipResponse]:
    """Relationships in both directions, seen from this entity."""
    EntityRepository(db).get_in_campaign(campaign.id, entity_id)
    relationships = RelationshipRepository(db).list_for_entity(campaign.id, entity_id)
    return [RelationshipResponse.model_validate(rel) for rel in relationships]


@router.get(
    "/api/campaigns/{campaign_id}/entities/{entity_id}/timeline",
    response_model=list[TimelineEventResponse],
)
def entity_timeline(campaign: OwnedCampaign, entity_id: int, db: Db) -> list[TimelineEventResponse]:
    EntityRepository(db).get_in_campaign(campaign.id, entity_id)
    events = TimelineRepository(db).list_for_campaign(campaign.id, entity_id=entity_id)
    return [TimelineEventResponse.model_validate(event) for event in events]


# =============================================================================
# Entity log
# =============================================================================


@router.get(
    "/api/campaigns/{campaign_id}/entities/{entity_id}/log",
    response_model=list[EntityLogResponse],
)
def list_entity_log(campaign: OwnedCampaign, entity_id: int, db: Db) -> list[EntityLogResponse]:
    EntityRepository(db).get_in_campaign(campaign.id, entity_id)
    return [EntityLogResponse.model_validate(entry) for entry in EntityLogRepository(db).list_for_entity(entity_id)]


@router.post(
    "/api/campaigns/{campaign_id}/entities/{entity_id}/log",
    response_model=EntityLogResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_entity_log(
    campaign: OwnedCampaign, entity_id: int, body: EntityLogCreate, db: Db
) -> EntityLogResponse:
    EntityRepository(db).get_in_campaign(campaign.id, entity_id)
    entry = EntityLogRepository(db).create(entity_id=entity_id, campaign_id=campaign.id, **body.changes())
    return EntityLogResponse.model_validate(entry)


@router.get(
    "/api/campaigns/{campaign_id}/entities/{entity_id}/log/{log_id}",
    response_model=EntityLogResponse,
)
def get_entity_log(campaign: OwnedCampaign, entity_id: int, log_id: int, db: Db) -> EntityLogResponse:
    EntityRepository(db).get_in_campaign(campaign.id, entity_id)
    return EntityLogResponse.model_validate(EntityLogRepository(db).get(entity_id, log_id))


@router.put(
    "/api/campaigns/{campaign_id}/entities/{entity_id}/log/{log_id}",
    response_model=EntityLogResponse,
)
def update_entity_log(
    campaign: OwnedCampaign, entity_id: int, log_id: int, body: EntityLogUpdate, db: Db
) -> EntityLogResponse:
    EntityRepository(db).get_in_campaign(campaign.id, entity_id)
    return EntityLogResponse.model_validate(EntityLogRepository(db).update(entity_id, log_id, body.changes()))


@router.delete(
    "/api/campaigns/{campaign_id}/entities/{entity_id}/log/{log_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_entity_log(campaign: OwnedCampaign, entity_id: int, log_id: int, db: Db) -> Response:
    EntityRepository(db).get_in_campaign(campaign.id, entity_id)
    EntityLogRepository(db).delete(entity_id, log_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Entities by id
# =============================================================================


@router.get("/api/entities/{entity_id}", response_model=EntityResponse)
def get_entity(entity_id: int, user: CurrentUser, db: Db) -> EntityResponse:
    return EntityResponse.model_validate(_owned_entity(db, user.id, entity_id))


@router.put("/api/entities/{entity_id}", response_model=EntityResponse)
def update_entity(entity_id: int, body: EntityUpdate, user: CurrentUser, db: Db) -> EntityResponse:
    _owned_entity(db, user.id, entity_id)
    return EntityResponse.model_validate(EntityRepository(db).update(entity_id, body.changes()))


@router.delete("/api/entities/{entity_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entity(entity_id: int, user: CurrentUser, db: Db) -> Response:
    _owned_entity(db, user.id, entity_id)
    EntityRepository(db).delete(entity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
