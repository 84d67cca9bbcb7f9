"""Relationship types and relationships between entities."""

from fastapi import APIRouter, Response, status

from imagineer.api.deps import Db, OwnedCampaign
from imagineer.models.entities import (
    RelationshipCreate,
    RelationshipResponse,
    RelationshipTypeCreate,
    RelationshipTypeResponse,
    RelationshipUpdate,
)
from imagineer.storage.relationship_types import RelationshipTypeRepository
from imagineer.storage.relationships import RelationshipRepository

router = APIRouter(prefix="/api/campaigns/{campaign_id}", tags=["relationships"])


# =============================================================================
# Relationship types
# =============================================================================


@router.get("/relationship-types", response_model=list[RelationshipTypeResponse])
def list_relationship_types(campaign: OwnedCampaign, db: Db) -> list[RelationshipTypeResponse]:
    types = RelationshipTypeRepository(db).list_for_campaign(campaign.id)
    return [RelationshipTypeResponse.model_validate(rel_type) for rel_type in types]


@router.post(
    "/relationship-types",
    response_model=RelationshipTypeResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_relationship_type(
    campaign: OwnedCampaign, body: RelationshipTypeCreate, db: Db
) -> RelationshipTypeResponse:
    rel_type = RelationshipTypeRepository(db).create(campaign.id, **body.changes())
    return RelationshipTypeResponse.model_validate(rel_type)


@router.delete("/relationship-types/{type_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_relationship_type(campaign: OwnedCampaign, type_id: int, db: Db) -> Response:
    RelationshipTypeRepository(db).delete(campaign.id, type_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Relationships
# =============================================================================


@router.get("/relationships", response_model=list[RelationshipResponse])
def list_relationships(campaign: OwnedCampaign, db: Db) -> list[RelationshipResponse]:
    relationships = RelationshipRepository(db).list_for_campaign(campaign.id)
    return [RelationshipResponse.model_validate(rel) for rel in relationships]


@router.post("/relationships", response_model=RelationshipResponse, status_code=status.HTTP_201_CREATED)
def create_relationship(campaign: OwnedCampaign, body: RelationshipCreate, db: Db) -> RelationshipResponse:
    relationship = RelationshipRepository(db).create(campaign.id, **body.changes())
    return RelationshipResponse.model_validate(relationship)


@router.get("/relationships/{relationship_id}", response_model=RelationshipResponse)
def get_relationship(campaign: OwnedCampaign, relationship_id: int, db: Db) -> RelationshipResponse:
    return RelationshipResponse.model_validate(RelationshipRepository(db).get(campaign.id, relationship_id))


@router.put("/relationships/{relationship_id}", response_model=RelationshipResponse)
def update_relationship(
    campaign: OwnedCampaign, relationship_id: int, body: RelationshipUpdate, db: Db
) -> RelationshipResponse:
    relationship = RelationshipRepository(db).update(campaign.id, relationship_id, body.changes())
    return RelationshipResponse.model_validate(relationship)


@router.delete("/relationships/{relationship_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_relationship(campaign: OwnedCampaign, relationship_id: int, db: Db) -> Response:
    RelationshipRepository(db).delete(campaign.id, relationship_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
