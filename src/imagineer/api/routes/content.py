"""Chapters, sessions and timeline events."""

from fastapi import APIRouter, Query, Response, status

from imagineer.api.deps import Db, OwnedCampaign
from imagineer.models.content import (
    ChapterCreate,
    ChapterResponse,
    ChapterUpdate,
    SessionFields,
    SessionResponse,
    TimelineEventFields,
    TimelineEventResponse,
)
from imagineer.storage.chapters import ChapterRepository
from imagineer.storage.sessions import SessionRepository
from imagineer.storage.timeline import TimelineRepository

router = APIRouter(prefix="/api/campaigns/{campaign_id}", tags=["content"])


# =============================================================================
# Chapters
# =============================================================================


@router.get("/chapters", response_model=list[ChapterResponse])
def list_chapters(campaign: OwnedCampaign, db: Db) -> list[ChapterResponse]:
    return [ChapterResponse.model_validate(chapter) for chapter in ChapterRepository(db).list_for_campaign(campaign.id)]


@router.post("/chapters", response_model=ChapterResponse, status_code=status.HTTP_201_CREATED)
def create_chapter(campaign: OwnedCampaign, body: ChapterCreate, db: Db) -> ChapterResponse:
    return ChapterResponse.model_validate(ChapterRepository(db).create(campaign.id, **body.changes()))


@router.get("/chapters/{chapter_id}", response_model=ChapterResponse)
def get_chapter(campaign: OwnedCampaign, chapter_id: int, db: Db) -> ChapterResponse:
    return ChapterResponse.model_validate(ChapterRepository(db).get(campaign.id, chapter_id))


@router.put("/chapters/{chapter_id}", response_model=ChapterResponse)
def update_chapter(campaign: OwnedCampaign, chapter_id: int, body: ChapterUpdate, db: Db) -> ChapterResponse:
    return ChapterResponse.model_validate(ChapterRepository(db).update(campaign.id, chapter_id, body.changes()))


@router.delete("/chapters/{chapter_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_chapter(campaign: OwnedCampaign, chapter_id: int, db: Db) -> Response:
    ChapterRepository(db).delete(campaign.id, chapter_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/chapters/{chapter_id}/sessions", response_model=list[SessionResponse])
def list_chapter_sessions(campaign: OwnedCampaign, chapter_id: int, db: Db) -> list[SessionResponse]:
    ChapterRepository(db).get(campaign.id, chapter_id)
    sessions = SessionRepository(db).list_for_campaign(campaign.id, chapter_id=chapter_id)
    return [SessionResponse.model_validate(session) for session in sessions]


# =============================================================================
# Sessions
# =============================================================================


@router.get("/sessions", response_model=list[SessionResponse])
def list_sessions(campaign: OwnedCampaign, db: Db) -> list[SessionResponse]:
    return [SessionResponse.model_validate(session) for session in SessionRepository(db).list_for_campaign(campaign.id)]


@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def create_session(campaign: OwnedCampaign, body: SessionFields, db: Db) -> SessionResponse:
    return SessionResponse.model_validate(SessionRepository(db).create(campaign.id, body.changes()))


@router.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session(campaign: OwnedCampaign, session_id: int, db: Db) -> SessionResponse:
    return SessionResponse.model_validate(SessionRepository(db).get(campaign.id, session_id))


@router.put("/sessions/{session_id}", response_model=SessionResponse)
def update_session(campaign: OwnedCampaign, session_id: int, body: SessionFields, db: Db) -> SessionResponse:
    return SessionResponse.model_validate(SessionRepository(db).update(campaign.id, session_id, body.changes()))


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(campaign: OwnedCampaign, session_id: int, db: Db) -> Response:
    SessionRepository(db).delete(campaign.id, session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Timeline
# =============================================================================


@router.get("/timeline", response_model=list[TimelineEventResponse])
def list_timeline(
    campaign: OwnedCampaign,
    db: Db,
    entity_id: int | None = Query(None, alias="entityId"),
) -> list[TimelineEventResponse]:
    events = TimelineRepository(db).list_for_campaign(campaign.id, entity_id=entity_id)
    return [TimelineEventResponse.model_validate(event) for event in events]


@router.post("/timeline", response_model=TimelineEventResponse, status_code=status.HTTP_201_CREATED)
def create_timeline_event(campaign: OwnedCampaign, body: TimelineEventFields, db: Db) -> TimelineEventResponse:
    return TimelineEventResponse.model_validate(TimelineRepository(db).create(campaign.id, body.changes()))


@router.get("/timeline/{event_id}", response_model=TimelineEventResponse)
def get_timeline_event(campaign: OwnedCampaign, event_id: int, db: Db) -> TimelineEventResponse:
    return TimelineEventResponse.model_validate(TimelineRepository(db).get(campaign.id, event_id))


@router.put("/timeline/{event_id}", response_model=TimelineEventResponse)
def update_timeline_event(
    campaign: OwnedCampaign, event_id: int, body: TimelineEventFields, db: Db
) -> TimelineEventResponse:
    return TimelineEventResponse.model_validate(TimelineRepository(db).update(campaign.id, event_id, body.changes()))


@router.delete("/timeline/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_timeline_event(campaign: OwnedCampaign, event_id: int, db: Db) -> Response:
    TimelineRepository(db).delete(campaign.id, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
