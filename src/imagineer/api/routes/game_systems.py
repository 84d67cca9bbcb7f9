"""Built-in rules systems. These routes are public."""

from fastapi import APIRouter

from imagineer.api.deps import Db
from imagineer.models.campaigns import GameSystemResponse
from imagineer.storage.game_systems import GameSystemRepository

router = APIRouter(prefix="/api/game-systems", tags=["game-systems"])


@router.get("", response_model=list[GameSystemResponse])
def list_game_systems(db: Db) -> list[GameSystemResponse]:
    return [GameSystemResponse.model_validate(system) for system in GameSystemRepository(db).list_all()]


@router.get("/code/{code}", response_model=GameSystemResponse)
def get_game_system_by_code(code: str, db: Db) -> GameSystemResponse:
    return GameSystemResponse.model_validate(GameSystemRepository(db).get_by_code(code))


@router.get("/{system_id}", response_model=GameSystemResponse)
def get_game_system(system_id: int, db: Db) -> GameSystemResponse:
    return GameSystemResponse.model_validate(GameSystemRepository(db).get(system_id))


__all__ = ["router"]
