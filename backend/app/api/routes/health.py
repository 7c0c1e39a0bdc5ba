from fastapi import APIRouter, Depends

from app.api.deps import get_game_engine
from app.realtime.game_engine import GameEngine
from app.schemas.rooms import HealthRead

router = APIRouter()


@router.get("/health", response_model=HealthRead)
def health(engine: GameEngine = Depends(get_game_engine)) -> HealthRead:
    return HealthRead(
        status="ok",
        rooms=len(engine.registry.rooms()),
        connections=engine.registry.connection_count(),
        result_store=engine.result_sink.enabled,
    )
