from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_game_engine
from app.realtime.game_engine import GameEngine
from app.schemas.rooms import RoomSummaryRead

router = APIRouter()


def _summary(room) -> RoomSummaryRead:
    return RoomSummaryRead(
        id=room.id,
        phase=room.phase.value,
        participant_count=len(room.participants),
        countdown=room.countdown,
    )


@router.get("", response_model=list[RoomSummaryRead])
def list_rooms(engine: GameEngine = Depends(get_game_engine)) -> list[RoomSummaryRead]:
    return [_summary(room) for room in engine.registry.rooms()]


@router.get("/{room_id}", response_model=RoomSummaryRead)
def get_room(room_id: str, engine: GameEngine = Depends(get_game_engine)) -> RoomSummaryRead:
    room = engine.registry.get_room(room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return _summary(room)
