from collections.abc import Iterator

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.db import session as db_session
from app.realtime.game_engine import GameEngine
from app.realtime.socket_server import game_engine


def get_game_engine() -> GameEngine:
    return game_engine


def get_db() -> Iterator[Session]:
    if db_session.SessionLocal is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Result store is not configured",
        )
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()
