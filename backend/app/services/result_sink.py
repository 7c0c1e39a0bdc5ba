import asyncio
import logging
from typing import Callable

from sqlalchemy.orm import Session

from app.db.models import MatchResultRecord
from app.services.vote_service import MatchResult

logger = logging.getLogger(__name__)


class ResultSink:
    """Best-effort writer of finished rounds.

    Without a session factory every write is a logged no-op. Failures are
    logged and reported as ``False``; they are never raised to the caller.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory

    @property
    def enabled(self) -> bool:
        return self._session_factory is not None

    async def record(self, result: MatchResult) -> bool:
        if self._session_factory is None:
            logger.info("Result store not configured; skipping result for room %s", result.room_id)
            return False
        try:
            await asyncio.to_thread(self._write, result)
        except Exception:
            logger.exception("Failed to save match result for room %s", result.room_id)
            return False
        logger.info(
            "Saved match result for room %s (seeker_won=%s)",
            result.room_id,
            result.seeker_won,
        )
        return True

    def _write(self, result: MatchResult) -> None:
        db = self._session_factory()
        try:
            db.add(
                MatchResultRecord(
                    room_id=result.room_id,
                    seeker_id=result.seeker_id,
                    seeker_name=result.seeker_name,
                    seeker_won=result.seeker_won,
                    created_at=result.created_at,
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
