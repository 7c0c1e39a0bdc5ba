from datetime import datetime, timezone
import unittest
from unittest.mock import patch

from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api import deps
from app.api.routes.health import health
from app.api.routes.results import get_recent_results
from app.api.routes.rooms import get_room, list_rooms
from app.core.config import Settings
from app.db import session as db_session
from app.db.base import Base
from app.db.models import MatchResultRecord
from app.realtime.game_engine import GameEngine
from app.services.room_service import Phase


class _SilentEmitter:
    async def emit(self, *_args, **_kwargs):
        return None

    async def enter_room(self, _sid, _room):
        return None

    async def leave_room(self, _sid, _room):
        return None


class RoomRoutesTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.engine = GameEngine(_SilentEmitter(), settings=Settings(rate_limit_enabled=False))
        await self.engine.join("sid-a", "R1", "Alice")
        await self.engine.join("sid-b", "R1", "Bob")
        await self.engine.join("sid-c", "R2", "Carol")

    async def asyncTearDown(self) -> None:
        await self.engine.shutdown()

    async def test_list_rooms_reports_public_summary(self) -> None:
        summaries = list_rooms(self.engine)

        self.assertEqual(
            [(summary.id, summary.phase, summary.participant_count) for summary in summaries],
            [("R1", "Lobby", 2), ("R2", "Lobby", 1)],
        )

    async def test_get_room_reflects_current_phase(self) -> None:
        await self.engine.start_game("sid-c")

        summary = get_room("R2", self.engine)

        self.assertEqual(summary.phase, Phase.BUILD.value)
        self.assertEqual(summary.countdown, 60)

    async def test_unknown_room_is_404(self) -> None:
        with self.assertRaises(HTTPException) as raised:
            get_room("missing", self.engine)
        self.assertEqual(raised.exception.status_code, 404)

    async def test_health_counts_rooms_and_connections(self) -> None:
        payload = health(self.engine)

        self.assertEqual(payload.status, "ok")
        self.assertEqual(payload.rooms, 2)
        self.assertEqual(payload.connections, 3)
        self.assertFalse(payload.result_store)


class ResultRoutesTests(unittest.TestCase):
    def test_results_require_a_configured_store(self) -> None:
        with patch.object(db_session, "SessionLocal", None):
            with self.assertRaises(HTTPException) as raised:
                next(deps.get_db())
        self.assertEqual(raised.exception.status_code, 503)

    def test_recent_results_with_summary(self) -> None:
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=engine)
        factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        with factory() as db:
            db.add_all(
                [
                    MatchResultRecord(
                        room_id="R1",
                        seeker_id="sid-a",
                        seeker_name="Alice",
                        seeker_won=True,
                        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
                    ),
                    MatchResultRecord(
                        room_id="R2",
                        seeker_id="sid-b",
                        seeker_name="Bob",
                        seeker_won=False,
                        created_at=datetime(2026, 1, 2, tzinfo=timezone.utc),
                    ),
                ]
            )
            db.commit()

        with factory() as db:
            payload = get_recent_results(limit=10, db=db)
        engine.dispose()

        self.assertEqual([row.room_id for row in payload.results], ["R2", "R1"])
        self.assertEqual(payload.summary.total_rounds, 2)
        self.assertEqual(payload.summary.seeker_win_rate, 50.0)


if __name__ == "__main__":
    unittest.main()
