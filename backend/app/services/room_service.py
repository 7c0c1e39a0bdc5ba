import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import logging

from app.services.sanitizer_service import sanitize_name, sanitize_room_id
from app.services.world_service import WorldStore

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    LOBBY = "Lobby"
    BUILD = "Build"
    DISCUSSION = "Discussion"
    VOTING = "Voting"
    RESULT = "Result"


class SecretRole(str, Enum):
    UNASSIGNED = "unassigned"
    SEEKER = "seeker"
    BUILDER = "builder"


ROUND_PHASES = {Phase.BUILD, Phase.DISCUSSION, Phase.VOTING}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Participant:
    id: str
    display_name: str
    position: list[float] = field(default_factory=lambda: [0.0, 5.0, 0.0])
    rotation: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    secret_role: SecretRole = SecretRole.UNASSIGNED
    is_ready: bool = False

    def public_payload(self) -> dict:
        return {
            "id": self.id,
            "name": self.display_name,
            "position": list(self.position),
            "rotation": list(self.rotation),
            "isReady": self.is_ready,
        }


@dataclass
class Room:
    id: str
    participants: dict[str, Participant] = field(default_factory=dict)
    world: WorldStore = field(default_factory=WorldStore)
    phase: Phase = Phase.LOBBY
    secret_objective: str | None = None
    countdown: int = 0
    votes: dict[str, str] = field(default_factory=dict)
    countdown_task: asyncio.Task | None = field(default=None, repr=False)
    created_at: datetime = field(default_factory=_utc_now)

    def seeker(self) -> Participant | None:
        return next(
            (participant for participant in self.participants.values() if participant.secret_role == SecretRole.SEEKER),
            None,
        )

    def has_everyone_voted(self) -> bool:
        return len(self.participants) > 0 and all(voter_id in self.votes for voter_id in self.participants)

    def cancel_countdown(self) -> None:
        task = self.countdown_task
        self.countdown_task = None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # A countdown expiring into the next phase replaces itself; it must not cancel its own task.
        if task is not current:
            task.cancel()

    def snapshot_for(self, connection_id: str) -> dict:
        viewer = self.participants.get(connection_id)
        role = viewer.secret_role if viewer else SecretRole.UNASSIGNED
        return {
            "id": self.id,
            "phase": self.phase.value,
            "countdown": self.countdown,
            "participants": [participant.public_payload() for participant in self.participants.values()],
            "world": self.world.snapshot(),
            "votes": dict(self.votes) if self.phase == Phase.RESULT else {},
            "voters": list(self.votes),
            "role": role.value,
            "objective": self.secret_objective if role == SecretRole.BUILDER else None,
        }


@dataclass
class LeaveResult:
    room: Room
    participant: Participant
    destroyed: bool


@dataclass
class JoinResult:
    room: Room
    participant: Participant
    created: bool
    rejoined: bool = False
    departed: LeaveResult | None = None


class RoomRegistry:
    """Owns every live room and the connection -> room index."""

    def __init__(self, max_room_id_length: int = 32, max_name_length: int = 24) -> None:
        self.max_room_id_length = max_room_id_length
        self.max_name_length = max_name_length
        self._rooms: dict[str, Room] = {}
        self._connection_rooms: dict[str, str] = {}

    def resolve(self, connection_id: str) -> str | None:
        return self._connection_rooms.get(connection_id)

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def room_for(self, connection_id: str) -> Room | None:
        room_id = self._connection_rooms.get(connection_id)
        return self._rooms.get(room_id) if room_id else None

    def participant_for(self, connection_id: str) -> tuple[Room, Participant] | None:
        room = self.room_for(connection_id)
        if not room:
            return None
        participant = room.participants.get(connection_id)
        if not participant:
            return None
        return room, participant

    def is_active(self, room: Room) -> bool:
        return self._rooms.get(room.id) is room

    def rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def connection_count(self) -> int:
        return len(self._connection_rooms)

    def join(self, connection_id: str, raw_room_id: object, raw_name: object) -> JoinResult:
        room_id = sanitize_room_id(raw_room_id, self.max_room_id_length)
        name = sanitize_name(raw_name, self.max_name_length)

        departed: LeaveResult | None = None
        current_room_id = self._connection_rooms.get(connection_id)
        if current_room_id == room_id:
            room = self._rooms[room_id]
            return JoinResult(room=room, participant=room.participants[connection_id], created=False, rejoined=True)
        if current_room_id:
            departed = self.leave(connection_id)

        room = self._rooms.get(room_id)
        created = room is None
        if room is None:
            room = Room(id=room_id)
            self._rooms[room_id] = room
            logger.info("Room %s created", room_id)

        participant = Participant(id=connection_id, display_name=name)
        if room.phase in ROUND_PHASES:
            participant.secret_role = SecretRole.BUILDER
        room.participants[connection_id] = participant
        self._connection_rooms[connection_id] = room_id
        return JoinResult(room=room, participant=participant, created=created, departed=departed)

    def leave(self, connection_id: str) -> LeaveResult | None:
        room_id = self._connection_rooms.pop(connection_id, None)
        if not room_id:
            return None
        room = self._rooms.get(room_id)
        if not room:
            return None
        participant = room.participants.pop(connection_id, None)
        if not participant:
            return None
        room.votes.pop(connection_id, None)
        # Voters whose target left get their vote back.
        for voter_id in [voter for voter, target in room.votes.items() if target == connection_id]:
            del room.votes[voter_id]

        destroyed = len(room.participants) == 0
        if destroyed:
            room.cancel_countdown()
            self._rooms.pop(room_id, None)
            logger.info("Room %s destroyed", room_id)
        return LeaveResult(room=room, participant=participant, destroyed=destroyed)

    def clear(self) -> None:
        for room in self._rooms.values():
            room.cancel_countdown()
        self._rooms.clear()
        self._connection_rooms.clear()
