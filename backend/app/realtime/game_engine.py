import asyncio
from dataclasses import asdict
from functools import partial
import logging
import random

import socketio

from app.core.config import Settings
from app.services.phase_scheduler import PhaseCountdown
from app.services.result_sink import ResultSink
from app.services.room_service import (
    ROUND_PHASES,
    JoinResult,
    LeaveResult,
    Participant,
    Phase,
    Room,
    RoomRegistry,
    SecretRole,
)
from app.services.sanitizer_service import InvalidInput, sanitize_chat_message
from app.services.vote_service import MatchResult, resolve_match, tally_votes
from app.services.world_service import Block, Coordinate

logger = logging.getLogger(__name__)

NEXT_PHASE = {
    Phase.BUILD: Phase.DISCUSSION,
    Phase.DISCUSSION: Phase.VOTING,
}


def room_channel(room_id: str) -> str:
    return f"room:{room_id}"


class GameEngine:
    """Authoritative state for every room in this process.

    Every intent resolves the sender through the registry first; intents from
    connections that are not in a room, or that arrive in the wrong phase, are
    dropped without any event. All events caused by one intent are emitted
    before the coroutine returns.
    """

    def __init__(
        self,
        emitter: socketio.AsyncServer,
        *,
        settings: Settings,
        registry: RoomRegistry | None = None,
        result_sink: ResultSink | None = None,
        scheduler: PhaseCountdown | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.emitter = emitter
        self.settings = settings
        self.registry = registry or RoomRegistry(
            max_room_id_length=settings.max_room_id_length,
            max_name_length=settings.max_name_length,
        )
        self.result_sink = result_sink or ResultSink()
        self.scheduler = scheduler or PhaseCountdown(settings.timer_tick_seconds)
        self._rng = rng or random.SystemRandom()
        self._pending_writes: set[asyncio.Task] = set()

    def system_payload(self, connection_id: str) -> dict:
        return {
            "message": "connected",
            "connectionId": connection_id,
            "buildSeconds": self.settings.build_duration_seconds,
            "discussionSeconds": self.settings.discussion_duration_seconds,
            "votingSeconds": self.settings.voting_duration_seconds,
            "sabotageCooldownSeconds": self.settings.sabotage_cooldown_seconds,
            "sabotageRadius": self.settings.sabotage_radius,
            "minPlayers": self.settings.min_players_to_start,
        }

    async def _broadcast(self, room: Room, event: str, payload: dict, skip_sid: str | None = None) -> None:
        await self.emitter.emit(event, payload, room=room_channel(room.id), skip_sid=skip_sid)

    async def _emit_error(self, connection_id: str, message: str) -> None:
        await self.emitter.emit("gameError", {"message": message}, room=connection_id)

    def _room_in_phase(self, connection_id: str, phase: Phase) -> Room | None:
        room = self.registry.room_for(connection_id)
        if not room or room.phase != phase or connection_id not in room.participants:
            return None
        return room

    # -- membership -------------------------------------------------------

    async def join(self, connection_id: str, raw_room_id: object, raw_name: object) -> JoinResult | None:
        try:
            result = self.registry.join(connection_id, raw_room_id, raw_name)
        except InvalidInput as exc:
            await self._emit_error(connection_id, str(exc))
            return None

        if result.departed:
            await self._after_departure(connection_id, result.departed)

        room = result.room
        participant = result.participant
        if result.rejoined:
            await self.emitter.emit("roomState", room.snapshot_for(connection_id), room=connection_id)
            return result

        await self.emitter.enter_room(connection_id, room_channel(room.id))
        logger.info("Connection %s joined room %s as %s", connection_id, room.id, participant.display_name)
        await self.emitter.emit("roomState", room.snapshot_for(connection_id), room=connection_id)
        await self._broadcast(room, "participantJoined", participant.public_payload(), skip_sid=connection_id)
        if room.phase in ROUND_PHASES:
            await self._emit_game_started(room, participant)
        return result

    async def leave(self, connection_id: str) -> bool:
        departure = self.registry.leave(connection_id)
        if not departure:
            return False
        await self._after_departure(connection_id, departure)
        return True

    async def _after_departure(self, connection_id: str, departure: LeaveResult) -> None:
        room = departure.room
        await self.emitter.leave_room(connection_id, room_channel(room.id))
        logger.info("Connection %s left room %s", connection_id, room.id)
        if departure.destroyed:
            return

        await self._broadcast(room, "participantLeft", {"id": connection_id})
        if room.phase not in ROUND_PHASES:
            return
        if departure.participant.secret_role == SecretRole.SEEKER:
            await self._abandon_round(room, departure.participant)
        elif room.phase == Phase.VOTING and room.has_everyone_voted():
            await self._finish_round(room, reason="votesComplete")

    # -- lobby ------------------------------------------------------------

    async def move(self, connection_id: str, position: tuple, rotation: tuple) -> bool:
        found = self.registry.participant_for(connection_id)
        if not found:
            return False
        room, participant = found
        participant.position = [float(value) for value in position]
        participant.rotation = [float(value) for value in rotation]
        await self._broadcast(
            room,
            "moved",
            {"id": connection_id, "position": participant.position, "rotation": participant.rotation},
            skip_sid=connection_id,
        )
        return True

    async def toggle_ready(self, connection_id: str) -> bool:
        room = self._room_in_phase(connection_id, Phase.LOBBY)
        if not room:
            return False
        participant = room.participants[connection_id]
        participant.is_ready = not participant.is_ready
        await self._broadcast(room, "readyChanged", {"id": connection_id, "isReady": participant.is_ready})
        return True

    async def start_game(self, connection_id: str) -> bool:
        room = self._room_in_phase(connection_id, Phase.LOBBY)
        if not room:
            return False

        minimum = max(1, self.settings.min_players_to_start)
        if len(room.participants) < minimum:
            noun = "player" if minimum == 1 else "players"
            await self._emit_error(connection_id, f"Need at least {minimum} {noun} to start")
            return False

        participant_ids = list(room.participants)
        seeker_id = self._rng.choice(participant_ids)
        room.secret_objective = self._rng.choice(self.settings.objective_words)
        room.votes.clear()
        for participant_id, participant in room.participants.items():
            participant.secret_role = SecretRole.SEEKER if participant_id == seeker_id else SecretRole.BUILDER
        room.phase = Phase.BUILD
        room.countdown = self.settings.build_duration_seconds
        logger.info("Room %s started a round with %d participants", room.id, len(participant_ids))

        for participant in list(room.participants.values()):
            await self._emit_game_started(room, participant)
        self._start_countdown(room, self.settings.build_duration_seconds)
        return True

    async def _emit_game_started(self, room: Room, participant: Participant) -> None:
        objective = room.secret_objective if participant.secret_role == SecretRole.BUILDER else None
        await self.emitter.emit(
            "gameStarted",
            {"phase": room.phase.value, "role": participant.secret_role.value, "objective": objective},
            room=participant.id,
        )

    async def chat(self, connection_id: str, raw_text: object) -> bool:
        found = self.registry.participant_for(connection_id)
        if not found:
            return False
        room, participant = found
        try:
            text, filtered = sanitize_chat_message(raw_text, self.settings.max_chat_length)
        except InvalidInput as exc:
            await self._emit_error(connection_id, str(exc))
            return False
        await self._broadcast(
            room,
            "chatMessage",
            {"senderId": connection_id, "sender": participant.display_name, "text": text, "filtered": filtered},
        )
        return True

    # -- world edits ------------------------------------------------------

    async def place_block(self, connection_id: str, block: Block) -> bool:
        room = self._room_in_phase(connection_id, Phase.BUILD)
        if not room:
            return False
        room.world.place(block)
        await self._broadcast(room, "blockPlaced", asdict(block))
        return True

    async def update_block(self, connection_id: str, block: Block) -> bool:
        room = self._room_in_phase(connection_id, Phase.BUILD)
        if not room or room.world.update(block) is None:
            return False
        await self._broadcast(room, "blockUpdated", asdict(block))
        return True

    async def remove_block(self, connection_id: str, coordinate: Coordinate) -> bool:
        room = self._room_in_phase(connection_id, Phase.BUILD)
        if not room:
            return False
        removed = room.world.remove(coordinate)
        if removed is None:
            return False
        await self._broadcast(room, "blockRemoved", removed.position_payload())
        return True

    async def sabotage(self, connection_id: str, origin: Coordinate) -> int | None:
        room = self._room_in_phase(connection_id, Phase.BUILD)
        if not room or room.participants[connection_id].secret_role != SecretRole.SEEKER:
            return None
        removed = room.world.remove_within(
            origin,
            self.settings.sabotage_radius,
            exclude_y=self.settings.floor_y,
        )
        for block in removed:
            await self._broadcast(room, "blockRemoved", block.position_payload())
        logger.info("Sabotage in room %s removed %d blocks", room.id, len(removed))
        return len(removed)

    # -- voting -----------------------------------------------------------

    async def vote(self, connection_id: str, target_id: str) -> bool:
        room = self._room_in_phase(connection_id, Phase.VOTING)
        if not room or connection_id in room.votes or target_id not in room.participants:
            return False
        room.votes[connection_id] = target_id
        await self._broadcast(room, "voteCast", {"voterId": connection_id, "targetId": target_id})
        if room.has_everyone_voted():
            await self._finish_round(room, reason="votesComplete")
        return True

    async def _finish_round(self, room: Room, reason: str) -> None:
        if room.phase == Phase.RESULT:
            return
        room.cancel_countdown()
        room.phase = Phase.RESULT
        room.countdown = 0
        match = resolve_match(room)

        await self._broadcast(room, "phaseChanged", {"phase": room.phase.value})
        await self._broadcast(
            room,
            "gameEnded",
            {
                "votes": dict(room.votes),
                "seekerId": match.seeker_id if match else None,
                "seekerName": match.seeker_name if match else None,
                "seekerWon": match.seeker_won if match else None,
                "tally": tally_votes(room.votes),
                "reason": reason,
            },
        )
        if match:
            logger.info("Room %s finished: seeker_won=%s", room.id, match.seeker_won)
            self._submit_result(match)

    async def _abandon_round(self, room: Room, seeker: Participant) -> None:
        room.cancel_countdown()
        room.phase = Phase.RESULT
        room.countdown = 0
        logger.info("Room %s abandoned: seeker %s left", room.id, seeker.id)
        await self._broadcast(room, "phaseChanged", {"phase": room.phase.value})
        await self._broadcast(
            room,
            "gameEnded",
            {
                "votes": dict(room.votes),
                "seekerId": seeker.id,
                "seekerName": seeker.display_name,
                "seekerWon": None,
                "tally": tally_votes(room.votes),
                "reason": "seekerLeft",
            },
        )

    def _submit_result(self, match: MatchResult) -> None:
        task = asyncio.get_running_loop().create_task(self.result_sink.record(match))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def drain_pending_writes(self) -> None:
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    # -- phase countdowns -------------------------------------------------

    def _phase_duration(self, phase: Phase) -> int:
        if phase == Phase.BUILD:
            return self.settings.build_duration_seconds
        if phase == Phase.DISCUSSION:
            return self.settings.discussion_duration_seconds
        if phase == Phase.VOTING:
            return self.settings.voting_duration_seconds
        return 0

    def _start_countdown(self, room: Room, seconds: int) -> None:
        room.cancel_countdown()
        room.countdown = seconds
        phase = room.phase
        room.countdown_task = self.scheduler.start(
            seconds,
            is_alive=lambda: self.registry.is_active(room) and room.phase == phase,
            on_tick=partial(self._on_tick, room),
            on_expire=partial(self._on_countdown_expired, room),
            name=f"countdown:{room.id}:{phase.value}",
        )

    async def _on_tick(self, room: Room, remaining: int) -> None:
        room.countdown = remaining
        await self._broadcast(room, "timerUpdate", {"secondsRemaining": remaining})

    async def _on_countdown_expired(self, room: Room) -> None:
        if room.phase == Phase.VOTING:
            await self._finish_round(room, reason="votingTimeout")
            return
        next_phase = NEXT_PHASE.get(room.phase)
        if not next_phase:
            return

        room.phase = next_phase
        room.countdown = 0
        room.countdown_task = None
        logger.info("Room %s entered %s", room.id, next_phase.value)
        await self._broadcast(room, "phaseChanged", {"phase": next_phase.value})
        duration = self._phase_duration(next_phase)
        # A zero-length Voting phase has no timer; other phases always count down.
        if duration > 0 or next_phase != Phase.VOTING:
            self._start_countdown(room, duration)

    async def shutdown(self) -> None:
        self.registry.clear()
        await self.drain_pending_writes()
