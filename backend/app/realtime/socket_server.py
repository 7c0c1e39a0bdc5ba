import logging

from pydantic import BaseModel, ValidationError
import socketio

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.realtime.game_engine import GameEngine
from app.schemas.events import (
    BlockPositionRequest,
    BlockRequest,
    ChatRequest,
    JoinRoomRequest,
    MoveRequest,
    SabotageRequest,
    VoteRequest,
)
from app.services.rate_limit_service import rate_limit_service
from app.services.result_sink import ResultSink

logger = logging.getLogger(__name__)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins="*")

settings = get_settings()
game_engine = GameEngine(sio, settings=settings, result_sink=ResultSink(SessionLocal))

INVALID_PAYLOAD = {"ok": False, "error": "invalid payload"}


def _extract_client_ip_from_environ(environ: dict) -> str:
    forwarded_for = environ.get("HTTP_X_FORWARDED_FOR", "")
    if isinstance(forwarded_for, str) and forwarded_for.strip():
        return forwarded_for.split(",")[0].strip()
    remote = environ.get("REMOTE_ADDR", "")
    if isinstance(remote, str) and remote.strip():
        return remote.strip()
    return "unknown"


def _is_socket_connect_allowed(client_ip: str) -> bool:
    if not settings.rate_limit_enabled:
        return True
    decision = rate_limit_service.check(
        f"ws:connect:{client_ip}",
        limit=settings.websocket_connect_limit,
        window_seconds=settings.websocket_connect_window_seconds,
    )
    return decision.allowed


def _is_socket_event_allowed(sid: str, event_name: str) -> bool:
    if not settings.rate_limit_enabled:
        return True
    limit = settings.websocket_move_limit if event_name == "move" else settings.websocket_event_limit
    decision = rate_limit_service.check(
        f"ws:event:{event_name}:{sid}",
        limit=limit,
        window_seconds=settings.websocket_event_window_seconds,
    )
    return decision.allowed


async def _rate_limited(sid: str, event_name: str) -> dict:
    await sio.emit(
        "rateLimited",
        {"event": event_name, "message": "Too many requests. Slow down."},
        room=sid,
    )
    return {"ok": False, "error": "rate limit exceeded"}


def _parse(model: type[BaseModel], data: object) -> BaseModel | None:
    try:
        return model.model_validate({} if data is None else data)
    except ValidationError:
        return None


@sio.event
async def connect(sid: str, environ: dict, auth: dict | None = None) -> bool:
    client_ip = _extract_client_ip_from_environ(environ)
    if not _is_socket_connect_allowed(client_ip):
        logger.warning("Rejected connection from %s: rate limit exceeded", client_ip)
        return False
    await sio.emit("system", game_engine.system_payload(sid), room=sid)
    return True


@sio.event
async def disconnect(sid: str, reason: object = None) -> None:
    await game_engine.leave(sid)


@sio.on("joinRoom")
async def join_room(sid: str, data: dict | None = None) -> dict:
    if not _is_socket_event_allowed(sid, "joinRoom"):
        return await _rate_limited(sid, "joinRoom")
    payload = _parse(JoinRoomRequest, data)
    if payload is None:
        await sio.emit("gameError", {"message": "roomId and name are required"}, room=sid)
        return INVALID_PAYLOAD
    result = await game_engine.join(sid, payload.room_id, payload.name)
    if result is None:
        return {"ok": False, "error": "invalid room id or name"}
    return {"ok": True, "room_id": result.room.id}


@sio.on("leaveRoom")
async def leave_room(sid: str, data: dict | None = None) -> dict:
    return {"ok": await game_engine.leave(sid)}


@sio.on("move")
async def move(sid: str, data: dict | None = None) -> dict:
    if not _is_socket_event_allowed(sid, "move"):
        return await _rate_limited(sid, "move")
    payload = _parse(MoveRequest, data)
    if payload is None:
        return INVALID_PAYLOAD
    return {"ok": await game_engine.move(sid, payload.position, payload.rotation)}


@sio.on("placeBlock")
async def place_block(sid: str, data: dict | None = None) -> dict:
    if not _is_socket_event_allowed(sid, "placeBlock"):
        return await _rate_limited(sid, "placeBlock")
    payload = _parse(BlockRequest, data)
    if payload is None:
        return INVALID_PAYLOAD
    return {"ok": await game_engine.place_block(sid, payload.to_block())}


@sio.on("updateBlock")
async def update_block(sid: str, data: dict | None = None) -> dict:
    if not _is_socket_event_allowed(sid, "updateBlock"):
        return await _rate_limited(sid, "updateBlock")
    payload = _parse(BlockRequest, data)
    if payload is None:
        return INVALID_PAYLOAD
    return {"ok": await game_engine.update_block(sid, payload.to_block())}


@sio.on("removeBlock")
async def remove_block(sid: str, data: dict | None = None) -> dict:
    if not _is_socket_event_allowed(sid, "removeBlock"):
        return await _rate_limited(sid, "removeBlock")
    payload = _parse(BlockPositionRequest, data)
    if payload is None:
        return INVALID_PAYLOAD
    return {"ok": await game_engine.remove_block(sid, payload.coordinate)}


@sio.on("sabotage")
async def sabotage(sid: str, data: object = None) -> dict:
    if not _is_socket_event_allowed(sid, "sabotage"):
        return await _rate_limited(sid, "sabotage")
    payload = _parse(SabotageRequest, data)
    if payload is None:
        return INVALID_PAYLOAD
    removed = await game_engine.sabotage(sid, payload.position)
    if removed is None:
        return {"ok": False, "removed": 0}
    return {"ok": True, "removed": removed}


@sio.on("toggleReady")
async def toggle_ready(sid: str, data: dict | None = None) -> dict:
    if not _is_socket_event_allowed(sid, "toggleReady"):
        return await _rate_limited(sid, "toggleReady")
    return {"ok": await game_engine.toggle_ready(sid)}


@sio.on("startGame")
async def start_game(sid: str, data: dict | None = None) -> dict:
    if not _is_socket_event_allowed(sid, "startGame"):
        return await _rate_limited(sid, "startGame")
    return {"ok": await game_engine.start_game(sid)}


@sio.on("vote")
async def vote(sid: str, data: object = None) -> dict:
    if not _is_socket_event_allowed(sid, "vote"):
        return await _rate_limited(sid, "vote")
    payload = _parse(VoteRequest, data)
    if payload is None:
        return INVALID_PAYLOAD
    return {"ok": await game_engine.vote(sid, payload.target_id)}


@sio.on("chat")
async def chat(sid: str, data: object = None) -> dict:
    if not _is_socket_event_allowed(sid, "chat"):
        return await _rate_limited(sid, "chat")
    payload = _parse(ChatRequest, data)
    if payload is None:
        if game_engine.registry.resolve(sid):
            await sio.emit("gameError", {"message": "message is required"}, room=sid)
        return INVALID_PAYLOAD
    return {"ok": await game_engine.chat(sid, payload.text)}


def build_socket_app(api_app) -> socketio.ASGIApp:
    return socketio.ASGIApp(sio, other_asgi_app=api_app, socketio_path="socket.io")
