"""WebSocket message handlers for the UNO relay.

Each handler corresponds to a single message type from the client.
Handlers are dispatched via the HANDLERS dict in main.py.

The relay is a forwarding hub: it tracks room membership and the last
snapshot each room received, and never looks inside a game state.
"""

from dataclasses import dataclass, field

from fastapi import WebSocket

from logging_config import ContextLogger, get_logger
from models.messages import (
    CreateRoomRequest,
    JoinRoomRequest,
    SendMessageRequest,
    StartGameRequest,
    UpdateGameStateRequest,
    ValidationError,
    describe_validation_error,
)
from room import RoomManager


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    log: ContextLogger = field(init=False)

    def __post_init__(self) -> None:
        self.log = get_logger(__name__).with_context(connection_id=self.connection_id)

    async def send_error(self, message: str) -> None:
        await self.websocket.send_json({"type": "error", "message": message})


# ---------------------------------------------------------------------------
# Room handlers
# ---------------------------------------------------------------------------

async def handle_create_room(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, **kw) -> None:
    try:
        request = CreateRoomRequest.model_validate(data)
    except ValidationError as e:
        await ctx.send_error(describe_validation_error(e))
        return

    room = room_manager.create_room()
    room.add_member(ctx.connection_id, request.player_name, ctx.websocket)
    ctx.log.with_context(room_code=room.code).info(f"{request.player_name} created the room")

    await ctx.websocket.send_json({
        "type": "room_created",
        "roomId": room.code,
        "playerId": ctx.connection_id,
    })
    await room.broadcast({
        "type": "player_joined",
        "players": room.member_list(),
    })


async def handle_join_room(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, **kw) -> None:
    try:
        request = JoinRoomRequest.model_validate(data)
    except ValidationError as e:
        await ctx.send_error(describe_validation_error(e))
        return

    room = room_manager.get_room(request.room_id)
    if room is None:
        await ctx.send_error("Room not found")
        return

    if room.has_member(ctx.connection_id):
        await ctx.send_error("Already in this room")
        return

    if room.add_member(ctx.connection_id, request.player_name, ctx.websocket) is None:
        await ctx.send_error("Room is full")
        return

    ctx.log.with_context(room_code=room.code).info(
        f"{request.player_name} joined ({len(room.members)}/{room.capacity})"
    )

    await ctx.websocket.send_json({
        "type": "room_joined",
        "roomId": room.code,
        "playerId": ctx.connection_id,
    })
    await room.broadcast({
        "type": "player_joined",
        "players": room.member_list(),
    })


# ---------------------------------------------------------------------------
# Game state handlers
# ---------------------------------------------------------------------------

async def handle_start_game(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, **kw) -> None:
    try:
        request = StartGameRequest.model_validate(data)
    except ValidationError as e:
        await ctx.send_error(describe_validation_error(e))
        return

    room = room_manager.get_room(request.room_id)
    if room is None:
        ctx.log.warning(f"start_game for unknown room {request.room_id}")
        return

    room.game_state = request.initial_game_state
    ctx.log.with_context(room_code=room.code).info(
        f"Game started with {len(room.members)} members"
    )
    await room.broadcast({
        "type": "game_started",
        "gameState": request.initial_game_state,
    })


async def handle_update_game_state(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, **kw) -> None:
    try:
        request = UpdateGameStateRequest.model_validate(data)
    except ValidationError as e:
        await ctx.send_error(describe_validation_error(e))
        return

    room = room_manager.get_room(request.room_id)
    if room is None:
        ctx.log.warning(f"update_game_state for unknown room {request.room_id}")
        return

    # Last write wins: no version or turn checks
    room.game_state = request.game_state
    ctx.log.with_context(room_code=room.code).debug(
        f"State update (version {request.game_state.get('version')})"
    )
    await room.broadcast(
        {"type": "game_state_updated", "gameState": request.game_state},
        exclude=ctx.connection_id,
    )


async def handle_send_message(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, **kw) -> None:
    try:
        request = SendMessageRequest.model_validate(data)
    except ValidationError as e:
        await ctx.send_error(describe_validation_error(e))
        return

    room = room_manager.get_room(request.room_id)
    if room is None:
        return

    payload = {key: value for key, value in data.items() if key != "type"}
    await room.broadcast({"type": "receive_message", **payload}, exclude=ctx.connection_id)


# ---------------------------------------------------------------------------
# Disconnect
# ---------------------------------------------------------------------------

async def handle_disconnect(ctx: ConnectionContext, room_manager: RoomManager) -> None:
    """Remove the connection from every room it joined; delete rooms left empty."""
    for room in room_manager.rooms_for_member(ctx.connection_id):
        member = room.remove_member(ctx.connection_id)
        room_log = ctx.log.with_context(room_code=room.code)
        if member is not None:
            room_log.info(f"{member.name} left")

        if room.is_empty():
            room_manager.remove_room(room.code)
        else:
            await room.broadcast({
                "type": "player_left",
                "players": room.member_list(),
            })


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

HANDLERS = {
    "create_room": handle_create_room,
    "join_room": handle_join_room,
    "start_game": handle_start_game,
    "update_game_state": handle_update_game_state,
    "send_message": handle_send_message,
}
