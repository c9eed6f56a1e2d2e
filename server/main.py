"""FastAPI WebSocket relay for multiplayer UNO."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from config import config
from handlers import HANDLERS, ConnectionContext, handle_disconnect
from logging_config import connection_id_var, setup_logging
from room import RoomManager
from routers.health import router as health_router, set_health_dependencies

setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)

room_manager = RoomManager()


async def _close_all_websockets():
    """Close all member connections on shutdown."""
    for room in list(room_manager.rooms.values()):
        for member in room.members:
            if member.websocket is None:
                continue
            try:
                await member.websocket.close(code=1001, reason="Server shutting down")
            except Exception as e:
                logger.debug(f"Close of {member.id} failed: {e}")
    logger.info("All WebSocket connections closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the health router to the room registry; close sockets on exit."""
    set_health_dependencies(room_manager=room_manager)
    logger.info(f"UNO relay started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    await _close_all_websockets()
    room_manager.rooms.clear()
    logger.info("Shutdown complete")


app = FastAPI(
    title="UNO Relay",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(health_router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()

    connection_id = str(uuid.uuid4())
    connection_id_var.set(connection_id)
    ctx = ConnectionContext(websocket=websocket, connection_id=connection_id)
    ctx.log.debug("WebSocket connected")

    # Shared dependencies passed to every handler
    handler_deps = dict(room_manager=room_manager)

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                # Malformed JSON; the connection stays open
                await ctx.send_error("Invalid JSON")
                continue
            if not isinstance(data, dict):
                await ctx.send_error("Invalid message")
                continue
            handler = HANDLERS.get(data.get("type"))
            if handler:
                await handler(data, ctx, **handler_deps)
            else:
                ctx.log.debug(f"Ignoring message type {data.get('type')!r}")
    except WebSocketDisconnect:
        ctx.log.debug("WebSocket disconnected")
    finally:
        await handle_disconnect(ctx, room_manager)


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting UNO relay on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
