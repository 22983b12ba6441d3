"""WebSocket handler carrying room intents and events."""

from __future__ import annotations

import json
import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from snake_fighter.server.models import INTENT_ADAPTER, Connected
from snake_fighter.server.room_manager import RoomManager, send_error

logger = logging.getLogger(__name__)

ws_router = APIRouter()


def _get_manager(ws: WebSocket) -> RoomManager:
    return ws.app.state.room_manager


@ws_router.websocket("/ws")
async def play(websocket: WebSocket) -> None:
    """One client connection: send intents, receive room events."""
    manager = _get_manager(websocket)
    await websocket.accept()

    player_id = uuid.uuid4().hex
    logger.info("Client %s connected.", player_id)
    await websocket.send_text(Connected(player_id=player_id).model_dump_json())

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await send_error(websocket, "Malformed JSON.")
                continue
            try:
                intent = INTENT_ADAPTER.validate_python(msg)
            except ValidationError:
                await send_error(websocket, "Invalid message.")
                continue
            await manager.handle(player_id, websocket, intent)
    except WebSocketDisconnect:
        logger.info("Client %s disconnected.", player_id)
    finally:
        await manager.leave(player_id)
