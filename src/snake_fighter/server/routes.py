"""REST route handlers for room inspection."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from snake_fighter.server.models import RoomSummary

router = APIRouter(tags=["rooms"])


def _get_manager(request: Request):
    return request.app.state.room_manager


@router.get("/rooms")
async def list_rooms(request: Request) -> list[RoomSummary]:
    """List every open room."""
    return _get_manager(request).list_rooms()


@router.get("/rooms/{room_id}")
async def get_room(room_id: str, request: Request) -> dict:
    """Get room metadata and, once a round has run, its board snapshot."""
    room = _get_manager(request).get_room(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found.")
    result = room.view().model_dump(mode="json")
    result["snapshot"] = room.engine.snapshot()
    return result


@router.get("/config")
async def get_config(request: Request) -> dict:
    """Expose board geometry and timings so clients can render the arena."""
    return _get_manager(request).config.to_dict()
