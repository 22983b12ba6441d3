"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from snake_fighter.config import GameConfig
from snake_fighter.server.room_manager import RoomManager
from snake_fighter.server.routes import router
from snake_fighter.server.websocket import ws_router


def create_app(config: GameConfig | None = None) -> FastAPI:
    """Build and return the FastAPI application."""

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        app.state.room_manager = RoomManager(config)
        yield
        await app.state.room_manager.cleanup()

    app = FastAPI(
        title="Snake Fighter API", version="0.1.0", lifespan=_lifespan,
    )
    app.include_router(router)
    app.include_router(ws_router)
    return app
