"""Pydantic models for the room message protocol and REST schemas."""

from __future__ import annotations

import enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from snake_fighter.snake import Direction


class RoomState(str, enum.Enum):
    """Lifecycle states for a room."""

    WAITING = "waiting"
    COUNTDOWN = "countdown"
    PLAYING = "playing"
    FINISHED = "finished"


# ---------------------------------------------------------------------------
# Client -> server intents
# ---------------------------------------------------------------------------

_Name = Annotated[str, Field(min_length=1, max_length=32)]


class _NamedIntent(BaseModel):
    name: _Name

    @field_validator("name", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class CreateRoom(_NamedIntent):
    type: Literal["create_room"] = "create_room"


class JoinRoom(_NamedIntent):
    type: Literal["join_room"] = "join_room"
    room_id: str = Field(min_length=1, max_length=16)

    @field_validator("room_id")
    @classmethod
    def _normalize_room_id(cls, value: str) -> str:
        return value.strip().upper()


class StartGame(BaseModel):
    type: Literal["start_game"] = "start_game"


class SetDirection(BaseModel):
    type: Literal["set_direction"] = "set_direction"
    direction: Direction

    @field_validator("direction", mode="before")
    @classmethod
    def _coerce(cls, value: object) -> Direction:
        return Direction.coerce(value)


class PlaceObstacle(BaseModel):
    type: Literal["place_obstacle"] = "place_obstacle"


class LeaveRoom(BaseModel):
    type: Literal["leave_room"] = "leave_room"


Intent = Annotated[
    Union[CreateRoom, JoinRoom, StartGame, SetDirection, PlaceObstacle, LeaveRoom],
    Field(discriminator="type"),
]

INTENT_ADAPTER: TypeAdapter[Intent] = TypeAdapter(Intent)


# ---------------------------------------------------------------------------
# Shared views
# ---------------------------------------------------------------------------


class Point(BaseModel):
    x: int
    y: int


class MemberView(BaseModel):
    id: str
    name: str
    color: str


class RoomView(BaseModel):
    id: str
    host_id: str | None
    state: RoomState
    players: list[MemberView]
    max_players: int


class PlayerView(BaseModel):
    id: str
    name: str
    color: str
    snake: list[Point]
    alive: bool
    score: int
    can_place_obstacle: bool


class ObstacleView(BaseModel):
    x: int
    y: int
    type: str
    placed_by: str | None = None


class ScoreEntry(BaseModel):
    id: str
    name: str
    score: int
    alive: bool


# ---------------------------------------------------------------------------
# Server -> client events
# ---------------------------------------------------------------------------


class Connected(BaseModel):
    type: Literal["connected"] = "connected"
    player_id: str


class RoomCreated(BaseModel):
    type: Literal["room_created"] = "room_created"
    room_id: str
    room: RoomView


class RoomJoined(BaseModel):
    type: Literal["room_joined"] = "room_joined"
    room: RoomView


class PlayerJoined(BaseModel):
    type: Literal["player_joined"] = "player_joined"
    player: MemberView


class PlayerLeft(BaseModel):
    type: Literal["player_left"] = "player_left"
    player_id: str


class RoomUpdated(BaseModel):
    type: Literal["room_updated"] = "room_updated"
    room: RoomView


class CountdownStarted(BaseModel):
    type: Literal["countdown_started"] = "countdown_started"
    seconds: int


class CountdownTick(BaseModel):
    type: Literal["countdown_tick"] = "countdown_tick"
    seconds: int


class GameStarted(BaseModel):
    type: Literal["game_started"] = "game_started"


class TickSnapshot(BaseModel):
    type: Literal["tick_snapshot"] = "tick_snapshot"
    tick: int
    players: list[PlayerView]
    obstacles: list[ObstacleView]
    seeds: list[Point]
    players_alive: int


class PlayerEliminated(BaseModel):
    type: Literal["player_eliminated"] = "player_eliminated"
    player_id: str
    name: str


class GameEnded(BaseModel):
    type: Literal["game_ended"] = "game_ended"
    winner: MemberView | None
    scores: list[ScoreEntry]


class ReturnedToLobby(BaseModel):
    type: Literal["returned_to_lobby"] = "returned_to_lobby"
    room: RoomView


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


Event = Union[
    Connected,
    RoomCreated,
    RoomJoined,
    PlayerJoined,
    PlayerLeft,
    RoomUpdated,
    CountdownStarted,
    CountdownTick,
    GameStarted,
    TickSnapshot,
    PlayerEliminated,
    GameEnded,
    ReturnedToLobby,
    ErrorEvent,
]


# ---------------------------------------------------------------------------
# REST
# ---------------------------------------------------------------------------


class RoomSummary(BaseModel):
    """Compact room info for list endpoints."""

    room_id: str
    state: RoomState
    player_count: int
    max_players: int
    host_id: str | None
