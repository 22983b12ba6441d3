"""In-memory room registry and intent dispatch."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable

import numpy as np

from snake_fighter.config import GameConfig
from snake_fighter.engine import Clock
from snake_fighter.server.models import (
    CreateRoom,
    ErrorEvent,
    Intent,
    JoinRoom,
    LeaveRoom,
    MemberView,
    PlaceObstacle,
    PlayerJoined,
    PlayerLeft,
    RoomCreated,
    RoomJoined,
    RoomSummary,
    RoomUpdated,
    SetDirection,
    StartGame,
)
from snake_fighter.server.room import (
    AlreadyInRoom,
    Channel,
    NotInRoom,
    Room,
    RoomError,
    RoomNotFound,
)

logger = logging.getLogger(__name__)

Handler = Callable[[str, Channel, Intent], Awaitable[None]]


class RoomManager:
    """Central registry owning every room and the player → room index.

    Pass one instance to the transport handlers; nothing here is global.
    """

    def __init__(
        self,
        config: GameConfig | None = None,
        *,
        seed: int | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or GameConfig()
        self._seeds = np.random.SeedSequence(seed)
        self._clock = clock
        self._rooms: dict[str, Room] = {}
        self._player_rooms: dict[str, str] = {}
        self._handlers: dict[type, Handler] = {
            CreateRoom: self._handle_create,
            JoinRoom: self._handle_join,
            StartGame: self._handle_start,
            SetDirection: self._handle_direction,
            PlaceObstacle: self._handle_obstacle,
            LeaveRoom: self._handle_leave,
        }

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id.upper())

    def room_for(self, player_id: str) -> Room | None:
        room_id = self._player_rooms.get(player_id)
        return self._rooms.get(room_id) if room_id is not None else None

    def list_rooms(self) -> list[RoomSummary]:
        return [
            RoomSummary(
                room_id=room.id,
                state=room.state,
                player_count=room.player_count,
                max_players=room.config.max_players,
                host_id=room.host_id,
            )
            for room in self._rooms.values()
        ]

    def __len__(self) -> int:
        return len(self._rooms)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _new_room_id(self) -> str:
        while True:
            room_id = uuid.uuid4().hex[:6].upper()
            if room_id not in self._rooms:
                return room_id

    async def create_room(self, player_id: str, name: str, channel: Channel) -> Room:
        """Open a new room with the caller as host."""
        if player_id in self._player_rooms:
            raise AlreadyInRoom()

        room_id = self._new_room_id()
        rng = np.random.default_rng(self._seeds.spawn(1)[0])
        room = Room(room_id, self.config, rng=rng, clock=self._clock)
        room.add_player(player_id, name, channel)
        self._rooms[room_id] = room
        self._player_rooms[player_id] = room_id
        logger.info("Room %s created by '%s'.", room_id, name)

        await room.send(player_id, RoomCreated(room_id=room_id, room=room.view()))
        return room

    async def join_room(
        self, player_id: str, room_id: str, name: str, channel: Channel,
    ) -> Room:
        """Add the caller to an existing room's lobby."""
        if player_id in self._player_rooms:
            raise AlreadyInRoom()
        room = self.get_room(room_id)
        if room is None:
            raise RoomNotFound()

        async with room.lock:
            if room.closed or self._rooms.get(room.id) is not room:
                raise RoomNotFound()
            player = room.add_player(player_id, name, channel)
            self._player_rooms[player_id] = room.id
            await room.send(player_id, RoomJoined(room=room.view()))
            await room.broadcast(
                PlayerJoined(player=MemberView(**player.summary())),
                exclude=player_id,
            )
            await room.broadcast(RoomUpdated(room=room.view()))
        return room

    async def leave(self, player_id: str) -> None:
        """Remove the player from its room; tear the room down if empty."""
        room_id = self._player_rooms.pop(player_id, None)
        if room_id is None:
            return
        room = self._rooms.get(room_id)
        if room is None:
            return

        async with room.lock:
            room.remove_player(player_id)
            if room.is_empty:
                self._close_room(room)
                return
            await room.broadcast(PlayerLeft(player_id=player_id))
            await room.broadcast(RoomUpdated(room=room.view()))

    def _close_room(self, room: Room) -> None:
        room.shutdown()
        self._rooms.pop(room.id, None)
        for pid in [p for p, rid in self._player_rooms.items() if rid == room.id]:
            del self._player_rooms[pid]
        logger.info("Room %s deleted.", room.id)

    async def cleanup(self) -> None:
        """Shut down every room and forget all players."""
        for room in list(self._rooms.values()):
            self._close_room(room)
        self._player_rooms.clear()
        logger.info("RoomManager cleanup complete.")

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def handle(self, player_id: str, channel: Channel, intent: Intent) -> None:
        """Apply one client intent, reporting rejections to that client only."""
        handler = self._handlers[type(intent)]
        try:
            await handler(player_id, channel, intent)
        except RoomError as exc:
            logger.debug("Rejected %s from %s: %s", intent.type, player_id, exc)
            await send_error(channel, str(exc))

    def _require_room(self, player_id: str) -> Room:
        room = self.room_for(player_id)
        if room is None:
            raise NotInRoom()
        return room

    async def _handle_create(self, player_id, channel, intent: CreateRoom) -> None:
        await self.create_room(player_id, intent.name, channel)

    async def _handle_join(self, player_id, channel, intent: JoinRoom) -> None:
        await self.join_room(player_id, intent.room_id, intent.name, channel)

    async def _handle_start(self, player_id, channel, intent: StartGame) -> None:
        room = self._require_room(player_id)
        async with room.lock:
            await room.start(player_id)

    async def _handle_direction(self, player_id, channel, intent: SetDirection) -> None:
        room = self.room_for(player_id)
        if room is None:
            return
        async with room.lock:
            room.set_direction(player_id, intent.direction)

    async def _handle_obstacle(self, player_id, channel, intent: PlaceObstacle) -> None:
        room = self.room_for(player_id)
        if room is None:
            return
        async with room.lock:
            room.place_obstacle(player_id)

    async def _handle_leave(self, player_id, channel, intent: LeaveRoom) -> None:
        await self.leave(player_id)


async def send_error(channel: Channel, message: str) -> None:
    payload = ErrorEvent(message=message).model_dump_json()
    try:
        await channel.send_text(payload)
    except Exception:
        logger.warning("Failed delivering error event: %s", message)
