"""Room lifecycle: lobby, countdown, round, and results for one match."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from snake_fighter.config import GameConfig
from snake_fighter.engine import Clock, Simulation
from snake_fighter.server.models import (
    CountdownStarted,
    CountdownTick,
    Event,
    GameEnded,
    GameStarted,
    MemberView,
    PlayerEliminated,
    ReturnedToLobby,
    RoomState,
    RoomView,
    ScoreEntry,
    TickSnapshot,
)
from snake_fighter.snake import Direction, Player

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]

COUNTDOWN_JOB = "countdown"
TICK_JOB = "tick"
SEED_JOB = "seeds"
LOBBY_JOB = "lobby-reset"


class Channel(Protocol):
    """Anything that can deliver a text frame to one client."""

    async def send_text(self, data: str) -> None: ...


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class RoomError(Exception):
    """A rejected command; reported to the sender only."""

    message = "Request rejected."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class RoomNotFound(RoomError):
    message = "Room not found."


class GameInProgress(RoomError):
    message = "Game is already in progress."


class RoomFull(RoomError):
    message = "Room is full."


class NotHost(RoomError):
    message = "Only the host can start the game."


class WrongState(RoomError):
    message = "The room is not waiting for players."


class NotEnoughPlayers(RoomError):
    message = "Need at least 2 players to start."


class NotInRoom(RoomError):
    message = "You are not in a room."


class AlreadyInRoom(RoomError):
    message = "Leave your current room first."


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


@dataclass
class _Job:
    name: str
    task: asyncio.Task | None = None
    stopped: bool = False


class RoomScheduler:
    """Named asyncio jobs owned by one room.

    A job may cancel itself from inside its own callback; the callback
    then runs to completion and the job simply does not fire again.
    """

    def __init__(self, label: str) -> None:
        self.label = label
        self._jobs: dict[str, _Job] = {}

    @property
    def active(self) -> list[str]:
        return [name for name, job in self._jobs.items() if not job.stopped]

    def is_active(self, name: str) -> bool:
        return name in self.active

    def every(self, name: str, seconds: float, callback: Callback) -> None:
        """Run *callback* every *seconds*, first firing after one period."""
        self._start(name, self._repeat, seconds, callback)

    def after(self, name: str, seconds: float, callback: Callback) -> None:
        """Run *callback* once after *seconds*."""
        self._start(name, self._once, seconds, callback)

    def _start(self, name, runner, seconds: float, callback: Callback) -> None:
        self.cancel(name)
        job = _Job(name)
        self._jobs[name] = job
        job.task = asyncio.get_running_loop().create_task(
            runner(job, seconds, callback), name=f"{self.label}:{name}",
        )

    async def _repeat(self, job: _Job, seconds: float, callback: Callback) -> None:
        try:
            while not job.stopped:
                await asyncio.sleep(seconds)
                if job.stopped:
                    break
                await callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Job %s:%s failed.", self.label, job.name)
        finally:
            self._forget(job)

    async def _once(self, job: _Job, seconds: float, callback: Callback) -> None:
        try:
            await asyncio.sleep(seconds)
            if not job.stopped:
                job.stopped = True
                await callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Job %s:%s failed.", self.label, job.name)
        finally:
            self._forget(job)

    def _forget(self, job: _Job) -> None:
        if self._jobs.get(job.name) is job:
            del self._jobs[job.name]

    def cancel(self, name: str) -> None:
        job = self._jobs.pop(name, None)
        if job is None:
            return
        job.stopped = True
        task = job.task
        if task is None or task.done():
            return
        if task is not asyncio.current_task():
            task.cancel()

    def cancel_matching(self, prefix: str) -> None:
        for name in list(self._jobs):
            if name.startswith(prefix):
                self.cancel(name)

    def cancel_all(self) -> None:
        for name in list(self._jobs):
            self.cancel(name)


# ---------------------------------------------------------------------------
# Room
# ---------------------------------------------------------------------------


@dataclass
class Member:
    """A connected room member."""

    player_id: str
    channel: Channel


class Room:
    """One isolated match: members, simulation, and lifecycle timers.

    Intent handlers and scheduled callbacks mutate state only while holding
    :attr:`lock`, so each room behaves as a single logical thread.
    """

    def __init__(
        self,
        room_id: str,
        config: GameConfig | None = None,
        rng: np.random.Generator | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.id = room_id
        self.config = config or GameConfig()
        self.engine = Simulation(self.config, rng=rng, clock=clock)
        self.members: dict[str, Member] = {}
        self.state = RoomState.WAITING
        self.host_id: str | None = None
        self.countdown_remaining = 0
        self.scheduler = RoomScheduler(f"room-{room_id}")
        self.lock = asyncio.Lock()
        self.closed = False

    @property
    def player_count(self) -> int:
        return len(self.engine.players)

    @property
    def is_empty(self) -> bool:
        return not self.engine.players

    def has_player(self, player_id: str) -> bool:
        return player_id in self.engine.players

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def add_player(self, player_id: str, name: str, channel: Channel) -> Player:
        """Admit a player to the lobby; the first one becomes host."""
        if self.state != RoomState.WAITING:
            raise GameInProgress()
        if self.player_count >= self.config.max_players:
            raise RoomFull()

        player = self.engine.add_player(
            player_id, name[: self.config.max_name_length],
        )
        self.members[player_id] = Member(player_id, channel)
        if self.host_id is None:
            self.host_id = player_id
        logger.info(
            "Player '%s' (%s) joined room %s.", player.name, player_id, self.id,
        )
        return player

    def remove_player(self, player_id: str) -> Player | None:
        """Drop a player in any state and re-elect the host if needed."""
        player = self.engine.remove_player(player_id)
        self.members.pop(player_id, None)
        self.scheduler.cancel(f"cooldown:{player_id}")
        if player is None:
            return None
        if player_id == self.host_id:
            self.host_id = next(iter(self.engine.players), None)
        logger.info("Player %s left room %s.", player_id, self.id)
        return player

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    async def start(self, player_id: str) -> None:
        """Host command: begin the countdown."""
        if player_id != self.host_id:
            raise NotHost()
        if self.state != RoomState.WAITING:
            raise WrongState()
        if self.player_count < self.config.min_players:
            raise NotEnoughPlayers(
                f"Need at least {self.config.min_players} players to start.",
            )

        self.state = RoomState.COUNTDOWN
        self.countdown_remaining = self.config.countdown_seconds
        logger.info("Room %s counting down.", self.id)
        await self.broadcast(CountdownStarted(seconds=self.countdown_remaining))
        if self.countdown_remaining <= 0:
            await self._start_round()
            return
        self.scheduler.every(
            COUNTDOWN_JOB,
            self.config.countdown_interval_ms / 1000.0,
            self._on_countdown,
        )

    def set_direction(self, player_id: str, direction: Direction) -> bool:
        if self.state != RoomState.PLAYING or not self.has_player(player_id):
            return False
        return self.engine.set_direction(player_id, direction)

    def place_obstacle(self, player_id: str) -> bool:
        """Trade the player's tail for an obstacle and arm the cooldown timer."""
        if self.state != RoomState.PLAYING or not self.has_player(player_id):
            return False
        if self.engine.place_obstacle(player_id) is None:
            return False
        self.scheduler.after(
            f"cooldown:{player_id}",
            self.config.obstacle_cooldown_ms / 1000.0,
            lambda: self._on_cooldown(player_id),
        )
        return True

    # ------------------------------------------------------------------
    # Scheduled callbacks
    # ------------------------------------------------------------------

    async def _on_countdown(self) -> None:
        async with self.lock:
            await self.countdown_step()

    async def countdown_step(self) -> None:
        """Advance the countdown by one second."""
        if self.state != RoomState.COUNTDOWN:
            self.scheduler.cancel(COUNTDOWN_JOB)
            return
        self.countdown_remaining -= 1
        if self.countdown_remaining > 0:
            await self.broadcast(CountdownTick(seconds=self.countdown_remaining))
            return
        self.scheduler.cancel(COUNTDOWN_JOB)
        await self._start_round()

    async def _start_round(self) -> None:
        cfg = self.config
        self.engine.reset_round()
        self.state = RoomState.PLAYING
        logger.info(
            "Room %s round started with %d players.", self.id, self.player_count,
        )
        await self.broadcast(GameStarted())

        self.scheduler.every(TICK_JOB, cfg.tick_interval_ms / 1000.0, self._on_tick)
        self.scheduler.every(
            SEED_JOB, cfg.seed_spawn_interval_ms / 1000.0, self._on_seed,
        )
        for i in range(cfg.initial_seeds):
            self.scheduler.after(
                f"seed-burst:{i}",
                i * cfg.initial_seed_stagger_ms / 1000.0,
                self._on_seed,
            )

    async def _on_tick(self) -> None:
        async with self.lock:
            await self.run_tick()

    async def run_tick(self) -> None:
        """Advance the simulation one step and publish the result."""
        if self.state != RoomState.PLAYING:
            return
        result = self.engine.step()
        if result.finished:
            await self._end_round()
            return
        for elimination in result.eliminated:
            await self.broadcast(
                PlayerEliminated(
                    player_id=elimination.player_id, name=elimination.name,
                ),
            )
        await self.broadcast(TickSnapshot(**self.engine.snapshot()))

    async def _on_seed(self) -> None:
        async with self.lock:
            if self.state == RoomState.PLAYING:
                self.engine.spawn_seed()

    async def _on_cooldown(self, player_id: str) -> None:
        async with self.lock:
            if self.has_player(player_id):
                self.engine.refresh_cooldowns()

    async def _end_round(self) -> None:
        self.state = RoomState.FINISHED
        self._stop_round_jobs()

        winner = self.engine.winner()
        logger.info(
            "Room %s round finished after %d ticks; winner: %s.",
            self.id,
            self.engine.tick,
            winner.name if winner else "none",
        )
        await self.broadcast(
            GameEnded(
                winner=MemberView(**winner.summary()) if winner else None,
                scores=[ScoreEntry(**s) for s in self.engine.scores()],
            ),
        )
        self.scheduler.after(
            LOBBY_JOB, self.config.lobby_reset_delay_ms / 1000.0, self._on_lobby,
        )

    async def _on_lobby(self) -> None:
        async with self.lock:
            await self.return_to_lobby()

    async def return_to_lobby(self) -> None:
        if self.state != RoomState.FINISHED:
            return
        self.state = RoomState.WAITING
        await self.broadcast(ReturnedToLobby(room=self.view()))

    def _stop_round_jobs(self) -> None:
        self.scheduler.cancel(TICK_JOB)
        self.scheduler.cancel(SEED_JOB)
        self.scheduler.cancel_matching("seed-burst:")
        self.scheduler.cancel_matching("cooldown:")

    def shutdown(self) -> None:
        """Cancel every timer; the room must not be used afterwards."""
        self.scheduler.cancel_all()
        self.closed = True
        logger.info("Room %s shut down.", self.id)

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    def view(self) -> RoomView:
        return RoomView(
            id=self.id,
            host_id=self.host_id,
            state=self.state,
            players=[MemberView(**p.summary()) for p in self.engine.players.values()],
            max_players=self.config.max_players,
        )

    async def send(self, player_id: str, event: Event) -> None:
        member = self.members.get(player_id)
        if member is not None:
            await _deliver(member, _encode(event), self.id)

    async def broadcast(self, event: Event, exclude: str | None = None) -> None:
        """Send *event* to every member except *exclude*."""
        payload = _encode(event)
        for member in list(self.members.values()):
            if member.player_id == exclude:
                continue
            await _deliver(member, payload, self.id)


def _encode(event: Event) -> str:
    return json.dumps(event.model_dump(mode="json"), separators=(",", ":"))


async def _deliver(member: Member, payload: str, room_id: str) -> None:
    try:
        await member.channel.send_text(payload)
    except Exception:
        logger.warning(
            "Failed sending to player %s in room %s.", member.player_id, room_id,
        )
