"""Tick-based room simulation shared by server rooms and local games."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

import numpy as np

from snake_fighter.collision import CollisionKind, find_collision, find_swaps
from snake_fighter.config import GameConfig
from snake_fighter.grid import Cell, Grid
from snake_fighter.items import ItemSpawner, Obstacle, ObstacleKind, Seed, remains_of
from snake_fighter.snake import Direction, Player

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

_SPAWN_MARGIN = 1


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class Elimination:
    """A player knocked out during a tick."""

    player_id: str
    name: str
    cause: CollisionKind | None


@dataclass
class TickResult:
    """What happened during one call to :meth:`Simulation.step`."""

    tick: int
    finished: bool = False
    eliminated: list[Elimination] = field(default_factory=list)
    eaten: list[Cell] = field(default_factory=list)


class Simulation:
    """Authoritative state for one arena: players, obstacles, and seeds.

    Each call to :meth:`step` advances every alive snake by one cell,
    resolves collisions simultaneously against the post-move state, and
    reports eliminations. The simulation never sleeps or schedules; the
    caller drives it at the configured tick rate.
    """

    def __init__(
        self,
        config: GameConfig | None = None,
        rng: np.random.Generator | None = None,
        clock: Clock | None = None,
    ) -> None:
        cfg = config or GameConfig()
        self.config = cfg
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock or monotonic_ms
        self.grid = Grid(cfg.width, cfg.height, cfg.cell_size)
        self.spawner = ItemSpawner(
            self.grid,
            max_seeds=cfg.max_seeds,
            rng=self.rng,
            max_attempts=cfg.spawn_attempts,
        )
        self.players: dict[str, Player] = {}
        self.obstacles: list[Obstacle] = []
        self.tick = 0

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def add_player(self, player_id: str, name: str) -> Player:
        """Register a player with the next free palette colour."""
        if player_id in self.players:
            raise ValueError(f"Player {player_id} already registered.")
        player = Player(
            player_id,
            name,
            self._pick_color(),
            start=self.grid.random_cell(self.rng, margin=_SPAWN_MARGIN),
        )
        self.players[player_id] = player
        return player

    def remove_player(self, player_id: str) -> Player | None:
        return self.players.pop(player_id, None)

    def _pick_color(self) -> str:
        palette = self.config.palette
        used = {p.color for p in self.players.values()}
        for color in palette:
            if color not in used:
                return color
        return palette[len(self.players) % len(palette)]

    def _player(self, player_id: str) -> Player:
        try:
            return self.players[player_id]
        except KeyError:
            raise KeyError(f"Unknown player {player_id}.") from None

    @property
    def seeds(self) -> list[Seed]:
        return self.spawner.seeds

    def alive_players(self) -> list[Player]:
        return [p for p in self.players.values() if p.alive]

    @property
    def alive_count(self) -> int:
        return sum(1 for p in self.players.values() if p.alive)

    def winner(self) -> Player | None:
        """The sole survivor, or ``None`` for a draw or a running round."""
        alive = self.alive_players()
        return alive[0] if len(alive) == 1 else None

    # ------------------------------------------------------------------
    # Round setup
    # ------------------------------------------------------------------

    def reset_round(
        self, spawns: Mapping[str, tuple[Cell, Direction]] | None = None,
    ) -> None:
        """Respawn every player and clear the board.

        Players without an explicit entry in *spawns* get a random cell at
        least one cell away from the edges, preferring cells not already
        taken by another fresh snake.
        """
        spawns = spawns or {}
        taken: set[Cell] = set()
        for player in self.players.values():
            if player.id in spawns:
                start, direction = spawns[player.id]
            else:
                start, direction = self._random_spawn(taken), Direction.RIGHT
            player.respawn(start, direction)
            taken.add(start)

        self.obstacles = []
        self.spawner.clear()
        self.tick = 0

    def _random_spawn(self, taken: set[Cell]) -> Cell:
        cell = self.grid.random_cell(self.rng, margin=_SPAWN_MARGIN)
        for _ in range(self.config.spawn_attempts):
            if cell not in taken:
                break
            cell = self.grid.random_cell(self.rng, margin=_SPAWN_MARGIN)
        return cell

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def set_direction(self, player_id: str, direction: Direction) -> bool:
        """Stage a heading change; reversals and dead players are ignored."""
        return self._player(player_id).steer(direction)

    def can_place_obstacle(self, player_id: str, now: float | None = None) -> bool:
        player = self._player(player_id)
        if not player.alive or len(player.snake) <= 1:
            return False
        if player.last_obstacle_placement is None:
            return True
        now = self.clock() if now is None else now
        elapsed = now - player.last_obstacle_placement
        return elapsed >= self.config.obstacle_cooldown_ms

    def refresh_cooldowns(self, now: float | None = None) -> None:
        """Re-derive each player's cached obstacle gate from its timestamp."""
        now = self.clock() if now is None else now
        for pid, player in self.players.items():
            player.can_place_obstacle = self.can_place_obstacle(pid, now)

    def place_obstacle(
        self, player_id: str, now: float | None = None,
    ) -> Obstacle | None:
        """Trade the tail segment for a dotted obstacle.

        Returns the placed obstacle, or ``None`` when the cooldown, length,
        or alive check fails.
        """
        now = self.clock() if now is None else now
        if not self.can_place_obstacle(player_id, now):
            return None

        player = self.players[player_id]
        x, y = player.snake.pop()
        obstacle = Obstacle(x, y, ObstacleKind.DOTTED, placed_by=player_id)
        self.obstacles.append(obstacle)
        player.last_obstacle_placement = now
        player.can_place_obstacle = False
        logger.debug(
            "Player %s placed an obstacle at (%d, %d).", player_id, x, y,
        )
        return obstacle

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def occupied_cells(self) -> set[Cell]:
        """Cells blocked by obstacles or alive snakes."""
        cells = {o.cell for o in self.obstacles}
        for player in self.players.values():
            if player.alive:
                cells.update(player.snake)
        return cells

    def spawn_seed(self) -> Seed | None:
        return self.spawner.spawn(self.occupied_cells())

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def step(self) -> TickResult:
        """Advance the arena by one tick with simultaneous collision checks."""
        alive = self.alive_players()
        if len(alive) <= 1:
            return TickResult(tick=self.tick, finished=True)

        claimed: set[Cell] = set()
        previous_heads: dict[str, Cell] = {}
        for player in alive:
            if not player.snake:
                raise ValueError(f"Player {player.id} has an empty snake.")
            previous_heads[player.id] = player.head
            player.direction = player.next_direction
            head = self.grid.step(player.head, player.direction)
            player.snake.appendleft(head)

            ate = head not in claimed and self.spawner.seed_at(head) is not None
            if ate:
                claimed.add(head)
            elif len(player.snake) > 1:
                player.snake.pop()

            cap = self.config.max_snake_length
            while cap is not None and len(player.snake) > cap:
                player.snake.pop()

        for cell in claimed:
            self.spawner.remove(cell)

        bodies = {p.id: list(p.snake) for p in alive}
        obstacle_cells = {o.cell for o in self.obstacles}
        swapped = find_swaps(previous_heads, bodies)
        crashes: list[tuple[Player, CollisionKind]] = []
        for player in alive:
            cause = find_collision(player.id, bodies, obstacle_cells, self.grid)
            if cause is None and player.id in swapped:
                cause = CollisionKind.OPPONENT
            if cause is not None:
                crashes.append((player, cause))

        self.tick += 1
        result = TickResult(tick=self.tick, eaten=sorted(claimed))
        for player, cause in crashes:
            result.eliminated.append(self.eliminate(player.id, cause))

        self.refresh_cooldowns()
        return result

    def eliminate(
        self, player_id: str, cause: CollisionKind | None = None,
    ) -> Elimination:
        """Knock a player out and leave its body behind as obstacles."""
        player = self._player(player_id)
        player.alive = False
        player.can_place_obstacle = False
        self.obstacles.extend(remains_of(player))
        logger.info(
            "Player %s (%s) eliminated at tick %d by %s with score %d.",
            player.id,
            player.name,
            self.tick,
            cause.value if cause else "removal",
            player.score,
        )
        return Elimination(player.id, player.name, cause)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def scores(self) -> list[dict]:
        return [
            {"id": p.id, "name": p.name, "score": p.score, "alive": p.alive}
            for p in self.players.values()
        ]

    def snapshot(self) -> dict:
        """Return the full, serializable arena state."""
        return {
            "tick": self.tick,
            "players": [p.to_dict() for p in self.players.values()],
            "obstacles": [o.to_dict() for o in self.obstacles],
            "seeds": self.spawner.to_list(),
            "players_alive": self.alive_count,
        }
