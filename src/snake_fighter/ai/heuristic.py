"""Look-ahead heuristic opponent for single-opponent play."""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

import numpy as np

from snake_fighter.config import AIConfig
from snake_fighter.grid import Cell, Grid, manhattan
from snake_fighter.snake import Direction

if TYPE_CHECKING:
    from snake_fighter.engine import Simulation

logger = logging.getLogger(__name__)

UNSAFE_SCORE = -10000.0
LETHAL_THRESHOLD = -5000.0
_BASE_SCORE = 100.0
_SPACE_WEIGHT = 10.0
_LOOKAHEAD_PENALTY = 200.0
_WALL_MARGIN = 2
_SEED_BONUS = 100.0
_SEED_DISTANCE_WEIGHT = 0.5

# Candidate order matters only for ties that survive the jitter.
_CANDIDATES: tuple[Direction, ...] = (
    Direction.UP,
    Direction.DOWN,
    Direction.LEFT,
    Direction.RIGHT,
)


class _Board:
    """Blocked-cell mask for one decision."""

    def __init__(self, grid: Grid, blocked: np.ndarray) -> None:
        self.grid = grid
        self.blocked = blocked

    def is_safe(self, cell: Cell) -> bool:
        return self.grid.in_bounds(cell) and not self.blocked[self.grid.to_index(cell)]

    def available_space(self, start: Cell, cap: int) -> int:
        """Breadth-first count of safe cells reachable from *start*.

        Stops at *cap* cells, so the result is a dead-end detector rather
        than an exact region size.
        """
        visited: set[Cell] = set()
        queue: deque[Cell] = deque([start])
        count = 0
        while queue and count < cap:
            cell = queue.popleft()
            if cell in visited:
                continue
            visited.add(cell)
            if not self.is_safe(cell):
                continue
            count += 1
            for nb in self.grid.neighbours(cell):
                if nb not in visited:
                    queue.append(nb)
        return count


class HeuristicController:
    """Chooses a heading for one snake by scoring every legal turn.

    Immediately lethal turns are only taken when nothing else is left.
    The controller also occasionally drops an obstacle when an opponent
    is close behind.
    """

    def __init__(
        self,
        config: AIConfig | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.config = config or AIConfig()
        self.rng = rng if rng is not None else np.random.default_rng()

    def _board(self, sim: Simulation) -> _Board:
        return _Board(sim.grid, sim.grid.occupancy(sim.occupied_cells()))

    def score_directions(
        self, sim: Simulation, player_id: str,
    ) -> list[tuple[Direction, float]]:
        """Score each non-reversing direction, best first."""
        player = sim.players[player_id]
        board = self._board(sim)
        grid = sim.grid
        cfg = self.config

        scored: list[tuple[Direction, float]] = []
        for direction in _CANDIDATES:
            if direction.is_reverse_of(player.direction):
                continue
            nxt = grid.step(player.head, direction)
            if not board.is_safe(nxt):
                scored.append((direction, UNSAFE_SCORE))
                continue

            space = board.available_space(nxt, cfg.space_cap)
            score = _BASE_SCORE + _SPACE_WEIGHT * space

            for k in range(1, cfg.lookahead + 1):
                future = grid.step(nxt, direction, k)
                if not board.is_safe(future):
                    score -= _LOOKAHEAD_PENALTY / k
                    break
                wall_px = grid.distance_to_wall(future) * grid.cell_size
                if wall_px < _WALL_MARGIN * grid.cell_size:
                    score -= (grid.cell_size - wall_px) / k

            if sim.seeds and space > cfg.seek_space_threshold:
                nearest = min(manhattan(s.cell, nxt) for s in sim.seeds)
                score += max(0.0, _SEED_BONUS - _SEED_DISTANCE_WEIGHT * nearest)

            score += float(self.rng.random()) * cfg.jitter
            scored.append((direction, score))

        scored.sort(key=lambda item: item[1], reverse=True)
        return scored

    def choose_direction(self, sim: Simulation, player_id: str) -> Direction:
        """Pick the best direction that is not immediately lethal.

        Falls back to the least-bad option, so a move is always produced.
        """
        player = sim.players[player_id]
        if not player.alive:
            return player.direction
        scored = self.score_directions(sim, player_id)
        for direction, score in scored:
            if score > LETHAL_THRESHOLD:
                return direction
        return scored[0][0] if scored else player.direction

    def maybe_place_obstacle(
        self, sim: Simulation, player_id: str, now: float | None = None,
    ) -> bool:
        """Occasionally drop an obstacle when an opponent is close behind."""
        cfg = self.config
        if not sim.can_place_obstacle(player_id, now):
            return False
        if float(self.rng.random()) >= cfg.obstacle_chance:
            return False

        player = sim.players[player_id]
        if len(player.snake) <= cfg.min_length_for_obstacle:
            return False
        tail = player.tail
        threatened = any(
            manhattan(tail, other.head) < cfg.threat_distance
            for other in sim.alive_players()
            if other.id != player_id
        )
        if not threatened:
            return False
        placed = sim.place_obstacle(player_id, now) is not None
        if placed:
            logger.debug("AI %s placed an obstacle near an opponent.", player_id)
        return placed

    def act(self, sim: Simulation, player_id: str, now: float | None = None) -> Direction:
        """Steer and maybe place an obstacle; returns the chosen direction."""
        direction = self.choose_direction(sim, player_id)
        sim.set_direction(player_id, direction)
        self.maybe_place_obstacle(sim, player_id, now)
        return direction
