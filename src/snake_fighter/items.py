"""Seeds, obstacles, and seed spawning."""

from __future__ import annotations

import enum
import logging
from collections.abc import Container
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from snake_fighter.grid import Cell, Grid

if TYPE_CHECKING:
    from snake_fighter.snake import Player

logger = logging.getLogger(__name__)


class ObstacleKind(str, enum.Enum):
    """Where an obstacle came from."""

    REMAINS = "player-remains"
    DOTTED = "dotted"


@dataclass(frozen=True)
class Obstacle:
    """A permanently blocked cell for the rest of the round."""

    x: int
    y: int
    kind: ObstacleKind = ObstacleKind.REMAINS
    placed_by: str | None = None

    @property
    def cell(self) -> Cell:
        return self.x, self.y

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "type": self.kind.value,
            "placed_by": self.placed_by,
        }


@dataclass(frozen=True)
class Seed:
    """A collectible granting one segment of growth."""

    x: int
    y: int

    @property
    def cell(self) -> Cell:
        return self.x, self.y

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


def remains_of(player: Player) -> list[Obstacle]:
    """Turn every segment of *player*'s snake into a plain obstacle."""
    return [Obstacle(x, y, ObstacleKind.REMAINS) for x, y in player.snake]


class ItemSpawner:
    """Places seeds on free cells by rejection sampling.

    Uses the injected NumPy RNG so placement is reproducible for a seed.
    """

    def __init__(
        self,
        grid: Grid,
        max_seeds: int = 5,
        rng: np.random.Generator | None = None,
        max_attempts: int = 100,
    ) -> None:
        if max_seeds < 0:
            raise ValueError("max_seeds must be >= 0.")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self.grid = grid
        self.max_seeds = max_seeds
        self.max_attempts = max_attempts
        self.rng = rng if rng is not None else np.random.default_rng()
        self.seeds: list[Seed] = []

    @property
    def full(self) -> bool:
        return len(self.seeds) >= self.max_seeds

    def seed_at(self, cell: Cell) -> Seed | None:
        for seed in self.seeds:
            if seed.cell == cell:
                return seed
        return None

    def spawn(self, blocked: Container[Cell] = ()) -> Seed | None:
        """Try to place one seed on a cell not in *blocked*.

        Returns the new seed, or ``None`` if the board is at capacity or no
        free cell turned up within ``max_attempts`` draws.
        """
        if self.full:
            return None

        taken = {seed.cell for seed in self.seeds}
        for _ in range(self.max_attempts):
            cell = self.grid.random_cell(self.rng)
            if cell in blocked or cell in taken:
                continue
            seed = Seed(*cell)
            self.seeds.append(seed)
            return seed

        logger.debug(
            "No free cell found for a seed after %d attempts.",
            self.max_attempts,
        )
        return None

    def place(self, cell: Cell) -> Seed:
        """Put a seed on a specific cell, ignoring the capacity limit."""
        seed = Seed(*cell)
        self.seeds.append(seed)
        return seed

    def remove(self, cell: Cell) -> bool:
        """Remove the seed at *cell*. Returns True if one was removed."""
        seed = self.seed_at(cell)
        if seed is None:
            return False
        self.seeds.remove(seed)
        return True

    def clear(self) -> None:
        self.seeds.clear()

    def to_list(self) -> list[dict]:
        return [s.to_dict() for s in self.seeds]
