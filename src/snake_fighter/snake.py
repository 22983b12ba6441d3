"""Direction vectors and the per-player snake state."""

from __future__ import annotations

import enum
from collections import deque
from collections.abc import Mapping, Sequence

from snake_fighter.grid import Cell


class Direction(enum.Enum):
    """Cardinal movement directions with (dx, dy) unit vectors."""

    UP = (0, -1)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    RIGHT = (1, 0)

    @property
    def opposite(self) -> Direction:
        dx, dy = self.value
        return Direction((-dx, -dy))

    def is_reverse_of(self, other: Direction) -> bool:
        return self.opposite is other

    @classmethod
    def coerce(cls, value: object) -> Direction:
        """Accept a Direction, a name, an ``{"x", "y"}`` mapping, or a pair."""
        if isinstance(value, Direction):
            return value
        if isinstance(value, str):
            try:
                return cls[value.upper()]
            except KeyError:
                raise ValueError(f"Unknown direction {value!r}.") from None
        if isinstance(value, Mapping):
            vector = (value.get("x"), value.get("y"))
        elif isinstance(value, Sequence) and len(value) == 2:
            vector = (value[0], value[1])
        else:
            raise ValueError(f"Cannot interpret {value!r} as a direction.")
        try:
            return cls(tuple(vector))
        except ValueError:
            raise ValueError(f"{vector!r} is not a unit direction.") from None


class Player:
    """A room member and their snake.

    The snake is a deque of cells with the head at ``snake[0]``. The
    committed ``direction`` drives the current tick; ``next_direction``
    is the staged intent picked up by the next tick.
    """

    def __init__(
        self,
        player_id: str,
        name: str,
        color: str,
        start: Cell = (0, 0),
        direction: Direction = Direction.RIGHT,
    ) -> None:
        self.id = player_id
        self.name = name
        self.color = color
        self.snake: deque[Cell] = deque([start])
        self.direction = direction
        self.next_direction = direction
        self.alive = True
        self.can_place_obstacle = True
        self.last_obstacle_placement: float | None = None

    @property
    def head(self) -> Cell:
        if not self.snake:
            raise ValueError(f"Player {self.id} has an empty snake.")
        return self.snake[0]

    @property
    def tail(self) -> Cell:
        return self.snake[-1]

    @property
    def score(self) -> int:
        return max(0, len(self.snake) - 1)

    def __len__(self) -> int:
        return len(self.snake)

    def respawn(
        self, start: Cell, direction: Direction = Direction.RIGHT,
    ) -> None:
        """Reset to a fresh single-cell snake for a new round."""
        self.snake = deque([start])
        self.direction = direction
        self.next_direction = direction
        self.alive = True
        self.can_place_obstacle = True
        self.last_obstacle_placement = None

    def steer(self, direction: Direction) -> bool:
        """Stage *direction* for the next tick unless it reverses the heading."""
        if not self.alive or direction.is_reverse_of(self.direction):
            return False
        self.next_direction = direction
        return True

    def to_dict(self) -> dict:
        """Serialize for tick snapshots."""
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "snake": [{"x": x, "y": y} for x, y in self.snake],
            "alive": self.alive,
            "score": self.score,
            "can_place_obstacle": self.can_place_obstacle,
        }

    def summary(self) -> dict:
        return {"id": self.id, "name": self.name, "color": self.color}
