"""Board geometry for the snake arena."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from snake_fighter.snake import Direction

Cell = tuple[int, int]


def manhattan(a: Cell, b: Cell) -> int:
    """Manhattan distance between two cells, in logical pixels."""
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


class Grid:
    """Cell-aligned coordinate space ``[0, width) x [0, height)``.

    Positions are ``(x, y)`` tuples in logical pixels and are always
    multiples of ``cell_size``. Occupancy masks use NumPy ``(row, col)``
    indexing.
    """

    def __init__(
        self, width: int = 640, height: int = 480, cell_size: int = 20,
    ) -> None:
        if width % cell_size or height % cell_size:
            raise ValueError("Grid dimensions must be multiples of cell_size.")
        if width < 4 * cell_size or height < 4 * cell_size:
            raise ValueError("Grid dimensions must be at least 4×4 cells.")
        self.width = width
        self.height = height
        self.cell_size = cell_size

    @property
    def columns(self) -> int:
        return self.width // self.cell_size

    @property
    def rows(self) -> int:
        return self.height // self.cell_size

    def in_bounds(self, cell: Cell) -> bool:
        """Check whether a position lies within the world bounds."""
        x, y = cell
        return 0 <= x < self.width and 0 <= y < self.height

    def to_index(self, cell: Cell) -> tuple[int, int]:
        """Convert a position to a ``(row, col)`` index."""
        return cell[1] // self.cell_size, cell[0] // self.cell_size

    def to_cell(self, col: int, row: int) -> Cell:
        return col * self.cell_size, row * self.cell_size

    def step(self, cell: Cell, direction: Direction, distance: int = 1) -> Cell:
        """Return the position *distance* cells away along *direction*."""
        dx, dy = direction.value
        return (
            cell[0] + dx * self.cell_size * distance,
            cell[1] + dy * self.cell_size * distance,
        )

    def neighbours(self, cell: Cell) -> list[Cell]:
        """Return the four orthogonal neighbours, in or out of bounds."""
        x, y = cell
        s = self.cell_size
        return [(x, y - s), (x, y + s), (x - s, y), (x + s, y)]

    def distance_to_wall(self, cell: Cell) -> int:
        """Number of whole cells between *cell* and the nearest boundary."""
        col, row = cell[0] // self.cell_size, cell[1] // self.cell_size
        return min(col, self.columns - 1 - col, row, self.rows - 1 - row)

    def random_cell(self, rng: np.random.Generator, margin: int = 0) -> Cell:
        """Draw a uniformly random cell at least *margin* cells from edges.

        With a non-zero margin the far edge keeps one extra cell of room so a
        fresh snake heading right has space to react.
        """
        if margin:
            col = int(rng.integers(margin, self.columns - margin - 1))
            row = int(rng.integers(margin, self.rows - margin - 1))
        else:
            col = int(rng.integers(self.columns))
            row = int(rng.integers(self.rows))
        return self.to_cell(col, row)

    def occupancy(self, cells: Iterable[Cell]) -> np.ndarray:
        """Build a ``(rows, columns)`` boolean mask of occupied cells.

        Cells outside the bounds are skipped.
        """
        mask = np.zeros((self.rows, self.columns), dtype=bool)
        for cell in cells:
            if self.in_bounds(cell):
                mask[self.to_index(cell)] = True
        return mask

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "cell_size": self.cell_size,
        }
