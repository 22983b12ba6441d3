"""Lethal-move detection for a single snake."""

from __future__ import annotations

import enum
from collections.abc import Container, Mapping, Sequence

from snake_fighter.grid import Cell, Grid


class CollisionKind(str, enum.Enum):
    """Why a move was lethal, in check precedence order."""

    WALL = "wall"
    OBSTACLE = "obstacle"
    SELF = "self"
    OPPONENT = "opponent"


def find_collision(
    player_id: str,
    bodies: Mapping[str, Sequence[Cell]],
    obstacle_cells: Container[Cell],
    grid: Grid,
) -> CollisionKind | None:
    """Report whether *player_id*'s current head position is lethal.

    *bodies* maps every alive player to its post-move body, head first.
    Checks run wall, obstacle, self, then opponent; the first match wins.
    """
    body = bodies[player_id]
    head = body[0]

    if not grid.in_bounds(head):
        return CollisionKind.WALL
    if head in obstacle_cells:
        return CollisionKind.OBSTACLE
    if any(seg == head for seg in list(body)[1:]):
        return CollisionKind.SELF
    for other_id, other_body in bodies.items():
        if other_id != player_id and head in other_body:
            return CollisionKind.OPPONENT
    return None


def find_swaps(
    previous_heads: Mapping[str, Cell],
    bodies: Mapping[str, Sequence[Cell]],
) -> set[str]:
    """Players whose snakes traded head cells with another snake this tick.

    Two single-cell snakes moving into each other end up on each other's
    old cells without overlapping, so they are caught here instead.
    """
    swapped: set[str] = set()
    ids = list(bodies)
    for i, a in enumerate(ids):
        for b in ids[i + 1:]:
            if bodies[a][0] == previous_heads[b] and bodies[b][0] == previous_heads[a]:
                swapped.update((a, b))
    return swapped
