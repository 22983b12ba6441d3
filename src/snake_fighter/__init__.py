"""Snake Fighter — authoritative multiplayer snake simulation."""

from snake_fighter.config import AIConfig, GameConfig
from snake_fighter.engine import Elimination, Simulation, TickResult
from snake_fighter.grid import Grid, manhattan
from snake_fighter.items import ItemSpawner, Obstacle, ObstacleKind, Seed
from snake_fighter.local import LocalGame
from snake_fighter.snake import Direction, Player

__all__ = [
    "AIConfig",
    "Direction",
    "Elimination",
    "GameConfig",
    "Grid",
    "ItemSpawner",
    "LocalGame",
    "Obstacle",
    "ObstacleKind",
    "Player",
    "Seed",
    "Simulation",
    "TickResult",
    "manhattan",
]
