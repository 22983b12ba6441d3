"""Game configuration shared by rooms, local games, and tooling."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PALETTE: tuple[str, ...] = (
    "#FF6B6B",
    "#4ECDC4",
    "#45B7D1",
    "#FFA07A",
    "#98D8C8",
    "#F7DC6F",
)


@dataclass(frozen=True)
class AIConfig:
    """Tunables for the heuristic opponent."""

    space_cap: int = 50
    lookahead: int = 5
    seek_space_threshold: int = 10
    jitter: float = 5.0
    obstacle_chance: float = 0.05
    threat_distance: int = 200
    min_length_for_obstacle: int = 3

    def __post_init__(self) -> None:
        if self.space_cap < 1:
            raise ValueError("space_cap must be at least 1.")
        if self.lookahead < 0:
            raise ValueError("lookahead must be >= 0.")
        if not 0.0 <= self.obstacle_chance <= 1.0:
            raise ValueError("obstacle_chance must be within [0, 1].")


@dataclass(frozen=True)
class GameConfig:
    """Board geometry, timings, and limits for one round.

    Distances are in logical pixels and durations in milliseconds.
    Supports JSON serialization so a server and its bots can share one file.
    """

    # Board
    width: int = 640
    height: int = 480
    cell_size: int = 20

    # Timers
    tick_interval_ms: int = 150
    countdown_seconds: int = 3
    countdown_interval_ms: int = 1000
    seed_spawn_interval_ms: int = 4000
    initial_seed_stagger_ms: int = 500
    obstacle_cooldown_ms: int = 15000
    lobby_reset_delay_ms: int = 5000

    # Limits
    max_seeds: int = 5
    initial_seeds: int = 3
    max_players: int = 8
    min_players: int = 2
    max_snake_length: int | None = None
    spawn_attempts: int = 100
    max_name_length: int = 32

    palette: tuple[str, ...] = DEFAULT_PALETTE
    ai: AIConfig = field(default_factory=AIConfig)

    def __post_init__(self) -> None:
        if self.cell_size < 1:
            raise ValueError("cell_size must be at least 1.")
        if self.width % self.cell_size or self.height % self.cell_size:
            raise ValueError("width and height must be multiples of cell_size.")
        if self.columns < 8 or self.rows < 8:
            raise ValueError("The board must be at least 8×8 cells.")
        if self.tick_interval_ms < 1:
            raise ValueError("tick_interval_ms must be positive.")
        if self.max_seeds < 0:
            raise ValueError("max_seeds must be >= 0.")
        if self.min_players < 1 or self.max_players < self.min_players:
            raise ValueError("max_players must be >= min_players >= 1.")
        if self.max_snake_length is not None and self.max_snake_length < 1:
            raise ValueError("max_snake_length must be at least 1.")
        if not self.palette:
            raise ValueError("palette must contain at least one colour.")

    @property
    def columns(self) -> int:
        return self.width // self.cell_size

    @property
    def rows(self) -> int:
        return self.height // self.cell_size

    def with_overrides(self, **overrides) -> GameConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)

    def to_dict(self) -> dict:
        """Serialize to a plain dict (tuples become lists)."""
        d = asdict(self)
        d["palette"] = list(self.palette)
        return d

    def save(self, path: str | Path) -> None:
        """Write config to a JSON file."""
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self.to_dict(), indent=2))
        logger.info("Config saved to %s", p)

    @classmethod
    def from_dict(cls, raw: dict) -> GameConfig:
        d = dict(raw)
        ai_data = d.pop("ai", {})
        d["ai"] = AIConfig(**ai_data)
        if "palette" in d:
            d["palette"] = tuple(d["palette"])
        return cls(**d)

    @classmethod
    def load(cls, path: str | Path) -> GameConfig:
        """Load config from a JSON file."""
        return cls.from_dict(json.loads(Path(path).read_text()))
