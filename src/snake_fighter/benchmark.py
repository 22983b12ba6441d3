"""Throughput benchmark for headless AI-vs-AI games."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import numpy as np

from snake_fighter.config import GameConfig
from snake_fighter.local import LocalGame, LocalState

logger = logging.getLogger(__name__)


@dataclass
class BenchmarkResult:
    """Results from a throughput benchmark run."""

    total_games: int
    total_ticks: int
    draws: int
    wall_time_seconds: float
    games_per_second: float
    ticks_per_second: float

    def summary(self) -> str:
        return (
            f"Benchmark: {self.total_games} games, {self.total_ticks} ticks "
            f"({self.draws} draws) in {self.wall_time_seconds:.2f}s | "
            f"{self.games_per_second:.1f} games/s, "
            f"{self.ticks_per_second:.1f} ticks/s"
        )


class TickClock:
    """Advances one tick interval per update so seeds keep spawning."""

    def __init__(self, step_ms: float) -> None:
        self.step_ms = step_ms
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self) -> None:
        self.now += self.step_ms


def benchmark_throughput(
    *,
    num_games: int = 20,
    max_ticks: int = 500,
    config: GameConfig | None = None,
    seed: int | None = 42,
) -> BenchmarkResult:
    """Measure simulation speed with both snakes driven by the heuristic AI.

    Each game skips its countdown and runs until it finishes or reaches
    *max_ticks*.
    """
    if num_games < 1:
        raise ValueError("num_games must be at least 1.")
    if max_ticks < 1:
        raise ValueError("max_ticks must be at least 1.")

    cfg = config or GameConfig()
    seeds = np.random.SeedSequence(seed).generate_state(num_games)

    total_ticks = 0
    draws = 0
    start = time.perf_counter()

    for game_seed in seeds:
        clock = TickClock(cfg.tick_interval_ms)
        game = LocalGame(
            cfg, ai_opponent=True, ai_player1=True, seed=int(game_seed), clock=clock,
        )
        game.begin()
        for _ in range(max_ticks):
            game.update()
            clock.advance()
            if game.state == LocalState.GAME_OVER:
                break
        total_ticks += game.sim.tick
        if game.state == LocalState.GAME_OVER and game.winner is None:
            draws += 1

    elapsed = time.perf_counter() - start
    result = BenchmarkResult(
        total_games=num_games,
        total_ticks=total_ticks,
        draws=draws,
        wall_time_seconds=elapsed,
        games_per_second=num_games / max(elapsed, 1e-9),
        ticks_per_second=total_ticks / max(elapsed, 1e-9),
    )
    logger.info(result.summary())
    return result
