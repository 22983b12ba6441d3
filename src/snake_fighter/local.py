"""Standalone two-snake game for offline and AI-opponent play."""

from __future__ import annotations

import enum
import logging

import numpy as np

from snake_fighter.ai.heuristic import HeuristicController
from snake_fighter.config import GameConfig
from snake_fighter.engine import Clock, Simulation, TickResult, monotonic_ms
from snake_fighter.snake import Direction, Player

logger = logging.getLogger(__name__)

PLAYER_IDS: tuple[str, str] = ("player1", "player2")


class LocalState(str, enum.Enum):
    COUNTDOWN = "countdown"
    PLAYING = "playing"
    GAME_OVER = "game_over"


class LocalGame:
    """Two snakes on one board, driven by the caller's own timers.

    The caller invokes :meth:`tick_countdown` once a second until it
    returns True, then :meth:`update` every tick. Seeds are topped up
    from the injected clock rather than from a separate timer.
    """

    def __init__(
        self,
        config: GameConfig | None = None,
        *,
        ai_opponent: bool = True,
        ai_player1: bool = False,
        seed: int | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or GameConfig()
        self.ai_opponent = ai_opponent
        self.ai_player1 = ai_player1
        self.clock = clock or monotonic_ms
        self.rng = np.random.default_rng(seed)
        self.controllers: dict[str, HeuristicController] = {}
        self.reset()

    def reset(self) -> None:
        """Start over with fresh snakes, seeds, and a new countdown."""
        cfg = self.config
        self.state = LocalState.COUNTDOWN
        self.countdown = cfg.countdown_seconds
        self.winner: Player | None = None
        self.last_result: TickResult | None = None

        self.sim = Simulation(cfg, rng=self.rng, clock=self.clock)
        second_name = "AI" if self.ai_opponent else "Player 2"
        self.sim.add_player(PLAYER_IDS[0], "Player 1")
        self.sim.add_player(PLAYER_IDS[1], second_name)
        self.sim.reset_round({
            PLAYER_IDS[0]: (self.sim.grid.to_cell(5, 5), Direction.RIGHT),
            PLAYER_IDS[1]: (
                self.sim.grid.to_cell(cfg.columns - 2, cfg.rows - 4),
                Direction.LEFT,
            ),
        })

        self.controllers = {}
        if self.ai_player1:
            self.controllers[PLAYER_IDS[0]] = HeuristicController(cfg.ai, self.rng)
        if self.ai_opponent:
            self.controllers[PLAYER_IDS[1]] = HeuristicController(cfg.ai, self.rng)

        for _ in range(cfg.initial_seeds):
            self.sim.spawn_seed()
        self.last_seed_spawn = self.clock()

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    @staticmethod
    def _player_id(number: int) -> str:
        if number not in (1, 2):
            raise ValueError(f"Player number must be 1 or 2, got {number}.")
        return PLAYER_IDS[number - 1]

    def player(self, number: int) -> Player:
        return self.sim.players[self._player_id(number)]

    def set_direction(self, number: int, direction: Direction) -> bool:
        return self.sim.set_direction(self._player_id(number), direction)

    def can_place_obstacle(self, number: int) -> bool:
        return self.sim.can_place_obstacle(self._player_id(number))

    def place_obstacle(self, number: int) -> bool:
        return self.sim.place_obstacle(self._player_id(number)) is not None

    # ------------------------------------------------------------------
    # Game loop
    # ------------------------------------------------------------------

    def tick_countdown(self) -> bool:
        """Count down one second; returns True once play begins."""
        if self.state != LocalState.COUNTDOWN:
            return False
        self.countdown -= 1
        if self.countdown <= 0:
            self.state = LocalState.PLAYING
            self.last_seed_spawn = self.clock()
            logger.info("Local game started.")
            return True
        return False

    def begin(self) -> None:
        """Skip whatever is left of the countdown."""
        while self.state == LocalState.COUNTDOWN:
            self.tick_countdown()

    def update(self) -> TickResult | None:
        """Run one tick: AI decisions, movement, collisions, seed top-up."""
        if self.state != LocalState.PLAYING:
            return None

        for pid, controller in self.controllers.items():
            if self.sim.players[pid].alive:
                controller.act(self.sim, pid)

        result = self.sim.step()
        self.last_result = result
        if result.finished or self.sim.alive_count <= 1:
            self._finish()
            return result

        now = self.clock()
        if now - self.last_seed_spawn > self.config.seed_spawn_interval_ms:
            self.sim.spawn_seed()
            self.last_seed_spawn = now
        return result

    def _finish(self) -> None:
        self.state = LocalState.GAME_OVER
        self.winner = self.sim.winner()
        logger.info(
            "Local game over after %d ticks; winner: %s.",
            self.sim.tick,
            self.winner.name if self.winner else "draw",
        )

    def get_state(self) -> dict:
        """Return the full, serializable game state."""
        state = self.sim.snapshot()
        state.update({
            "game_state": self.state.value,
            "countdown": self.countdown,
            "winner": self.winner.summary() if self.winner else None,
            "config": self.sim.grid.to_dict(),
        })
        return state
