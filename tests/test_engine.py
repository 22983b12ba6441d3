"""Tests for the tick-based Simulation."""

import numpy as np
import pytest

from snake_fighter.collision import CollisionKind
from snake_fighter.config import GameConfig
from snake_fighter.engine import Simulation
from snake_fighter.items import Obstacle, ObstacleKind
from snake_fighter.snake import Direction

from conftest import FakeClock


def _sim(clock=None, **overrides) -> Simulation:
    cfg = GameConfig(**overrides)
    return Simulation(cfg, rng=np.random.default_rng(0), clock=clock or FakeClock())


def _place(sim, pid, cells, direction=Direction.RIGHT):
    """Overwrite a player's body, head first."""
    player = sim.players[pid]
    player.respawn(cells[0], direction)
    player.snake.extend(cells[1:])
    return player


@pytest.fixture()
def sim():
    s = _sim()
    s.add_player("a", "Ann")
    s.add_player("b", "Bob")
    s.reset_round()
    # Park Bob out of the way so tests only reason about Ann.
    _place(s, "b", [(40, 400)], Direction.RIGHT)
    return s


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


class TestMembership:
    def test_distinct_palette_colours(self):
        s = _sim()
        colors = [s.add_player(str(i), f"p{i}").color for i in range(4)]
        assert len(set(colors)) == 4

    def test_colours_wrap_when_palette_exhausted(self):
        s = _sim(palette=("#000", "#fff"))
        s.add_player("a", "A")
        s.add_player("b", "B")
        c = s.add_player("c", "C")
        assert c.color in ("#000", "#fff")

    def test_duplicate_id_rejected(self):
        s = _sim()
        s.add_player("a", "A")
        with pytest.raises(ValueError):
            s.add_player("a", "A again")

    def test_unknown_player(self, sim):
        with pytest.raises(KeyError):
            sim.set_direction("ghost", Direction.UP)

    def test_remove_player(self, sim):
        assert sim.remove_player("a").id == "a"
        assert sim.remove_player("a") is None
        assert list(sim.players) == ["b"]


class TestResetRound:
    def test_fresh_round_state(self, sim):
        _place(sim, "a", [(100, 100), (80, 100)])
        sim.eliminate("a")
        sim.spawner.place((200, 200))
        sim.tick = 9

        sim.reset_round()
        assert sim.tick == 0
        assert sim.obstacles == []
        assert sim.seeds == []
        for p in sim.players.values():
            assert p.alive
            assert len(p.snake) == 1
            assert p.direction is Direction.RIGHT
            assert sim.grid.distance_to_wall(p.head) >= 1

    def test_explicit_spawns(self, sim):
        sim.reset_round({"a": ((60, 60), Direction.DOWN)})
        a = sim.players["a"]
        assert a.head == (60, 60)
        assert a.direction is Direction.DOWN


# ---------------------------------------------------------------------------
# Movement
# ---------------------------------------------------------------------------


class TestStep:
    def test_single_segment_moves(self, sim):
        _place(sim, "a", [(100, 100)], Direction.RIGHT)
        result = sim.step()
        a = sim.players["a"]
        assert list(a.snake) == [(120, 100)]
        assert len(a.snake) == 1
        assert a.alive
        assert result.tick == 1
        assert not result.finished

    def test_eating_grows_by_one(self, sim):
        _place(sim, "a", [(100, 100)], Direction.RIGHT)
        sim.spawner.place((120, 100))
        result = sim.step()
        a = sim.players["a"]
        assert list(a.snake) == [(120, 100), (100, 100)]
        assert a.score == 1
        assert sim.seeds == []
        assert result.eaten == [(120, 100)]

    def test_length_changes_by_zero_or_one(self, sim):
        rng = np.random.default_rng(5)
        _place(sim, "a", [(300, 240)], Direction.RIGHT)
        _place(sim, "b", [(300, 40)], Direction.LEFT)
        for _ in range(12):
            for _ in range(3):
                sim.spawner.place(sim.grid.random_cell(rng))
            before = {pid: len(p.snake) for pid, p in sim.players.items()}
            result = sim.step()
            if result.finished:
                break
            for pid, p in sim.players.items():
                if p.alive:
                    assert len(p.snake) - before[pid] in (0, 1)
                    assert p.score == len(p.snake) - 1

    def test_direction_committed_on_step(self, sim):
        _place(sim, "a", [(100, 100)], Direction.RIGHT)
        assert sim.set_direction("a", Direction.DOWN)
        assert sim.players["a"].direction is Direction.RIGHT
        sim.step()
        a = sim.players["a"]
        assert a.direction is Direction.DOWN
        assert a.head == (100, 120)

    def test_reverse_is_ignored(self, sim):
        _place(sim, "a", [(100, 100), (80, 100)], Direction.RIGHT)
        assert not sim.set_direction("a", Direction.LEFT)
        sim.step()
        assert sim.players["a"].head == (120, 100)

    def test_last_staged_direction_wins(self, sim):
        _place(sim, "a", [(100, 100)], Direction.RIGHT)
        sim.set_direction("a", Direction.UP)
        sim.set_direction("a", Direction.DOWN)
        sim.step()
        assert sim.players["a"].head == (100, 120)

    def test_turns_on_consecutive_ticks(self, sim):
        _place(sim, "a", [(100, 100)], Direction.RIGHT)
        assert sim.set_direction("a", Direction.UP)
        sim.step()
        assert sim.players["a"].head == (100, 80)
        assert sim.set_direction("a", Direction.LEFT)
        sim.step()
        a = sim.players["a"]
        assert a.head == (80, 80)
        assert a.direction is Direction.LEFT

    def test_following_own_tail_is_safe(self, sim):
        # Head moves onto the cell the tail vacates this tick.
        _place(
            sim, "a",
            [(100, 100), (120, 100), (120, 120), (100, 120)],
            Direction.LEFT,
        )
        sim.set_direction("a", Direction.DOWN)
        result = sim.step()
        assert result.eliminated == []
        assert sim.players["a"].head == (100, 120)

    def test_dead_players_do_not_move(self, sim):
        _place(sim, "a", [(100, 100)], Direction.RIGHT)
        sim.add_player("c", "Cy")
        _place(sim, "c", [(300, 300)], Direction.UP)
        sim.eliminate("a")
        sim.step()
        assert list(sim.players["a"].snake) == [(100, 100)]

    def test_empty_snake_is_an_error(self, sim):
        sim.players["a"].snake.clear()
        with pytest.raises(ValueError, match="empty snake"):
            sim.step()

    def test_capped_length(self):
        s = _sim(max_snake_length=2)
        s.add_player("a", "Ann")
        s.add_player("b", "Bob")
        _place(s, "a", [(100, 100), (80, 100)], Direction.RIGHT)
        _place(s, "b", [(40, 400)], Direction.RIGHT)
        s.spawner.place((120, 100))
        s.step()
        assert len(s.players["a"].snake) == 2
        assert s.seeds == []

    def test_seed_claimed_once(self, sim):
        _place(sim, "a", [(100, 100)], Direction.RIGHT)
        _place(sim, "b", [(140, 100)], Direction.LEFT)
        sim.spawner.place((120, 100))
        result = sim.step()
        assert result.eaten == [(120, 100)]
        lengths = sorted(len(p.snake) for p in sim.players.values())
        assert lengths == [1, 2]


# ---------------------------------------------------------------------------
# Collisions
# ---------------------------------------------------------------------------


class TestCollisions:
    def test_wall_leaves_remains(self, sim):
        a = _place(sim, "a", [(620, 100), (600, 100), (580, 100)], Direction.RIGHT)
        result = sim.step()
        assert not a.alive
        assert [e.player_id for e in result.eliminated] == ["a"]
        assert result.eliminated[0].cause is CollisionKind.WALL
        assert len(sim.obstacles) == len(a.snake) == 3
        assert all(o.kind is ObstacleKind.REMAINS for o in sim.obstacles)

    def test_self_collision(self, sim):
        _place(
            sim, "a",
            [(100, 100), (120, 100), (120, 120), (100, 120), (80, 120)],
            Direction.LEFT,
        )
        sim.set_direction("a", Direction.DOWN)
        result = sim.step()
        assert result.eliminated[0].cause is CollisionKind.SELF

    def test_obstacle_collision(self, sim):
        _place(sim, "a", [(100, 100)], Direction.RIGHT)
        sim.obstacles.append(Obstacle(120, 100))
        result = sim.step()
        assert result.eliminated[0].cause is CollisionKind.OBSTACLE

    def test_head_on_eliminates_both(self, sim):
        _place(sim, "a", [(100, 100)], Direction.RIGHT)
        _place(sim, "b", [(140, 100)], Direction.LEFT)
        result = sim.step()
        assert {e.player_id for e in result.eliminated} == {"a", "b"}
        assert sim.alive_count == 0

        follow_up = sim.step()
        assert follow_up.finished
        assert sim.winner() is None

    def test_single_cells_swapping_eliminate_both(self, sim):
        _place(sim, "a", [(100, 100)], Direction.RIGHT)
        _place(sim, "b", [(120, 100)], Direction.LEFT)
        result = sim.step()
        assert sim.players["a"].head == (120, 100)
        assert sim.players["b"].head == (100, 100)
        assert {e.player_id for e in result.eliminated} == {"a", "b"}
        assert all(e.cause is CollisionKind.OPPONENT for e in result.eliminated)
        assert sim.step().finished
        assert sim.winner() is None

    def test_longer_snakes_swapping_heads_eliminate_both(self, sim):
        _place(sim, "a", [(100, 100), (80, 100)], Direction.RIGHT)
        _place(sim, "b", [(120, 100), (140, 100)], Direction.LEFT)
        result = sim.step()
        assert {e.player_id for e in result.eliminated} == {"a", "b"}
        assert sim.winner() is None

    def test_running_into_opponent_body(self, sim):
        _place(sim, "a", [(100, 100)], Direction.DOWN)
        _place(sim, "b", [(140, 120), (120, 120), (100, 120), (80, 120)], Direction.RIGHT)
        result = sim.step()
        assert [e.player_id for e in result.eliminated] == ["a"]
        assert sim.players["b"].alive

    def test_sole_survivor_wins(self, sim):
        _place(sim, "a", [(620, 100)], Direction.RIGHT)
        sim.step()
        assert sim.winner() is sim.players["b"]
        result = sim.step()
        assert result.finished
        assert sim.tick == 1


# ---------------------------------------------------------------------------
# Obstacles and cooldowns
# ---------------------------------------------------------------------------


class TestPlaceObstacle:
    def test_trades_tail_for_obstacle(self, sim):
        a = _place(sim, "a", [(100, 100), (80, 100), (60, 100)])
        obstacle = sim.place_obstacle("a", now=1000.0)
        assert obstacle is not None
        assert obstacle.cell == (60, 100)
        assert obstacle.kind is ObstacleKind.DOTTED
        assert obstacle.placed_by == "a"
        assert len(a.snake) == 2
        assert a.last_obstacle_placement == 1000.0
        assert not a.can_place_obstacle

    def test_single_segment_cannot_place(self, sim):
        _place(sim, "a", [(100, 100)])
        assert sim.place_obstacle("a", now=0.0) is None
        assert sim.obstacles == []

    def test_dead_player_cannot_place(self, sim):
        _place(sim, "a", [(100, 100), (80, 100)])
        sim.eliminate("a")
        assert not sim.can_place_obstacle("a", now=0.0)

    def test_cooldown_boundary(self, sim):
        _place(sim, "a", [(100, 100), (80, 100), (60, 100), (40, 100)])
        assert sim.place_obstacle("a", now=1000.0) is not None
        assert sim.place_obstacle("a", now=1000.0 + 14999) is None
        assert sim.can_place_obstacle("a", now=1000.0 + 15000)
        assert sim.place_obstacle("a", now=1000.0 + 15000) is not None

    def test_step_refreshes_cached_flag(self):
        clock = FakeClock(5000.0)
        s = _sim(clock=clock)
        s.add_player("a", "Ann")
        s.add_player("b", "Bob")
        a = _place(s, "a", [(100, 100), (80, 100), (60, 100)])
        _place(s, "b", [(40, 400)])
        s.place_obstacle("a")
        s.step()
        assert not a.can_place_obstacle
        clock.advance(15000)
        s.step()
        assert a.can_place_obstacle


# ---------------------------------------------------------------------------
# Seeds and serialization
# ---------------------------------------------------------------------------


class TestSeeds:
    def test_spawn_avoids_snakes_and_obstacles(self, sim):
        for _ in range(5):
            seed = sim.spawn_seed()
            assert seed is not None
            assert seed.cell not in sim.occupied_cells()

    def test_spawn_noop_at_capacity(self, sim):
        while sim.spawn_seed() is not None:
            pass
        assert len(sim.seeds) == sim.config.max_seeds
        before = list(sim.seeds)
        assert sim.spawn_seed() is None
        assert sim.seeds == before


class TestSnapshot:
    def test_snapshot_shape(self, sim):
        sim.spawner.place((200, 200))
        snap = sim.snapshot()
        assert set(snap) == {"tick", "players", "obstacles", "seeds", "players_alive"}
        assert snap["players_alive"] == 2
        assert snap["seeds"] == [{"x": 200, "y": 200}]
        assert {p["id"] for p in snap["players"]} == {"a", "b"}

    def test_scores(self, sim):
        _place(sim, "a", [(100, 100), (80, 100), (60, 100)])
        scores = {s["id"]: s for s in sim.scores()}
        assert scores["a"]["score"] == 2
        assert scores["b"]["score"] == 0
        assert scores["a"]["alive"]
