"""Tests for Direction and Player."""

import pytest

from snake_fighter.snake import Direction, Player


class TestDirection:
    def test_opposites(self):
        assert Direction.UP.opposite is Direction.DOWN
        assert Direction.LEFT.opposite is Direction.RIGHT
        assert Direction.RIGHT.is_reverse_of(Direction.LEFT)
        assert not Direction.RIGHT.is_reverse_of(Direction.UP)

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("up", Direction.UP),
            ("LEFT", Direction.LEFT),
            ({"x": 1, "y": 0}, Direction.RIGHT),
            ([0, 1], Direction.DOWN),
            (Direction.UP, Direction.UP),
        ],
    )
    def test_coerce(self, raw, expected):
        assert Direction.coerce(raw) is expected

    @pytest.mark.parametrize(
        "raw", ["sideways", {"x": 1, "y": 1}, {"x": 2, "y": 0}, 5, [1]],
    )
    def test_coerce_rejects_garbage(self, raw):
        with pytest.raises(ValueError):
            Direction.coerce(raw)


class TestPlayer:
    def test_new_player(self):
        p = Player("a", "Ann", "#fff", start=(100, 100))
        assert p.head == (100, 100)
        assert len(p) == 1
        assert p.score == 0
        assert p.alive
        assert p.direction is Direction.RIGHT
        assert p.next_direction is Direction.RIGHT

    def test_score_tracks_length(self):
        p = Player("a", "Ann", "#fff", start=(100, 100))
        p.snake.extend([(80, 100), (60, 100)])
        assert p.score == 2

    def test_steer_ignores_reverse(self):
        p = Player("a", "Ann", "#fff")
        assert not p.steer(Direction.LEFT)
        assert p.next_direction is Direction.RIGHT

    def test_steer_checks_committed_heading(self):
        p = Player("a", "Ann", "#fff")
        assert p.steer(Direction.UP)
        # DOWN reverses UP but not the committed RIGHT heading.
        assert p.steer(Direction.DOWN)
        assert p.next_direction is Direction.DOWN

    def test_dead_player_cannot_steer(self):
        p = Player("a", "Ann", "#fff")
        p.alive = False
        assert not p.steer(Direction.UP)

    def test_respawn_resets_state(self):
        p = Player("a", "Ann", "#fff", start=(100, 100))
        p.snake.extend([(80, 100), (60, 100)])
        p.alive = False
        p.last_obstacle_placement = 5.0
        p.can_place_obstacle = False
        p.respawn((40, 40), Direction.DOWN)
        assert list(p.snake) == [(40, 40)]
        assert p.alive
        assert p.direction is Direction.DOWN
        assert p.last_obstacle_placement is None
        assert p.can_place_obstacle

    def test_empty_snake_is_an_error(self):
        p = Player("a", "Ann", "#fff")
        p.snake.clear()
        with pytest.raises(ValueError, match="empty snake"):
            _ = p.head

    def test_to_dict(self):
        p = Player("a", "Ann", "#fff", start=(100, 100))
        d = p.to_dict()
        assert d["snake"] == [{"x": 100, "y": 100}]
        assert d["score"] == 0
        assert d["can_place_obstacle"] is True
