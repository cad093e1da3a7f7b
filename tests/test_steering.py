"""Steering force functions."""

import math

import numpy as np
import pytest

from aquarium_visitors.model.entities import (Visitor, VisitorInterests,
                                              VisitorPreferences)
from aquarium_visitors.model.grid import CellType
from aquarium_visitors.model.steering import (MAX_FORCE, SteeringForce, arrive,
                                              avoid, avoid_boundaries,
                                              avoid_grid_obstacles,
                                              combine_steering,
                                              has_line_of_sight, seek, separate,
                                              wander)
from aquarium_visitors.model.vector import GridPosition, Vector3

from conftest import make_tank


def _visitor(visitor_id, x, z):
    return Visitor(id=visitor_id, position=Vector3(x, 0, z),
                   entry_entrance_id="gate",
                   interests=VisitorInterests(),
                   preferences=VisitorPreferences())


def _approx(vector, x, z):
    assert vector.x == pytest.approx(x)
    assert vector.y == 0
    assert vector.z == pytest.approx(z)


class TestSeekArrive:

    def test_seek_from_rest(self):
        _approx(seek(Vector3(), Vector3(10, 0, 0), Vector3()), 1.5, 0.0)

    def test_seek_is_clamped(self):
        force = seek(Vector3(), Vector3(10, 0, 0), Vector3(-1.5, 0, 0))
        _approx(force, MAX_FORCE, 0.0)

    def test_seek_ignores_height(self):
        force = seek(Vector3(0, 0, 0), Vector3(0, 5, 3), Vector3())
        _approx(force, 0.0, 1.5)

    def test_arrive_slows_inside_radius(self):
        force = arrive(Vector3(), Vector3(0.75, 0, 0), Vector3())
        _approx(force, 0.75, 0.0)

    def test_arrive_full_speed_outside_radius(self):
        force = arrive(Vector3(), Vector3(0, 0, 5), Vector3())
        _approx(force, 0.0, 1.5)

    def test_arrive_at_target_is_zero(self):
        assert arrive(Vector3(1, 0, 1), Vector3(1, 0, 1), Vector3(1, 0, 0)).is_zero()


class TestAvoidance:

    def test_avoid_pushes_away_from_tank(self):
        tank = make_tank(x=2, z=2)  # centre (4, 0, 4)
        _approx(avoid(Vector3(5, 0, 4), [tank]), 1.0, 0.0)

    def test_avoid_ignores_distant_tanks(self):
        tank = make_tank(x=2, z=2)
        assert avoid(Vector3(10, 0, 10), [tank]).is_zero()

    def test_avoid_grid_obstacles(self, open_grid):
        open_grid.place_object(GridPosition(3, 0, 2), 1, 1, CellType.FACILITY)
        force = avoid_grid_obstacles(Vector3(4.8, 0, 4), open_grid)
        _approx(force, -0.3, 0.0)

    def test_avoid_grid_obstacles_open_floor(self, open_grid):
        assert avoid_grid_obstacles(Vector3(8, 0, 8), open_grid).is_zero()

    def test_separate_from_close_visitor(self):
        me = _visitor("a", 0, 0)
        other = _visitor("b", 0.5, 0)
        _approx(separate(me, [me, other]), -1.5, 0.0)

    def test_separate_alone(self):
        me = _visitor("a", 0, 0)
        assert separate(me, [me, _visitor("b", 5, 5)]).is_zero()

    def test_avoid_boundaries(self, open_grid):
        _approx(avoid_boundaries(Vector3(0.2, 0, 9), open_grid), 0.6, 0.0)
        _approx(avoid_boundaries(Vector3(9, 0, 17.9), open_grid), 0.0, -0.8)
        assert avoid_boundaries(Vector3(9, 0, 9), open_grid).is_zero()


class TestWander:

    def test_wander_from_rest_heads_forward(self):
        rng = np.random.default_rng(0)
        for _ in range(20):
            force = wander(Vector3(), rng)
            assert force.length() == pytest.approx(0.5)
            assert force.x > math.cos(math.pi * 0.15) * 0.5 - 1e-9

    def test_wander_follows_heading(self):
        rng = np.random.default_rng(0)
        force = wander(Vector3(0, 0, -1), rng, strength=1.0)
        assert force.z < 0
        assert force.length() == pytest.approx(1.0)


class TestCombine:

    def test_weighted_sum(self):
        combined = combine_steering([
            SteeringForce(Vector3(1, 0, 0), 1.0),
            SteeringForce(Vector3(0, 0, 1), 0.5),
        ])
        _approx(combined, 1.0, 0.5)

    def test_result_is_clamped(self):
        combined = combine_steering([SteeringForce(Vector3(2, 0, 0), 1.0),
                                     SteeringForce(Vector3(2, 0, 0), 1.0)])
        _approx(combined, MAX_FORCE, 0.0)

    def test_empty(self):
        assert combine_steering([]).is_zero()


class TestTankLineOfSight:

    def test_blocked_through_tank(self):
        tank = make_tank(x=2, z=2)
        assert not has_line_of_sight(Vector3(0, 0, 4), Vector3(8, 0, 4), [tank])

    def test_clear_beside_tank(self):
        tank = make_tank(x=2, z=2)
        assert has_line_of_sight(Vector3(0, 0, 0), Vector3(8, 0, 0), [tank])

    def test_tank_past_the_end_is_ignored(self):
        tank = make_tank(x=2, z=2)
        assert has_line_of_sight(Vector3(0, 0, 4), Vector3(2, 0, 4), [tank])
