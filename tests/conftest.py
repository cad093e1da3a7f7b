"""Shared fixtures for the aquarium visitor tests."""

import numpy as np
import pytest

from aquarium_visitors.config import MovementConfig, VisitorConfig
from aquarium_visitors.model.entities import Entrance, Tank, TankSize
from aquarium_visitors.model.grid import CellType, GridIndex
from aquarium_visitors.model.vector import GridPosition
from aquarium_visitors.model.visitor_system import VisitorSystem


def make_tank(tank_id="t1", x=2, z=2, size=TankSize.MEDIUM, width=1, depth=1,
              water_quality=1.0, fish=0, capacity=10):
    return Tank(
        id=tank_id,
        position=GridPosition(x, 0, z),
        size=size,
        width=width,
        depth=depth,
        water_quality=water_quality,
        fish_ids=[f"{tank_id}_fish_{i}" for i in range(fish)],
        capacity=capacity,
    )


def place_tank(grid: GridIndex, tank: Tank) -> Tank:
    assert grid.place_object(tank.position, tank.width, tank.depth,
                             CellType.TANK, tank.id)
    return tank


def place_entrance(grid: GridIndex, entrance_id="gate", x=0, z=0,
                   is_main=True) -> Entrance:
    entrance = Entrance(id=entrance_id, position=GridPosition(x, 0, z),
                        is_main=is_main)
    assert grid.place_object(entrance.position, 1, 1, CellType.ENTRANCE,
                             entrance.id)
    return entrance


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def open_grid():
    """10 x 10 single-layer grid with nothing placed."""
    return GridIndex(10, 10)


@pytest.fixture
def hall(open_grid):
    """Open grid with one large 2x2 tank off centre and a main entrance at the origin."""
    tank = place_tank(open_grid, make_tank("reef", x=6, z=6, size=TankSize.LARGE,
                                           width=2, depth=2, fish=5))
    entrance = place_entrance(open_grid)
    return open_grid, {tank.id: tank}, {entrance.id: entrance}


def build_system(grid, tanks, entrances, rng, mode="routed", **visitor_overrides):
    system = VisitorSystem(
        grid, rng,
        visitor_config=VisitorConfig(**visitor_overrides),
        movement_config=MovementConfig(mode=mode),
    )
    system.update_references(tanks, entrances)
    return system
