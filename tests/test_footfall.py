"""Footfall heat and busiest-cell tracking."""

import numpy as np
import pytest

from aquarium_visitors.model.entities import (Visitor, VisitorInterests,
                                              VisitorPreferences, VisitorState)
from aquarium_visitors.model.footfall import (DWELL_DEPOSIT, WALK_DEPOSIT,
                                              FootfallField)
from aquarium_visitors.model.grid import CellType, GridIndex
from aquarium_visitors.model.vector import GridPosition, Vector3


def _visitor(x, z, state=VisitorState.EXPLORING, moving=True):
    return Visitor(
        id=f"v_{x}_{z}",
        position=Vector3(x, 0.0, z),
        entry_entrance_id="gate",
        interests=VisitorInterests(),
        preferences=VisitorPreferences(),
        velocity=Vector3(0.5, 0.0, 0.0) if moving else Vector3(),
        state=state,
    )


@pytest.fixture
def open_floor():
    return np.ones((4, 5), dtype=bool)


class TestRecord:

    def test_walkers_and_viewers_deposit(self, open_floor):
        field = FootfallField(open_floor, 0.1, 0.1)
        field.record([
            _visitor(4.0, 2.0),
            _visitor(0.0, 0.0, state=VisitorState.VIEWING, moving=False),
            _visitor(8.0, 6.0, state=VisitorState.ENTERING, moving=False),
        ])

        assert field.heat[1, 2] == WALK_DEPOSIT
        assert field.heat[0, 0] == DWELL_DEPOSIT
        assert field.heat[3, 4] == 0.0
        assert field.visits.sum() == 2

    def test_blocked_and_outside_cells_are_ignored(self, open_floor):
        open_floor[1, 2] = False
        field = FootfallField(open_floor, 0.1, 0.1)
        field.record([_visitor(4.0, 2.0), _visitor(40.0, 2.0)])
        assert field.total() == 0.0
        assert field.visits.sum() == 0

    def test_for_grid_uses_walkable_cells(self):
        grid = GridIndex(5, 4)
        grid.place_object(GridPosition(1, 0, 2), 1, 1, CellType.FACILITY)
        field = FootfallField.for_grid(grid, 0.1, 0.1)
        assert field.heat.shape == (4, 5)
        assert not field.open_mask[2, 1]
        assert field.open_mask.sum() == 19


class TestUpdate:

    def test_spread_conserves_heat_and_skips_blocked_cells(self, open_floor):
        open_floor[1, 1] = False
        field = FootfallField(open_floor, diffusion_rate=1.0, decay_rate=0.0)
        field.heat[0, 0] = 1.0

        field.update()
        assert field.total() == pytest.approx(1.0)
        assert field.heat[1, 1] == 0.0
        # Three open cells around the corner share it
        assert field.heat[0, 0] == pytest.approx(1 / 3)
        assert field.heat[0, 1] == pytest.approx(1 / 3)
        assert field.heat[1, 0] == pytest.approx(1 / 3)

    def test_decay(self, open_floor):
        field = FootfallField(open_floor, diffusion_rate=0.0, decay_rate=0.1)
        field.heat[2, 2] = 2.0
        field.update()
        assert field.total() == pytest.approx(1.8)
        assert field.heat[2, 2] == pytest.approx(1.8)


class TestHotspots:

    def test_busiest_first(self, open_floor):
        field = FootfallField(open_floor, 0.1, 0.1)
        field.visits[2, 3] = 5
        field.visits[0, 1] = 2
        assert field.hotspots(3) == [(3, 2, 5), (1, 0, 2)]
        assert field.hotspots(1) == [(3, 2, 5)]

    def test_empty_field_has_no_hotspots(self, open_floor):
        assert FootfallField(open_floor, 0.1, 0.1).hotspots() == []
