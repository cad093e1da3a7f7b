"""Simulation engine built from configuration."""

import numpy as np
import pytest

from aquarium_visitors.config import (EntranceSpec, GridConfig, LayoutConfig,
                                      SimulationConfig, TankSpec, VisitorConfig,
                                      WallSpec)
from aquarium_visitors.model.engine import SimulationEngine
from aquarium_visitors.model.grid import CellType

STATES = {"entering", "exploring", "viewing", "satisfied", "leaving"}


def _config(**overrides):
    layout = LayoutConfig(
        walls=[
            WallSpec("rectangle", {'x': 0, 'z': 7, 'width': 3, 'depth': 1}),
            WallSpec("points", {'coords': [(9, 9)]}, kind="hole"),
            WallSpec("points", {'coords': [(5, 1)]}, kind="decoration"),
        ],
        tanks=[
            TankSpec("reef", x=6, z=5, size="large", width=2, fish_ids=["a", "b"]),
            TankSpec("bowl", x=2, z=3),
        ],
        entrances=[
            EntranceSpec("main_gate", x=4, z=0, main=True),
            EntranceSpec("side", x=0, z=4, edge="west"),
        ],
    )
    params = dict(grid=GridConfig(10, 10), layout=layout, max_steps=400,
                  seed=3, visitors=VisitorConfig(spawn_interval_ms=1000,
                                                 max_visitors=5))
    params.update(overrides)
    return SimulationConfig(**params)


class TestSetup:

    def test_layout_is_stamped(self):
        engine = SimulationEngine(_config())
        grid = engine.grid
        assert grid.get_cell(1, 0, 7).cell_type == CellType.FACILITY
        assert grid.get_cell(9, 0, 9) is None
        assert grid.get_cell(5, 0, 1).cell_type == CellType.DECORATION
        assert grid.get_cell(7, 0, 5).object_id == "reef"
        assert grid.get_cell(4, 0, 0).cell_type == CellType.ENTRANCE
        assert set(engine.tanks) == {"reef", "bowl"}
        assert engine.entrances["main_gate"].is_main

    def test_overlapping_tank_raises(self):
        config = _config()
        config.layout.tanks.append(TankSpec("clash", x=1, z=7))
        with pytest.raises(ValueError, match="clash"):
            SimulationEngine(config)

    def test_entrance_on_hole_raises(self):
        config = _config()
        config.layout.entrances.append(EntranceSpec("void", x=9, z=9))
        with pytest.raises(ValueError, match="void"):
            SimulationEngine(config)


class TestStepping:

    def test_step_snapshot(self):
        engine = SimulationEngine(_config())
        state = engine.step()

        assert state.step == 1
        assert state.time_ms == 100.0
        assert len(state.visitors) == 1
        assert state.visitors[0].state in STATES
        assert state.footfall.shape == (10, 10)
        assert state.metrics['spawned'] == 1

    def test_game_speed_scales_time(self):
        engine = SimulationEngine(_config(game_speed=2.5))
        engine.step()
        assert engine.time_ms == 250.0
        assert engine.visitor_system.elapsed_ms == 250.0

    def test_spawn_interval_and_cap(self):
        engine = SimulationEngine(_config())
        for _ in range(100):
            engine.step()
            assert engine.visitor_system.get_visitor_count() <= 5
        # One spawn per simulated second, capped by max_visitors
        assert 5 <= engine.visitor_system.total_visitors_created <= 10

    def test_run_to_completion(self):
        engine = SimulationEngine(_config())
        states = []
        while not engine.is_finished():
            states.append(engine.step())

        assert engine.current_step == 400
        assert all(v.state in STATES for s in states for v in s.visitors)
        summary = engine.get_summary()
        assert summary['total_steps'] == 400
        assert summary['spawned'] >= 5
        assert summary['peak_visitors'] >= 1
        assert summary['footfall_total'] > 0
        busiest = summary['busiest_cells']
        assert 1 <= len(busiest) <= 3
        assert all(engine.grid.is_walkable(x, 0, z) for x, z, _ in busiest)
        assert [n for _, _, n in busiest] == sorted((n for _, _, n in busiest), reverse=True)
        assert 0 <= summary['avg_satisfaction'] <= 100

    def test_footfall_stays_off_blocked_cells(self):
        engine = SimulationEngine(_config())
        for _ in range(50):
            state = engine.step()
        blocked = ~engine.grid.walkable_mask()
        assert np.all(state.footfall[blocked] == 0)

    def test_seeded_runs_match(self):
        first = SimulationEngine(_config())
        second = SimulationEngine(_config())
        for _ in range(60):
            a, b = first.step(), second.step()
        assert a.to_csv_rows() == b.to_csv_rows()


class TestFinishing:

    def test_closed_spawning_and_empty_hall_finishes(self):
        config = _config(visitors=VisitorConfig(spawn_until_ms=0))
        engine = SimulationEngine(config)
        assert engine.is_finished()

    def test_no_entrances_means_no_visitors(self):
        config = _config()
        config.layout.entrances = []
        engine = SimulationEngine(config)
        assert engine.is_finished()

    def test_spawn_until_stops_spawning(self):
        config = _config(visitors=VisitorConfig(spawn_interval_ms=500,
                                                spawn_until_ms=1000))
        engine = SimulationEngine(config)
        for _ in range(30):
            engine.step()
        assert engine.visitor_system.total_visitors_created == 2
