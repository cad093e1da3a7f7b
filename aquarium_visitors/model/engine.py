"""Simulation engine for the aquarium visitor simulation."""

import logging
from typing import Dict, TYPE_CHECKING

import numpy as np

from .entities import Entrance, Tank, TankSize, VisitorState
from .footfall import FootfallField
from .grid import CellType, GridIndex
from .state import SimulationState, VisitorSnapshot
from .vector import GridPosition
from .visitor_system import VisitorSystem

if TYPE_CHECKING:
    from ..config import SimulationConfig

logger = logging.getLogger(__name__)

_WALL_CELL_TYPES = {
    "facility": CellType.FACILITY,
    "decoration": CellType.DECORATION,
    "path": CellType.PATH,
}


class SimulationEngine:
    """
    Orchestrates the fixed-step simulation loop.

    Implements:
    1. Grid, tank and entrance initialization from config
    2. Interval-based visitor spawning
    3. Visitor system update scaled by game speed
    4. Footfall recording and state snapshot generation
    """

    def __init__(self, config: "SimulationConfig"):
        self.config = config
        self.current_step = 0
        self.time_ms = 0.0
        self.rng = np.random.default_rng(config.seed)

        # Initialize grid
        self.grid = GridIndex(config.grid.width, config.grid.depth,
                              config.grid.height)
        self._setup_walls()

        self.tanks: Dict[str, Tank] = {}
        self.entrances: Dict[str, Entrance] = {}
        self._setup_tanks()
        self._setup_entrances()

        self.visitor_system = VisitorSystem(
            self.grid, self.rng,
            visitor_config=config.visitors,
            movement_config=config.movement
        )
        self.visitor_system.update_references(self.tanks, self.entrances)

        self.footfall = FootfallField.for_grid(
            self.grid,
            config.footfall.diffusion_rate,
            config.footfall.decay_rate
        )

        # Spawning and metrics tracking
        self._next_spawn_ms = 0.0
        self.peak_visitors = 0
        self.peak_viewers = 0

        if not self.entrances:
            logger.warning("Layout has no entrances; no visitors will spawn")

    def _setup_walls(self) -> None:
        """Stamp walls, decorations, paths and holes onto the grid."""
        for wall_spec in self.config.layout.walls:
            if wall_spec.wall_type == "rectangle":
                d = wall_spec.data
                cells = [(x, z)
                         for x in range(d['x'], d['x'] + d['width'])
                         for z in range(d['z'], d['z'] + d['depth'])]
            else:
                cells = [tuple(c) for c in wall_spec.data['coords']]

            for x, z in cells:
                if wall_spec.kind == "hole":
                    self.grid.remove_cell(x, 0, z)
                    continue
                placed = self.grid.place_object(
                    GridPosition(x, 0, z), 1, 1, _WALL_CELL_TYPES[wall_spec.kind])
                if not placed:
                    logger.warning("Cell (%d, %d) unavailable for %s",
                                   x, z, wall_spec.kind)

    def _setup_tanks(self) -> None:
        for spec in self.config.layout.tanks:
            tank = Tank(
                id=spec.id,
                position=GridPosition(spec.x, 0, spec.z),
                size=TankSize(spec.size),
                width=spec.width,
                depth=spec.depth,
                water_quality=spec.water_quality,
                fish_ids=list(spec.fish_ids),
                capacity=spec.capacity
            )
            if not self.grid.place_object(tank.position, tank.width, tank.depth,
                                          CellType.TANK, tank.id):
                raise ValueError(f"Tank {tank.id} overlaps a blocked or missing cell")
            self.tanks[tank.id] = tank

    def _setup_entrances(self) -> None:
        for spec in self.config.layout.entrances:
            entrance = Entrance(
                id=spec.id,
                position=GridPosition(spec.x, 0, spec.z),
                edge=spec.edge,
                is_main=spec.main
            )
            if not self.grid.place_object(entrance.position, 1, 1,
                                          CellType.ENTRANCE, entrance.id):
                raise ValueError(
                    f"Entrance {entrance.id} overlaps a blocked or missing cell")
            self.entrances[entrance.id] = entrance

    # -- spawning -----------------------------------------------------------

    def spawning_open(self) -> bool:
        until = self.config.visitors.spawn_until_ms
        return bool(self.entrances) and (until is None or self.time_ms < until)

    def _choose_entrance(self) -> Entrance:
        """Main entrances win main_entrance_bias of the time, else any other."""
        entrances = list(self.entrances.values())
        main = [e for e in entrances if e.is_main]
        others = [e for e in entrances if not e.is_main]

        if main and (not others or
                     self.rng.random() < self.config.visitors.main_entrance_bias):
            pool = main
        else:
            pool = others or entrances
        return pool[int(self.rng.integers(len(pool)))]

    def _spawn_due_visitors(self) -> None:
        cfg = self.config.visitors
        while self.spawning_open() and self.time_ms >= self._next_spawn_ms:
            self._next_spawn_ms += cfg.spawn_interval_ms
            if self.visitor_system.get_visitor_count() >= cfg.max_visitors:
                continue
            entrance = self._choose_entrance()
            self.visitor_system.spawn_visitor(entrance.id)

    # -- stepping -----------------------------------------------------------

    def step(self) -> SimulationState:
        """
        Execute one fixed time step.

        1. Spawn visitors that are due
        2. Advance the visitor system by time_step_ms x game_speed
        3. Record footfall under walking and viewing visitors, then spread and decay
        4. Return current state snapshot
        """
        self.current_step += 1
        self._spawn_due_visitors()

        delta_ms = self.config.time_step_ms * self.config.game_speed
        self.visitor_system.update(delta_ms)
        self.time_ms += delta_ms

        visitors = self.visitor_system.get_visitors()
        self.footfall.record(visitors)
        self.footfall.update()

        viewers = sum(1 for v in visitors if v.state == VisitorState.VIEWING)
        self.peak_visitors = max(self.peak_visitors, len(visitors))
        self.peak_viewers = max(self.peak_viewers, viewers)

        return self._create_state_snapshot()

    def _create_state_snapshot(self) -> SimulationState:
        """Create immutable snapshot of current simulation state."""
        visitor_snapshots = [
            VisitorSnapshot(
                visitor_id=v.id,
                x=v.position.x,
                z=v.position.z,
                state=v.state.value,
                satisfaction=v.satisfaction
            )
            for v in self.visitor_system.get_visitors()
        ]
        viewing = sum(1 for v in visitor_snapshots
                      if v.state == VisitorState.VIEWING.value)

        return SimulationState(
            step=self.current_step,
            time_ms=self.time_ms,
            visitors=visitor_snapshots,
            footfall=self.footfall.heat.copy(),
            metrics=dict(self._metrics(), viewing=viewing)
        )

    def _metrics(self) -> Dict[str, float]:
        vs = self.visitor_system
        departed = vs.departed_visitors
        active = vs.get_visitors()
        return {
            'active_visitors': len(active),
            'spawned': vs.total_visitors_created,
            'departed': departed,
            'satisfied': vs.satisfied_visitors,
            'timed_out': vs.timed_out_visitors,
            'avg_satisfaction': (
                (vs.departed_satisfaction + sum(v.satisfaction for v in active))
                / max(1, departed + len(active))
            ),
            'avg_visit_time_ms': (vs.departed_visit_time_ms / departed
                                  if departed > 0 else 0.0)
        }

    def is_finished(self) -> bool:
        """Check if simulation should terminate."""
        if self.current_step >= self.config.max_steps:
            return True
        return (not self.spawning_open() and
                self.visitor_system.get_visitor_count() == 0)

    def get_summary(self) -> Dict:
        """Get summary statistics for the simulation."""
        summary = {
            'total_steps': self.current_step,
            'simulated_ms': self.time_ms,
            'peak_visitors': self.peak_visitors,
            'peak_viewers': self.peak_viewers,
            'footfall_total': self.footfall.total(),
            'busiest_cells': self.footfall.hotspots(),
        }
        summary.update(self._metrics())
        return summary
