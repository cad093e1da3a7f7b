"""Pre-computed, interest-scored destinations for wandering visitors."""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional

import numpy as np

from .entities import Tank, TankSize, VisitorInterests
from .grid import CELL_SIZE, FLOOR_HEIGHT, CellType, GridIndex, world_to_grid
from .vector import Vector3

VIEWING = "viewing"
EXPLORATION = "exploration"
REST = "rest"

VIEWING_DISTANCE = 1.8
EXPLORATION_SPACING = 1.5
EXPLORATION_CLEARANCE = 1.3
REST_CLEARANCE = 2.5
EXPLORATION_INTEREST = 0.3
REST_INTEREST = 0.1

OPTIMAL_DISTANCE = 2.0
DISTANCE_PENALTY = 0.1
FRESHNESS_WINDOW_MS = 10000.0
MAX_FRESHNESS_BONUS = 0.5
VIEWING_BONUS = 0.3

SIZE_MULTIPLIERS = {
    TankSize.SMALL: 1.0,
    TankSize.MEDIUM: 1.2,
    TankSize.LARGE: 1.5,
}

_BLOCKING_TYPES = (CellType.TANK, CellType.FACILITY)


@dataclass
class Waypoint:
    id: str
    position: Vector3
    type: str  # "exploration", "viewing" or "rest"
    interest: float
    associated_tank_id: Optional[str] = None
    last_visited: Optional[float] = None  # ms, None until first visit
    viewing_spots: List[Vector3] = field(default_factory=list)


def calculate_tank_interest(tank: Tank) -> float:
    """Base interest of a tank: fish, water quality and size, capped at 1."""
    interest = 0.5
    interest += len(tank.fish_ids) * 0.1
    interest += tank.water_quality * 0.3
    interest *= SIZE_MULTIPLIERS.get(tank.size, 1.0)
    return min(interest, 1.0)


class WaypointSystem:
    """
    Holds every candidate destination for the current tank layout.

    The collection is rebuilt from scratch by generate_waypoints() whenever
    tanks change. Visit timestamps use the clock passed in (simulation ms).
    """

    def __init__(self, grid: GridIndex, clock: Callable[[], float]):
        self.grid = grid
        self.clock = clock
        self.waypoints: Dict[str, Waypoint] = {}

    def generate_waypoints(self, tanks: Mapping[str, Tank]) -> None:
        self.waypoints.clear()
        for tank in tanks.values():
            self._generate_viewing_waypoints(tank)
        self._generate_exploration_waypoints()
        self._generate_rest_waypoints()

    def _generate_viewing_waypoints(self, tank: Tank) -> None:
        center = tank.world_center()
        interest = calculate_tank_interest(tank)
        # Extra reach for multi-cell tanks so the spot clears the footprint
        reach_x = VIEWING_DISTANCE + (tank.width - 1) * CELL_SIZE / 2
        reach_z = VIEWING_DISTANCE + (tank.depth - 1) * CELL_SIZE / 2
        offsets = [
            Vector3(0, 0, reach_z),    # south (front)
            Vector3(0, 0, -reach_z),   # north (back)
            Vector3(reach_x, 0, 0),    # east
            Vector3(-reach_x, 0, 0),   # west
        ]

        for i, offset in enumerate(offsets):
            position = center + offset
            if not self._is_position_valid(position):
                continue
            waypoint_id = f"viewing_{tank.id}_{i}"
            self.waypoints[waypoint_id] = Waypoint(
                id=waypoint_id,
                position=position,
                type=VIEWING,
                interest=interest,
                associated_tank_id=tank.id,
                viewing_spots=[position],
            )

    def _generate_exploration_waypoints(self) -> None:
        max_x, max_z = self.grid.world_bounds()
        xs = np.arange(EXPLORATION_SPACING, max_x, EXPLORATION_SPACING)
        zs = np.arange(EXPLORATION_SPACING, max_z, EXPLORATION_SPACING)

        for i, x in enumerate(xs):
            for j, z in enumerate(zs):
                position = Vector3(float(x), FLOOR_HEIGHT, float(z))
                if not self._has_clearance(position, EXPLORATION_CLEARANCE):
                    continue
                waypoint_id = f"exploration_{i}_{j}"
                self.waypoints[waypoint_id] = Waypoint(
                    id=waypoint_id,
                    position=position,
                    type=EXPLORATION,
                    interest=EXPLORATION_INTEREST,
                )

    def _generate_rest_waypoints(self) -> None:
        max_x, max_z = self.grid.world_bounds()
        corners = [
            Vector3(0.5, FLOOR_HEIGHT, 0.5),
            Vector3(max_x - 0.5, FLOOR_HEIGHT, 0.5),
            Vector3(0.5, FLOOR_HEIGHT, max_z - 0.5),
            Vector3(max_x - 0.5, FLOOR_HEIGHT, max_z - 0.5),
        ]
        for i, position in enumerate(corners):
            if not self._has_clearance(position, REST_CLEARANCE):
                continue
            waypoint_id = f"rest_corner_{i}"
            self.waypoints[waypoint_id] = Waypoint(
                id=waypoint_id,
                position=position,
                type=REST,
                interest=REST_INTEREST,
            )

    def _is_position_valid(self, position: Vector3) -> bool:
        """Inside the grid and on a walkable cell."""
        cell = world_to_grid(position)
        if not self.grid.in_bounds(cell.x, cell.z):
            return False
        return self.grid.is_walkable(cell.x, cell.y, cell.z)

    def _has_clearance(self, position: Vector3, min_distance: float) -> bool:
        """Walkable, and no tank or facility cell within min_distance."""
        if not self._is_position_valid(position):
            return False

        here = world_to_grid(position)
        radius = int(np.ceil(min_distance / CELL_SIZE))
        for dx in range(-radius, radius + 1):
            for dz in range(-radius, radius + 1):
                x, z = here.x + dx, here.z + dz
                if not self.grid.in_bounds(x, z):
                    continue
                cell = self.grid.get_cell(x, here.y, z)
                if cell is None or cell.cell_type not in _BLOCKING_TYPES:
                    continue
                if np.hypot(dx, dz) * CELL_SIZE < min_distance:
                    return False
        return True

    def find_best_waypoint(self, position: Vector3,
                           interests: VisitorInterests,
                           visited_tank_ids: Iterable[str],
                           preferred_type: Optional[str] = None,
                           now: Optional[float] = None) -> Optional[Waypoint]:
        """Highest scoring eligible waypoint, or None if nothing qualifies."""
        now = self.clock() if now is None else now
        visited = set(visited_tank_ids)
        best: Optional[Waypoint] = None
        best_score = -1.0

        for waypoint in self.waypoints.values():
            if preferred_type is not None and waypoint.type != preferred_type:
                continue
            if waypoint.associated_tank_id in visited:
                continue

            score = self.calculate_waypoint_score(waypoint, position, interests, now)
            if score > best_score:
                best_score = score
                best = waypoint

        return best

    def calculate_waypoint_score(self, waypoint: Waypoint, position: Vector3,
                                 interests: VisitorInterests,
                                 now: float) -> float:
        # interests are reserved for species matching once tanks expose it
        score = waypoint.interest

        distance = position.distance_to(waypoint.position)
        score -= abs(distance - OPTIMAL_DISTANCE) * DISTANCE_PENALTY

        if waypoint.last_visited is None:
            score += MAX_FRESHNESS_BONUS
        else:
            since = now - waypoint.last_visited
            score += min(since / FRESHNESS_WINDOW_MS, MAX_FRESHNESS_BONUS)

        if waypoint.type == VIEWING:
            score += VIEWING_BONUS

        return max(0.0, score)

    def mark_waypoint_visited(self, waypoint_id: str,
                              now: Optional[float] = None) -> None:
        waypoint = self.waypoints.get(waypoint_id)
        if waypoint is not None:
            waypoint.last_visited = self.clock() if now is None else now

    def get_waypoint(self, waypoint_id: str) -> Optional[Waypoint]:
        return self.waypoints.get(waypoint_id)

    def get_waypoints_by_type(self, waypoint_type: str) -> List[Waypoint]:
        return [wp for wp in self.waypoints.values() if wp.type == waypoint_type]

    def get_all_waypoints(self) -> List[Waypoint]:
        return list(self.waypoints.values())
