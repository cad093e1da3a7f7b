"""Tank, entrance and visitor records read and driven by the visitor simulation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .grid import CELL_SIZE, FLOOR_HEIGHT, grid_to_world
from .vector import GridPosition, Vector3


class TankSize(Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    HUGE = "huge"


@dataclass
class Tank:
    """An aquarium tank occupying a width x depth footprint of cells."""
    id: str
    position: GridPosition  # footprint origin (lowest x and z)
    size: TankSize = TankSize.MEDIUM
    width: int = 1
    depth: int = 1
    water_quality: float = 1.0
    fish_ids: List[str] = field(default_factory=list)
    capacity: int = 10

    def footprint(self) -> List[GridPosition]:
        """All cells covered by the tank."""
        return [
            GridPosition(x, self.position.y, z)
            for x in range(self.position.x, self.position.x + self.width)
            for z in range(self.position.z, self.position.z + self.depth)
        ]

    def world_center(self) -> Vector3:
        """Centre of the footprint in world space."""
        cells = self.footprint()
        sum_x = sum(c.x for c in cells)
        sum_z = sum(c.z for c in cells)
        return Vector3(
            sum_x / len(cells) * CELL_SIZE,
            FLOOR_HEIGHT,
            sum_z / len(cells) * CELL_SIZE,
        )


@dataclass
class Entrance:
    id: str
    position: GridPosition
    edge: str = "south"  # "north", "south", "east", "west"
    is_main: bool = False

    def world_position(self) -> Vector3:
        return grid_to_world(self.position)


class VisitorState(Enum):
    """Lifecycle phases of a visitor."""
    ENTERING = "entering"
    EXPLORING = "exploring"
    VIEWING = "viewing"
    SATISFIED = "satisfied"
    LEAVING = "leaving"


@dataclass
class VisitorInterests:
    fish_types: List[str] = field(default_factory=list)
    tank_sizes: List[TankSize] = field(default_factory=list)


@dataclass
class VisitorPreferences:
    viewing_time: Tuple[float, float] = (4000.0, 8000.0)  # ms (min, max)
    walking_speed: float = 0.75                           # world units / s
    satisfaction_threshold: float = 80.0


@dataclass
class Visitor:
    """
    A single aquarium guest.

    Times are in milliseconds. Position and velocity are Vector3 values and
    are replaced, never mutated, when the visitor moves.
    """
    id: str
    position: Vector3
    entry_entrance_id: str
    interests: VisitorInterests
    preferences: VisitorPreferences
    velocity: Vector3 = field(default_factory=Vector3)
    state: VisitorState = VisitorState.ENTERING
    target_position: Optional[Vector3] = None
    target_tank_id: Optional[str] = None
    state_timer: float = 0.0
    total_visit_time: float = 0.0
    satisfaction: float = 0.0
    max_satisfaction: float = 80.0
    tanks_visited: List[str] = field(default_factory=list)
    money: float = 0.0
    money_spent: float = 0.0
    viewing_duration: Optional[float] = None

    # Route currently being followed (smoothed world points)
    route: Optional[List[Vector3]] = None
    route_index: int = 0

    def add_satisfaction(self, amount: float) -> None:
        """Accumulate satisfaction, never decreasing and never past the cap."""
        if amount <= 0:
            return
        self.satisfaction = min(self.satisfaction + amount, self.max_satisfaction)

    def is_satisfied(self) -> bool:
        return self.satisfaction >= self.max_satisfaction

    def record_tank_visit(self, tank_id: str) -> None:
        if tank_id not in self.tanks_visited:
            self.tanks_visited.append(tank_id)

    def spend(self, amount: float) -> float:
        """Spend up to amount from remaining money; returns what was spent."""
        spent = min(max(amount, 0.0), self.money)
        self.money -= spent
        self.money_spent += spent
        return spent

    def clear_route(self) -> None:
        self.route = None
        self.route_index = 0

    def __repr__(self) -> str:
        return (f"Visitor(id={self.id}, pos=({self.position.x:.2f}, "
                f"{self.position.z:.2f}), state={self.state.value}, "
                f"satisfaction={self.satisfaction:.1f}/{self.max_satisfaction:.0f})")
