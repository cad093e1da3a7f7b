"""Visitor lifecycle: spawning, state transitions, movement and satisfaction."""

import logging
import math
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import numpy as np

from ..config import MovementConfig, VisitorConfig
from .entities import (Entrance, Tank, TankSize, Visitor, VisitorInterests,
                       VisitorPreferences, VisitorState)
from .grid import GridIndex, world_to_grid
from .pathfinder import PathFinder
from .poi import POISystem
from .smoothing import PathSmoother
from .steering import (SteeringForce, arrive, avoid, avoid_boundaries,
                       avoid_grid_obstacles, combine_steering,
                       has_line_of_sight, seek, separate, wander)
from .vector import Vector3
from .waypoints import EXPLORATION, WaypointSystem

logger = logging.getLogger(__name__)

ENTERING_TIMEOUT_MS = 3000.0
EXPLORING_TIMEOUT_MS = 15000.0
LEAVING_TIMEOUT_MS = 10000.0

# Satisfaction per second while viewing, before tank modifiers
BASE_SATISFACTION_RATE = 5.0
SIZE_PREFERENCE_MULTIPLIER = 1.5
FISH_COUNT_BONUS = 0.1

# Tank interest scoring used while exploring
SIZE_MATCH_SCORE = 30.0
RANDOM_SCORE_RANGE = 20.0
WATER_QUALITY_SCORE = 10.0
INTEREST_THRESHOLD = 25.0

# Chance that a wandering visitor heads for a scored exploration waypoint
# instead of a random walkable spot
WAYPOINT_WANDER_CHANCE = 0.5
# Distance at which an intermediate route point counts as passed
ROUTE_POINT_REACH = 1.0

ALLOWED_TRANSITIONS: Dict[VisitorState, Tuple[VisitorState, ...]] = {
    VisitorState.ENTERING: (VisitorState.EXPLORING,),
    VisitorState.EXPLORING: (VisitorState.VIEWING, VisitorState.SATISFIED),
    VisitorState.VIEWING: (VisitorState.EXPLORING, VisitorState.SATISFIED),
    VisitorState.SATISFIED: (VisitorState.LEAVING,),
    VisitorState.LEAVING: (),
}


class VisitorSystem:
    """
    Owns every live visitor and advances them once per frame.

    Tanks and entrances are read-only inputs supplied through
    update_references(); points of interest and waypoints are derived from
    them and rebuilt when they change. All randomness comes from the
    injected generator.
    """

    def __init__(self, grid: GridIndex,
                 rng: np.random.Generator,
                 visitor_config: Optional[VisitorConfig] = None,
                 movement_config: Optional[MovementConfig] = None):
        self.grid = grid
        self.rng = rng
        self.visitor_config = visitor_config or VisitorConfig()
        self.movement = movement_config or MovementConfig()

        self.tanks: Dict[str, Tank] = {}
        self.entrances: Dict[str, Entrance] = {}
        self._visitors: Dict[str, Visitor] = {}
        self._layout_signature: Optional[tuple] = None

        self.elapsed_ms = 0.0
        self.pathfinder = PathFinder(grid, self.movement.max_path_iterations)
        self.smoother = PathSmoother(grid)
        self.poi_system = POISystem(grid, rng)
        self.waypoint_system = WaypointSystem(grid, clock=lambda: self.elapsed_ms)

        # Metrics tracking
        self.total_visitors_created = 0
        self.satisfied_visitors = 0
        self.departed_visitors = 0
        self.timed_out_visitors = 0
        self.departed_visit_time_ms = 0.0
        self.departed_satisfaction = 0.0

        self._handlers: Dict[VisitorState, Callable[[Visitor, float], None]] = {
            VisitorState.ENTERING: self._handle_entering,
            VisitorState.EXPLORING: self._handle_exploring,
            VisitorState.VIEWING: self._handle_viewing,
            VisitorState.SATISFIED: self._handle_satisfied,
            VisitorState.LEAVING: self._handle_leaving,
        }

    # -- collaborators --------------------------------------------------------

    def update_references(self, tanks: Mapping[str, Tank],
                          entrances: Mapping[str, Entrance]) -> None:
        """Point the system at the current tanks and entrances."""
        self.tanks = dict(tanks)
        self.entrances = dict(entrances)
        self.poi_system.update_pois(self.tanks)

        signature = tuple(
            (t.id, t.position.x, t.position.z, t.width, t.depth, t.size,
             len(t.fish_ids), t.water_quality)
            for t in self.tanks.values()
        )
        if signature != self._layout_signature:
            self.waypoint_system.generate_waypoints(self.tanks)
            self._layout_signature = signature
            logger.debug("Regenerated %d waypoints",
                         len(self.waypoint_system.waypoints))

    # -- spawning -------------------------------------------------------------

    def spawn_visitor(self, entrance_id: str) -> Visitor:
        """Create a visitor at an entrance. Unknown entrances are an error."""
        entrance = self.entrances.get(entrance_id)
        if entrance is None:
            raise ValueError(f"Entrance {entrance_id} not found")

        cfg = self.visitor_config
        self.total_visitors_created += 1
        visitor_id = f"visitor_{self.total_visitors_created:05d}"

        interests = VisitorInterests(
            fish_types=self._pick_some(cfg.fish_species, 1, 3),
            tank_sizes=[TankSize(s) for s in self._pick_some(cfg.tank_sizes, 1, 2)],
        )
        threshold = math.floor(self.rng.uniform(*cfg.satisfaction_threshold))
        preferences = VisitorPreferences(
            viewing_time=cfg.viewing_time,
            walking_speed=float(self.rng.uniform(*cfg.walking_speed)),
            satisfaction_threshold=threshold,
        )

        visitor = Visitor(
            id=visitor_id,
            position=entrance.world_position(),
            entry_entrance_id=entrance_id,
            interests=interests,
            preferences=preferences,
            max_satisfaction=threshold,
            money=float(self.rng.uniform(*cfg.money)),
        )
        self._visitors[visitor_id] = visitor
        logger.debug("Spawned %s at entrance %s", visitor_id, entrance_id)
        return visitor

    def _pick_some(self, options: List[str], low: int, high: int) -> List[str]:
        """Draw between low and high entries (duplicates collapse)."""
        if not options:
            return []
        count = int(self.rng.integers(low, high + 1))
        picked: List[str] = []
        for _ in range(count):
            choice = options[int(self.rng.integers(len(options)))]
            if choice not in picked:
                picked.append(choice)
        return picked

    # -- per-frame update -----------------------------------------------------

    def update(self, delta_ms: float) -> None:
        """Advance every live visitor by delta_ms of simulated time."""
        self.elapsed_ms += delta_ms
        for visitor in list(self._visitors.values()):
            visitor.state_timer += delta_ms
            visitor.total_visit_time += delta_ms
            self._handlers[visitor.state](visitor, delta_ms)

    def _handle_entering(self, visitor: Visitor, delta_ms: float) -> None:
        if visitor.target_position is None:
            self._set_target(visitor, self._entry_target())

        self._move(visitor, delta_ms)

        if self._is_at_target(visitor) or visitor.state_timer > ENTERING_TIMEOUT_MS:
            self._transition(visitor, VisitorState.EXPLORING)

    def _handle_exploring(self, visitor: Visitor, delta_ms: float) -> None:
        if visitor.is_satisfied() or visitor.state_timer > EXPLORING_TIMEOUT_MS:
            self._transition(visitor, VisitorState.SATISFIED)
            return

        if visitor.target_position is None:
            self._choose_exploration_target(visitor)

        self._move(visitor, delta_ms)

        if not self._is_at_target(visitor):
            return

        if visitor.target_tank_id is not None:
            poi = self.poi_system.get_poi(visitor.target_tank_id)
            if poi is None or not self.poi_system.is_within_viewing_distance(
                    visitor.position, poi, self.movement.arrival_radius):
                logger.debug("%s lost its viewing spot for %s",
                             visitor.id, visitor.target_tank_id)
            elif self.viewer_count(poi.id, exclude=visitor) >= poi.tank.capacity:
                logger.debug("%s found %s full", visitor.id, poi.id)
            else:
                self._transition(visitor, VisitorState.VIEWING)
                return

        # Reached a wander point, or a tank that is gone or full; choose again
        visitor.target_tank_id = None
        self._set_target(visitor, None)

    def _handle_viewing(self, visitor: Visitor, delta_ms: float) -> None:
        visitor.velocity = Vector3()

        tank = self.tanks.get(visitor.target_tank_id) if visitor.target_tank_id else None
        if tank is None:
            # Tank removed while being viewed
            self._transition(visitor, VisitorState.EXPLORING)
            return

        visitor.add_satisfaction(self.calculate_satisfaction_gain(visitor, tank, delta_ms))
        visitor.record_tank_visit(tank.id)

        if visitor.viewing_duration is None:
            visitor.viewing_duration = self._draw_viewing_duration(visitor)
        if visitor.state_timer > visitor.viewing_duration:
            if visitor.is_satisfied():
                self._transition(visitor, VisitorState.SATISFIED)
            else:
                self._transition(visitor, VisitorState.EXPLORING)

    def _handle_satisfied(self, visitor: Visitor, delta_ms: float) -> None:
        entrance = self._find_nearest_entrance(visitor)
        exit_point = entrance.world_position() if entrance else visitor.position
        self._set_target(visitor, exit_point)
        self._transition(visitor, VisitorState.LEAVING)

    def _handle_leaving(self, visitor: Visitor, delta_ms: float) -> None:
        self._move(visitor, delta_ms)

        if self._is_at_target(visitor):
            self.departed_visitors += 1
            self._remove_visitor(visitor)
        elif visitor.state_timer > LEAVING_TIMEOUT_MS:
            self.departed_visitors += 1
            self.timed_out_visitors += 1
            logger.debug("%s timed out while leaving", visitor.id)
            self._remove_visitor(visitor)

    # -- state changes --------------------------------------------------------

    def _transition(self, visitor: Visitor, new_state: VisitorState) -> None:
        previous = visitor.state
        if new_state not in ALLOWED_TRANSITIONS[previous]:
            raise RuntimeError(
                f"Illegal visitor transition {previous.value} -> {new_state.value}")

        if previous == VisitorState.VIEWING:
            visitor.spend(self.visitor_config.viewing_spend)
        # Exploring timeouts also end in satisfied; only full visitors count
        if new_state == VisitorState.SATISFIED and visitor.is_satisfied():
            self.satisfied_visitors += 1

        visitor.state = new_state
        visitor.state_timer = 0.0
        visitor.viewing_duration = None

        # Leaving keeps the exit chosen in the satisfied state
        if new_state != VisitorState.LEAVING:
            visitor.target_position = None
        if new_state != VisitorState.VIEWING:
            visitor.target_tank_id = None
        if new_state == VisitorState.VIEWING:
            visitor.velocity = Vector3()
            visitor.viewing_duration = self._draw_viewing_duration(visitor)

        visitor.clear_route()
        logger.debug("%s: %s -> %s", visitor.id, previous.value, new_state.value)

    def _remove_visitor(self, visitor: Visitor) -> None:
        self._visitors.pop(visitor.id, None)
        self.departed_visit_time_ms += visitor.total_visit_time
        self.departed_satisfaction += visitor.satisfaction
        logger.debug("Removed %s after %.0f ms", visitor.id, visitor.total_visit_time)

    def _set_target(self, visitor: Visitor, target: Optional[Vector3]) -> None:
        visitor.target_position = target
        visitor.clear_route()

    def _draw_viewing_duration(self, visitor: Visitor) -> float:
        low, high = visitor.preferences.viewing_time
        return float(self.rng.uniform(low, high))

    # -- destination choice ---------------------------------------------------

    def _entry_target(self) -> Vector3:
        """World centre, or a random walkable spot if the centre is blocked."""
        center = self.grid.world_center()
        if self.grid.is_walkable_world(center):
            return center
        return self.poi_system.get_random_exploration_position()

    def _choose_exploration_target(self, visitor: Visitor) -> None:
        tank = self._find_interesting_tank(visitor)
        if tank is not None:
            poi = self.poi_system.get_poi(tank.id)
            spot = self.poi_system.calculate_viewing_position(poi) if poi else None
            if spot is not None:
                self._set_target(visitor, spot)
                visitor.target_tank_id = tank.id
                return

        if self.rng.random() < WAYPOINT_WANDER_CHANCE:
            waypoint = self.waypoint_system.find_best_waypoint(
                visitor.position, visitor.interests, visitor.tanks_visited,
                preferred_type=EXPLORATION)
            if waypoint is not None:
                self.waypoint_system.mark_waypoint_visited(waypoint.id)
                self._set_target(visitor, waypoint.position)
                return

        self._set_target(visitor, self.poi_system.get_random_exploration_position())

    def _find_interesting_tank(self, visitor: Visitor) -> Optional[Tank]:
        """Best-scoring unvisited tank with room left, if it clears INTEREST_THRESHOLD."""
        best: Optional[Tank] = None
        best_score = INTEREST_THRESHOLD
        for tank in self.tanks.values():
            if tank.id in visitor.tanks_visited:
                continue
            # Viewers and visitors already walking over both hold a place
            if self.tank_occupancy(tank.id, exclude=visitor) >= tank.capacity:
                continue
            score = self.tank_interest_score(visitor, tank)
            if score > best_score:
                best_score = score
                best = tank
        return best

    def tank_occupancy(self, tank_id: str, exclude: Optional[Visitor] = None) -> int:
        """Visitors viewing tank_id or heading to it."""
        return sum(1 for v in self._visitors.values()
                   if v is not exclude and v.target_tank_id == tank_id)

    def viewer_count(self, tank_id: str, exclude: Optional[Visitor] = None) -> int:
        return sum(1 for v in self._visitors.values()
                   if v is not exclude and v.state == VisitorState.VIEWING
                   and v.target_tank_id == tank_id)

    def tank_interest_score(self, visitor: Visitor, tank: Tank) -> float:
        score = 0.0
        if tank.size in visitor.interests.tank_sizes:
            score += SIZE_MATCH_SCORE
        score += float(self.rng.uniform(0.0, RANDOM_SCORE_RANGE))
        score += tank.water_quality * WATER_QUALITY_SCORE
        return score

    def calculate_satisfaction_gain(self, visitor: Visitor, tank: Tank,
                                    delta_ms: float) -> float:
        """Satisfaction earned by viewing tank for delta_ms."""
        rate = BASE_SATISFACTION_RATE
        if tank.size in visitor.interests.tank_sizes:
            rate *= SIZE_PREFERENCE_MULTIPLIER
        rate *= tank.water_quality
        rate *= 1 + len(tank.fish_ids) * FISH_COUNT_BONUS
        return rate * (delta_ms / 1000.0)

    def _find_nearest_entrance(self, visitor: Visitor) -> Optional[Entrance]:
        nearest: Optional[Entrance] = None
        nearest_distance = math.inf
        for entrance in self.entrances.values():
            distance = visitor.position.distance_to(entrance.world_position())
            if distance < nearest_distance:
                nearest_distance = distance
                nearest = entrance
        return nearest

    # -- movement -------------------------------------------------------------

    def _is_at_target(self, visitor: Visitor) -> bool:
        if visitor.target_position is None:
            return False
        distance = visitor.position.distance_to(visitor.target_position)
        return distance < self.movement.arrival_radius

    def _move(self, visitor: Visitor, delta_ms: float) -> None:
        target = visitor.target_position
        if target is None or self._is_at_target(visitor):
            visitor.velocity = Vector3()
            return

        if self.movement.mode == "direct":
            direction = (target - visitor.position).flattened().normalized()
            visitor.velocity = direction * visitor.preferences.walking_speed
        else:
            visitor.velocity = self._routed_velocity(visitor, target, delta_ms)

        self._integrate(visitor, delta_ms)

    def _routed_velocity(self, visitor: Visitor, target: Vector3,
                         delta_ms: float) -> Vector3:
        """Steer along the planned route; velocity capped at walking speed."""
        if visitor.route is None:
            visitor.route = self._plan_route(visitor.position, target)
            visitor.route_index = 0

        route = visitor.route
        while (visitor.route_index < len(route) - 1 and
               visitor.position.distance_to(route[visitor.route_index]) < ROUTE_POINT_REACH):
            visitor.route_index += 1
        point = route[visitor.route_index]
        final_leg = visitor.route_index == len(route) - 1

        cfg = self.movement
        if final_leg:
            main = arrive(visitor.position, point, visitor.velocity, cfg.slowing_radius)
        else:
            main = seek(visitor.position, point, visitor.velocity)

        forces = [
            SteeringForce(main, 1.0),
            SteeringForce(separate(visitor, self._visitors.values()),
                          cfg.separation_weight),
            SteeringForce(avoid_boundaries(visitor.position, self.grid),
                          cfg.boundary_weight),
        ]
        if not final_leg:
            forces.append(SteeringForce(
                avoid_grid_obstacles(visitor.position, self.grid),
                cfg.obstacle_weight))
            forces.append(SteeringForce(
                avoid(visitor.position, self.tanks.values()),
                cfg.obstacle_weight))
        if visitor.state == VisitorState.EXPLORING:
            forces.append(SteeringForce(wander(visitor.velocity, self.rng),
                                        cfg.wander_weight))

        steering = combine_steering(forces)
        velocity = visitor.velocity + steering * (delta_ms / 1000.0)
        return velocity.flattened().clamped(visitor.preferences.walking_speed)

    def _plan_route(self, position: Vector3, target: Vector3) -> List[Vector3]:
        """
        Smoothed world route ending exactly at target.

        Falls back to a single straight leg when the target is in plain
        view, either end is off the walkable grid, or A* finds nothing.
        """
        start = world_to_grid(position)
        goal = world_to_grid(target)
        if start == goal:
            return [target]
        if (self.smoother.has_line_of_sight(position, target) and
                has_line_of_sight(position, target, self.tanks.values())):
            return [target]
        if not (self.grid.is_walkable(start.x, start.y, start.z) and
                self.grid.is_walkable(goal.x, goal.y, goal.z)):
            logger.debug("Route endpoints not walkable, moving directly")
            return [target]

        cells = self.pathfinder.find_path(start, goal)
        if cells is None:
            logger.debug("No path %s -> %s, moving directly", start, goal)
            return [target]

        points = self.smoother.smooth_path(cells)
        # Drop the start cell centre; finish on the exact target
        return points[1:-1] + [target]

    def _integrate(self, visitor: Visitor, delta_ms: float) -> None:
        """Apply velocity without overshooting the target or entering a blocked cell."""
        step = visitor.velocity * (delta_ms / 1000.0)
        remaining = visitor.target_position - visitor.position
        if step.length() >= remaining.length():
            step = remaining.flattened()

        for candidate in (step, Vector3(step.x, 0.0, 0.0), Vector3(0.0, 0.0, step.z)):
            new_position = visitor.position + candidate
            if (self.grid.is_walkable_world(new_position) or
                    not self.grid.is_walkable_world(visitor.position)):
                visitor.position = new_position
                return
        visitor.velocity = Vector3()

    # -- queries --------------------------------------------------------------

    def get_visitors(self) -> List[Visitor]:
        return list(self._visitors.values())

    def get_visitor_count(self) -> int:
        return len(self._visitors)

    def get_visitor(self, visitor_id: str) -> Optional[Visitor]:
        return self._visitors.get(visitor_id)
