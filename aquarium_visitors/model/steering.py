"""
Steering forces for visitor locomotion.

Each function returns a planar force (y = 0) clamped to MAX_FORCE. Forces
are combined per frame with combine_steering(); the caller adds the result
to the velocity and caps the speed.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from .entities import Tank, Visitor
from .grid import CELL_SIZE, GridIndex, grid_to_world, world_to_grid
from .vector import GridPosition, Vector3

MAX_FORCE = 2.0
MAX_SPEED = 1.5

# Clearance around a tank centre used by has_line_of_sight()
TANK_CLEARANCE = 1.2
# Half-width of the random heading change applied by wander()
WANDER_SPREAD = math.pi * 0.15


@dataclass(frozen=True)
class SteeringForce:
    force: Vector3
    weight: float = 1.0


def limit_force(force: Vector3) -> Vector3:
    return force.flattened().clamped(MAX_FORCE)


def seek(position: Vector3, target: Vector3, velocity: Vector3) -> Vector3:
    """Steer at full speed toward target."""
    desired = (target - position).flattened().normalized() * MAX_SPEED
    return limit_force(desired - velocity)


def arrive(position: Vector3, target: Vector3, velocity: Vector3,
           slowing_radius: float = 1.5) -> Vector3:
    """Like seek, but the desired speed ramps down inside slowing_radius."""
    offset = (target - position).flattened()
    distance = offset.length()
    if distance == 0:
        return Vector3()

    speed = MAX_SPEED
    if distance < slowing_radius:
        speed = MAX_SPEED * (distance / slowing_radius)
    desired = offset.normalized() * speed
    return limit_force(desired - velocity)


def avoid(position: Vector3, tanks: Iterable[Tank],
          avoid_distance: float = 2.0) -> Vector3:
    """Repulsion from nearby tank centres, stronger when closer."""
    steer = Vector3()
    for tank in tanks:
        center = tank.world_center()
        away = (position - center).flattened()
        distance = away.length()
        if 0 < distance < avoid_distance:
            strength = (avoid_distance - distance) / avoid_distance
            steer = steer + away.normalized() * (strength * 2.0)
    return limit_force(steer)


def avoid_grid_obstacles(position: Vector3, grid: GridIndex,
                         avoid_distance: float = 1.5) -> Vector3:
    """Repulsion from non-walkable cells around the current cell."""
    steer = Vector3()
    here = world_to_grid(position)
    radius = math.ceil(avoid_distance / CELL_SIZE)

    for dx in range(-radius, radius + 1):
        for dz in range(-radius, radius + 1):
            if dx == 0 and dz == 0:
                continue
            cell = GridPosition(here.x + dx, here.y, here.z + dz)
            if grid.is_walkable(cell.x, cell.y, cell.z):
                continue
            away = (position - grid_to_world(cell)).flattened()
            distance = away.length()
            if 0 < distance < avoid_distance:
                strength = (avoid_distance - distance) / avoid_distance
                steer = steer + away.normalized() * (strength * 1.5)
    return limit_force(steer)


def separate(visitor: Visitor, others: Iterable[Visitor],
             separation_radius: float = 1.0) -> Vector3:
    """Keep distance from neighbouring visitors."""
    steer = Vector3()
    count = 0
    for other in others:
        if other.id == visitor.id:
            continue
        away = (visitor.position - other.position).flattened()
        distance = away.length()
        if 0 < distance < separation_radius:
            steer = steer + away.normalized() / distance
            count += 1

    if count == 0:
        return steer

    desired = (steer / count).normalized() * MAX_SPEED
    return limit_force(desired - visitor.velocity)


def wander(velocity: Vector3, rng: np.random.Generator,
           strength: float = 0.5) -> Vector3:
    """Small random heading change relative to the current direction."""
    heading = velocity.flattened()
    base_angle = 0.0 if heading.is_zero() else math.atan2(heading.z, heading.x)
    angle = base_angle + rng.uniform(-WANDER_SPREAD, WANDER_SPREAD)
    return Vector3(math.cos(angle), 0.0, math.sin(angle)) * strength


def avoid_boundaries(position: Vector3, grid: GridIndex,
                     margin: float = 0.5) -> Vector3:
    """Push back toward the interior when within margin of the grid edge."""
    max_x, max_z = grid.world_bounds()
    fx = 0.0
    fz = 0.0

    if position.x < margin:
        fx += (margin - position.x) * 2
    elif position.x > max_x - margin:
        fx -= (position.x - (max_x - margin)) * 2

    if position.z < margin:
        fz += (margin - position.z) * 2
    elif position.z > max_z - margin:
        fz -= (position.z - (max_z - margin)) * 2

    return limit_force(Vector3(fx, 0.0, fz))


def combine_steering(forces: Sequence[SteeringForce]) -> Vector3:
    """Weighted sum of the active forces, clamped to MAX_FORCE."""
    combined = Vector3()
    for behavior in forces:
        combined = combined + behavior.force * behavior.weight
    return limit_force(combined)


def has_line_of_sight(start: Vector3, end: Vector3,
                      tanks: Iterable[Tank]) -> bool:
    """
    True if no tank centre lies within TANK_CLEARANCE of the segment.

    Tanks behind start or past end are ignored.
    """
    offset = (end - start).flattened()
    distance = offset.length()
    if distance == 0:
        return True
    direction = offset.normalized()

    for tank in tanks:
        center = tank.world_center()
        projection = (center - start).flattened().dot(direction)
        if projection < 0 or projection > distance:
            continue
        closest = start.flattened() + direction * projection
        if closest.distance_to(center.flattened()) < TANK_CLEARANCE:
            return False
    return True
