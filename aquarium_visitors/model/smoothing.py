"""Conversion of grid paths into smooth world-space routes."""

from typing import List, Sequence

from .grid import GridIndex, grid_to_world
from .vector import GridPosition, Vector3

# Samples taken along a segment when testing line of sight
LINE_OF_SIGHT_STEPS = 10
# Interpolated points generated per spline segment
SEGMENTS_PER_SPAN = 5


def catmull_rom(p0: Vector3, p1: Vector3, p2: Vector3, p3: Vector3,
                t: float) -> Vector3:
    """Point at t in [0, 1] on the Catmull-Rom span between p1 and p2."""
    t2 = t * t
    t3 = t2 * t

    v0 = (p2 - p0) * 0.5
    v1 = (p3 - p1) * 0.5

    a = p1 * 2 - p2 * 2 + v0 + v1
    b = p1 * -3 + p2 * 3 - v0 * 2 - v1
    return a * t3 + b * t2 + v0 * t + p1


class PathSmoother:
    """
    Turns an A* cell sequence into a list of world points.

    The cell path is first thinned by line of sight, then curved with a
    Catmull-Rom spline. Spline points that land on a blocked cell are
    replaced by the straight-line point between the same two control
    points, so the curve never crosses an obstacle.
    """

    def __init__(self, grid: GridIndex):
        self.grid = grid

    def smooth_path(self, grid_path: Sequence[GridPosition]) -> List[Vector3]:
        world_points = [grid_to_world(pos) for pos in grid_path]
        if len(world_points) <= 2:
            return world_points

        reduced = self.line_of_sight_reduction(world_points)
        if len(reduced) < 3:
            return reduced

        return self.catmull_rom_smoothing(reduced)

    def has_line_of_sight(self, start: Vector3, end: Vector3) -> bool:
        """Sample the open segment and check each sample's cell."""
        for i in range(1, LINE_OF_SIGHT_STEPS):
            point = start.lerp(end, i / LINE_OF_SIGHT_STEPS)
            if not self.grid.is_walkable_world(point):
                return False
        return True

    def line_of_sight_reduction(self, points: List[Vector3]) -> List[Vector3]:
        """
        Keep only the points needed to stay on walkable straight lines.

        From each kept point the scan runs forward and stops at the first
        point it cannot see, even if a later one is visible again.
        """
        if len(points) <= 2:
            return list(points)

        reduced = [points[0]]
        current = 0
        while current < len(points) - 1:
            furthest = current + 1
            for candidate in range(current + 2, len(points)):
                if not self.has_line_of_sight(points[current], points[candidate]):
                    break
                furthest = candidate
            reduced.append(points[furthest])
            current = furthest
        return reduced

    def catmull_rom_smoothing(self, points: List[Vector3]) -> List[Vector3]:
        smoothed = [points[0]]
        last = len(points) - 1

        for i in range(last):
            p0 = points[i - 1] if i > 0 else points[0]
            p1 = points[i]
            p2 = points[i + 1]
            p3 = points[i + 2] if i < last - 1 else points[last]

            for j in range(1, SEGMENTS_PER_SPAN + 1):
                t = j / SEGMENTS_PER_SPAN
                point = catmull_rom(p0, p1, p2, p3, t)
                if self.grid.is_walkable_world(point):
                    smoothed.append(point)
                else:
                    smoothed.append(p1.lerp(p2, t))

        return smoothed
