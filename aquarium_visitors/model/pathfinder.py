"""A* search over the grid index."""

import heapq
import itertools
import logging
from typing import Dict, List, Optional, Set, Tuple

from .grid import GridIndex
from .vector import GridPosition

logger = logging.getLogger(__name__)

# Expansion budget per search; protects the frame from worst-case searches
DEFAULT_MAX_ITERATIONS = 1000


def chebyshev(a: GridPosition, b: GridPosition) -> int:
    """Admissible heuristic for 8-directional movement with unit step cost."""
    return max(abs(a.x - b.x), abs(a.z - b.z))


class PathFinder:
    """
    Grid A* with a bounded number of node expansions.

    Every step (cardinal or diagonal) costs 1, so the result has the fewest
    possible cells. Among equal f-scores the node queued first is expanded
    first, which keeps results reproducible.
    """

    def __init__(self, grid: GridIndex,
                 max_iterations: int = DEFAULT_MAX_ITERATIONS):
        self.grid = grid
        self.max_iterations = max_iterations

    def find_path(self, start: GridPosition,
                  goal: GridPosition) -> Optional[List[GridPosition]]:
        """
        Return the cells from start to goal inclusive, or None.

        None means either the open set ran dry (goal unreachable) or the
        iteration budget was exhausted.
        """
        grid = self.grid
        start_key = grid.get_cell_key(start.x, start.y, start.z)
        goal_key = grid.get_cell_key(goal.x, goal.y, goal.z)

        if start_key == goal_key:
            return [start]

        counter = itertools.count()
        open_heap: List[Tuple[int, int, str]] = []
        closed_set: Set[str] = set()
        came_from: Dict[str, str] = {}
        g_score: Dict[str, int] = {start_key: 0}
        f_score: Dict[str, int] = {start_key: chebyshev(start, goal)}
        heapq.heappush(open_heap, (f_score[start_key], next(counter), start_key))

        iterations = 0
        while open_heap:
            if iterations >= self.max_iterations:
                logger.warning(
                    "Pathfinding gave up after %d iterations (%s -> %s)",
                    iterations, start_key, goal_key)
                return None

            _f, _order, current_key = heapq.heappop(open_heap)
            if current_key in closed_set:
                continue  # stale heap entry
            iterations += 1

            if current_key == goal_key:
                return self._reconstruct(came_from, current_key)

            closed_set.add(current_key)
            current = grid.parse_cell_key(current_key)

            for neighbor in grid.get_neighbors(current):
                neighbor_key = grid.get_cell_key(neighbor.x, neighbor.y, neighbor.z)
                if neighbor_key in closed_set:
                    continue
                if not grid.is_walkable(neighbor.x, neighbor.y, neighbor.z):
                    continue

                tentative_g = g_score[current_key] + 1
                if tentative_g >= g_score.get(neighbor_key, float("inf")):
                    continue

                came_from[neighbor_key] = current_key
                g_score[neighbor_key] = tentative_g
                f_score[neighbor_key] = tentative_g + chebyshev(neighbor.position, goal)
                heapq.heappush(open_heap,
                               (f_score[neighbor_key], next(counter), neighbor_key))

        logger.debug("No path from %s to %s", start_key, goal_key)
        return None

    def _reconstruct(self, came_from: Dict[str, str],
                     current_key: str) -> List[GridPosition]:
        path = [self.grid.parse_cell_key(current_key)]
        while current_key in came_from:
            current_key = came_from[current_key]
            path.append(self.grid.parse_cell_key(current_key))
        path.reverse()
        return path
