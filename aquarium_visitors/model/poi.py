"""Points of interest derived from tanks."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

import numpy as np

from .entities import Tank
from .grid import CELL_SIZE, FLOOR_HEIGHT, GridIndex, grid_to_world
from .vector import GridPosition, Vector3

logger = logging.getLogger(__name__)

CARDINAL_DIRECTIONS = [(0, -1), (1, 0), (0, 1), (-1, 0)]  # N, E, S, W
EXPLORATION_ATTEMPTS = 50
VIEWING_DISTANCE = 2.5


@dataclass(frozen=True)
class POI:
    id: str  # same as the tank id
    position: Vector3
    tank: Tank


class POISystem:
    """Keeps one POI per tank and finds places to stand and look at them."""

    def __init__(self, grid: GridIndex, rng: np.random.Generator):
        self.grid = grid
        self.rng = rng
        self.pois: Dict[str, POI] = {}

    def update_pois(self, tanks: Mapping[str, Tank]) -> None:
        """Rebuild the POI collection from the current tanks."""
        self.pois = {
            tank.id: POI(id=tank.id, position=tank.world_center(), tank=tank)
            for tank in tanks.values()
        }

    def get_pois(self) -> List[POI]:
        return list(self.pois.values())

    def get_poi(self, poi_id: str) -> Optional[POI]:
        return self.pois.get(poi_id)

    def get_random_poi(self) -> Optional[POI]:
        pois = self.get_pois()
        if not pois:
            return None
        return pois[int(self.rng.integers(len(pois)))]

    def calculate_viewing_position(self, poi: POI) -> Optional[Vector3]:
        """
        Pick a walkable spot next to the tank, nudged toward the glass.

        Candidates are the cardinal neighbours of every footprint cell that
        are not themselves part of the footprint. They are tried in random
        order; the first walkable one wins.
        """
        footprint = set(poi.tank.footprint())
        candidates = []
        for cell in poi.tank.footprint():
            for dx, dz in CARDINAL_DIRECTIONS:
                spot = GridPosition(cell.x + dx, cell.y, cell.z + dz)
                if spot in footprint:
                    continue
                if (spot, dx, dz) not in candidates:
                    candidates.append((spot, dx, dz))

        order = self.rng.permutation(len(candidates))
        for index in order:
            spot, dx, dz = candidates[int(index)]
            if not self.grid.is_walkable(spot.x, spot.y, spot.z):
                continue

            toward = float(self.rng.uniform(0.2, 0.8))
            sideways = float(self.rng.uniform(-0.9, 0.9))
            # Step back toward the tank along the axis we came out on,
            # spread out along the other one
            offset_x = -dx * toward if dx else sideways
            offset_z = -dz * toward if dz else sideways
            base = grid_to_world(spot)
            return Vector3(base.x + offset_x, FLOOR_HEIGHT, base.z + offset_z)

        logger.debug("No viewing position available for tank %s", poi.id)
        return None

    def get_random_exploration_position(self) -> Vector3:
        """A random walkable spot, or the world centre if none is found."""
        for _ in range(EXPLORATION_ATTEMPTS):
            x = int(self.rng.integers(0, self.grid.width))
            z = int(self.rng.integers(0, self.grid.depth))
            if self.grid.is_walkable(x, 0, z):
                jitter_x, jitter_z = self.rng.uniform(-0.25, 0.25, size=2)
                return Vector3(x * CELL_SIZE + float(jitter_x), FLOOR_HEIGHT,
                               z * CELL_SIZE + float(jitter_z))

        logger.debug("No walkable exploration position found, using centre")
        return self.grid.world_center()

    def is_within_viewing_distance(self, position: Vector3, poi: POI,
                                   tolerance: float = 0.0) -> bool:
        """Close enough to any cell of the tank to look at it."""
        return any(
            position.distance_to(grid_to_world(cell)) <= VIEWING_DISTANCE + tolerance
            for cell in poi.tank.footprint()
        )
