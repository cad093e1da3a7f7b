"""Grid occupancy index for the aquarium floor."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from .vector import GridPosition, Vector3

# World units per grid cell along x and z
CELL_SIZE = 2.0
# World-space height of the walking surface
FLOOR_HEIGHT = 0.0


class CellType(Enum):
    """Category tag stored on every grid cell."""
    EMPTY = "empty"
    TANK = "tank"
    PATH = "path"
    FACILITY = "facility"
    DECORATION = "decoration"
    ENTRANCE = "entrance"


# Cell types that leave the cell unoccupied when placed
_OPEN_TYPES = (CellType.EMPTY, CellType.PATH)

# Integer codes used by as_array(); -1 marks a missing cell
CELL_CODES = {
    CellType.EMPTY: 0,
    CellType.PATH: 1,
    CellType.TANK: 2,
    CellType.FACILITY: 3,
    CellType.DECORATION: 4,
    CellType.ENTRANCE: 5,
}
MISSING_CODE = -1

_NEIGHBOR_OFFSETS = [
    (0, 1), (1, 0), (0, -1), (-1, 0),      # cardinal
    (1, 1), (1, -1), (-1, -1), (-1, 1),    # diagonal
]


@dataclass
class GridCell:
    x: int
    y: int
    z: int
    occupied: bool = False
    cell_type: CellType = CellType.EMPTY
    object_id: Optional[str] = None

    @property
    def position(self) -> GridPosition:
        return GridPosition(self.x, self.y, self.z)


def grid_to_world(position: GridPosition) -> Vector3:
    """Centre of a cell in world space."""
    return Vector3(position.x * CELL_SIZE, FLOOR_HEIGHT, position.z * CELL_SIZE)


def world_to_grid(position: Vector3) -> GridPosition:
    """Nearest cell to a world point (half-up rounding, ground layer)."""
    return GridPosition(
        int(math.floor(position.x / CELL_SIZE + 0.5)),
        0,
        int(math.floor(position.z / CELL_SIZE + 0.5)),
    )


class GridIndex:
    """
    Sparse 3D map of grid cells answering walkability queries.

    Cells are keyed by "x,y,z" strings. A cell that is absent from the map
    (never created, or removed to make a hole) is never walkable.

    Coordinate convention: x runs across the width, z across the depth,
    y is the floor layer.
    """

    def __init__(self, width: int, depth: int, height: int = 1):
        self.width = width
        self.depth = depth
        self.height = height
        self.cells: Dict[str, GridCell] = {}

        for x in range(width):
            for y in range(height):
                for z in range(depth):
                    self.cells[self.get_cell_key(x, y, z)] = GridCell(x, y, z)

    @staticmethod
    def get_cell_key(x: int, y: int, z: int) -> str:
        return f"{x},{y},{z}"

    @staticmethod
    def parse_cell_key(key: str) -> GridPosition:
        x, y, z = (int(part) for part in key.split(","))
        return GridPosition(x, y, z)

    def get_cell(self, x: int, y: int, z: int) -> Optional[GridCell]:
        return self.cells.get(self.get_cell_key(x, y, z))

    def is_walkable(self, x: int, y: int, z: int) -> bool:
        """True iff the cell exists and is free or holds an entrance."""
        cell = self.get_cell(x, y, z)
        if cell is None:
            return False
        return not cell.occupied or cell.cell_type == CellType.ENTRANCE

    def is_walkable_world(self, position: Vector3) -> bool:
        """Walkability of the cell nearest to a world point."""
        cell = world_to_grid(position)
        return self.is_walkable(cell.x, cell.y, cell.z)

    def get_neighbors(self, position: GridPosition) -> List[GridCell]:
        """Existing cells in the 8-neighbourhood of position (same layer)."""
        neighbors = []
        for dx, dz in _NEIGHBOR_OFFSETS:
            cell = self.get_cell(position.x + dx, position.y, position.z + dz)
            if cell is not None:
                neighbors.append(cell)
        return neighbors

    # -- world-init helpers -------------------------------------------------

    def can_place_at(self, position: GridPosition, width: int = 1,
                     depth: int = 1) -> bool:
        """Check that every cell of a footprint exists and is free."""
        for x in range(position.x, position.x + width):
            for z in range(position.z, position.z + depth):
                cell = self.get_cell(x, position.y, z)
                if cell is None or cell.occupied:
                    return False
        return True

    def place_object(self, position: GridPosition, width: int, depth: int,
                     cell_type: CellType,
                     object_id: Optional[str] = None) -> bool:
        """Stamp a footprint with a cell type. Returns False if blocked."""
        if not self.can_place_at(position, width, depth):
            return False
        occupied = cell_type not in _OPEN_TYPES
        for x in range(position.x, position.x + width):
            for z in range(position.z, position.z + depth):
                cell = self.get_cell(x, position.y, z)
                cell.occupied = occupied
                cell.cell_type = cell_type
                cell.object_id = object_id
        return True

    def remove_cell(self, x: int, y: int, z: int) -> None:
        """Delete a cell from the map, leaving a hole."""
        self.cells.pop(self.get_cell_key(x, y, z), None)

    # -- bounds and export --------------------------------------------------

    def world_bounds(self) -> Tuple[float, float]:
        """Largest world x and z covered by the grid (minimum is 0, 0)."""
        return ((self.width - 1) * CELL_SIZE, (self.depth - 1) * CELL_SIZE)

    def world_center(self) -> Vector3:
        return grid_to_world(GridPosition(self.width // 2, 0, self.depth // 2))

    def in_bounds(self, x: int, z: int) -> bool:
        return 0 <= x < self.width and 0 <= z < self.depth

    def as_array(self, y: int = 0) -> np.ndarray:
        """Cell-type codes for one layer, indexed [z, x]."""
        codes = np.full((self.depth, self.width), MISSING_CODE, dtype=np.int8)
        for cell in self.cells.values():
            if cell.y == y and self.in_bounds(cell.x, cell.z):
                codes[cell.z, cell.x] = CELL_CODES[cell.cell_type]
        return codes

    def walkable_mask(self, y: int = 0) -> np.ndarray:
        """Boolean walkability for one layer, indexed [z, x]."""
        mask = np.zeros((self.depth, self.width), dtype=bool)
        for z in range(self.depth):
            for x in range(self.width):
                mask[z, x] = self.is_walkable(x, y, z)
        return mask
