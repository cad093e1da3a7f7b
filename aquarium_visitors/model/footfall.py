"""Footfall record of where visitors walk and where they stop to look."""

from typing import Iterable, List, Tuple

import numpy as np
from scipy.ndimage import convolve

from .entities import Visitor, VisitorState
from .grid import GridIndex, world_to_grid

# Heat left per step by a walking visitor and by one watching a tank
WALK_DEPOSIT = 1.0
DWELL_DEPOSIT = 0.5


class FootfallField:
    """
    Traffic over the open floor, kept in two layers indexed [z, x] like
    GridIndex.as_array():

    - heat: recent traffic. Each step it spreads to open neighbouring cells
      and decays.
    - visits: cumulative visitor-steps per cell, used to rank the busiest
      spots of a run.

    Analytics only: nothing in the visitor logic reads it back.
    """

    def __init__(self, open_mask: np.ndarray,
                 diffusion_rate: float, decay_rate: float):
        self.open_mask = np.asarray(open_mask, dtype=bool)
        self.depth, self.width = self.open_mask.shape
        self.diffusion_rate = diffusion_rate  # alpha
        self.decay_rate = decay_rate          # delta

        self.heat = np.zeros((self.depth, self.width), dtype=np.float64)
        self.visits = np.zeros((self.depth, self.width), dtype=np.int64)

        self._kernel = np.ones((3, 3), dtype=np.float64)
        # Open cells in each 3x3 neighbourhood, the cell itself included
        self._open_neighbours = convolve(self.open_mask.astype(np.float64),
                                         self._kernel, mode='constant', cval=0.0)

    @classmethod
    def for_grid(cls, grid: GridIndex, diffusion_rate: float,
                 decay_rate: float) -> "FootfallField":
        return cls(grid.walkable_mask(), diffusion_rate, decay_rate)

    def record(self, visitors: Iterable[Visitor]) -> None:
        """Deposit heat under walking and viewing visitors; idle ones leave none."""
        for visitor in visitors:
            if visitor.state == VisitorState.VIEWING:
                amount = DWELL_DEPOSIT
            elif not visitor.velocity.is_zero():
                amount = WALK_DEPOSIT
            else:
                continue

            cell = world_to_grid(visitor.position)
            if not (0 <= cell.x < self.width and 0 <= cell.z < self.depth):
                continue
            if not self.open_mask[cell.z, cell.x]:
                continue
            self.heat[cell.z, cell.x] += amount
            self.visits[cell.z, cell.x] += 1

    def update(self) -> None:
        """
        Spread and decay the heat layer.
        Formula: H(t+1) = (1 - delta) * ((1 - alpha) * H + alpha * spread)

        Each open cell shares its heat evenly among the open cells of its
        3x3 neighbourhood, so blocked cells never warm up and spreading
        alone keeps the total unchanged.
        """
        share = np.divide(self.heat, self._open_neighbours,
                          out=np.zeros_like(self.heat),
                          where=self.open_mask)
        spread = convolve(share, self._kernel, mode='constant', cval=0.0)
        spread[~self.open_mask] = 0.0

        blended = (1 - self.diffusion_rate) * self.heat + \
            self.diffusion_rate * spread
        self.heat = (1 - self.decay_rate) * blended

    def hotspots(self, count: int = 3) -> List[Tuple[int, int, int]]:
        """Busiest cells as (x, z, visitor_steps), busiest first; ties by row order."""
        flat = self.visits.ravel()
        order = np.argsort(-flat, kind='stable')[:count]
        spots = []
        for index in order:
            if flat[index] == 0:
                break
            z, x = divmod(int(index), self.width)
            spots.append((x, z, int(flat[index])))
        return spots

    def total(self) -> float:
        return float(self.heat.sum())
