"""Immutable per-step snapshots consumed by the exporters."""

from dataclasses import dataclass
from typing import Dict, List

import numpy as np


@dataclass(frozen=True)
class VisitorSnapshot:
    """A visitor as seen at the end of one simulation step."""
    visitor_id: str
    x: float
    z: float
    state: str  # "entering", "exploring", "viewing", "satisfied", "leaving"
    satisfaction: float


@dataclass
class SimulationState:
    """Complete snapshot of the simulation at a given step."""
    step: int
    time_ms: float
    visitors: List[VisitorSnapshot]
    footfall: np.ndarray      # Copy of the footfall field
    metrics: Dict[str, float]

    def to_csv_rows(self) -> List[Dict]:
        """Convert to CSV-compatible format."""
        return [
            {
                "step": self.step,
                "time_ms": round(self.time_ms, 1),
                "visitor_id": v.visitor_id,
                "x": round(v.x, 3),
                "z": round(v.z, 3),
                "state": v.state,
                "satisfaction": round(v.satisfaction, 2)
            }
            for v in self.visitors
        ]

    def count_in_state(self, state: str) -> int:
        return sum(1 for v in self.visitors if v.state == state)
