"""Summary report generation for the aquarium visitor simulation."""

from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..model.state import SimulationState

# Viewers at once above which a crowding event is counted
CROWDING_VIEWERS = 5


class Reporter:
    """Tracks per-step peaks and renders the end-of-run text report."""

    def __init__(self, config_path: str, seed: Optional[int]):
        self.config_path = config_path
        self.seed = seed
        self.steps_seen = 0
        self.peak_visitors = 0
        self.peak_viewers = 0
        self.crowding_events = 0
        self._crowded = False

    def update(self, state: "SimulationState") -> None:
        """Accumulate metrics per step."""
        self.steps_seen += 1
        active = len(state.visitors)
        viewers = state.count_in_state('viewing')
        self.peak_visitors = max(self.peak_visitors, active)
        self.peak_viewers = max(self.peak_viewers, viewers)

        # Count each run of consecutive crowded steps once
        crowded = viewers >= CROWDING_VIEWERS
        if crowded and not self._crowded:
            self.crowding_events += 1
        self._crowded = crowded

    def generate_summary(self, final_state: "SimulationState",
                         output_dir: Path,
                         csv_enabled: bool,
                         snapshot_enabled: bool,
                         gif_enabled: bool,
                         busiest_cells: Optional[Sequence[Tuple[int, int, int]]] = None
                         ) -> str:
        """Returns formatted text report."""
        m: Dict[str, float] = final_state.metrics
        spawned = int(m.get('spawned', 0))
        departed = int(m.get('departed', 0))
        satisfied = int(m.get('satisfied', 0))
        timed_out = int(m.get('timed_out', 0))
        satisfied_pct = (satisfied / spawned * 100) if spawned > 0 else 0.0

        lines = [
            "",
            "=" * 80,
            "                    AQUARIUM VISITOR SIMULATION REPORT",
            "=" * 80,
            f"Configuration: {self.config_path}",
            f"Random Seed: {self.seed if self.seed is not None else 'None (random)'}",
            "",
            "VISITOR METRICS",
            "-" * 40,
            f"Total Steps:             {final_state.step}",
            f"Simulated Time:          {final_state.time_ms / 1000:.1f} s",
            f"Visitors Spawned:        {spawned}",
            f"Visitors Departed:       {departed} ({timed_out} timed out leaving)",
            f"Still Inside:            {int(m.get('active_visitors', 0))}",
            f"Reached Satisfied:       {satisfied} ({satisfied_pct:.1f}%)",
            f"Average Satisfaction:    {m.get('avg_satisfaction', 0.0):.1f}",
            f"Average Visit Time:      {m.get('avg_visit_time_ms', 0.0) / 1000:.1f} s",
            f"Peak Concurrent:         {self.peak_visitors}",
            f"Peak Viewers:            {self.peak_viewers}",
            "",
            "CROWDING",
            "-" * 40,
            f"[{'X' if self.crowding_events > 0 else ' '}] Crowding Events: "
            f"{self.crowding_events} detected (>= {CROWDING_VIEWERS} viewers)",
            "",
            "BUSIEST CELLS",
            "-" * 40,
        ]
        if busiest_cells:
            lines.extend(f"Cell ({x}, {z}):  {steps} visitor-steps"
                         for x, z, steps in busiest_cells)
        else:
            lines.append("(no footfall recorded)")

        lines += [
            "",
            "OUTPUT FILES",
            "-" * 40,
        ]

        if csv_enabled:
            lines.append(f"CSV Log:    {output_dir / 'visitor_log.csv'}")
        else:
            lines.append("CSV Log:    (disabled)")

        if snapshot_enabled:
            lines.append(f"Snapshot:   {output_dir / 'final_state.png'}")
        else:
            lines.append("Snapshot:   (disabled)")

        if gif_enabled:
            lines.append(f"Animation:  {output_dir / 'simulation.gif'}")
        else:
            lines.append("Animation:  (disabled)")

        lines.append("=" * 80)

        return "\n".join(lines)
