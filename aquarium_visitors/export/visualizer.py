"""Visualization and export for the aquarium visitor simulation."""

import io
from pathlib import Path
from typing import List, TYPE_CHECKING

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt
from matplotlib.colors import to_rgb
from PIL import Image

from ..model.grid import CELL_CODES, CELL_SIZE, MISSING_CODE, CellType

if TYPE_CHECKING:
    from ..model.grid import GridIndex
    from ..model.state import SimulationState


class Visualizer:
    """
    Generates visual outputs using matplotlib.

    Supports:
    - Single PNG snapshots
    - Animated GIF compilation

    Plots are drawn in grid units; visitor world positions are divided by
    CELL_SIZE so they line up with cell centres.
    """

    # Color scheme
    COLORS = {
        'empty': '#ECF0F1',       # Light gray
        'path': '#D5DBDB',        # Gray
        'tank': '#2E86C1',        # Blue
        'facility': '#2C3E50',    # Dark blue-gray
        'decoration': '#58D68D',  # Green
        'entrance': '#F39C12',    # Orange
        'missing': '#FFFFFF',     # White (void)
        'entering': '#8E44AD',    # Purple
        'exploring': '#E67E22',   # Orange
        'viewing': '#27AE60',     # Green
        'satisfied': '#F1C40F',   # Yellow
        'leaving': '#E74C3C',     # Red
    }

    def __init__(self, grid: "GridIndex"):
        self.width = grid.width
        self.depth = grid.depth
        self.codes = grid.as_array()
        self.frames: List[Image.Image] = []

    def _base_image(self) -> np.ndarray:
        """RGB image of the cell categories, indexed [z, x]."""
        base = np.ones((self.depth, self.width, 3))
        base[self.codes == MISSING_CODE] = to_rgb(self.COLORS['missing'])
        for cell_type, code in CELL_CODES.items():
            base[self.codes == code] = to_rgb(self.COLORS[cell_type.value])
        return base

    def _create_figure(self, state: "SimulationState",
                       show_footfall: bool = True) -> plt.Figure:
        """Create matplotlib figure for state visualization."""
        aspect = self.width / self.depth
        fig_height = 6
        fig_width = max(8, fig_height * aspect)
        fig, ax = plt.subplots(figsize=(fig_width, fig_height))

        base = self._base_image()

        # Overlay footfall heatmap on walkable floor
        peak = np.max(state.footfall) if state.footfall.size else 0
        if show_footfall and peak > 0:
            normalized = state.footfall / peak
            heat_color = [0.8, 0.2, 0.2]  # Red tint
            for c in range(3):
                base[:, :, c] = np.clip(
                    base[:, :, c] * (1 - 0.5 * normalized) +
                    heat_color[c] * 0.5 * normalized,
                    0, 1
                )

        ax.imshow(base, origin='lower', aspect='equal',
                  extent=[-0.5, self.width - 0.5, -0.5, self.depth - 0.5])

        for visitor in state.visitors:
            color = self.COLORS.get(visitor.state, '#95A5A6')
            ax.plot(visitor.x / CELL_SIZE, visitor.z / CELL_SIZE, 'o',
                    color=color, markersize=5,
                    markeredgecolor='white', markeredgewidth=0.3)

        ax.set_title(f'Step {state.step} | t={state.time_ms / 1000:.1f}s | '
                     f'Visitors: {len(state.visitors)} | '
                     f'Departed: {int(state.metrics.get("departed", 0))}')
        ax.set_xlabel('X (cells)')
        ax.set_ylabel('Z (cells)')
        ax.set_xlim(-0.5, self.width - 0.5)
        ax.set_ylim(-0.5, self.depth - 0.5)

        legend_elements = [
            plt.Line2D([0], [0], marker='o', color='w', label=s.capitalize(),
                       markerfacecolor=self.COLORS[s], markersize=8)
            for s in ('entering', 'exploring', 'viewing', 'leaving')
        ] + [
            plt.Line2D([0], [0], marker='s', color='w', label=t.value.capitalize(),
                       markerfacecolor=self.COLORS[t.value], markersize=8)
            for t in (CellType.TANK, CellType.ENTRANCE)
        ]
        ax.legend(handles=legend_elements, loc='upper right', fontsize=8)

        plt.tight_layout()
        return fig

    def buffer_frame(self, state: "SimulationState") -> None:
        """Store frame for GIF generation."""
        fig = self._create_figure(state)

        buf = io.BytesIO()
        fig.savefig(buf, format='png', dpi=80)
        buf.seek(0)
        img = Image.open(buf).copy()
        self.frames.append(img)
        buf.close()
        plt.close(fig)

    def save_snapshot(self, state: "SimulationState", output_path: Path) -> None:
        """Save single PNG image of current state."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig = self._create_figure(state)
        fig.savefig(output_path, dpi=150, bbox_inches='tight')
        plt.close(fig)

    def generate_gif(self, output_path: Path, fps: int = 10) -> None:
        """Compile buffered frames into animated GIF."""
        if not self.frames:
            return

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        duration = int(1000 / fps)  # milliseconds per frame

        self.frames[0].save(
            output_path,
            save_all=True,
            append_images=self.frames[1:],
            duration=duration,
            loop=0
        )

    def clear_frames(self) -> None:
        """Clear buffered frames."""
        self.frames.clear()
