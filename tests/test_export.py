"""CSV, image and report exports."""

import csv

import numpy as np
import pytest
from PIL import Image

from aquarium_visitors.export.csv_writer import FIELDNAMES, CSVWriter
from aquarium_visitors.export.reporter import Reporter
from aquarium_visitors.export.visualizer import Visualizer
from aquarium_visitors.model.grid import GridIndex
from aquarium_visitors.model.state import SimulationState, VisitorSnapshot


def _state(step, *visitors, metrics=None):
    return SimulationState(
        step=step,
        time_ms=step * 100.0,
        visitors=list(visitors),
        footfall=np.zeros((4, 5)),
        metrics=metrics or {},
    )


@pytest.fixture
def states():
    a = VisitorSnapshot("visitor_00001", 1.23456, 2.0, "exploring", 12.3456)
    b = VisitorSnapshot("visitor_00002", 4.0, 0.5, "viewing", 40.0)
    return [_state(1, a), _state(2, a, b)]


class TestCSVWriter:

    def test_rows_per_visitor(self, tmp_path, states):
        path = tmp_path / "out" / "log.csv"
        with CSVWriter(path) as writer:
            for state in states:
                writer.append(state)
            assert writer.rows_written == 3

        with open(path, newline='') as f:
            rows = list(csv.DictReader(f))
        assert list(rows[0].keys()) == FIELDNAMES
        assert len(rows) == 3
        assert rows[0]['visitor_id'] == "visitor_00001"
        assert rows[0]['x'] == "1.235"
        assert rows[0]['satisfaction'] == "12.35"
        assert rows[2]['state'] == "viewing"

    def test_append_opens_lazily(self, tmp_path, states):
        writer = CSVWriter(tmp_path / "lazy.csv")
        writer.append(states[0])
        writer.close()
        assert (tmp_path / "lazy.csv").read_text().startswith("step,time_ms")


class TestReporter:

    def test_tracks_peaks(self, states):
        reporter = Reporter("configs/aquarium.yaml", 42)
        for state in states:
            reporter.update(state)
        assert reporter.peak_visitors == 2
        assert reporter.peak_viewers == 1
        assert reporter.crowding_events == 0

    def test_crowding_counted_once_per_episode(self):
        reporter = Reporter("c.yaml", None)
        crowd = [VisitorSnapshot(f"v{i}", 0, 0, "viewing", 0) for i in range(5)]
        for visitors in (crowd, crowd, [], crowd):
            reporter.update(_state(1, *visitors))
        assert reporter.crowding_events == 2

    def test_summary_text(self, tmp_path, states):
        reporter = Reporter("configs/aquarium.yaml", None)
        for state in states:
            reporter.update(state)
        final = _state(3, metrics={'spawned': 4, 'departed': 3, 'satisfied': 2,
                                   'timed_out': 1, 'avg_satisfaction': 55.5,
                                   'avg_visit_time_ms': 30000.0})
        text = reporter.generate_summary(final, tmp_path, True, False, False)

        assert "AQUARIUM VISITOR SIMULATION REPORT" in text
        assert "None (random)" in text
        assert "Visitors Spawned:        4" in text
        assert "2 (50.0%)" in text
        assert "30.0 s" in text
        assert "visitor_log.csv" in text
        assert "Snapshot:   (disabled)" in text
        assert "(no footfall recorded)" in text

    def test_summary_lists_busiest_cells(self, tmp_path, states):
        reporter = Reporter("c.yaml", 7)
        text = reporter.generate_summary(states[-1], tmp_path, False, False, False,
                                         busiest_cells=[(3, 2, 40), (1, 0, 12)])
        assert "Cell (3, 2):  40 visitor-steps" in text
        assert text.index("Cell (3, 2)") < text.index("Cell (1, 0)")


class TestVisualizer:

    def test_snapshot_and_gif(self, tmp_path, states):
        grid = GridIndex(5, 4)
        visualizer = Visualizer(grid)
        heat = states[1].footfall.copy()
        heat[1, 2] = 3.0
        hot = SimulationState(2, 200.0, states[1].visitors, heat, {'departed': 0})

        visualizer.save_snapshot(hot, tmp_path / "snap.png")
        assert (tmp_path / "snap.png").stat().st_size > 0

        for state in states:
            visualizer.buffer_frame(state)
        visualizer.generate_gif(tmp_path / "anim.gif")
        with Image.open(tmp_path / "anim.gif") as gif:
            assert gif.n_frames == 2

        visualizer.clear_frames()
        visualizer.generate_gif(tmp_path / "empty.gif")
        assert not (tmp_path / "empty.gif").exists()
