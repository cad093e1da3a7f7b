"""CSV trajectory log for the aquarium visitor simulation."""

import csv
from pathlib import Path
from typing import IO, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..model.state import SimulationState

FIELDNAMES = ['step', 'time_ms', 'visitor_id', 'x', 'z', 'state', 'satisfaction']


class CSVWriter:
    """
    Appends one row per live visitor per step.

    Output format:
        step,time_ms,visitor_id,x,z,state,satisfaction
        1,100.0,visitor_00001,0.0,0.075,entering,0.0
        ...
    """

    def __init__(self, output_path: Path):
        self.output_path = Path(output_path)
        self.file: Optional[IO[str]] = None
        self.writer: Optional[csv.DictWriter] = None
        self.rows_written = 0

    def open(self) -> None:
        """Create the file and write the header."""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.file = open(self.output_path, 'w', newline='')
        self.writer = csv.DictWriter(self.file, fieldnames=FIELDNAMES)
        self.writer.writeheader()

    def append(self, state: "SimulationState") -> None:
        if self.writer is None:
            self.open()
        rows = state.to_csv_rows()
        self.writer.writerows(rows)
        self.rows_written += len(rows)
        self.file.flush()

    def close(self) -> None:
        if self.file:
            self.file.close()
            self.file = None
            self.writer = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
