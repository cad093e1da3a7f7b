"""Command line entry point."""

import csv
from pathlib import Path

from aquarium_visitors.main import main

CONFIG = Path(__file__).resolve().parent.parent / "configs" / "aquarium.yaml"


def test_run_writes_outputs(tmp_path, capsys):
    code = main(["--config", str(CONFIG), "--steps", "60", "--out-dir", str(tmp_path),
                 "--seed", "5"])
    assert code == 0

    with open(tmp_path / "visitor_log.csv", newline='') as f:
        rows = list(csv.DictReader(f))
    assert rows
    assert {row['state'] for row in rows} <= {
        "entering", "exploring", "viewing", "satisfied", "leaving"}
    assert (tmp_path / "final_state.png").exists()
    assert "AQUARIUM VISITOR SIMULATION REPORT" in capsys.readouterr().out


def test_quiet_direct_run_without_exports(tmp_path, capsys):
    code = main(["--config", str(CONFIG), "--steps", "20", "--out-dir", str(tmp_path),
                 "--no-csv", "--no-snapshot", "--quiet", "--movement", "direct"])
    assert code == 0
    assert list(tmp_path.iterdir()) == []
    assert capsys.readouterr().out == ""


def test_missing_config(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "missing.yaml")]) == 1
    assert "not found" in capsys.readouterr().err


def test_invalid_config(tmp_path, capsys):
    bad = tmp_path / "bad.yaml"
    bad.write_text("grid:\n  width: 4\n  depth: 4\nmovement:\n  mode: fly\n")
    assert main(["--config", str(bad)]) == 1
    assert "Unknown movement mode" in capsys.readouterr().err
