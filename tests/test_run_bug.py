from __future__ import annotations

import json
import sys

import yaml

from scripts.run_bug import main
from telemetry.logger import OUTCOME, read_telemetry


def _write_config(tmp_path) -> str:
    cfg = {
        "navigator": {"policy": "A", "step_size": 0.1, "tolerance": 0.15, "max_steps": 5000},
        "sensor": {"sensing_range": 3.0, "angular_resolution_deg": 5.0},
        "world": {
            "name": "square",
            "clearance": 0.1,
            "start": [-3.0, 1.0],
            "goal": [5.0, 1.0],
            "obstacles": [[[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0]]],
        },
    }
    path = tmp_path / "square.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return str(path)


def test_all_policies_prints_per_policy_summary(tmp_path, monkeypatch, capsys) -> None:
    telemetry = tmp_path / "runs.jsonl"
    report = tmp_path / "runs.json"
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "run_bug.py",
            "--config", _write_config(tmp_path),
            "--all-policies",
            "--telemetry", str(telemetry),
            "--report-json", str(report),
        ],
    )
    main()
    out = capsys.readouterr().out
    assert "NAVIGATION REPORT" in out
    assert "Success" in out
    for name in ("exhaustive_loop", "line_reencounter", "tangent_heuristic"):
        assert out.count(name) == 2

    outcomes = read_telemetry(str(telemetry), kind=OUTCOME)
    assert [r["run"] for r in outcomes] == ["exhaustive_loop", "line_reencounter", "tangent_heuristic"]
    assert all(r["outcome"] == "succeeded" for r in outcomes)
    assert len(json.loads(report.read_text(encoding="utf-8"))) == 3


def test_single_policy_has_no_summary(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setattr(sys, "argv", ["run_bug.py", "--config", _write_config(tmp_path), "--policy", "B"])
    main()
    out = capsys.readouterr().out
    assert "line_reencounter" in out
    assert "Success" not in out
