from __future__ import annotations

import json
import os
import threading
from typing import Any, Dict, List, Optional, TextIO

TICK = "tick"
OUTCOME = "outcome"


class TelemetryLogger:
    """Structured JSONL logger for navigation runs.

    Thread-safe, append-only, one JSON object per line. Two record kinds are
    written: ``tick`` records (one per navigator tick: tick number, driver
    event and the session's mode, position and following bookkeeping) and a
    closing ``outcome`` record per run carrying its metrics. Every record is
    tagged with the run name so several drivers may share one file.
    """

    def __init__(self, path: str, run_name: Optional[str] = None) -> None:
        self.path = path
        self.run_name = run_name
        self.records_written = 0
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        self._lock = threading.Lock()
        self._fp: Optional[TextIO] = open(self.path, "a", encoding="utf-8")

    def log_tick(self, tick: int, event: str, state: Dict[str, Any]) -> None:
        """Append the record of one navigator tick."""
        self._write({"kind": TICK, "tick": tick, "event": event, **state})

    def log_outcome(self, metrics: Dict[str, Any]) -> None:
        """Append the end-of-run record."""
        self._write({"kind": OUTCOME, **metrics})

    def _write(self, record: Dict[str, Any]) -> None:
        if self._fp is None:
            return
        if self.run_name is not None:
            record = {"run": self.run_name, **record}
        line = json.dumps(record, separators=(",", ":"))
        with self._lock:
            self._fp.write(line + "\n")
            self._fp.flush()
            self.records_written += 1

    def close(self) -> None:
        if self._fp is not None:
            self._fp.close()
            self._fp = None

    def __enter__(self) -> "TelemetryLogger":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


def read_telemetry(
    path: str,
    run_name: Optional[str] = None,
    kind: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Load records from a telemetry file, optionally for one run and kind.

    Blank and malformed lines are skipped; a missing file reads as empty.
    """
    if not os.path.exists(path):
        return []
    records: List[Dict[str, Any]] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                rec = json.loads(line)
            except json.JSONDecodeError:
                continue
            if run_name is not None and rec.get("run") != run_name:
                continue
            if kind is not None and rec.get("kind") != kind:
                continue
            records.append(rec)
    return records
