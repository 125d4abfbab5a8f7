"""
Run metrics for bug navigation sessions.

Provides a per-run record, a per-policy aggregator and a plain-text
comparison table used by the command line runner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import json
import os
import numpy as np

from .driver import Event, Failed, SessionDriver, Succeeded


# ---------------------------------------------------------------------------
# Run-level metrics
# ---------------------------------------------------------------------------


@dataclass
class RunMetrics:
    """Metrics for a single navigation run."""

    policy: str
    outcome: str
    steps: int
    path_length: float
    following_episodes: int
    distance_to_goal_final: float
    scenario: Optional[str] = None
    failure_reason: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def reached_goal(self) -> bool:
        return self.outcome == "succeeded"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "policy": self.policy,
            "outcome": self.outcome,
            "steps": int(self.steps),
            "path_length": float(self.path_length),
            "following_episodes": int(self.following_episodes),
            "distance_to_goal_final": float(self.distance_to_goal_final),
            "scenario": self.scenario,
            "failure_reason": self.failure_reason,
            **self.extra,
        }


def collect_run_metrics(
    driver: SessionDriver,
    final_event: Event,
    scenario: Optional[str] = None,
) -> RunMetrics:
    """Build RunMetrics from a finished (or capped) driver run."""
    session = driver.session
    if isinstance(final_event, Succeeded):
        outcome, reason = "succeeded", None
    elif isinstance(final_event, Failed):
        outcome, reason = "failed", final_event.reason.value
    else:
        outcome, reason = "running", None
    return RunMetrics(
        policy=session.policy.name,
        outcome=outcome,
        steps=driver.ticks,
        path_length=driver.path.length(),
        following_episodes=driver.following_episodes,
        distance_to_goal_final=session.distance_to_goal(),
        scenario=scenario,
        failure_reason=reason,
    )


# ---------------------------------------------------------------------------
# Per-policy aggregator
# ---------------------------------------------------------------------------


class PerPolicyAggregator:
    """Aggregate run metrics per leave policy."""

    def __init__(self):
        self._by_policy: Dict[str, List[RunMetrics]] = {}

    def add(self, metrics: RunMetrics) -> None:
        self._by_policy.setdefault(metrics.policy, []).append(metrics)

    def summary(self) -> Dict[str, Dict[str, float]]:
        out: Dict[str, Dict[str, float]] = {}
        for policy, runs in self._by_policy.items():
            n = len(runs)
            steps = [r.steps for r in runs]
            lengths = [r.path_length for r in runs if r.reached_goal]
            out[policy] = {
                "num_runs": float(n),
                "success_rate": float(np.mean([r.reached_goal for r in runs])),
                "mean_steps": float(np.mean(steps)),
                "mean_path_length": float(np.mean(lengths)) if lengths else 0.0,
                "mean_following_episodes": float(np.mean([r.following_episodes for r in runs])),
            }
        return out

    def policies(self) -> List[str]:
        return list(self._by_policy.keys())


def save_runs_json(runs: List[RunMetrics], path: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([r.to_dict() for r in runs], f, indent=2)


# ---------------------------------------------------------------------------
# Text report formatting
# ---------------------------------------------------------------------------


def format_run_table(runs: List[RunMetrics]) -> str:
    """Produce a human-readable table string for a list of runs."""
    lines = [
        "=" * 72,
        "NAVIGATION REPORT",
        "=" * 72,
        f"  {'Policy':<20} {'Outcome':>10} {'Steps':>7} {'Path':>9} {'Follows':>8} {'Final d':>9}",
        "-" * 72,
    ]
    for r in runs:
        outcome = r.outcome if r.failure_reason is None else f"{r.outcome}*"
        lines.append(
            f"  {r.policy[:18]:<20} {outcome:>10} {r.steps:>7d} {r.path_length:>9.2f}"
            f" {r.following_episodes:>8d} {r.distance_to_goal_final:>9.3f}"
        )
    lines.append("-" * 72)
    reasons = sorted({r.failure_reason for r in runs if r.failure_reason})
    if reasons:
        lines.append("  * failure reason: " + ", ".join(reasons))
    return "\n".join(lines)


def format_policy_summary(summary: Dict[str, Dict[str, float]]) -> str:
    """Table of :meth:`PerPolicyAggregator.summary` output, one row per policy."""
    lines = [
        f"  {'Policy':<20} {'Runs':>5} {'Success':>8} {'Steps':>9} {'Path':>9} {'Follows':>8}",
        "-" * 72,
    ]
    for policy, s in summary.items():
        lines.append(
            f"  {policy[:18]:<20} {int(s['num_runs']):>5d} {s['success_rate']:>8.0%}"
            f" {s['mean_steps']:>9.1f} {s['mean_path_length']:>9.2f}"
            f" {s['mean_following_episodes']:>8.2f}"
        )
    return "\n".join(lines)
