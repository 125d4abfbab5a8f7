from __future__ import annotations

import argparse
import sys
from pathlib import Path as FsPath
from typing import Any, Dict, List, Optional

# Ensure project root is on path when running this script directly
_script_dir = FsPath(__file__).resolve().parent
_project_root = _script_dir.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import yaml

from bug_nav.driver import SessionDriver
from bug_nav.metrics import (
    PerPolicyAggregator,
    RunMetrics,
    collect_run_metrics,
    format_policy_summary,
    format_run_table,
    save_runs_json,
)
from bug_nav.navigator import NavigationSession, NavigatorConfig
from bug_nav.policies import list_leave_policies
from bug_nav.world import ObstacleSet
from telemetry.logger import TelemetryLogger


def load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def build_session(cfg: Dict[str, Any], policy: Optional[str] = None) -> NavigationSession:
    nav_cfg = dict(cfg["navigator"])
    if policy is not None:
        nav_cfg["policy"] = policy
    world_cfg = cfg["world"]
    obstacles = ObstacleSet.from_dict(world_cfg)
    config = NavigatorConfig.from_dict(nav_cfg, cfg.get("sensor", {}))
    start = tuple(float(v) for v in world_cfg["start"])
    goal = tuple(float(v) for v in world_cfg["goal"])
    return NavigationSession(start=start, goal=goal, obstacles=obstacles, config=config)


def run_one(
    cfg: Dict[str, Any],
    policy: Optional[str],
    max_steps: int,
    telemetry: Optional[TelemetryLogger],
) -> RunMetrics:
    session = build_session(cfg, policy)
    driver = SessionDriver(session, telemetry=telemetry)
    event = driver.run(max_steps)
    metrics = collect_run_metrics(driver, event, scenario=cfg["world"].get("name"))
    if telemetry is not None:
        telemetry.log_outcome(metrics.to_dict())
    return metrics


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a bug navigation session from a YAML scenario.")
    parser.add_argument(
        "--config",
        type=str,
        default="configs/bug.yaml",
        help="Path to scenario YAML config.",
    )
    parser.add_argument(
        "--policy",
        type=str,
        default=None,
        help=f"Override leave policy ({', '.join(list_leave_policies())} or A/B/C).",
    )
    parser.add_argument("--max-steps", type=int, default=None, help="Iteration cap.")
    parser.add_argument("--telemetry", type=str, default=None, help="JSONL telemetry output path.")
    parser.add_argument("--report-json", type=str, default=None, help="Write run metrics as JSON.")
    parser.add_argument(
        "--all-policies",
        action="store_true",
        help="Run every registered policy on the same world and compare.",
    )
    args = parser.parse_args()

    cfg = load_yaml(args.config)
    max_steps = args.max_steps or int(cfg["navigator"].get("max_steps", 5000))
    telemetry_path = args.telemetry or cfg.get("logging", {}).get("telemetry_path")

    policies: List[Optional[str]] = list_leave_policies() if args.all_policies else [args.policy]
    runs: List[RunMetrics] = []
    aggregator = PerPolicyAggregator()
    for policy in policies:
        telemetry = None
        if telemetry_path:
            telemetry = TelemetryLogger(telemetry_path, run_name=policy or cfg["navigator"].get("policy"))
        try:
            metrics = run_one(cfg, policy, max_steps, telemetry)
        finally:
            if telemetry is not None:
                telemetry.close()
        runs.append(metrics)
        aggregator.add(metrics)

    print(format_run_table(runs))
    if args.all_policies:
        print(format_policy_summary(aggregator.summary()))
    if args.report_json:
        save_runs_json(runs, args.report_json)
        print(f"Saved report to {args.report_json}")


if __name__ == "__main__":
    main()
