"""Command line interface for the ship health assessment pipeline.

Subcommands:

    ship-health init-db   --db PATH
    ship-health simulate  --db PATH --equipment ID --days N [--fault KIND] [--seed S]
    ship-health assess    --db PATH --equipment ID [ID ...] [--start ISO --end ISO | --days N]
                          [--output CSV] [--json]

Global options ``--config`` (YAML) and ``--log-level`` come before the
subcommand.
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from ship_health import get_version
from ship_health.assessment import (
    AssessmentError,
    AssessmentOrchestrator,
    EquipmentAssessment,
    SqliteStore,
)
from ship_health.assessment.store import EQUIPMENT_STATUSES
from ship_health.config import LOG_LEVELS, AssessmentConfig
from ship_health.simulation import FAULT_KINDS, SensorDataSimulator
from ship_health.utils.logging import log_results_csv, setup_logging
from ship_health.utils.metrics import at_risk, compute_fleet_summary
from ship_health.utils.timeutils import ensure_utc, to_millis, utc_now

logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; a trailing Z and naive values mean UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid ISO timestamp: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ship-health", description="Shipboard equipment health assessment"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config file")
    parser.add_argument(
        "--log-level", type=str.upper, default=None, choices=LOG_LEVELS, help="Override the configured log level"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init-db", help="Create the database tables")
    p_init.add_argument("--db", type=str, default=None, help="SQLite database path")

    p_sim = sub.add_parser("simulate", help="Generate synthetic readings for one equipment")
    p_sim.add_argument("--db", type=str, default=None, help="SQLite database path")
    p_sim.add_argument("--equipment", type=str, required=True, help="Equipment id")
    p_sim.add_argument("--name", type=str, default="", help="Equipment display name")
    p_sim.add_argument("--days", type=float, default=30.0, help="Days of data ending now")
    p_sim.add_argument("--fault", type=str, default="none", choices=FAULT_KINDS, help="Fault signature to inject")
    p_sim.add_argument("--status", type=str, default="normal", choices=EQUIPMENT_STATUSES, help="Current equipment status")
    p_sim.add_argument("--installed-days-ago", type=float, default=365.0, help="Equipment age in days")
    p_sim.add_argument("--interval-minutes", type=int, default=60, help="Sampling interval")
    p_sim.add_argument("--seed", type=int, default=42, help="Random seed for reproducibility")

    p_assess = sub.add_parser("assess", help="Assess equipment over a time window")
    p_assess.add_argument("--db", type=str, default=None, help="SQLite database path")
    target = p_assess.add_mutually_exclusive_group(required=True)
    target.add_argument("--equipment", type=str, nargs="+", help="Equipment id(s)")
    target.add_argument("--all", action="store_true", help="Assess every known equipment")
    p_assess.add_argument("--start", type=parse_timestamp, default=None, help="Window start (ISO 8601)")
    p_assess.add_argument("--end", type=parse_timestamp, default=None, help="Window end (ISO 8601, default now)")
    p_assess.add_argument("--days", type=float, default=7.0, help="Window length when --start is omitted")
    p_assess.add_argument("--output", type=str, default="", help="Write summary rows to this CSV file")
    p_assess.add_argument("--json", action="store_true", help="Print full results as JSON")
    return parser


def cmd_init_db(store: SqliteStore) -> int:
    store.init_db()
    print(f"Initialised database at {store.db_path}")
    return 0


def cmd_simulate(args: argparse.Namespace, store: SqliteStore) -> int:
    now = utc_now()
    store.init_db()
    store.add_equipment(
        args.equipment,
        installed_at=now - timedelta(days=args.installed_days_ago),
        name=args.name,
        status=args.status,
    )
    simulator = SensorDataSimulator(seed=args.seed, interval_minutes=args.interval_minutes)
    data = simulator.generate(args.equipment, now - timedelta(days=args.days), args.days, fault=args.fault)

    store.add_readings(args.equipment, data.readings)
    store.add_alarms(data.alarms)
    for performed_at in data.maintenance:
        store.add_maintenance(args.equipment, performed_at, "preventive maintenance")

    logger.info(
        "Simulated %s: %d readings, %d alarms, %d maintenance events",
        args.equipment,
        len(data.readings),
        len(data.alarms),
        len(data.maintenance),
    )
    rul = simulator.model.estimate_rul(data.final_health, load_ratio=simulator.load_ratio)
    print(f"Equipment {args.equipment}: {len(data.readings)} readings, {len(data.alarms)} alarms, "
          f"{len(data.maintenance)} maintenance events")
    print(f"  final health {data.final_health:.1f}, estimated RUL {rul:.0f} h")
    return 0


def print_assessment(result: EquipmentAssessment) -> None:
    hi = result.health_index
    diag = result.diagnosis
    print(f"\nEquipment {result.equipment_id}")
    print(f"  SOH: {result.soh.soh:.2f} (confidence {result.soh.confidence:.2f})")
    print(f"  Health index: {hi.health_index:.2f} [{hi.grade.value}]")
    print(f"  Health score: {result.health_score.score:.2f} ({result.health_score.level})")
    print(f"  Fault probability: {diag.fault_probability:.2f}% (risk {diag.fault_risk_level.value})")
    if diag.predicted_failure_time is not None:
        print(f"  Predicted failure: {diag.predicted_failure_time.date().isoformat()}")
    for fault in diag.suspected_faults:
        print(f"  Suspected: {fault.fault_type} ({fault.probability:.1f}%)")
    print(f"  Anomalies: {len(result.anomalies)}, alarms in window: {result.abnormal_events}")
    print(f"  Trend: temperature {result.trend_analysis.temperature_trend}, "
          f"vibration {result.trend_analysis.vibration_trend}, "
          f"overall {result.trend_analysis.overall_trend}")
    print("  Recommendations:")
    for rec in diag.recommendations:
        print(f"    [{rec.priority.value}] {rec.action}")
    for line in hi.recommendations:
        print(f"    - {line}")


def cmd_assess(args: argparse.Namespace, store: SqliteStore, config: AssessmentConfig) -> int:
    end = args.end or utc_now()
    start = args.start or end - timedelta(days=args.days)
    start_ms, end_ms = to_millis(start), to_millis(end)

    equipment_ids = args.equipment or [e.id for e in store.list_equipment()]
    if not equipment_ids:
        logger.error("No equipment found in %s", store.db_path)
        return 2

    orchestrator = AssessmentOrchestrator(store, config)
    results: List[EquipmentAssessment] = []
    failed = 0
    for equipment_id in equipment_ids:
        try:
            results.append(orchestrator.assess(equipment_id, start_ms, end_ms))
        except AssessmentError as exc:
            logger.error("%s", exc)
            failed += 1

    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
    else:
        for result in results:
            print_assessment(result)

    rows = [r.to_row() for r in results]
    if args.output:
        log_results_csv(args.output, rows)
        logger.info("Wrote %d rows to %s", len(rows), args.output)

    if len(rows) > 1 and not args.json:
        summary = compute_fleet_summary(rows)
        print("\nFleet summary:")
        for k, v in summary.items():
            print(f"  {k}: {v:.3f}")
        flagged = at_risk(rows)
        if flagged:
            print(f"  high risk: {', '.join(flagged)}")

    return 2 if failed else 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = AssessmentConfig.from_file(args.config) if args.config else AssessmentConfig()
    except (OSError, ValueError) as exc:
        parser.error(f"could not load config: {exc}")
    setup_logging(args.log_level or config.log_level)

    store = SqliteStore(getattr(args, "db", None) or config.db_path)
    if args.command == "init-db":
        return cmd_init_db(store)
    if args.command == "simulate":
        return cmd_simulate(args, store)
    return cmd_assess(args, store, config)


if __name__ == "__main__":
    raise SystemExit(main())
