"""
secmon - Command Line Interface

Usage:
    python -m secmon run [--env prod] [--initial-sweep]
    python -m secmon schedule
    python -m secmon stats
    python -m secmon test-alert
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import threading

from secmon.alerting import AlertManager, Severity
from secmon.results import ResultStore
from secmon.scheduling.jobs import build_jobs
from secmon.scheduling.orchestrator import ScheduleOrchestrator
from secmon.shared.config import Settings, get_config

logger = logging.getLogger(__name__)

SAMPLE_ALERTS = [
    (
        Severity.CRITICAL,
        "Rate Limiting",
        {
            "recommendation": "Implement rate limiting immediately",
            "details": {"requestsPerSecond": 100},
        },
    ),
    (
        Severity.HIGH,
        "Precision Loss",
        {"recommendation": "Review decimal handling", "details": {"loss": "3.54%"}},
    ),
    (
        Severity.LOW,
        "Pool Liquidity",
        {"recommendation": "Monitor liquidity levels", "details": {"pool": "GALA/GUSDC"}},
    ),
]


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="secmon",
        description="Continuous security monitoring: scheduled checks and throttled alerts",
    )
    parser.add_argument(
        "--env",
        choices=["dev", "prod"],
        default=None,
        help="Configuration environment (default: SECMON_ENVIRONMENT or dev)",
    )
    parser.add_argument("--log-level", default=None, help="Override logging.level")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Start all scheduled checks")
    run_parser.add_argument(
        "--initial-sweep",
        action="store_true",
        help="Run the critical checks once before starting the timers",
    )

    subparsers.add_parser("schedule", help="Show the configured job schedule")
    subparsers.add_parser("stats", help="Show alert statistics from the alert log")
    subparsers.add_parser("test-alert", help="Send sample CRITICAL/HIGH/LOW alerts")

    return parser


def setup_logging(config: Settings, level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or config.logging.level).upper(),
        format=config.logging.format,
    )
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def cmd_run(config: Settings, initial_sweep: bool = False) -> int:
    jobs = build_jobs(config)
    if not jobs:
        logger.error("No jobs with a configured check; nothing to schedule")
        return 1

    result_sink = ResultStore(config) if config.storage.enabled else None
    orchestrator = ScheduleOrchestrator(
        jobs,
        alert_manager=AlertManager(config),
        config=config,
        result_sink=result_sink,
    )

    if initial_sweep:
        logger.info("Running initial test sweep...")
        orchestrator.run_initial_sweep()

    stop_event = threading.Event()

    def _handle_signal(signum, frame):
        logger.info("Stopping continuous security monitoring...")
        stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    orchestrator.start()
    try:
        while not stop_event.wait(timeout=1.0):
            pass
    finally:
        orchestrator.stop()
    return 0


def cmd_schedule(config: Settings) -> int:
    orchestrator = ScheduleOrchestrator(build_jobs(config, checks=_placeholder_checks(config)), config=config)
    orchestrator.show_schedule()
    return 0


def _placeholder_checks(config: Settings) -> dict:
    """Checks are not needed to display the table; bind no-ops for unconfigured jobs."""
    return {name: (lambda: None) for name, job in config.scheduling.jobs.items() if not job.check}


def cmd_stats(config: Settings) -> int:
    stats = AlertManager(config).get_stats()
    print(json.dumps(stats, indent=2, default=str))
    return 0


def cmd_test_alert(config: Settings) -> int:
    manager = AlertManager(config)
    print("Testing Alert Manager...\n")
    for severity, test, details in SAMPLE_ALERTS:
        manager.send_alert(severity, test, details)
    print("\nAlert Statistics:")
    print(json.dumps(manager.get_stats(), indent=2, default=str))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    config = get_config(args.env)
    setup_logging(config, args.log_level)

    if args.command == "run":
        return cmd_run(config, initial_sweep=args.initial_sweep)
    elif args.command == "schedule":
        return cmd_schedule(config)
    elif args.command == "stats":
        return cmd_stats(config)
    elif args.command == "test-alert":
        return cmd_test_alert(config)

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
