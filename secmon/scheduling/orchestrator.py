"""
secmon - Schedule Orchestrator

Runs every configured check on its own cadence:
- one APScheduler cron trigger per job, jobs run concurrently on a thread pool
- a job is never re-entered: a tick that arrives while the previous run of
  the same job is still going is skipped
- every run is timed and recorded in the JobTimingTracker, failures included
- results are handed to the result sink; the critical job additionally
  escalates each CRITICAL finding to the AlertManager

Usage:
    jobs = build_jobs(config)
    orchestrator = ScheduleOrchestrator(jobs, alert_manager=AlertManager(config), config=config)
    orchestrator.start()
    ...
    orchestrator.stop()
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

from secmon.alerting.alert_manager import AlertManager
from secmon.alerting.models import CheckResult, Severity, coerce_findings
from secmon.scheduling.jobs import JobDefinition, JobRun, JobState
from secmon.scheduling.timing import JobStats, JobTimingTracker
from secmon.shared.config import Settings, get_config
from secmon.shared.console import ConsoleChannel

logger = logging.getLogger(__name__)

STATS_JOB_ID = "__stats__"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ScheduleOrchestrator:
    """Owns the job table and the timers that drive it."""

    def __init__(
        self,
        jobs: Iterable[JobDefinition],
        alert_manager: AlertManager | None = None,
        config: Settings | None = None,
        scheduler: BackgroundScheduler | None = None,
        tracker: JobTimingTracker | None = None,
        result_sink: Callable[[Any], Any] | None = None,
        console: ConsoleChannel | None = None,
        clock: Callable[[], datetime] | None = None,
        timer: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize the orchestrator.

        Args:
            jobs: Static job table
            alert_manager: Receives CRITICAL findings from escalating jobs
                           (built from config when an escalating job exists)
            config: Configuration object (uses default if not provided)
            scheduler: APScheduler scheduler (a BackgroundScheduler by default)
            tracker: Timing statistics store
            result_sink: Called with every successful job result, e.g. ResultStore
            console: Operator console for schedule and statistics views
            clock: Returns the current aware datetime
            timer: Monotonic seconds, used for durations
        """
        self.config = config or get_config()
        self.jobs: dict[str, JobDefinition] = {}
        for job in jobs:
            if job.name in self.jobs:
                raise ValueError(f"Duplicate job name: {job.name}")
            self.jobs[job.name] = job

        self.console = console or ConsoleChannel(
            enabled=self.config.alerting.channels.console_enabled
        )
        if alert_manager is None and any(job.escalate for job in self.jobs.values()):
            alert_manager = AlertManager(self.config, console=self.console)
        self.alert_manager = alert_manager

        self.tracker = tracker or JobTimingTracker()
        self.result_sink = result_sink
        self._scheduler = scheduler
        self._owns_scheduler = scheduler is None
        self._clock = clock or _utcnow
        self._timer = timer

        self._job_locks = {name: threading.Lock() for name in self.jobs}
        self._last_runs: dict[str, JobRun] = {}
        self._running = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def running(self) -> bool:
        return self._running

    def _build_scheduler(self) -> BackgroundScheduler:
        return BackgroundScheduler(
            timezone=self.config.scheduling.timezone,
            executors={"default": ThreadPoolExecutor(max_workers=max(len(self.jobs), 1) + 1)},
            job_defaults={"coalesce": True, "max_instances": 1},
            daemon=True,
        )

    def start(self) -> None:
        """Activate every job's timer."""
        if self._running:
            logger.warning("Orchestrator already running")
            return

        if self._scheduler is None:
            self._scheduler = self._build_scheduler()

        timezone = self.config.scheduling.timezone
        for job in self.jobs.values():
            self._scheduler.add_job(
                self.run_job,
                trigger=job.cadence.trigger(timezone),
                args=[job.name],
                id=job.name,
                name=job.name,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )

        stats_minutes = self.config.scheduling.stats_interval_minutes
        if stats_minutes > 0:
            self._scheduler.add_job(
                self.show_stats,
                "interval",
                minutes=stats_minutes,
                id=STATS_JOB_ID,
                name="statistics",
                replace_existing=True,
            )

        self._scheduler.start()
        self._running = True

        self.show_schedule()
        logger.info(
            f"Continuous security monitoring active ({len(self.jobs)} jobs)",
            extra={"jobs": list(self.jobs)},
        )

    def stop(self) -> None:
        """
        Deactivate all timers and print final statistics.

        In-flight job bodies are not awaited; they still record their
        statistics when they finish.
        """
        if not self._running:
            return

        self._scheduler.shutdown(wait=False)
        if self._owns_scheduler:
            # A shut-down scheduler cannot be restarted; build a fresh one on start()
            self._scheduler = None
        self._running = False
        logger.info("Continuous security monitoring stopped")
        self.show_stats()

    def run_initial_sweep(self) -> list[JobRun]:
        """Run the escalating (critical) jobs once, outside the timers."""
        runs = []
        for job in self.jobs.values():
            if job.escalate:
                run = self.run_job(job.name)
                if run is not None:
                    runs.append(run)
        return runs

    # =========================================================================
    # Execution
    # =========================================================================

    def state(self, name: str) -> JobState:
        """RUNNING while a run of `name` is in progress, IDLE otherwise."""
        return JobState.RUNNING if self._job_locks[name].locked() else JobState.IDLE

    def last_run(self, name: str) -> JobRun | None:
        return self._last_runs.get(name)

    def run_job(self, name: str) -> JobRun | None:
        """
        Timer callback for one tick of `name`.

        Returns:
            The run outcome, or None if the tick was skipped because the
            previous run is still in progress
        """
        job = self.jobs[name]
        lock = self._job_locks[name]

        if not lock.acquire(blocking=False):
            logger.warning(f"{name} still running, skipping this tick", extra={"job": name})
            return None

        try:
            run = self.run_with_timing(name, lambda: self._execute(job))
            self._last_runs[name] = run
            return run
        finally:
            lock.release()

    def run_with_timing(self, name: str, runner: Callable[[], Any]) -> JobRun:
        """
        Execute `runner`, time it and record the outcome.

        Exceptions raised by the runner are logged and captured in the
        returned JobRun; they never propagate.
        """
        started_at = self._clock()
        start = self._timer()
        logger.info(f"Running {name} checks...", extra={"job": name})

        try:
            result = runner()
        except Exception as e:
            duration_ms = (self._timer() - start) * 1000
            self.tracker.record_failure(name, self._clock())
            logger.error(
                f"{name} failed: {e}",
                extra={"job": name, "duration_ms": duration_ms},
                exc_info=True,
            )
            return JobRun(
                name=name,
                state=JobState.FAILED,
                started_at=started_at,
                duration_ms=duration_ms,
                error=str(e),
            )

        duration_ms = (self._timer() - start) * 1000
        self.tracker.record_success(name, duration_ms, self._clock())
        logger.info(
            f"{name} completed in {duration_ms:.0f}ms",
            extra={"job": name, "duration_ms": duration_ms},
        )
        return JobRun(
            name=name,
            state=JobState.COMPLETED,
            started_at=started_at,
            duration_ms=duration_ms,
            result=result,
        )

    def _execute(self, job: JobDefinition) -> Any:
        result = job.runner()

        if job.escalate:
            self._escalate(job, result)

        if self.result_sink is not None and result is not None:
            self._store(job, result)

        return result

    def _store(self, job: JobDefinition, result: Any) -> None:
        """Hand `result` to the result sink. Sink errors are logged, not raised."""
        try:
            if isinstance(result, (CheckResult, Mapping)):
                self.result_sink(result)
            else:
                self.result_sink(CheckResult(phase=job.name, findings=coerce_findings(result)))
        except Exception as e:
            logger.error(
                f"Failed to store {job.name} results: {e}",
                extra={"job": job.name},
                exc_info=True,
            )

    def _escalate(self, job: JobDefinition, result: Any) -> int:
        """Send every CRITICAL finding in `result` to the alert manager."""
        if self.alert_manager is None:
            return 0

        raised = 0
        for finding in coerce_findings(result):
            if finding.severity != Severity.CRITICAL:
                continue
            logger.warning(
                f"CRITICAL finding from {job.name}: {finding.test}",
                extra={"job": job.name, "test": finding.test},
            )
            self.alert_manager.send_alert(finding.severity, finding.test, finding.details)
            raised += 1
        return raised

    # =========================================================================
    # Reporting
    # =========================================================================

    def stats(self) -> JobStats:
        return self.tracker.snapshot()

    def show_stats(self) -> None:
        """Print run counts, last run times and average durations."""
        stats = self.tracker.snapshot()
        lines = [
            "",
            "\U0001f4ca TESTING STATISTICS:",
            "=====================================",
            f"Total test runs: {stats.total_runs}",
            "",
            "Last run times:",
        ]
        for name, ts in stats.last_run_at.items():
            lines.append(f"  {name}: {ts.isoformat()}")
        lines += ["", "Average execution times:"]
        for name, avg in stats.average_duration_ms.items():
            lines.append(f"  {name}: {round(avg)}ms")
        if stats.failures:
            lines += ["", "Failures:"]
            for name, count in stats.failures.items():
                lines.append(f"  {name}: {count}")
        lines += ["=====================================", ""]
        self.console.write(*lines)

    def schedule_table(self) -> list[dict[str, Any]]:
        """One row per job, most frequent first."""
        rows = [
            {
                "job": job.name,
                "cadence": job.cadence.describe(),
                "runs_per_day": job.cadence.runs_per_day(),
                "escalates": job.escalate,
                "description": job.description,
            }
            for job in self.jobs.values()
        ]
        return sorted(rows, key=lambda row: (-row["runs_per_day"], row["job"]))

    def show_schedule(self) -> None:
        """Print the job table with its cadence and daily run counts."""
        rows = self.schedule_table()
        lines = [
            "",
            "⚡ CONTINUOUS SECURITY TESTING SCHEDULE",
            "=====================================",
            f"{'Job':<14}| {'Cadence':<22}| Runs/day",
            f"{'-' * 14}|{'-' * 23}|{'-' * 9}",
        ]
        for row in rows:
            marker = " *" if row["escalates"] else ""
            lines.append(f"{row['job'] + marker:<14}| {row['cadence']:<22}| {row['runs_per_day']:,}")
        total = sum(row["runs_per_day"] for row in rows)
        lines += [
            "=====================================",
            f"TOTAL: ~{total:,} runs/day (* escalates CRITICAL findings)",
            "",
        ]
        self.console.write(*lines)
