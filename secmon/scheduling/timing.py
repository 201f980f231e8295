"""
secmon - Job Timing

Process-wide execution statistics for scheduled jobs. Jobs complete on
different scheduler threads, so every update happens under one lock that is
held only for the bookkeeping, never across a job body.

The per-job average is a recency-weighted blend: the first run seeds it and
each later run moves it halfway, `avg = (avg + duration) / 2`. It is not an
arithmetic mean.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class JobStats:
    """Snapshot of the timing statistics."""

    total_runs: int = 0
    last_run_at: dict[str, datetime] = field(default_factory=dict)
    average_duration_ms: dict[str, float] = field(default_factory=dict)
    runs: dict[str, int] = field(default_factory=dict)
    failures: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total_runs": self.total_runs,
            "last_run_at": {name: ts.isoformat() for name, ts in self.last_run_at.items()},
            "average_duration_ms": dict(self.average_duration_ms),
            "runs": dict(self.runs),
            "failures": dict(self.failures),
        }


class JobTimingTracker:
    """Thread-safe recorder of job runs."""

    def __init__(self):
        self._stats = JobStats()
        self._lock = threading.Lock()

    def record_success(self, name: str, duration_ms: float, finished_at: datetime) -> float:
        """
        Record a completed run.

        Returns:
            The job's updated average duration in milliseconds
        """
        with self._lock:
            stats = self._stats
            stats.total_runs += 1
            stats.runs[name] = stats.runs.get(name, 0) + 1
            stats.last_run_at[name] = finished_at

            previous = stats.average_duration_ms.get(name)
            if previous is None:
                average = float(duration_ms)
            else:
                average = (previous + duration_ms) / 2
            stats.average_duration_ms[name] = average
            return average

    def record_failure(self, name: str, finished_at: datetime) -> None:
        """Record a failed run. Counts towards total_runs; the average is untouched."""
        with self._lock:
            stats = self._stats
            stats.total_runs += 1
            stats.runs[name] = stats.runs.get(name, 0) + 1
            stats.failures[name] = stats.failures.get(name, 0) + 1
            stats.last_run_at[name] = finished_at

    def snapshot(self) -> JobStats:
        """Deep copy of the current statistics."""
        with self._lock:
            return copy.deepcopy(self._stats)

    @property
    def total_runs(self) -> int:
        with self._lock:
            return self._stats.total_runs

    def average_ms(self, name: str) -> float | None:
        with self._lock:
            return self._stats.average_duration_ms.get(name)
