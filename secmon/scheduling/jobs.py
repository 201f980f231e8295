"""
secmon - Job Definitions

A job binds a name and a cadence to a check function (any callable that
returns findings). The job table is static for the lifetime of an
orchestrator; it is usually built from the `scheduling.jobs` section of the
configuration, where each entry names its check as a dotted
"package.module:function" path.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from secmon.scheduling.cadence import Cadence
from secmon.shared.config import Settings

logger = logging.getLogger(__name__)

CheckFunction = Callable[[], Any]


class JobState(StrEnum):
    """Lifecycle of a single job."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class JobDefinition:
    """A named check bound to its cadence."""

    name: str
    cadence: Cadence
    runner: CheckFunction
    escalate: bool = False
    description: str = ""


@dataclass
class JobRun:
    """Outcome of one execution."""

    name: str
    state: JobState
    started_at: datetime
    duration_ms: float = 0.0
    result: Any = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == JobState.COMPLETED


def resolve_check(path: str) -> CheckFunction:
    """
    Import a check function from "package.module:function"
    (or "package.module.function").
    """
    module_path, sep, attr = path.partition(":")
    if not sep:
        module_path, _, attr = path.rpartition(".")
    if not module_path or not attr:
        raise ValueError(f"Invalid check path: {path!r}")

    module = importlib.import_module(module_path)
    try:
        check = getattr(module, attr)
    except AttributeError as e:
        raise ImportError(f"{module_path} has no attribute {attr!r}") from e
    if not callable(check):
        raise TypeError(f"Check {path!r} is not callable")
    return check


def build_jobs(
    config: Settings,
    checks: Mapping[str, CheckFunction] | None = None,
) -> list[JobDefinition]:
    """
    Build the job table from configuration.

    Args:
        config: Settings with a `scheduling.jobs` table
        checks: Explicit check functions by job name; these win over the
                configured dotted paths

    Returns:
        Jobs that have a check function. Jobs without one are skipped with
        a warning.
    """
    checks = checks or {}
    critical_job = config.scheduling.critical_job
    jobs = []

    for name, job_config in config.scheduling.jobs.items():
        runner = checks.get(name)
        if runner is None and job_config.check:
            runner = resolve_check(job_config.check)
        if runner is None:
            logger.warning(f"No check configured for job {name}, skipping", extra={"job": name})
            continue

        jobs.append(
            JobDefinition(
                name=name,
                cadence=job_config.cadence,
                runner=runner,
                escalate=name == critical_job,
                description=job_config.description,
            )
        )

    return jobs
