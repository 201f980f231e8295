"""
secmon - Scheduling

Cadence-driven job orchestration:
- Cadence: structured recurrence descriptor evaluated by APScheduler
- JobTimingTracker: run counts, last-run times, blended average duration
- ScheduleOrchestrator: owns the job table, starts/stops timers, escalates
  CRITICAL findings from the critical job into the alert manager

The package root loads submodules lazily so that the configuration layer can
import `secmon.scheduling.cadence` without pulling in the orchestrator.
"""

from __future__ import annotations

import importlib
from typing import Any

# Mapping of attribute names to their submodules
_LAZY_IMPORTS = {
    "Cadence": "secmon.scheduling.cadence",
    "CadenceUnit": "secmon.scheduling.cadence",
    "JobStats": "secmon.scheduling.timing",
    "JobTimingTracker": "secmon.scheduling.timing",
    "JobDefinition": "secmon.scheduling.jobs",
    "JobState": "secmon.scheduling.jobs",
    "JobRun": "secmon.scheduling.jobs",
    "build_jobs": "secmon.scheduling.jobs",
    "ScheduleOrchestrator": "secmon.scheduling.orchestrator",
}


def __getattr__(name: str) -> Any:
    """Lazy loader for module attributes."""
    if name in _LAZY_IMPORTS:
        module = importlib.import_module(_LAZY_IMPORTS[name])
        return getattr(module, name)
    raise AttributeError(f"module {__name__} has no attribute {name}")


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + list(_LAZY_IMPORTS.keys()))


__all__ = list(_LAZY_IMPORTS.keys())
