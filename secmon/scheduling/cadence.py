"""
secmon - Job Cadence

Structured recurrence descriptor for scheduled checks. A cadence is
"every N seconds/minutes/hours, starting at offset K within the cycle",
which maps onto a single cron field:

    Cadence(every=30, unit="seconds")            -> second="0-59/30"
    Cadence(every=5, unit="minutes")             -> second="0", minute="0-59/5"
    Cadence(every=2, unit="hours", offset=1)     -> second="0", minute="0", hour="1-23/2"

Evaluation is delegated to an APScheduler CronTrigger, so next-fire
computation can be exercised in tests with plain datetimes instead of a
running clock.

Usage:
    cadence = Cadence.parse("30s")
    trigger = cadence.trigger("UTC")
    cadence.next_fire_time(datetime(2024, 1, 1, tzinfo=UTC))
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from enum import StrEnum

from apscheduler.triggers.cron import CronTrigger
from pydantic import BaseModel, ConfigDict, Field, model_validator


class CadenceUnit(StrEnum):
    """Granularity of a cadence."""

    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"


# cron field, cycle length (values per parent unit), seconds per value
_UNITS: dict[CadenceUnit, tuple[str, int, int]] = {
    CadenceUnit.SECONDS: ("second", 60, 1),
    CadenceUnit.MINUTES: ("minute", 60, 60),
    CadenceUnit.HOURS: ("hour", 24, 3600),
}

_SHORTHAND = re.compile(r"^\s*(\d+)\s*([smh])\s*(?:\+\s*(\d+))?\s*$")
_SHORTHAND_UNITS = {"s": CadenceUnit.SECONDS, "m": CadenceUnit.MINUTES, "h": CadenceUnit.HOURS}


class Cadence(BaseModel):
    """Every `every` units, first firing at `offset` within each cycle."""

    model_config = ConfigDict(frozen=True)

    every: int = Field(gt=0)
    unit: CadenceUnit
    offset: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_bounds(self) -> Cadence:
        _, cycle, _ = _UNITS[self.unit]
        if self.every >= cycle:
            raise ValueError(
                f"every={self.every} {self.unit} does not fit a {cycle}-{self.unit} cycle; "
                "use the next larger unit"
            )
        if self.offset >= self.every:
            raise ValueError(f"offset ({self.offset}) must be smaller than every ({self.every})")
        return self

    @classmethod
    def parse(cls, text: str) -> Cadence:
        """
        Parse shorthand notation.

        "30s" -> every 30 seconds, "5m" -> every 5 minutes,
        "2h+1" -> every 2 hours starting at 01:00.
        """
        match = _SHORTHAND.match(text)
        if not match:
            raise ValueError(f"Invalid cadence: {text!r} (expected e.g. '30s', '5m', '2h+1')")
        every, unit, offset = match.groups()
        return cls(every=int(every), unit=_SHORTHAND_UNITS[unit], offset=int(offset or 0))

    @property
    def period_seconds(self) -> int:
        return self.every * _UNITS[self.unit][2]

    def cron_fields(self) -> dict[str, str]:
        """Cron keyword arguments for this cadence."""
        field, cycle, _ = _UNITS[self.unit]
        fields = {"second": "0", "minute": "*", "hour": "*"}
        if self.unit is CadenceUnit.HOURS:
            fields["minute"] = "0"
        fields[field] = f"{self.offset}-{cycle - 1}/{self.every}"
        return fields

    def trigger(self, timezone: str = "UTC") -> CronTrigger:
        return CronTrigger(timezone=timezone, **self.cron_fields())

    def runs_per_day(self) -> int:
        _, cycle, seconds = _UNITS[self.unit]
        per_cycle = len(range(self.offset, cycle, self.every))
        return per_cycle * (86400 // (cycle * seconds))

    def next_fire_time(self, after: datetime, timezone: str = "UTC") -> datetime:
        """First tick strictly after `after`."""
        return self.trigger(timezone).get_next_fire_time(None, after + timedelta(microseconds=1))

    def fire_times(self, start: datetime, end: datetime, timezone: str = "UTC") -> list[datetime]:
        """All ticks t with start < t <= end."""
        trigger = self.trigger(timezone)
        ticks = []
        tick = trigger.get_next_fire_time(None, start + timedelta(microseconds=1))
        while tick is not None and tick <= end:
            ticks.append(tick)
            tick = trigger.get_next_fire_time(tick, tick + timedelta(microseconds=1))
        return ticks

    def describe(self) -> str:
        unit = self.unit.value
        text = f"every {unit[:-1]}" if self.every == 1 else f"every {self.every} {unit}"
        if self.offset:
            text += f" (offset {self.offset})"
        return text

    def __str__(self) -> str:
        suffix = f"+{self.offset}" if self.offset else ""
        return f"{self.every}{self.unit.value[0]}{suffix}"
