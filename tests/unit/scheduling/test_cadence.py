"""
Tests for Job Cadence

Next-fire computation is checked against fixed datetimes, never the wall
clock.
"""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from secmon.scheduling.cadence import Cadence, CadenceUnit

T0 = datetime(2024, 1, 15, 12, 0, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    "text,every,unit,offset",
    [
        ("30s", 30, CadenceUnit.SECONDS, 0),
        ("5m", 5, CadenceUnit.MINUTES, 0),
        ("12h", 12, CadenceUnit.HOURS, 0),
        ("2h+1", 2, CadenceUnit.HOURS, 1),
        (" 10 m ", 10, CadenceUnit.MINUTES, 0),
    ],
)
def test_parse_shorthand(text, every, unit, offset):
    """Test shorthand cadence parsing."""
    cadence = Cadence.parse(text)

    assert (cadence.every, cadence.unit, cadence.offset) == (every, unit, offset)


@pytest.mark.parametrize("text", ["", "30", "5d", "m5", "0s", "2h+2"])
def test_parse_rejects_invalid(text):
    """Test malformed cadences are rejected."""
    with pytest.raises(ValueError):
        Cadence.parse(text)


def test_every_must_fit_cycle():
    """Test an interval must fit its unit's cycle."""
    with pytest.raises(ValidationError):
        Cadence(every=60, unit="minutes")


def test_cron_fields():
    """Test cron field mapping."""
    assert Cadence.parse("30s").cron_fields() == {"second": "0-59/30", "minute": "*", "hour": "*"}
    assert Cadence.parse("5m").cron_fields() == {"second": "0", "minute": "0-59/5", "hour": "*"}
    assert Cadence.parse("2h+1").cron_fields() == {"second": "0", "minute": "0", "hour": "1-23/2"}


@pytest.mark.parametrize(
    "text,expected",
    [("30s", 2880), ("5m", 288), ("15m", 96), ("1h", 24), ("3h", 8), ("12h", 2), ("2h+1", 12)],
)
def test_runs_per_day(text, expected):
    """Test runs per day for common cadences."""
    assert Cadence.parse(text).runs_per_day() == expected


def test_period_seconds():
    """Test cadence period in seconds."""
    assert Cadence.parse("30s").period_seconds == 30
    assert Cadence.parse("20m").period_seconds == 1200
    assert Cadence.parse("6h").period_seconds == 21600


def test_next_fire_time_is_strictly_after():
    """Test next fire time is strictly after the given instant."""
    cadence = Cadence.parse("30s")

    assert cadence.next_fire_time(T0) == T0 + timedelta(seconds=30)
    assert cadence.next_fire_time(T0 + timedelta(seconds=1)) == T0 + timedelta(seconds=30)


def test_next_fire_time_with_offset():
    """Test next fire time honours the offset."""
    cadence = Cadence.parse("2h+1")

    assert cadence.next_fire_time(T0) == T0 + timedelta(hours=1)


def test_fire_times_within_first_minute():
    """Over (t, t+60s] the 30s job fires twice and the 5m job does not fire."""
    end = T0 + timedelta(seconds=60)

    assert Cadence.parse("30s").fire_times(T0, end) == [
        T0 + timedelta(seconds=30),
        T0 + timedelta(seconds=60),
    ]
    assert Cadence.parse("5m").fire_times(T0, end) == []


def test_fire_times_over_a_day_match_runs_per_day():
    """Test one day of ticks matches runs_per_day."""
    cadence = Cadence.parse("20m")

    assert len(cadence.fire_times(T0, T0 + timedelta(days=1))) == cadence.runs_per_day()


def test_describe_and_str():
    """Test human-readable and shorthand rendering."""
    assert Cadence.parse("30s").describe() == "every 30 seconds"
    assert Cadence.parse("1h").describe() == "every hour"
    assert Cadence.parse("2h+1").describe() == "every 2 hours (offset 1)"
    assert str(Cadence.parse("2h+1")) == "2h+1"
    assert str(Cadence.parse("5m")) == "5m"
