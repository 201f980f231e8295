"""
secmon - Alert Throttle

Per-(test, severity) rate limiter. Each AlertKey remembers when it was last
admitted; a new finding for the same key is suppressed until the severity's
window has elapsed. Windows shrink as severity grows so CRITICAL issues page
again after minutes while LOW issues repeat at most daily.

The check is side-effect free; the caller records admissions explicitly.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from secmon.alerting.models import Severity, normalize_severity

DEFAULT_WINDOWS: dict[str, timedelta] = {
    Severity.CRITICAL: timedelta(minutes=5),
    Severity.HIGH: timedelta(minutes=30),
    Severity.MEDIUM: timedelta(hours=1),
    Severity.LOW: timedelta(hours=24),
}

_EPOCH = datetime.fromtimestamp(0, UTC)


class AlertThrottle:
    """Decides whether a finding for a given AlertKey should be suppressed."""

    def __init__(self, windows: dict[str, timedelta] | None = None):
        self.windows = dict(DEFAULT_WINDOWS)
        if windows:
            self.windows.update({normalize_severity(k): v for k, v in windows.items()})
        self._last_admitted: dict[str, datetime] = {}

    @classmethod
    def from_config(cls, windows_config: Any) -> AlertThrottle:
        """Build from an `alerting.throttle_windows` section (seconds per severity)."""
        return cls(
            {
                severity: timedelta(seconds=seconds)
                for severity, seconds in windows_config.model_dump().items()
            }
        )

    def window_for(self, severity: Any) -> timedelta:
        severity = normalize_severity(severity)
        return self.windows.get(severity, self.windows[Severity.LOW])

    def last_admitted(self, key: str) -> datetime | None:
        return self._last_admitted.get(key)

    def should_throttle(self, key: str, severity: Any, now: datetime) -> bool:
        """True if `key` was admitted less than one window before `now`."""
        last = self._last_admitted.get(key, _EPOCH)
        return now - last < self.window_for(severity)

    def record(self, key: str, now: datetime) -> None:
        """Mark `key` as admitted at `now`. Timestamps never move backwards."""
        last = self._last_admitted.get(key)
        if last is None or now > last:
            self._last_admitted[key] = now

    def keys(self) -> list[str]:
        return list(self._last_admitted)
