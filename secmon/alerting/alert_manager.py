"""
secmon - Alert Manager

Single entry point turning findings into delivered alerts:
- Per-(test, severity) throttling to prevent alert fatigue
- Append-only JSON Lines alert log
- Severity-tiered routing to console, Slack and a generic webhook
- Statistics derived from the alert log

Usage:
    alert_manager = AlertManager(config)

    alert_manager.send_alert(
        "CRITICAL",
        "Rate Limiting",
        {"recommendation": "Implement rate limiting immediately",
         "details": {"requestsPerSecond": 100}},
    )

    alert_manager.get_stats()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from secmon.alerting.alert_log import AlertLog
from secmon.alerting.models import Alert, Finding, Severity
from secmon.alerting.router import AlertRouter
from secmon.alerting.throttle import AlertThrottle
from secmon.shared.config import Settings, get_config
from secmon.shared.console import ConsoleChannel

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AlertManager:
    """
    Throttles findings and delivers the admitted ones.

    A finding is admitted when no alert with the same AlertKey was admitted
    within its severity's window (and, if count thresholds are enabled, once
    it has been seen often enough). Admitted alerts are logged, echoed to the
    console and routed by severity.
    """

    def __init__(
        self,
        config: Settings | None = None,
        router: AlertRouter | None = None,
        alert_log: AlertLog | None = None,
        throttle: AlertThrottle | None = None,
        console: ConsoleChannel | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize alert manager.

        Args:
            config: Configuration object (uses default if not provided)
            router: Channel router (built from config if not provided)
            alert_log: Alert log sink (config.alerting.log_file if not provided)
            throttle: Throttle state (config.alerting.throttle_windows if not provided)
            console: Operator console shared with the router
            clock: Returns the current aware datetime; injectable for tests
        """
        self.config = config or get_config()
        alerting = self.config.alerting

        self.console = console or ConsoleChannel(enabled=alerting.channels.console_enabled)
        self.router = router or AlertRouter(self.config, console=self.console)
        self.alert_log = alert_log or AlertLog(alerting.log_file)
        self.throttle = throttle or AlertThrottle.from_config(alerting.throttle_windows)
        self.thresholds = alerting.thresholds
        self.recent_limit = alerting.recent_limit

        self._clock = clock or _utcnow
        # Guards the throttle check-then-record and occurrence counters
        self._lock = threading.Lock()
        self._occurrences: dict[str, int] = {}

    def send_alert(
        self,
        severity: str,
        test: str,
        details: Mapping[str, Any] | None = None,
    ) -> bool:
        """
        Raise a finding.

        Args:
            severity: CRITICAL, HIGH, MEDIUM or LOW (other values behave like LOW)
            test: Name of the check that produced the finding
            details: Free-form payload; `recommendation` and `details` keys are
                     rendered in the alert message

        Returns:
            True if the alert was admitted and delivered, False if suppressed
        """
        finding = Finding(severity=severity, test=test, details=dict(details or {}))
        return self.send_finding(finding)

    def send_finding(self, finding: Finding) -> bool:
        """Raise an already-built Finding. See `send_alert`."""
        key = finding.alert_key

        with self._lock:
            now = self._clock()
            if self.throttle.should_throttle(key, finding.severity, now):
                logger.debug(
                    f"Alert throttled: {key}",
                    extra={"alert_key": key, "severity": str(finding.severity)},
                )
                return False
            if not self._threshold_reached(key, finding.severity):
                return False
            self.throttle.record(key, now)
            self._occurrences.pop(key, None)

        alert = Alert.from_finding(finding, admitted_at=now)

        if self.config.alerting.channels.log_enabled:
            self.alert_log.append(alert)

        self.router.echo(alert)
        delivered = self.router.dispatch(alert)

        logger.info(
            f"Alert delivered: {key}",
            extra={"alert_key": key, "severity": alert.severity, "channels": delivered},
        )
        return True

    def _threshold_reached(self, key: str, severity: str) -> bool:
        """Count-based gate, a no-op unless `alerting.thresholds.enabled`."""
        if not self.thresholds.enabled:
            return True

        required = {
            Severity.CRITICAL: self.thresholds.critical,
            Severity.HIGH: self.thresholds.high,
            Severity.MEDIUM: self.thresholds.medium,
        }.get(severity, self.thresholds.low)
        count = self._occurrences.get(key, 0) + 1
        self._occurrences[key] = count

        if count < required:
            logger.debug(
                f"Alert below threshold: {key} ({count}/{required})",
                extra={"alert_key": key, "occurrences": count},
            )
            return False
        return True

    def get_stats(self) -> dict[str, Any]:
        """
        Statistics derived from the alert log.

        Returns:
            {"total_alerts": int, "by_severity": {severity: count},
             "recent_alerts": last `recent_limit` records in file order}
        """
        return self.alert_log.stats(recent_limit=self.recent_limit)
