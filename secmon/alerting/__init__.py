"""
secmon - Alerting System

Alert management and notification system:
- Multi-channel alerting (console, alert log, Slack, generic webhook)
- Severity-based routing
- Per-(test, severity) throttling

Components:
    - AlertManager: Main alert orchestration
    - AlertThrottle: Suppression windows per AlertKey
    - AlertRouter: Severity-tiered channel dispatch
    - AlertLog: JSON Lines alert history
"""

from secmon.alerting.alert_log import AlertLog
from secmon.alerting.alert_manager import AlertManager
from secmon.alerting.models import (
    Alert,
    CheckResult,
    Finding,
    Severity,
    alert_key,
    coerce_findings,
)
from secmon.alerting.router import AlertRouter, format_message
from secmon.alerting.throttle import AlertThrottle

__all__ = [
    "AlertManager",
    "AlertThrottle",
    "AlertRouter",
    "AlertLog",
    "Alert",
    "CheckResult",
    "Finding",
    "Severity",
    "alert_key",
    "coerce_findings",
    "format_message",
]
