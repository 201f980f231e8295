"""
secmon - Alert Router

Severity-tiered delivery of admitted alerts:
- CRITICAL: console banner + Slack ("danger") + generic webhook
- HIGH: console banner + Slack ("warning")
- MEDIUM / LOW: one console line, no network calls

Every outbound call is isolated: a failing Slack post never blocks the
webhook post and never propagates to the caller.

Usage:
    router = AlertRouter(config)
    router.echo(alert)
    router.dispatch(alert)
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from typing import Any

import requests
from requests import RequestException

from secmon.alerting.models import Alert, Severity
from secmon.shared.config import Settings, get_config, resolve_slack_url, resolve_webhook_url
from secmon.shared.console import ConsoleChannel

logger = logging.getLogger(__name__)

SLACK_COLORS = {
    "danger": "#FF0000",
    "warning": "#FFA500",
    "info": "#0000FF",
}

CRITICAL_HEADER = "\U0001f6a8\U0001f6a8\U0001f6a8 CRITICAL SECURITY ALERT \U0001f6a8\U0001f6a8\U0001f6a8"
CRITICAL_FOOTER = "\U0001f6a8" * 16
HIGH_HEADER = "⚠️  HIGH PRIORITY ALERT"


def format_message(alert: Alert) -> str:
    """Multi-line alert text shared by the console and chat channels."""
    message = f"Security Alert: {alert.test}\n"
    message += f"Severity: {alert.severity}\n"
    message += f"Time: {alert.timestamp}\n"

    if alert.recommendation:
        message += f"Action Required: {alert.recommendation}\n"
    nested = alert.details.get("details")
    if nested:
        message += f"Details: {json.dumps(nested, indent=2, default=str)}\n"

    return message


def _alert_ts(alert: Alert) -> int:
    try:
        return int(datetime.fromisoformat(alert.timestamp).timestamp())
    except ValueError:
        return int(time.time())


class AlertRouter:
    """Formats admitted alerts and delivers them to the enabled channels."""

    def __init__(self, config: Settings | None = None, console: ConsoleChannel | None = None):
        """
        Initialize the router.

        Args:
            config: Configuration object (uses default if not provided)
            console: Operator console sink (stdout if not provided)
        """
        self.config = config or get_config()
        self.channels = self.config.alerting.channels
        self.console = console or ConsoleChannel(enabled=self.channels.console_enabled)

        if self.channels.email_enabled:
            logger.warning("Email alerting is enabled but no email transport is configured; skipping")

    def echo(self, alert: Alert) -> None:
        """One colour-tagged summary line on the console."""
        self.console.write(
            f"{self.console.tag(alert.severity)} {alert.test}: "
            f"{alert.recommendation or 'Check details'}"
        )

    def dispatch(self, alert: Alert) -> list[str]:
        """
        Deliver an alert according to its severity tier.

        Returns:
            Names of the channels that accepted the alert
        """
        if alert.severity == Severity.CRITICAL:
            return self._dispatch_critical(alert)
        elif alert.severity == Severity.HIGH:
            return self._dispatch_high(alert)
        else:
            return self._dispatch_notice(alert)

    def _console_delivered(self) -> list[str]:
        return ["console"] if self.console.enabled else []

    def _dispatch_critical(self, alert: Alert) -> list[str]:
        message = format_message(alert)
        self.console.write("", CRITICAL_HEADER, message, CRITICAL_FOOTER, "")
        delivered = self._console_delivered()

        if self.channels.slack_enabled and self.send_to_slack(message, "danger", _alert_ts(alert)):
            delivered.append("slack")

        if self.channels.webhook_enabled and self.send_to_webhook(alert):
            delivered.append("webhook")

        return delivered

    def _dispatch_high(self, alert: Alert) -> list[str]:
        message = format_message(alert)
        self.console.write("", HIGH_HEADER, message)
        delivered = self._console_delivered()

        if self.channels.slack_enabled and self.send_to_slack(message, "warning", _alert_ts(alert)):
            delivered.append("slack")

        return delivered

    def _dispatch_notice(self, alert: Alert) -> list[str]:
        self.console.write(f"ℹ️  {alert.severity} Alert: {alert.test}")
        return self._console_delivered()

    def send_to_slack(self, message: str, level: str = "info", ts: int | None = None) -> bool:
        """Post a message to the Slack incoming webhook. Never raises."""
        webhook_url = resolve_slack_url(self.config)

        if not webhook_url:
            logger.info("Slack integration not configured, skipping Slack alert")
            return False

        payload: dict[str, Any] = {
            "attachments": [
                {
                    "color": SLACK_COLORS.get(level, SLACK_COLORS["info"]),
                    "text": message,
                    "footer": self.channels.slack_footer,
                    "footer_icon": self.channels.slack_footer_icon,
                    "ts": ts if ts is not None else int(time.time()),
                }
            ]
        }

        try:
            response = requests.post(
                webhook_url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.channels.request_timeout_seconds,
            )
            response.raise_for_status()
        except RequestException as e:
            logger.error(f"Failed to send Slack alert: {e}", extra={"channel": "slack"})
            return False

        logger.info("Sent alert to Slack", extra={"channel": "slack", "level": level})
        return True

    def send_to_webhook(self, alert: Alert) -> bool:
        """Post the raw alert JSON to the generic webhook. Never raises."""
        webhook_url = resolve_webhook_url(self.config)

        if not webhook_url:
            logger.info("Webhook integration not configured, skipping webhook alert")
            return False

        try:
            response = requests.post(
                webhook_url,
                data=alert.to_json(),
                headers={"Content-Type": "application/json"},
                timeout=self.channels.request_timeout_seconds,
            )
            response.raise_for_status()
        except RequestException as e:
            logger.error(
                f"Failed to send webhook alert: {e}",
                extra={"channel": "webhook", "alert_key": alert.alert_key},
            )
            return False

        logger.info("Sent alert to webhook", extra={"channel": "webhook", "alert_key": alert.alert_key})
        return True
