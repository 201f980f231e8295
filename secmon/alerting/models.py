"""
secmon - Alerting Data Model

Findings produced by security checks, the alerts they become once admitted,
and the result sets returned by scheduled check functions.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class Severity(StrEnum):
    """Finding severity levels, most severe first."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


def normalize_severity(value: Any) -> str:
    """
    Canonical severity string.

    Known levels come back as `Severity` members; anything else is returned
    upper-cased and is handled like LOW by throttling and routing.
    """
    text = str(value).strip().upper()
    try:
        return Severity(text)
    except ValueError:
        return text


def alert_key(test: str, severity: Any) -> str:
    """Throttling bucket for a (test, severity) pair."""
    return f"{test}-{normalize_severity(severity)}"


def _parse_timestamp(value: Any) -> datetime | None:
    """Producer timestamp as a datetime; None if missing or unparseable."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable finding timestamp: {value!r}")
        return None


@dataclass(frozen=True)
class Finding:
    """A single observation emitted by a security check."""

    severity: str
    test: str
    details: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        object.__setattr__(self, "severity", normalize_severity(self.severity))

    @property
    def alert_key(self) -> str:
        return alert_key(self.test, self.severity)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Finding:
        """
        Build a Finding from a check's raw test record.

        Records carry at least `severity` and `test`; every other key
        (`recommendation`, nested `details`, `passed`, ...) becomes the
        finding's details.
        """
        timestamp = _parse_timestamp(data.get("timestamp"))
        details = {k: v for k, v in data.items() if k not in ("severity", "test", "timestamp")}
        return cls(
            severity=data.get("severity", Severity.LOW),
            test=str(data.get("test", "unknown")),
            details=details,
            timestamp=timestamp or datetime.now(UTC),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": str(self.severity),
            "test": self.test,
            "details": dict(self.details),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class Alert:
    """An admitted finding, as persisted to the alert log."""

    timestamp: str
    severity: str
    test: str
    details: dict[str, Any]
    alert_key: str

    @classmethod
    def from_finding(cls, finding: Finding, admitted_at: datetime) -> Alert:
        return cls(
            timestamp=admitted_at.isoformat(),
            severity=str(finding.severity),
            test=finding.test,
            details=dict(finding.details),
            alert_key=finding.alert_key,
        )

    @property
    def recommendation(self) -> str | None:
        return self.details.get("recommendation")

    def to_dict(self) -> dict[str, Any]:
        """Wire/log representation."""
        return {
            "timestamp": self.timestamp,
            "severity": self.severity,
            "test": self.test,
            "details": self.details,
            "alertKey": self.alert_key,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


@dataclass
class CheckResult:
    """Result set returned by one execution of a scheduled check."""

    phase: str
    findings: list[Finding] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    def by_severity(self, severity: Any) -> list[Finding]:
        wanted = normalize_severity(severity)
        return [f for f in self.findings if f.severity == wanted]

    @property
    def critical(self) -> list[Finding]:
        return self.by_severity(Severity.CRITICAL)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "phase": self.phase,
            "tests": [f.to_dict() for f in self.findings],
            "metadata": self.metadata,
        }


def coerce_findings(result: Any) -> list[Finding]:
    """
    Normalise whatever a check function returned into a list of Findings.

    Accepts a CheckResult, a Finding, a mapping with a `tests` list, a single
    test-record mapping, an iterable of Findings/mappings, or None.
    """
    if result is None:
        return []
    if isinstance(result, CheckResult):
        return list(result.findings)
    if isinstance(result, Finding):
        return [result]
    if isinstance(result, Mapping):
        if "tests" in result:
            return coerce_findings(result["tests"])
        return [Finding.from_dict(result)]
    if isinstance(result, Iterable) and not isinstance(result, (str, bytes)):
        findings: list[Finding] = []
        for item in result:
            findings.extend(coerce_findings(item))
        return findings
    raise TypeError(f"Cannot interpret check result of type {type(result).__name__}")
