"""
secmon - Alert Log

Append-only JSON Lines file holding every admitted alert, one object per
line. It is the durable record behind `AlertManager.get_stats()` and the
dashboard. Readers skip blank and unparseable lines (e.g. a partial line
left by an interrupted write).
"""

from __future__ import annotations

import json
import logging
import threading
from collections import Counter
from pathlib import Path
from typing import Any

from secmon.alerting.models import Alert

logger = logging.getLogger(__name__)


class AlertLog:
    """JSON Lines alert log."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, alert: Alert) -> bool:
        """
        Append one alert.

        Returns False if the write failed; the failure is logged and not
        raised, the alert has still been admitted.
        """
        line = alert.to_json() + "\n"
        try:
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line)
        except OSError as e:
            logger.error(
                f"Failed to append alert to {self.path}: {e}",
                extra={"alert_key": alert.alert_key, "log_file": str(self.path)},
            )
            return False
        return True

    def read(self) -> list[dict[str, Any]]:
        """All parseable records, in file order."""
        if not self.path.exists():
            return []

        records = []
        try:
            with open(self.path, encoding="utf-8", errors="replace") as f:
                for lineno, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        record = json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug(f"Skipping unparseable alert log line {lineno} in {self.path}")
                        continue
                    if isinstance(record, dict):
                        records.append(record)
        except OSError as e:
            logger.error(f"Failed to read alert log {self.path}: {e}")
        return records

    def stats(self, recent_limit: int = 10) -> dict[str, Any]:
        """Totals, counts per severity, and the last `recent_limit` records."""
        records = self.read()
        by_severity = Counter(str(r.get("severity")) for r in records)
        return {
            "total_alerts": len(records),
            "by_severity": dict(by_severity),
            "recent_alerts": records[-recent_limit:] if recent_limit > 0 else [],
        }
