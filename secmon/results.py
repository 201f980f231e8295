"""
secmon - Result Store

File-backed sink for raw check results. Each result set is written as a
pretty-printed JSON document named after its capture time:

    security-results/security-2024-01-15T12-00-30.123456+00-00.json

The dashboard and report generator read these files; the scheduling core only
writes them.

Usage:
    store = ResultStore(config)
    path = store.save(check_result)
    latest = store.load_recent(limit=5)
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from secmon.alerting.models import CheckResult
from secmon.shared.config import Settings, get_config

logger = logging.getLogger(__name__)


class ResultStore:
    """Writes check results as JSON documents under `storage.results_dir`."""

    def __init__(self, config: Settings | None = None, results_dir: str | Path | None = None):
        self.config = config or get_config()
        self.results_dir = Path(results_dir or self.config.storage.results_dir)

    def save(self, result: CheckResult | dict[str, Any]) -> Path | None:
        """
        Persist one result set.

        Returns:
            Path of the written file, or None if the write failed
        """
        payload = result.to_dict() if isinstance(result, CheckResult) else dict(result)
        timestamp = datetime.now(UTC).isoformat().replace(":", "-")
        path = self.results_dir / f"security-{timestamp}.json"

        try:
            self.results_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, default=str)
        except OSError as e:
            logger.error(f"Failed to save results to {path}: {e}")
            return None

        logger.info(f"Results saved to: {path}", extra={"phase": payload.get("phase")})
        return path

    __call__ = save

    def load_recent(self, limit: int = 10) -> list[dict[str, Any]]:
        """Newest result sets first. Unreadable files are skipped."""
        if not self.results_dir.exists():
            return []

        files = sorted(self.results_dir.glob("security-*.json"), reverse=True)[:limit]
        results = []
        for file in files:
            try:
                with open(file, encoding="utf-8") as f:
                    results.append(json.load(f))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping unreadable result file {file}: {e}")
        return results
