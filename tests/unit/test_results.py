"""
Tests for Result Store
"""

import json

from secmon.alerting.models import CheckResult, Finding
from secmon.results import ResultStore


def test_save_check_result(settings):
    """Test saving a CheckResult."""
    store = ResultStore(settings)
    result = CheckResult(phase="Critical", findings=[Finding(severity="CRITICAL", test="Rate Limiting")])

    path = store.save(result)

    assert path.parent == store.results_dir
    assert path.name.startswith("security-")
    assert ":" not in path.name
    data = json.loads(path.read_text())
    assert data["phase"] == "Critical"
    assert data["tests"][0]["test"] == "Rate Limiting"


def test_save_mapping(settings):
    """Test saving a raw result mapping."""
    store = ResultStore(settings)

    path = store({"phase": "Phase 1", "tests": []})

    assert json.loads(path.read_text()) == {"phase": "Phase 1", "tests": []}


def test_save_failure_returns_none(settings, tmp_path):
    """Test a failed write returns None."""
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    store = ResultStore(settings, results_dir=blocker / "results")

    assert store.save({"phase": "x"}) is None


def test_load_recent_newest_first(settings):
    """Test recent results come newest first and bad files are skipped."""
    store = ResultStore(settings)
    store.results_dir.mkdir(parents=True)
    for stamp, phase in [("2024-01-01", "old"), ("2024-01-03", "new"), ("2024-01-02", "mid")]:
        (store.results_dir / f"security-{stamp}.json").write_text(json.dumps({"phase": phase}))
    (store.results_dir / "security-2024-01-04.json").write_text("{broken")

    results = store.load_recent(limit=3)

    assert [r["phase"] for r in results] == ["new", "mid"]


def test_load_recent_missing_dir(settings):
    """Test loading from a missing directory."""
    assert ResultStore(settings).load_recent() == []
