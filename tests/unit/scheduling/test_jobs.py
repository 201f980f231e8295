"""
Tests for Job Definitions
"""

import pytest

from secmon.scheduling.cadence import Cadence
from secmon.scheduling.jobs import JobRun, JobState, build_jobs, resolve_check


def sample_check():
    return []


def test_resolve_check_colon_path():
    """Test resolving a module:function path."""
    assert resolve_check("json:dumps").__name__ == "dumps"


def test_resolve_check_dotted_path():
    """Test resolving a fully dotted path."""
    assert resolve_check("os.path.join").__name__ == "join"


def test_resolve_check_missing_attribute():
    """Test a missing check function raises ImportError."""
    with pytest.raises(ImportError):
        resolve_check("json:does_not_exist")


def test_resolve_check_not_callable():
    """Test a non-callable target raises TypeError."""
    with pytest.raises(TypeError):
        resolve_check("json:__name__")


def test_resolve_check_invalid_path():
    """Test a path without a module raises ValueError."""
    with pytest.raises(ValueError):
        resolve_check("nodots")


def test_build_jobs_from_explicit_checks(make_settings):
    """Test job table built from explicit check functions."""
    config = make_settings(
        scheduling={
            "critical_job": "Critical",
            "jobs": {
                "Critical": {"cadence": "30s", "description": "Rate limiting"},
                "Phase 1": {"cadence": "5m"},
            },
        }
    )

    jobs = build_jobs(config, checks={"Critical": sample_check, "Phase 1": sample_check})

    assert [job.name for job in jobs] == ["Critical", "Phase 1"]
    critical, phase1 = jobs
    assert critical.escalate is True
    assert critical.cadence == Cadence.parse("30s")
    assert critical.description == "Rate limiting"
    assert phase1.escalate is False


def test_build_jobs_resolves_configured_paths(make_settings):
    """Test configured check paths are imported."""
    config = make_settings(scheduling={"jobs": {"Reports": {"cadence": "2h", "check": "json:dumps"}}})

    (job,) = build_jobs(config)

    assert job.runner.__name__ == "dumps"


def test_build_jobs_skips_jobs_without_check(make_settings, caplog):
    """Test jobs without a check are skipped with a warning."""
    config = make_settings(scheduling={"jobs": {"Phase 9": {"cadence": "6h"}}})

    with caplog.at_level("WARNING"):
        assert build_jobs(config) == []

    assert "No check configured for job Phase 9" in caplog.text


def test_build_jobs_rejects_bad_cadence(make_settings):
    """Test an invalid cadence fails configuration loading."""
    with pytest.raises(ValueError):
        make_settings(scheduling={"jobs": {"Bad": {"cadence": "every now and then"}}})


def test_job_run_succeeded():
    """Test JobRun succeeded flag."""
    from datetime import UTC, datetime

    now = datetime.now(UTC)
    assert JobRun("a", JobState.COMPLETED, now).succeeded is True
    assert JobRun("a", JobState.FAILED, now).succeeded is False
