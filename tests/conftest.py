"""
secmon - Pytest Configuration and Fixtures

Shared fixtures for all tests:
- Configuration fixtures (isolated log file and results dir per test)
- Injectable clock and console
- Mock fixtures for outbound webhooks
"""

import io
import os
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

# Set test environment
os.environ["SECMON_ENVIRONMENT"] = "dev"


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def configs_dir(project_root: Path) -> Path:
    """Get the configs directory."""
    return project_root / "configs"


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def test_config() -> Any:
    """Get dev configuration from the YAML files."""
    from secmon.shared.config import get_config, reload_config

    reload_config("dev")
    return get_config("dev")


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Any]:
    """Factory for Settings writing to a per-test log file and results dir."""
    from secmon.shared.config import Settings

    def _make(channels: dict[str, Any] | None = None, **sections: Any) -> Settings:
        alerting = {"log_file": str(tmp_path / "security-alerts.log")}
        alerting.update(sections.pop("alerting", {}))
        alerting["channels"] = {"console_enabled": True, **(channels or {})}

        scheduling = {"stats_interval_minutes": 0}
        scheduling.update(sections.pop("scheduling", {}))

        return Settings(
            alerting=alerting,
            scheduling=scheduling,
            storage={"results_dir": str(tmp_path / "results")},
            **sections,
        )

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., Any]) -> Any:
    """Settings with console and log channels only."""
    return make_settings()


# =============================================================================
# Clock and Console Fixtures
# =============================================================================


class FakeClock:
    """Manually advanced clock returning aware UTC datetimes."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 15, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def console_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def console(console_stream: io.StringIO) -> Any:
    from secmon.shared.console import ConsoleChannel

    return ConsoleChannel(stream=console_stream, color=False)


# =============================================================================
# Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_requests() -> Generator[MagicMock, None, None]:
    """Mock requests for webhook testing."""
    with patch("secmon.alerting.router.requests") as mock_req:
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_req.post.return_value = mock_response
        yield mock_req


# =============================================================================
# Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def cleanup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep webhook secrets from the host environment out of the tests."""
    monkeypatch.delenv("SLACK_WEBHOOK_URL", raising=False)
    monkeypatch.delenv("ALERT_WEBHOOK_URL", raising=False)
    yield

    from secmon.shared.config import get_config

    get_config.cache_clear()
