"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Provide reusable fixtures (clock, store, monitor, services)
  - Isolate tests from .env files and process-wide singletons
  - Register the unit marker

Collaborators:
  - pytest: Test framework
  - unittest.mock: Mocking library
  - audit_core.domain / audit_core.application

Notes:
  - Fixtures are function-scoped for per-test isolation
  - FakeClock lets time-window tests advance time deterministically
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from audit_core.crosscutting import config as audit_config  # noqa: E402

audit_config.Settings.model_config["env_file"] = None

from audit_core.application.activity_log import ActivityLogService  # noqa: E402
from audit_core.application.analytics import ActivityAnalyticsService  # noqa: E402
from audit_core.application.monitoring import ActivityMonitor, MonitorConfig  # noqa: E402
from audit_core.application.retrieval import ActivityRetrievalService  # noqa: E402
from audit_core.context import clear_context  # noqa: E402
from audit_core.domain import ActivityLogParams  # noqa: E402
from audit_core.infrastructure.repositories import (  # noqa: E402
    InMemoryActivityLogRepository,
)

BASE_TIME = datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value


@pytest.fixture(autouse=True)
def _clean_context():
    clear_context()
    yield
    clear_context()


@pytest.fixture(autouse=True)
def _clean_settings_cache():
    audit_config.get_settings.cache_clear()
    yield
    audit_config.get_settings.cache_clear()


# ============================================================================
# Core fixtures
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository(clock) -> InMemoryActivityLogRepository:
    return InMemoryActivityLogRepository(clock=clock)


@pytest.fixture
def monitor(clock) -> ActivityMonitor:
    return ActivityMonitor(MonitorConfig(), clock=clock)


@pytest.fixture
def log_service(repository, monitor) -> ActivityLogService:
    return ActivityLogService(repository, monitor=monitor)


@pytest.fixture
def retrieval_service(repository) -> ActivityRetrievalService:
    return ActivityRetrievalService(repository)


@pytest.fixture
def analytics_service(repository, clock) -> ActivityAnalyticsService:
    return ActivityAnalyticsService(repository, clock=clock)


@pytest.fixture
def sample_params() -> ActivityLogParams:
    return ActivityLogParams(
        action="login_success",
        resource_type="authentication",
        description="User signed in",
        actor_id=7,
        session_id="sess-abc",
        ip_address="10.0.0.5",
        user_agent="pytest-agent/1.0",
        metadata={"source": "web"},
    )
