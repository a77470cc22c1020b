"""
Global pytest configuration and fixtures.
"""
import datetime as dt
from decimal import Decimal
from typing import Dict, Optional

import pytest

from timeflow.cli.context import build_context
from timeflow.config import TimeflowConfig, reload_config
from timeflow.models.project import Project
from timeflow.models.task import Task
from timeflow.models.time_entry import TimeEntry
from timeflow.repositories import (
    ProjectRepository,
    TaskRepository,
    TimeEntryRepository,
)
from timeflow.services import InMemoryStore, RetryHandler, SessionStore
from timeflow.timer import TimerEngine

START = dt.datetime(2024, 3, 4, 9, 0, tzinfo=dt.timezone.utc)


class FakeClock:
    """Deterministic ClockSource.

    Wall and monotonic readings advance together through ``advance`` and
    ``sleep``; ``advance_wall`` and ``advance_monotonic`` move one of them
    alone to simulate drift, clock adjustments and system sleep.
    """

    def __init__(self, start: dt.datetime = START, monotonic_start: float = 1000.0):
        self._now = start
        self._monotonic = monotonic_start
        self._today: Optional[dt.date] = None
        self.sleeps = []

    def now(self) -> dt.datetime:
        return self._now

    def monotonic(self) -> float:
        return self._monotonic

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)

    def today(self) -> dt.date:
        return self._today or self._now.date()

    def set_today(self, day: dt.date) -> None:
        self._today = day

    def advance(self, seconds: float) -> None:
        self.advance_wall(seconds)
        self.advance_monotonic(seconds)

    def advance_wall(self, seconds: float) -> None:
        self._now += dt.timedelta(seconds=seconds)

    def advance_monotonic(self, seconds: float) -> None:
        self._monotonic += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock starting at 2024-03-04 09:00 UTC."""
    return FakeClock()


@pytest.fixture(scope="session")
def test_env_vars() -> Dict[str, str]:
    """Test environment variables for configuration."""
    return {
        "TIMEFLOW_TICK_INTERVAL": "0.5",
        "TIMEFLOW_DRIFT_CHECK_TICKS": "10",
        "TIMEFLOW_DRIFT_TOLERANCE": "1.5",
        "TIMEFLOW_DRIFT_CEILING": "4",
        "TIMEFLOW_MAX_SESSION_AGE_HOURS": "12",
        "TIMEFLOW_DEFAULT_CURRENCY": "eur",
        "ENVIRONMENT": "testing",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
    }


@pytest.fixture
def mock_env(test_env_vars, monkeypatch, tmp_path):
    """Mock environment variables for testing."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("TIMEFLOW_DATA_DIR", str(tmp_path / "env-data"))

    # Clear the global config to force reload with test values
    import timeflow.config.settings

    timeflow.config.settings._config = None

    yield test_env_vars

    # Clean up
    timeflow.config.settings._config = None


@pytest.fixture
def env_config(mock_env) -> TimeflowConfig:
    """Configuration loaded from the mocked environment."""
    return reload_config()


@pytest.fixture
def test_config(tmp_path) -> TimeflowConfig:
    """Configuration with small, fast values."""
    return TimeflowConfig(
        data_dir=tmp_path / "data",
        tick_interval_seconds=1.0,
        drift_check_interval_ticks=5,
        drift_tolerance_seconds=2.0,
        drift_compensation_ceiling_seconds=5.0,
        max_session_age_hours=24,
        persistence_max_retries=2,
        persistence_retry_delay=0.0,
        environment="testing",
    )


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def project_repository(memory_store, fake_clock) -> ProjectRepository:
    return ProjectRepository(memory_store, fake_clock)


@pytest.fixture
def task_repository(memory_store, fake_clock, project_repository) -> TaskRepository:
    return TaskRepository(memory_store, fake_clock, projects=project_repository)


@pytest.fixture
def entry_repository(
    memory_store, fake_clock, project_repository, task_repository
) -> TimeEntryRepository:
    entries = TimeEntryRepository(memory_store, fake_clock)
    project_repository.bind(tasks=task_repository, entries=entries)
    task_repository.bind(entries=entries)
    return entries


@pytest.fixture
def no_wait_retry_handler() -> RetryHandler:
    """Retry handler that never sleeps."""
    return RetryHandler(
        max_retries=2, base_delay=0.0, jitter_factor=0.0, sleep=lambda _: None
    )


@pytest.fixture
def session_store(
    memory_store,
    fake_clock,
    test_config,
    project_repository,
    task_repository,
    entry_repository,
    no_wait_retry_handler,
) -> SessionStore:
    return SessionStore(
        memory_store,
        clock=fake_clock,
        config=test_config,
        project_repository=project_repository,
        task_repository=task_repository,
        entry_repository=entry_repository,
        retry_handler=no_wait_retry_handler,
    )


@pytest.fixture
def engine(
    session_store, fake_clock, test_config, entry_repository, task_repository
) -> TimerEngine:
    return TimerEngine(
        session_store,
        clock=fake_clock,
        config=test_config,
        entry_repository=entry_repository,
        task_repository=task_repository,
    )


@pytest.fixture
def sample_project(fake_clock) -> Project:
    """Project billed at 100/h with a 40h estimate."""
    return Project(
        id="p-1",
        name="Website Redesign",
        client_name="Acme Corp",
        default_billing_rate=Decimal("100"),
        estimated_hours=Decimal("40"),
        created_at=fake_clock.now(),
        updated_at=fake_clock.now(),
    )


@pytest.fixture
def sample_task(fake_clock) -> Task:
    """Task of sample_project with an 8h estimate."""
    return Task(
        id="t-1",
        project_id="p-1",
        title="Build login page",
        estimated_hours=Decimal("8"),
        created_at=fake_clock.now(),
        updated_at=fake_clock.now(),
    )


@pytest.fixture
def stored_project(project_repository, sample_project) -> Project:
    return project_repository.add(sample_project)


@pytest.fixture
def stored_task(task_repository, stored_project, sample_task) -> Task:
    return task_repository.add(sample_task)


@pytest.fixture
def make_entry():
    """Factory for time entries starting at 09:00 UTC on ``day``."""

    def _make(
        hours,
        billable=None,
        day: dt.date = dt.date(2024, 3, 4),
        project_id: str = "p-1",
        task_id: Optional[str] = "t-1",
        **kwargs,
    ) -> TimeEntry:
        start = dt.datetime.combine(day, dt.time(9, 0), tzinfo=dt.timezone.utc)
        hours = Decimal(str(hours))
        return TimeEntry(
            project_id=project_id,
            task_id=task_id,
            date=day,
            start_time=start,
            end_time=start + dt.timedelta(seconds=float(hours) * 3600),
            billable_hours=hours if billable is None else Decimal(str(billable)),
            created_at=start,
            updated_at=start,
            **kwargs,
        )

    return _make


@pytest.fixture
def app_context(test_config, memory_store, fake_clock):
    """CLI application context on an in-memory store."""
    return build_context(test_config, store=memory_store, clock=fake_clock)


# Pytest configuration for different test types
def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on location."""
    for item in items:
        # Add unit marker for tests in tests/unit/
        if "tests/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Timer runs and long simulated sessions
        if item.name.startswith("test_run") or "long_session" in item.name:
            item.add_marker(pytest.mark.slow)
