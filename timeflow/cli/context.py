"""Wiring of storage, repositories, timer and calculators for CLI commands."""

import logging
from dataclasses import dataclass
from typing import Optional

import click

from timeflow.aggregators.entry_aggregator import EntryAggregator
from timeflow.calculators.billing_calculator import BillingCalculator
from timeflow.calculators.progress_calculator import ProgressCalculator
from timeflow.calculators.summary_generator import SummaryGenerator
from timeflow.cli.utils.formatters import format_warning
from timeflow.config.settings import TimeflowConfig, get_config
from timeflow.models.timer import TimerSession, TimerStatus
from timeflow.repositories.project_repository import ProjectRepository
from timeflow.repositories.task_repository import TaskRepository
from timeflow.repositories.time_entry_repository import TimeEntryRepository
from timeflow.services.session_store import SessionStore
from timeflow.services.storage import JsonFileStore, KeyValueStore
from timeflow.timer.clock import ClockSource, SystemClock
from timeflow.timer.engine import TimerEngine

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a command needs, built once per CLI invocation."""

    config: TimeflowConfig
    clock: ClockSource
    store: KeyValueStore
    projects: ProjectRepository
    tasks: TaskRepository
    entries: TimeEntryRepository
    session_store: SessionStore
    engine: TimerEngine
    summaries: SummaryGenerator
    aggregator: EntryAggregator
    debug: bool = False

    @property
    def progress(self) -> ProgressCalculator:
        return self.summaries.progress

    @property
    def billing(self) -> BillingCalculator:
        return self.summaries.billing

    def recover_timer(self) -> Optional[TimerSession]:
        """Adopt a session persisted by an earlier invocation, if any.

        Raises:
            SessionCorrupted: If the persisted session failed validation
        """
        if self.engine.status != TimerStatus.STOPPED:
            return self.engine.session
        return self.engine.recover()


def build_context(
    config: Optional[TimeflowConfig] = None,
    store: Optional[KeyValueStore] = None,
    clock: Optional[ClockSource] = None,
    debug: bool = False,
) -> AppContext:
    """
    Build the application graph.

    Args:
        config: Settings (defaults to the global configuration)
        store: Storage backend (defaults to a JsonFileStore under data_dir)
        clock: Clock (defaults to SystemClock)
        debug: Show stack traces for unexpected errors

    Returns:
        AppContext with every service wired to the same store and clock
    """
    config = config or get_config()
    clock = clock or SystemClock()
    if store is None:
        store = JsonFileStore(config.data_dir, quota_bytes=config.storage_quota_bytes)

    projects = ProjectRepository(store, clock)
    tasks = TaskRepository(store, clock, projects=projects)
    entries = TimeEntryRepository(store, clock)
    projects.bind(tasks=tasks, entries=entries)
    tasks.bind(entries=entries)

    session_store = SessionStore(
        store,
        clock=clock,
        config=config,
        project_repository=projects,
        task_repository=tasks,
        entry_repository=entries,
    )
    engine = TimerEngine(
        session_store,
        clock=clock,
        config=config,
        entry_repository=entries,
        task_repository=tasks,
    )
    engine.on_warning(
        lambda warning: click.echo(format_warning(warning.message), err=True)
    )

    summaries = SummaryGenerator(
        progress=ProgressCalculator(clock), billing=BillingCalculator()
    )
    logger.debug(f"Built application context on {type(store).__name__}")
    return AppContext(
        config=config,
        clock=clock,
        store=store,
        projects=projects,
        tasks=tasks,
        entries=entries,
        session_store=session_store,
        engine=engine,
        summaries=summaries,
        aggregator=EntryAggregator(summaries.billing),
        debug=debug or config.debug,
    )
