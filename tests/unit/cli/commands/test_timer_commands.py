"""Unit tests for the timer commands."""

import pytest
from click.testing import CliRunner

from timeflow.cli import cli
from timeflow.cli.context import build_context
from timeflow.cli.error_handlers import (
    EXIT_DATA_INTEGRITY,
    EXIT_INVALID_TIMER_STATE,
    EXIT_NOT_FOUND,
    EXIT_SESSION_CORRUPTED,
)
from timeflow.models.task import Task
from timeflow.models.timer import TimerStatus
from timeflow.services.session_store import SESSION_KEY


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def seeded(app_context, sample_project, sample_task):
    """App context holding project p-1 and its task t-1."""
    app_context.projects.add(sample_project)
    app_context.tasks.add(sample_task)
    return app_context


def invoke(runner, app, *args):
    return runner.invoke(cli, ["timer", *args], obj=app)


class TestStartCommand:
    """Test suite for timer start."""

    def test_start_for_task(self, runner, seeded):
        result = invoke(runner, seeded, "start", "p-1", "--task", "t-1", "-d", "Login")

        assert result.exit_code == 0
        assert "Timer started for p-1 / t-1 (00:00:00)" in result.output
        assert seeded.engine.status == TimerStatus.RUNNING
        assert seeded.engine.session.description == "Login"

    def test_start_persists_session(self, runner, seeded, memory_store):
        invoke(runner, seeded, "start", "p-1")
        assert memory_store.get(SESSION_KEY)["projectId"] == "p-1"

    def test_unknown_project(self, runner, seeded):
        result = invoke(runner, seeded, "start", "p-404")

        assert result.exit_code == EXIT_NOT_FOUND
        assert "Project not found: p-404" in result.output
        assert seeded.engine.status == TimerStatus.STOPPED

    def test_task_of_other_project(self, runner, seeded, sample_project):
        seeded.projects.add(sample_project.model_copy(update={"id": "p-2"}))
        seeded.tasks.add(Task(id="t-9", project_id="p-2", title="Elsewhere"))

        result = invoke(runner, seeded, "start", "p-1", "--task", "t-9")

        assert result.exit_code == EXIT_DATA_INTEGRITY
        assert "Task 't-9' belongs to project 'p-2'" in result.output

    def test_start_twice(self, runner, seeded):
        invoke(runner, seeded, "start", "p-1")

        result = invoke(runner, seeded, "start", "p-1")

        assert result.exit_code == EXIT_INVALID_TIMER_STATE
        assert "Timer Error" in result.output
        assert "Hint: Check the timer status" in result.output

    def test_start_with_watch(self, runner, seeded, fake_clock):
        result = invoke(runner, seeded, "start", "p-1", "--watch", "--ticks", "3")

        assert result.exit_code == 0
        assert "00:00:03" in result.output
        assert fake_clock.sleeps == [1.0, 1.0, 1.0]
        assert seeded.engine.status == TimerStatus.RUNNING

    def test_ticks_must_be_positive(self, runner, seeded):
        result = invoke(runner, seeded, "start", "p-1", "--watch", "--ticks", "0")
        assert result.exit_code == 2
        assert "Invalid value" in result.output


class TestPauseResumeCommands:
    """Test suite for timer pause and resume."""

    def test_pause_and_resume(self, runner, seeded, fake_clock):
        invoke(runner, seeded, "start", "p-1")
        fake_clock.advance(600)

        paused = invoke(runner, seeded, "pause")
        fake_clock.advance(300)
        resumed = invoke(runner, seeded, "resume")

        assert paused.exit_code == 0
        assert "Timer paused at 00:10:00" in paused.output
        assert resumed.exit_code == 0
        assert "Timer resumed at 00:10:00" in resumed.output

    def test_pause_without_timer(self, runner, seeded):
        result = invoke(runner, seeded, "pause")
        assert result.exit_code == EXIT_INVALID_TIMER_STATE

    def test_resume_running_timer(self, runner, seeded):
        invoke(runner, seeded, "start", "p-1")

        result = invoke(runner, seeded, "resume")

        assert result.exit_code == EXIT_INVALID_TIMER_STATE


class TestStopCommand:
    """Test suite for timer stop."""

    def test_stop_records_entry(self, runner, seeded, fake_clock):
        invoke(runner, seeded, "start", "p-1", "--task", "t-1")
        fake_clock.advance(5400)

        result = invoke(runner, seeded, "stop")

        assert result.exit_code == 0
        entries = seeded.entries.all()
        assert len(entries) == 1
        assert f"Recorded 1.50h (1 hour, 30 minutes) as entry {entries[0].id}" in (
            result.output
        )
        assert seeded.engine.status == TimerStatus.STOPPED

    def test_stop_without_timer(self, runner, seeded):
        result = invoke(runner, seeded, "stop")

        assert result.exit_code == EXIT_INVALID_TIMER_STATE
        assert seeded.entries.all() == []


class TestDiscardCommand:
    """Test suite for timer discard."""

    def test_discard_with_confirmation(self, runner, seeded, memory_store):
        invoke(runner, seeded, "start", "p-1")

        result = invoke(runner, seeded, "discard", "--yes")

        assert result.exit_code == 0
        assert "Timer discarded" in result.output
        assert seeded.entries.all() == []
        assert memory_store.get(SESSION_KEY) is None

    def test_discard_declined(self, runner, seeded):
        invoke(runner, seeded, "start", "p-1")

        result = runner.invoke(cli, ["timer", "discard"], obj=seeded, input="n\n")

        assert result.exit_code == 1
        assert seeded.engine.status == TimerStatus.RUNNING


class TestStatusCommand:
    """Test suite for timer status."""

    def test_stopped(self, runner, seeded):
        result = invoke(runner, seeded, "status")

        assert result.exit_code == 0
        assert "Timer is stopped" in result.output

    def test_running(self, runner, seeded, fake_clock):
        invoke(runner, seeded, "start", "p-1", "--task", "t-1", "-d", "Login")
        fake_clock.advance(300)

        result = invoke(runner, seeded, "status")

        assert result.exit_code == 0
        assert "Status:  running" in result.output
        assert "Task:    t-1" in result.output
        assert "Note:    Login" in result.output
        assert "Elapsed: 00:05:00" in result.output

    def test_alternate_format(self, runner, seeded, fake_clock):
        invoke(runner, seeded, "start", "p-1")
        fake_clock.advance(5400)

        result = invoke(runner, seeded, "status", "--format", "decimal")

        assert "Elapsed: 1.50" in result.output

    def test_invalid_format(self, runner, seeded):
        result = invoke(runner, seeded, "status", "--format", "MM:SS")
        assert result.exit_code == 2


class TestAcrossInvocations:
    """Each CLI invocation builds a fresh engine that recovers the session."""

    @pytest.fixture
    def next_invocation(self, test_config, memory_store, fake_clock):
        def _build():
            return build_context(test_config, store=memory_store, clock=fake_clock)

        return _build

    def test_status_after_restart(self, runner, seeded, fake_clock, next_invocation):
        invoke(runner, seeded, "start", "p-1")
        fake_clock.advance(1200)

        result = invoke(runner, next_invocation(), "status")

        assert result.exit_code == 0
        assert "Status:  running" in result.output
        assert "Elapsed: 00:20:00" in result.output

    def test_stop_after_restart(self, runner, seeded, fake_clock, next_invocation):
        invoke(runner, seeded, "start", "p-1")
        fake_clock.advance(3600)

        result = invoke(runner, next_invocation(), "stop")

        assert result.exit_code == 0
        assert "Recorded 1.00h (1 hour)" in result.output

    def test_stale_session_reported(self, runner, seeded, fake_clock, next_invocation):
        invoke(runner, seeded, "start", "p-1")
        fake_clock.advance(25 * 3600)

        result = invoke(runner, next_invocation(), "status")

        assert result.exit_code == EXIT_SESSION_CORRUPTED
        assert "Recovery Error: Persisted timer session discarded" in result.output
        assert "Add the lost time manually" in result.output
