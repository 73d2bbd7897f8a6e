"""Tests for AppController: startup, refresh tokens, routing, status line."""

import pytest

from cidash.exceptions import CIAPIError
from cidash.models import WorkflowDefinition
from cidash.ui.controller import SCREEN_DASHBOARD, SCREEN_LOGS, AppController
from cidash.ui.fetchable import LoadState
from cidash.ui.messages import (
    ActionResult,
    BrowserOpened,
    ClearStatus,
    JobsLoaded,
    KeyPress,
    LocalDefsLoaded,
    LogsLoaded,
    Resize,
    RunsLoaded,
    Tick,
)
from cidash.ui.tasks import Delay, LoadJobs, LoadLocalDefs, LoadLogs, LoadRuns, Quit

from factories import REPO, make_job


def key(k):
    if len(k) == 1:
        return KeyPress(key=k, character=k)
    return KeyPress(key=k)


@pytest.fixture
def app(config):
    return AppController(config, default_branch="main")


@pytest.fixture
def loaded(app, runs):
    """Controller after startup with runs applied."""
    tasks = app.init()
    full = tasks[2]
    app.update(RunsLoaded(token=full.token, runs=runs))
    return app


def of_type(tasks, cls):
    return [t for t in tasks if isinstance(t, cls)]


class TestInit:
    """Tests for the startup task list."""

    def test_startup_tasks(self, app, config):
        tasks = app.init()
        assert isinstance(tasks[0], LoadLocalDefs)
        partial, full = tasks[1], tasks[2]
        assert partial.partial and partial.page_size == 1
        assert not full.partial and full.page_size == config.page_size
        assert full.token > partial.token
        assert partial.repos == (REPO,)
        assert tasks[3] == Delay(config.refresh_interval, Tick())

    def test_tick_refreshes_and_rearms(self, loaded, config):
        tasks = loaded.update(Tick())
        assert len(of_type(tasks, LoadRuns)) == 1
        assert Delay(config.refresh_interval, Tick()) in tasks
        assert loaded.dashboard.runs.is_fetching()

    def test_manual_refresh_marks_runs_fetching(self, loaded):
        assert not loaded.dashboard.runs.is_fetching()
        loaded.update(key("R"))
        assert loaded.dashboard.runs.is_fetching()

    def test_action_refresh_marks_runs_fetching(self, loaded):
        loaded.update(ActionResult(message="workflow cancelled"))
        assert loaded.dashboard.runs.is_fetching()

    def test_fetching_cleared_when_refresh_lands(self, loaded, runs):
        refresh = of_type(loaded.update(key("R")), LoadRuns)[0]
        loaded.update(RunsLoaded(token=refresh.token, runs=runs))
        assert not loaded.dashboard.runs.is_fetching()


class TestRunTokens:
    """Tests for ignoring out-of-order run responses."""

    def test_partial_then_full(self, app, runs):
        _, partial, full, _ = app.init()
        app.update(RunsLoaded(token=partial.token, partial=True, runs=runs[:1]))
        assert app.dashboard.runs.state == LoadState.PARTIAL
        app.update(RunsLoaded(token=full.token, runs=runs))
        assert app.dashboard.runs.state == LoadState.READY
        assert len(app.dashboard.all_runs) == 5

    def test_stale_partial_after_full_is_ignored(self, app, runs):
        _, partial, full, _ = app.init()
        app.update(RunsLoaded(token=full.token, runs=runs))
        tasks = app.update(RunsLoaded(token=partial.token, partial=True, runs=runs[:1]))
        assert tasks == []
        assert app.dashboard.runs.state == LoadState.READY
        assert len(app.dashboard.all_runs) == 5

    def test_stale_error_is_ignored(self, loaded):
        loaded.update(RunsLoaded(token=1, error=CIAPIError("late")))
        assert loaded.dashboard.runs.error is None
        assert loaded.message == ""

    def test_load_returns_job_request(self, app, runs):
        _, _, full, _ = app.init()
        tasks = app.update(RunsLoaded(token=full.token, runs=runs))
        assert tasks == [LoadJobs(REPO, 1)]

    def test_error_keeps_data_and_sets_status(self, loaded, config):
        tick = of_type(loaded.update(Tick()), LoadRuns)[0]
        tasks = loaded.update(RunsLoaded(token=tick.token, error=CIAPIError("502: bad gateway")))
        assert loaded.dashboard.runs.has_data()
        assert loaded.message == "error: 502: bad gateway"
        assert of_type(tasks, Delay)[0].seconds == config.msg_timeout

    def test_workflow_files_accumulate(self, app, runs):
        app.update(LocalDefsLoaded(definitions=[WorkflowDefinition("nightly", "nightly.yml")]))
        _, _, full, _ = app.init()
        app.update(RunsLoaded(token=full.token, runs=runs))
        assert app.workflow_files["nightly"] == "nightly.yml"
        assert app.workflow_files["deploy"] == "deploy.yml"


class TestLocalDefs:
    """Tests for local definition results."""

    def test_definitions_applied_as_local(self, app):
        app.update(LocalDefsLoaded(definitions=[WorkflowDefinition("CI", "ci.yml")]))
        assert app.dashboard.definitions.state == LoadState.LOCAL
        assert "CI" in app.dashboard.workflows

    def test_discovery_error_is_not_fatal(self, app):
        assert app.update(LocalDefsLoaded(error=RuntimeError("no git root"))) == []
        assert app.dashboard.definitions.state == LoadState.ERROR
        assert app.message == ""


class TestJobs:
    """Tests for job results."""

    def test_jobs_for_selected_run(self, loaded):
        loaded.update(JobsLoaded(run_id=1, jobs=[make_job(11, 1)]))
        assert [j.id for j in loaded.dashboard.jobs.data] == [11]

    def test_jobs_for_stale_run_dropped(self, loaded):
        loaded.dashboard.active_panel = 1
        loaded.update(key("j"))
        loaded.update(JobsLoaded(run_id=1, jobs=[make_job(11, 1)]))
        assert loaded.dashboard.jobs.data is None

    def test_job_error(self, loaded):
        loaded.update(JobsLoaded(run_id=1, error=CIAPIError("boom")))
        assert loaded.dashboard.jobs.state == LoadState.ERROR


class TestStatus:
    """Tests for the auto-clearing status line."""

    def test_key_status_is_cleared_by_matching_token(self, loaded, config):
        tasks = loaded.update(key("R"))
        assert loaded.message == "refreshing..."
        assert len(of_type(tasks, LoadRuns)) == 1
        clear = of_type(tasks, Delay)[0]
        assert clear.seconds == config.msg_timeout
        loaded.update(clear.message)
        assert loaded.message == ""

    def test_older_clear_does_not_erase_newer_message(self, loaded):
        first = of_type(loaded.set_status("one"), Delay)[0].message
        loaded.set_status("two")
        loaded.update(first)
        assert loaded.message == "two"

    def test_unrelated_token_ignored(self, loaded):
        loaded.set_status("hello")
        loaded.update(ClearStatus(token=-1))
        assert loaded.message == "hello"

    def test_action_result_shows_message_and_refreshes(self, loaded):
        tasks = loaded.update(ActionResult(message="re-run triggered"))
        assert loaded.message == "re-run triggered"
        assert len(of_type(tasks, LoadRuns)) == 1

    def test_action_error(self, loaded):
        loaded.update(ActionResult(error=CIAPIError("403: forbidden")))
        assert loaded.message == "error: 403: forbidden"

    def test_browser_error(self, loaded):
        loaded.update(BrowserOpened(url="https://x", error=RuntimeError("no browser")))
        assert loaded.message == "error: no browser"

    def test_browser_success_is_silent(self, loaded):
        assert loaded.update(BrowserOpened(url="https://x")) == []
        assert loaded.message == ""


class TestScreens:
    """Tests for switching between the dashboard and the log viewer."""

    def open_logs(self, app):
        app.update(Resize(100, 30))
        app.update(JobsLoaded(run_id=1, jobs=[make_job(11, 1, name="build")]))
        app.dashboard.active_panel = 2
        tasks = app.update(key("enter"))
        assert LoadLogs(REPO, 11, "build") in tasks
        assert app.message == "loading logs..."
        app.update(LogsLoaded(job_name="build", logs="a\nb\nERROR c"))

    def test_logs_open_viewer(self, loaded):
        self.open_logs(loaded)
        assert loaded.screen == SCREEN_LOGS
        assert loaded.log_viewer.job_name == "build"
        assert loaded.message == ""

    def test_keys_route_to_viewer_and_back(self, loaded):
        self.open_logs(loaded)
        loaded.update(key("/"))
        assert loaded.log_viewer.searching
        loaded.update(key("escape"))
        loaded.update(key("escape"))
        assert loaded.screen == SCREEN_DASHBOARD
        assert loaded.dashboard.active_panel == 2

    def test_quit_from_viewer(self, loaded):
        self.open_logs(loaded)
        assert loaded.update(key("q")) == [Quit()]

    def test_quit_from_dashboard(self, loaded):
        assert loaded.update(key("q")) == [Quit()]

    def test_log_error_stays_on_dashboard(self, loaded):
        loaded.update(LogsLoaded(job_name="build", error=CIAPIError("404: not found")))
        assert loaded.screen == SCREEN_DASHBOARD
        assert loaded.message == "error loading logs: 404: not found"

    def test_resize(self, app):
        app.update(Resize(120, 40))
        assert (app.width, app.height) == (120, 40)


class TestRender:
    """Smoke tests for the rendered frame."""

    def test_loading_frame(self, app):
        assert app.render().plain == "loading workflow runs..."

    def test_dashboard_frame(self, loaded):
        loaded.update(Resize(120, 30))
        plain = loaded.render().plain
        assert "WORKFLOWS" in plain
        assert "RUNS" in plain
        assert "DETAIL" in plain
        assert "main" in plain
        assert len(plain.split("\n")) == 30

    def test_status_in_help_bar(self, loaded):
        loaded.update(Resize(120, 30))
        loaded.set_status("workflow cancelled")
        assert loaded.render().plain.split("\n")[-1].startswith("workflow cancelled")

    def test_log_frame(self, loaded):
        TestScreens().open_logs(loaded)
        plain = loaded.render().plain
        assert "Logs: build" in plain
        assert "1-3 / 3" in plain
        assert "ERROR c" in plain

    def test_log_frame_no_matches(self, loaded):
        TestScreens().open_logs(loaded)
        loaded.log_viewer.submit("zzz")
        assert "no matches for /zzz" in loaded.render().plain

    def test_branch_picker_highlight_stays_visible(self, loaded):
        loaded.update(Resize(120, 30))
        loaded.dashboard.branch_picker.open([f"branch-{i}" for i in range(6)])
        for _ in range(5):
            loaded.update(key("down"))
        plain = loaded.render().plain
        assert "> branch-5" in plain
        assert "branch-0" not in plain
