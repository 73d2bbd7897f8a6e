"""Top-level update loop: screen switching, refresh scheduling, routing."""

from __future__ import annotations

import logging

from rich.text import Text

from ..config import Config
from ..models import WorkflowDefinition
from .dashboard import Dashboard, build_workflow_files
from .fetchable import LoadState
from .logviewer import BACK, QUIT, LogViewer
from .messages import (
    ActionResult,
    BrowserOpened,
    ClearStatus,
    JobsLoaded,
    KeyPress,
    LocalDefsLoaded,
    LogsLoaded,
    Message,
    Resize,
    RunsLoaded,
    Tick,
)
from .render import render_dashboard, render_logs
from .tasks import Delay, LoadLocalDefs, LoadRuns, Quit, Task

logger = logging.getLogger(__name__)

SCREEN_DASHBOARD = "dashboard"
SCREEN_LOGS = "logs"

PARTIAL_PAGE_SIZE = 1


class AppController:
    """Owns the dashboard and the log viewer and routes every message.

    ``update`` consumes one message, mutates state, and returns the
    background tasks to run next.
    """

    def __init__(self, config: Config, default_branch: str = "", local_branch: str = ""):
        self.config = config
        self.dashboard = Dashboard(
            config,
            default_branch=default_branch,
            local_branch=local_branch,
            refresh=self.refresh_task,
        )
        self.log_viewer = LogViewer(context=config.log_context)
        self.screen = SCREEN_DASHBOARD
        self.width = 0
        self.height = 0

        self.message = ""
        self._message_token = 0
        self._run_token = 0
        self._applied_run_token = 0

        self.local_defs: list[WorkflowDefinition] = []
        self.workflow_files: dict[str, str] = {}

    def init(self) -> list[Task]:
        """Startup tasks: local discovery, partial and full fetch, first tick."""
        return [
            LoadLocalDefs(),
            self.refresh_task(partial=True),
            self.refresh_task(),
            self._schedule_tick(),
        ]

    def refresh_task(self, partial: bool = False) -> LoadRuns:
        self._run_token += 1
        self.dashboard.mark_runs_fetching()
        page_size = PARTIAL_PAGE_SIZE if partial else self.config.page_size
        return LoadRuns(
            repos=tuple(self.config.repos),
            page_size=page_size,
            token=self._run_token,
            partial=partial,
        )

    def _schedule_tick(self) -> Delay:
        return Delay(self.config.refresh_interval, Tick())

    def set_status(self, message: str) -> list[Task]:
        """Show message on the status line; returns the task that clears it."""
        self._message_token += 1
        self.message = message
        return [Delay(self.config.msg_timeout, ClearStatus(self._message_token))]

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, msg: Message) -> list[Task]:
        if isinstance(msg, Resize):
            self.width, self.height = msg.width, msg.height
            return []
        if isinstance(msg, KeyPress):
            return self._handle_key(msg)
        if isinstance(msg, Tick):
            return [self.refresh_task(), self._schedule_tick()]
        if isinstance(msg, ClearStatus):
            if msg.token == self._message_token:
                self.message = ""
            return []
        if isinstance(msg, RunsLoaded):
            return self._runs_loaded(msg)
        if isinstance(msg, LocalDefsLoaded):
            return self._defs_loaded(msg)
        if isinstance(msg, JobsLoaded):
            if msg.error is not None:
                self.dashboard.jobs_failed(msg.run_id, msg.error)
            else:
                self.dashboard.ingest_jobs(msg.jobs, run_id=msg.run_id)
            return []
        if isinstance(msg, LogsLoaded):
            if msg.error is not None:
                return self.set_status(f"error loading logs: {msg.error}")
            self.message = ""
            self.log_viewer.set_logs(msg.logs, msg.job_name)
            self.screen = SCREEN_LOGS
            return []
        if isinstance(msg, ActionResult):
            text = f"error: {msg.error}" if msg.error is not None else msg.message
            return self.set_status(text) + [self.refresh_task()]
        if isinstance(msg, BrowserOpened):
            if msg.error is not None:
                return self.set_status(f"error: {msg.error}")
            return []
        logger.debug("ignoring unknown message %r", msg)
        return []

    def _handle_key(self, event: KeyPress) -> list[Task]:
        if self.screen == SCREEN_LOGS:
            result = self.log_viewer.handle_key(event, self.height)
            if result == QUIT:
                return [Quit()]
            if result == BACK:
                self.screen = SCREEN_DASHBOARD
            return []

        tasks = self.dashboard.handle_key(event)
        if self.dashboard.pending_message:
            tasks = tasks + self.set_status(self.dashboard.pending_message)
            self.dashboard.pending_message = ""
        return tasks

    def _runs_loaded(self, msg: RunsLoaded) -> list[Task]:
        if msg.token <= self._applied_run_token:
            logger.debug(
                "discarding stale runs response token=%d applied=%d",
                msg.token, self._applied_run_token,
            )
            return []
        self._applied_run_token = msg.token

        if msg.error is not None:
            self.dashboard.runs_failed(msg.error)
            return self.set_status(f"error: {msg.error}")

        self.workflow_files = build_workflow_files(msg.runs, self.local_defs, self.workflow_files)
        task = self.dashboard.ingest_runs(
            msg.runs, self.local_defs, self.workflow_files, partial=msg.partial
        )
        return [task] if task is not None else []

    def _defs_loaded(self, msg: LocalDefsLoaded) -> list[Task]:
        if msg.error is not None:
            self.dashboard.definitions_failed(msg.error)
            return []
        self.local_defs = list(msg.definitions)
        self.workflow_files = build_workflow_files(
            self.dashboard.all_runs, self.local_defs, self.workflow_files
        )
        task = self.dashboard.ingest_definitions(self.local_defs, self.workflow_files)
        return [task] if task is not None else []

    # ------------------------------------------------------------------
    # Render
    # ------------------------------------------------------------------

    def render(self) -> Text:
        if self.screen == SCREEN_LOGS:
            return render_logs(self.log_viewer, self.width, self.height)
        if self.dashboard.runs.state == LoadState.IDLE and not self.dashboard.workflows:
            return Text("loading workflow runs...")
        return render_dashboard(self.dashboard, self.width, self.height, self.message)
