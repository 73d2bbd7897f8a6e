"""Three-panel dashboard controller: workflows, runs, and run detail.

The dashboard owns the run, definition and job data sets and the three modal
dialogs. Visible lists are derived from the data on every change, and every
cursor is clamped after every mutation so an out-of-range selection is never
rendered.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from ..config import Config
from ..models import Job, Run, WorkflowDefinition
from . import keys
from .dialogs import BranchPicker, DispatchDialog, RerunDialog
from .fetchable import Fetchable
from .messages import KeyPress
from .tasks import CancelRun, LoadJobs, LoadLogs, OpenBrowser, Quit, Task

logger = logging.getLogger(__name__)

PANEL_WORKFLOWS = 0
PANEL_RUNS = 1
PANEL_DETAIL = 2

PANEL_NAMES = ["WORKFLOWS", "RUNS", "DETAIL"]

WORKFLOW_ALL = "*"  # wildcard row: show all workflows
BRANCH_ROW = 0  # workflow cursor sentinel for the branch row
PAGE_SIZE = 10


def build_workflow_files(
    runs: Iterable[Run],
    definitions: Iterable[WorkflowDefinition],
    existing: Optional[dict[str, str]] = None,
) -> dict[str, str]:
    """Map workflow name -> file name, from run paths first, then local files."""
    files = dict(existing or {})
    for run in runs:
        if run.workflow_file and run.name not in files:
            files[run.name] = run.workflow_file
    for definition in definitions:
        files.setdefault(definition.name, definition.file)
    return files


def derive_lists(
    runs: list[Run], definitions: list[WorkflowDefinition]
) -> tuple[list[str], list[str]]:
    """Derive (workflows, branches) from runs and local definitions.

    The workflow list is the wildcard followed by the sorted union of local
    definition names and names of runs whose file no definition covers.
    Branches are the sorted head branches of all runs.
    """
    local_files = {d.file for d in definitions}
    names = {d.name for d in definitions}
    for run in runs:
        if run.workflow_file and run.workflow_file in local_files:
            continue
        names.add(run.name)
    workflows = [WORKFLOW_ALL] + sorted(names)
    branches = sorted({run.head_branch for run in runs if run.head_branch})
    return workflows, branches


def filter_runs(runs: Iterable[Run], branch: Optional[str], workflow: str) -> list[Run]:
    """Runs on branch whose workflow is workflow (or any, for the wildcard)."""
    out = []
    for run in runs:
        if branch is not None and run.head_branch != branch:
            continue
        if workflow and workflow != WORKFLOW_ALL and run.name != workflow:
            continue
        out.append(run)
    return out


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class Dashboard:
    """Navigation and filter state for the main screen.

    Key handling returns background task descriptors; status text for the
    status line is left in ``pending_message`` for the app to collect.
    """

    def __init__(
        self,
        config: Config,
        default_branch: str = "",
        local_branch: str = "",
        refresh: Optional[Callable[[], Task]] = None,
    ) -> None:
        self.config = config
        self.default_branch = default_branch or config.default_branch
        self.local_branch = local_branch
        self._refresh = refresh

        self.runs: Fetchable[list[Run]] = Fetchable()
        self.definitions: Fetchable[list[WorkflowDefinition]] = Fetchable()
        self.jobs: Fetchable[list[Job]] = Fetchable()
        self.jobs_run_id: Optional[int] = None

        self.active_panel = PANEL_WORKFLOWS
        self.workflow_cursor = 1  # start on the wildcard row
        self.cursor = 0
        self.job_cursor = 0

        self.workflows: list[str] = []
        self.branches: list[str] = []
        self.branch_idx = 0
        self.filtered_runs: list[Run] = []
        self.workflow_files: dict[str, str] = {}
        self._local_defs: list[WorkflowDefinition] = []
        self._derived = False

        self.branch_picker = BranchPicker()
        self.rerun_dialog = RerunDialog()
        self.dispatch_dialog = DispatchDialog()

        self.pending_message = ""

    # ------------------------------------------------------------------
    # Data ingestion
    # ------------------------------------------------------------------

    @property
    def all_runs(self) -> list[Run]:
        return self.runs.data or []

    def ingest_runs(
        self,
        runs: list[Run],
        local_definitions: list[WorkflowDefinition],
        workflow_files: dict[str, str],
        partial: bool = False,
    ) -> Optional[Task]:
        """Replace the run set and re-derive everything from it.

        Returns a job-load task for the selected run, if any.
        """
        if partial:
            self.runs.set_partial(list(runs))
        else:
            self.runs.set_data(list(runs))
        return self._rederive(local_definitions, workflow_files)

    def ingest_definitions(
        self, definitions: list[WorkflowDefinition], workflow_files: dict[str, str]
    ) -> Optional[Task]:
        self.definitions.set_local(list(definitions))
        return self._rederive(definitions, workflow_files)

    def runs_failed(self, error: Exception) -> None:
        self.runs.set_error(error)

    def definitions_failed(self, error: Exception) -> None:
        self.definitions.set_error(error)

    def mark_runs_fetching(self) -> None:
        self.runs.mark_fetching()

    def ingest_jobs(self, jobs: list[Job], run_id: Optional[int] = None) -> bool:
        """Replace the job list of the displayed run.

        Jobs for a run other than the selected one are dropped. Returns
        whether the jobs were applied.
        """
        run = self.selected_run()
        if run_id is not None and (run is None or run.id != run_id):
            logger.debug("dropping jobs for run %s; selected run changed", run_id)
            return False
        self.jobs.set_data(list(jobs))
        self.jobs_run_id = run.id if run else run_id
        if self.job_cursor >= len(jobs):
            self.job_cursor = 0
        return True

    def jobs_failed(self, run_id: int, error: Exception) -> None:
        run = self.selected_run()
        if run is not None and run.id == run_id:
            self.jobs.set_error(error)

    def _rederive(
        self, local_definitions: list[WorkflowDefinition], workflow_files: dict[str, str]
    ) -> Optional[Task]:
        self._local_defs = list(local_definitions)
        self.workflow_files = dict(workflow_files)

        # remember selections by name before the lists move
        if not self._derived:
            prev_branch = self.local_branch or self.default_branch
        else:
            prev_branch = self.selected_branch()
        prev_wf = self.selected_workflow()

        self.workflows, self.branches = derive_lists(self.all_runs, self._local_defs)
        for branch in (self.default_branch, self.local_branch):
            if branch and branch not in self.branches:
                self.branches.append(branch)
        self.branches.sort()
        self._derived = True

        self.branch_idx = 0
        if prev_branch in self.branches:
            self.branch_idx = self.branches.index(prev_branch)

        if prev_wf:
            self.workflow_cursor = 1
            if prev_wf in self.workflows:
                self.workflow_cursor = self.workflows.index(prev_wf) + 1
        self.workflow_cursor = _clamp(self.workflow_cursor, 0, len(self.workflows))

        prev_run = self.selected_run()
        self.apply_filter()
        run = self.selected_run()
        if run is None:
            self._clear_jobs()
            return None
        if prev_run is None or prev_run.id != run.id or self.jobs_run_id != run.id:
            self._clear_jobs()
        return LoadJobs(run.repo, run.id)

    # ------------------------------------------------------------------
    # Derived selection
    # ------------------------------------------------------------------

    def selected_branch(self) -> str:
        if 0 <= self.branch_idx < len(self.branches):
            return self.branches[self.branch_idx]
        return self.default_branch

    def selected_workflow(self) -> str:
        """Workflow name under the cursor; '' on the branch row."""
        if 0 < self.workflow_cursor <= len(self.workflows):
            return self.workflows[self.workflow_cursor - 1]
        return ""

    def selected_run(self) -> Optional[Run]:
        if 0 <= self.cursor < len(self.filtered_runs):
            return self.filtered_runs[self.cursor]
        return None

    def selected_job(self) -> Optional[Job]:
        jobs = self.jobs.data or []
        if 0 <= self.job_cursor < len(jobs):
            return jobs[self.job_cursor]
        return None

    def apply_filter(self) -> None:
        branch = self.selected_branch() if self.branches else None
        self.filtered_runs = filter_runs(self.all_runs, branch, self.selected_workflow())
        self.cursor = _clamp(self.cursor, 0, max(0, len(self.filtered_runs) - 1))

    def active_dialog(self):
        for dialog in (self.branch_picker, self.dispatch_dialog, self.rerun_dialog):
            if dialog.active:
                return dialog
        return None

    # ------------------------------------------------------------------
    # Cursor movement
    # ------------------------------------------------------------------

    def _clear_jobs(self) -> None:
        self.jobs.reset()
        self.jobs_run_id = None
        self.job_cursor = 0

    def _load_selected_jobs(self) -> list[Task]:
        run = self.selected_run()
        if run is None:
            return []
        return [LoadJobs(run.repo, run.id)]

    def _workflow_changed(self) -> list[Task]:
        self.apply_filter()
        self.cursor = 0
        self._clear_jobs()
        return self._load_selected_jobs()

    def _run_changed(self) -> list[Task]:
        self._clear_jobs()
        return self._load_selected_jobs()

    def move_cursor(self, delta: int) -> list[Task]:
        """Move by delta within the active panel; out-of-range moves are no-ops."""
        if self.active_panel == PANEL_WORKFLOWS:
            n = self.workflow_cursor + delta
            if 0 <= n <= len(self.workflows):
                self.workflow_cursor = n
                return self._workflow_changed()
        elif self.active_panel == PANEL_RUNS:
            n = self.cursor + delta
            if 0 <= n < len(self.filtered_runs):
                self.cursor = n
                return self._run_changed()
        else:
            n = self.job_cursor + delta
            if 0 <= n < len(self.jobs.data or []):
                self.job_cursor = n
        return []

    def move_cursor_page(self, direction: int) -> list[Task]:
        step = direction * PAGE_SIZE
        if self.active_panel == PANEL_WORKFLOWS:
            n = _clamp(self.workflow_cursor + step, 0, len(self.workflows))
            if n != self.workflow_cursor:
                self.workflow_cursor = n
                return self._workflow_changed()
        elif self.active_panel == PANEL_RUNS:
            n = _clamp(self.cursor + step, 0, max(0, len(self.filtered_runs) - 1))
            if n != self.cursor:
                self.cursor = n
                return self._run_changed()
        else:
            self.job_cursor = _clamp(self.job_cursor + step, 0, max(0, len(self.jobs.data or []) - 1))
        return []

    def move_cursor_edge(self, top: bool) -> list[Task]:
        if self.active_panel == PANEL_WORKFLOWS:
            self.workflow_cursor = 0 if top else len(self.workflows)
            return self._workflow_changed()
        if self.active_panel == PANEL_RUNS:
            n = 0 if top else max(0, len(self.filtered_runs) - 1)
            if n != self.cursor:
                self.cursor = n
                return self._run_changed()
            return []
        self.job_cursor = 0 if top else max(0, len(self.jobs.data or []) - 1)
        return []

    # ------------------------------------------------------------------
    # Key handling
    # ------------------------------------------------------------------

    def handle_key(self, event: KeyPress) -> list[Task]:
        if self.branch_picker.active:
            return self._handle_branch_picker(event)
        if self.dispatch_dialog.active:
            task, status = self.dispatch_dialog.handle_key(event)
            return self._confirmed(task, status)
        if self.rerun_dialog.active:
            task, status = self.rerun_dialog.handle_key(event)
            return self._confirmed(task, status)
        return self._handle_main_keys(event)

    def _confirmed(self, task: Optional[Task], status: str) -> list[Task]:
        if status:
            self.pending_message = status
        return [task] if task is not None else []

    def _handle_branch_picker(self, event: KeyPress) -> list[Task]:
        chosen = self.branch_picker.handle_key(event)
        if chosen is None:
            return []
        if chosen in self.branches:
            self.branch_idx = self.branches.index(chosen)
        # land on the wildcard so the next enter moves right instead of reopening
        self.workflow_cursor = _clamp(1, 0, len(self.workflows))
        return self._workflow_changed()

    def _handle_main_keys(self, event: KeyPress) -> list[Task]:
        key = event.key

        if keys.matches(key, "quit"):
            return [Quit()]
        if keys.matches(key, "up"):
            return self.move_cursor(-1)
        if keys.matches(key, "down"):
            return self.move_cursor(1)
        if keys.matches(key, "page_up"):
            return self.move_cursor_page(-1)
        if keys.matches(key, "page_down"):
            return self.move_cursor_page(1)
        if keys.matches(key, "top"):
            return self.move_cursor_edge(True)
        if keys.matches(key, "bottom"):
            return self.move_cursor_edge(False)
        if keys.matches(key, "right"):
            if self.active_panel < PANEL_DETAIL:
                self.active_panel += 1
            return []
        if keys.matches(key, "left", "back"):
            if self.active_panel > PANEL_WORKFLOWS:
                self.active_panel -= 1
            return []
        if keys.matches(key, "enter"):
            return self._enter()
        if keys.matches(key, "open"):
            url = self.open_url()
            return [OpenBrowser(url)] if url else []
        if keys.matches(key, "rerun"):
            run = self.selected_run()
            if run is not None:
                self.rerun_dialog.open(run.repo, run.id)
            return []
        if keys.matches(key, "cancel"):
            run = self.selected_run()
            if run is not None and run.in_progress:
                self.pending_message = "cancelling..."
                return [CancelRun(run.repo, run.id)]
            return []
        if keys.matches(key, "dispatch"):
            self._open_dispatch()
            return []
        if keys.matches(key, "refresh"):
            self.pending_message = "refreshing..."
            return [self._refresh()] if self._refresh else []
        return []

    def _enter(self) -> list[Task]:
        if self.active_panel == PANEL_WORKFLOWS and self.workflow_cursor == BRANCH_ROW:
            self.branch_picker.open(self.branches)
            return []
        if self.active_panel < PANEL_DETAIL:
            self.active_panel += 1
            return []
        run = self.selected_run()
        job = self.selected_job()
        if run is None or job is None:
            return []
        self.pending_message = "loading logs..."
        return [LoadLogs(run.repo, job.id, job.name)]

    def _open_dispatch(self) -> None:
        if self.active_panel != PANEL_WORKFLOWS:
            return
        wf_name = self.selected_workflow()
        if not wf_name or wf_name == WORKFLOW_ALL:
            return
        file = self.workflow_files.get(wf_name)
        if not file:
            return
        run = self.selected_run()
        if run is not None:
            # visible runs are already filtered by branch and workflow
            repo = run.repo
        elif len(self.config.repos) == 1:
            repo = self.config.repos[0]
        else:
            self.pending_message = "cannot dispatch: no runs for this workflow on this branch"
            return
        self.dispatch_dialog.open(repo, file, self.selected_branch())

    def can_dispatch(self) -> bool:
        wf_name = self.selected_workflow()
        return (
            self.active_panel == PANEL_WORKFLOWS
            and bool(wf_name)
            and wf_name != WORKFLOW_ALL
            and wf_name in self.workflow_files
        )

    def open_url(self) -> str:
        """URL of the entity under the cursor in the active panel, or ''."""
        if self.active_panel == PANEL_WORKFLOWS:
            wf_name = self.selected_workflow()
            if not wf_name or wf_name == WORKFLOW_ALL:
                run = self.selected_run()
                if run is not None and run.repository.html_url:
                    return run.repository.html_url + "/actions"
                if self.config.repos:
                    return f"https://github.com/{self.config.repos[0]}/actions"
                return ""
            for run in self.all_runs:
                if run.name == wf_name:
                    filename = self.workflow_files.get(wf_name)
                    if filename and run.repository.html_url:
                        return f"{run.repository.html_url}/actions/workflows/{filename}"
                    return run.html_url
            filename = self.workflow_files.get(wf_name)
            if filename and self.config.repos:
                return f"https://github.com/{self.config.repos[0]}/actions/workflows/{filename}"
            return ""
        if self.active_panel == PANEL_RUNS:
            run = self.selected_run()
            return run.html_url if run else ""
        job = self.selected_job()
        return job.html_url if job else ""
