"""Background task descriptors and their executor.

The controller never performs I/O. It returns these descriptors and the
shell runs them off the update loop; ``run_task`` turns each into exactly
one result message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Union

import requests

from ..discovery import scan_local_workflows
from ..exceptions import CIError, NoLocalWorkflowsError
from ..models import WorkflowDefinition
from .messages import (
    ActionResult,
    BrowserOpened,
    JobsLoaded,
    LocalDefsLoaded,
    LogsLoaded,
    Message,
    RunsLoaded,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadRuns:
    repos: tuple[str, ...]
    page_size: int
    token: int
    partial: bool = False


@dataclass(frozen=True)
class LoadLocalDefs:
    pass


@dataclass(frozen=True)
class LoadJobs:
    repo: str
    run_id: int


@dataclass(frozen=True)
class LoadLogs:
    repo: str
    job_id: int
    job_name: str


@dataclass(frozen=True)
class Rerun:
    repo: str
    run_id: int
    debug: bool = False


@dataclass(frozen=True)
class RerunFailed:
    repo: str
    run_id: int


@dataclass(frozen=True)
class CancelRun:
    repo: str
    run_id: int


@dataclass(frozen=True)
class Dispatch:
    repo: str
    workflow_file: str
    ref: str


@dataclass(frozen=True)
class OpenBrowser:
    url: str


@dataclass(frozen=True)
class Delay:
    """Deliver ``message`` back to the update loop after ``seconds``."""

    seconds: float
    message: Message


@dataclass(frozen=True)
class Quit:
    pass


Task = Union[
    LoadRuns,
    LoadLocalDefs,
    LoadJobs,
    LoadLogs,
    Rerun,
    RerunFailed,
    CancelRun,
    Dispatch,
    OpenBrowser,
    Delay,
    Quit,
]

# Tasks the shell handles itself rather than on a worker thread.
SHELL_TASKS = (Delay, Quit)

_RECOVERABLE = (CIError, requests.RequestException)


def run_task(
    task: Task,
    source,
    discover: Callable[[], list[WorkflowDefinition]] = scan_local_workflows,
) -> Message:
    """Execute a background task against the data source.

    Blocking; call from a worker thread. Errors are returned inside the
    result message, never raised.
    """
    if isinstance(task, SHELL_TASKS):
        raise ValueError(f"Unknown task: {task!r}")
    try:
        return _execute(task, source, discover)
    except _RECOVERABLE as e:
        logger.warning("%s failed: %s", type(task).__name__, e)
        return failure_message(task, e)
    except Exception as e:
        logger.exception("%s failed unexpectedly", type(task).__name__)
        return failure_message(task, e)


def failure_message(task: Task, error: Exception) -> Message:
    """The result message reporting that task failed with error."""
    if isinstance(task, LoadRuns):
        return RunsLoaded(token=task.token, partial=task.partial, error=error)
    if isinstance(task, LoadLocalDefs):
        return LocalDefsLoaded(error=error)
    if isinstance(task, LoadJobs):
        return JobsLoaded(run_id=task.run_id, error=error)
    if isinstance(task, LoadLogs):
        return LogsLoaded(job_name=task.job_name, error=error)
    if isinstance(task, OpenBrowser):
        return BrowserOpened(url=task.url, error=error)
    return ActionResult(error=error)


def _execute(task: Task, source, discover: Callable[[], list[WorkflowDefinition]]) -> Message:
    if isinstance(task, LoadRuns):
        runs = []
        for repo in task.repos:
            runs.extend(source.list_runs(repo, task.page_size))
        return RunsLoaded(token=task.token, partial=task.partial, runs=runs)

    if isinstance(task, LoadLocalDefs):
        try:
            defs = discover()
        except NoLocalWorkflowsError:
            return LocalDefsLoaded(definitions=[])
        logger.debug("scanned local workflow definitions count=%d", len(defs))
        return LocalDefsLoaded(definitions=defs)

    if isinstance(task, LoadJobs):
        return JobsLoaded(run_id=task.run_id, jobs=source.list_jobs(task.repo, task.run_id))

    if isinstance(task, LoadLogs):
        return LogsLoaded(job_name=task.job_name, logs=source.get_job_logs(task.repo, task.job_id))

    if isinstance(task, Rerun):
        source.rerun(task.repo, task.run_id, task.debug)
        if task.debug:
            return ActionResult(message="re-run triggered (debug logging enabled)")
        return ActionResult(message="re-run triggered")

    if isinstance(task, RerunFailed):
        source.rerun_failed_only(task.repo, task.run_id)
        return ActionResult(message="re-run of failed jobs triggered")

    if isinstance(task, CancelRun):
        source.cancel(task.repo, task.run_id)
        return ActionResult(message="workflow cancelled")

    if isinstance(task, Dispatch):
        source.dispatch(task.repo, task.workflow_file, task.ref)
        return ActionResult(message=f"dispatched {task.workflow_file} on {task.ref}")

    if isinstance(task, OpenBrowser):
        source.open_in_browser(task.url)
        return BrowserOpened(url=task.url)

    raise ValueError(f"Unknown task: {task!r}")
