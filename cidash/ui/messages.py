"""Messages consumed by the update loop.

Every input to the controller is one of these: terminal events, timer
firings, or the result of a finished background task. Results carry an
``error`` instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from ..models import Job, Run, WorkflowDefinition


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class KeyPress:
    key: str
    character: Optional[str] = None


@dataclass(frozen=True)
class Tick:
    """Periodic refresh timer fired."""


@dataclass(frozen=True)
class ClearStatus:
    token: int


@dataclass(frozen=True)
class RunsLoaded:
    token: int
    partial: bool = False
    runs: list[Run] = field(default_factory=list)
    error: Optional[Exception] = None


@dataclass(frozen=True)
class LocalDefsLoaded:
    definitions: list[WorkflowDefinition] = field(default_factory=list)
    error: Optional[Exception] = None


@dataclass(frozen=True)
class JobsLoaded:
    run_id: int
    jobs: list[Job] = field(default_factory=list)
    error: Optional[Exception] = None


@dataclass(frozen=True)
class LogsLoaded:
    job_name: str
    logs: str = ""
    error: Optional[Exception] = None


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a rerun, cancel or dispatch request."""

    message: str = ""
    error: Optional[Exception] = None


@dataclass(frozen=True)
class BrowserOpened:
    url: str
    error: Optional[Exception] = None


Message = Union[
    Resize,
    KeyPress,
    Tick,
    ClearStatus,
    RunsLoaded,
    LocalDefsLoaded,
    JobsLoaded,
    LogsLoaded,
    ActionResult,
    BrowserOpened,
]
