"""Data model for workflow runs, jobs and locally-known workflow definitions.

Runs and jobs are parsed from GitHub REST API payloads. Each run stores only the
flat repository fields it needs; the run list is the single source of truth and
everything else (branch list, workflow list, file map) is derived from it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO timestamp like '2024-01-02T03:04:05Z' into an aware datetime."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class Repository:
    full_name: str
    html_url: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any] | None) -> "Repository":
        data = data or {}
        full_name = data.get("full_name") or ""
        html_url = data.get("html_url") or (f"https://github.com/{full_name}" if full_name else "")
        return cls(full_name=full_name, html_url=html_url)


@dataclass(frozen=True)
class Run:
    """One execution of a workflow."""

    id: int
    name: str
    head_branch: str
    status: str
    conclusion: str = ""
    display_title: str = ""
    head_sha: str = ""
    run_number: int = 0
    run_attempt: int = 1
    path: str = ""
    repository: Repository = field(default_factory=lambda: Repository(full_name=""))
    created_at: datetime | None = None
    run_started_at: datetime | None = None
    updated_at: datetime | None = None
    html_url: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Run":
        return cls(
            id=int(data.get("id") or 0),
            name=data.get("name") or "",
            head_branch=data.get("head_branch") or "",
            status=data.get("status") or "",
            conclusion=data.get("conclusion") or "",
            display_title=data.get("display_title") or "",
            head_sha=data.get("head_sha") or "",
            run_number=int(data.get("run_number") or 0),
            run_attempt=int(data.get("run_attempt") or 1),
            path=data.get("path") or "",
            repository=Repository.from_api(data.get("repository")),
            created_at=parse_timestamp(data.get("created_at")),
            run_started_at=parse_timestamp(data.get("run_started_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            html_url=data.get("html_url") or "",
        )

    @property
    def repo(self) -> str:
        return self.repository.full_name

    @property
    def workflow_file(self) -> str:
        """File name of the workflow, e.g. 'ci.yaml' for '.github/workflows/ci.yaml'."""
        if not self.path:
            return ""
        return self.path.rsplit("/", 1)[-1]

    @property
    def display_status(self) -> str:
        if self.status == STATUS_COMPLETED:
            return self.conclusion
        return self.status

    @property
    def in_progress(self) -> bool:
        return self.status == STATUS_IN_PROGRESS

    def duration(self, now: datetime | None = None) -> float:
        """Elapsed seconds; runs still executing are measured against now."""
        start = self.run_started_at or self.created_at
        if start is None:
            return 0.0
        if self.status == STATUS_COMPLETED and self.updated_at is not None:
            end = self.updated_at
        else:
            end = now or datetime.now(timezone.utc)
        return max(0.0, (end - start).total_seconds())


@dataclass(frozen=True)
class Step:
    name: str
    status: str
    conclusion: str = ""
    number: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Step":
        return cls(
            name=data.get("name") or "",
            status=data.get("status") or "",
            conclusion=data.get("conclusion") or "",
            number=int(data.get("number") or 0),
            started_at=parse_timestamp(data.get("started_at")),
            completed_at=parse_timestamp(data.get("completed_at")),
        )


@dataclass(frozen=True)
class Job:
    """One unit of work within a run."""

    id: int
    run_id: int
    name: str
    status: str
    conclusion: str = ""
    started_at: datetime | None = None
    completed_at: datetime | None = None
    html_url: str = ""
    steps: tuple[Step, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Job":
        return cls(
            id=int(data.get("id") or 0),
            run_id=int(data.get("run_id") or 0),
            name=data.get("name") or "",
            status=data.get("status") or "",
            conclusion=data.get("conclusion") or "",
            started_at=parse_timestamp(data.get("started_at")),
            completed_at=parse_timestamp(data.get("completed_at")),
            html_url=data.get("html_url") or "",
            steps=tuple(Step.from_api(s) for s in data.get("steps") or []),
        )


@dataclass(frozen=True)
class WorkflowDefinition:
    """A workflow file found locally; it may never have run."""

    name: str
    file: str


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------

_CONCLUSION_ICONS = {
    "success": "✓",
    "failure": "✗",
    "cancelled": "⊘",
    "skipped": "⊖",
}

_STATUS_ICONS = {
    "in_progress": "●",
    "queued": "◷",
    "pending": "○",
    "waiting": "⚇",
}


def status_icon(status: str, conclusion: str) -> str:
    if status == STATUS_COMPLETED:
        return _CONCLUSION_ICONS.get(conclusion, "?")
    return _STATUS_ICONS.get(status, "?")


def format_duration(seconds: float) -> str:
    """Format seconds as '42s', '3m 5s' or '2h 10m'."""
    secs = int(seconds)
    if secs < 60:
        return f"{secs}s"
    minutes, secs = divmod(secs, 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


def truncate(text: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[: width - 3] + "..."
