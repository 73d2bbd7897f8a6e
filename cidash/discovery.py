"""Local workflow discovery and checkout inspection.

Both functions shell out to git and may block briefly. They are called from
background workers, never from the update loop.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

import yaml

from .exceptions import CIError, NoLocalWorkflowsError
from .models import WorkflowDefinition

logger = logging.getLogger(__name__)


def _git(*args: str) -> str | None:
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def current_git_branch() -> str:
    """Return the checked-out branch name, or '' outside a git checkout."""
    return _git("rev-parse", "--abbrev-ref", "HEAD") or ""


def _workflow_name(path: Path) -> str:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError):
        logger.debug("unparseable workflow file %s", path)
        data = None
    if isinstance(data, dict) and data.get("name"):
        return str(data["name"])
    return path.stem


def scan_local_workflows(root: Path | None = None) -> list[WorkflowDefinition]:
    """Find workflow files in .github/workflows/ of the repository root.

    Args:
        root: Repository root. Defaults to the git top-level of the cwd.

    Returns:
        Definitions sorted by file name.

    Raises:
        NoLocalWorkflowsError: If no *.yml / *.yaml files exist.
        CIError: If the repository root cannot be determined or a file is unreadable.
    """
    if root is None:
        toplevel = _git("rev-parse", "--show-toplevel")
        if not toplevel:
            raise CIError("no parseable git root")
        root = Path(toplevel)

    workflows_dir = root / ".github" / "workflows"
    paths = sorted(
        list(workflows_dir.glob("*.yml")) + list(workflows_dir.glob("*.yaml")),
        key=lambda p: p.name,
    )
    if not paths:
        raise NoLocalWorkflowsError(f"no workflow files in {workflows_dir}")

    defs: list[WorkflowDefinition] = []
    for path in paths:
        try:
            name = _workflow_name(path)
        except OSError as e:
            raise CIError(f"read workflow file {path}: {e}") from e
        defs.append(WorkflowDefinition(name=name, file=path.name))
        logger.debug("discovered local workflow definition name=%s file=%s", name, path.name)
    return defs
