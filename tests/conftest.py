"""Shared test fixtures for cidash tests."""

import pytest

from cidash.config import Config
from cidash.models import WorkflowDefinition
from cidash.ui.dashboard import build_workflow_files

from factories import REPO, make_run


@pytest.fixture
def config():
    return Config(repos=[REPO], default_branch="main")


@pytest.fixture
def runs():
    """Three runs on main (one of them 'deploy') and two on feature/x."""
    return [
        make_run(1, name="CI", branch="main"),
        make_run(2, name="CI", branch="main"),
        make_run(3, name="deploy", branch="main", path=".github/workflows/deploy.yml"),
        make_run(4, name="CI", branch="feature/x"),
        make_run(5, name="lint", branch="feature/x", path=".github/workflows/lint.yml"),
    ]


@pytest.fixture
def local_defs():
    return [
        WorkflowDefinition(name="CI", file="ci.yml"),
        WorkflowDefinition(name="deploy", file="deploy.yml"),
        WorkflowDefinition(name="nightly", file="nightly.yml"),
    ]


@pytest.fixture
def workflow_files(runs, local_defs):
    return build_workflow_files(runs, local_defs)
