"""
GitHub Actions API client
Data source for the dashboard: runs, jobs, logs and run actions
"""

from __future__ import annotations

import logging
import os
import subprocess
import webbrowser
from typing import Any, Dict, List, Optional

import requests

from .exceptions import (
    CIAPIError,
    CIAuthenticationError,
    CIError,
    CINotFoundError,
    WorkflowNotDispatchableError,
)
from .models import Job, Run

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"

_NOT_FOUND_PHRASES = ("404", "not found", "no workflow", "could not find")


def resolve_token() -> Optional[str]:
    """Find an API token in the environment, falling back to the gh CLI."""
    for var in ("GH_TOKEN", "GITHUB_TOKEN"):
        token = os.environ.get(var)
        if token:
            return token
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def is_missing_workflow_error(message: str) -> bool:
    """True when a dispatch error reads like the workflow file is absent upstream."""
    lower = message.lower()
    return any(phrase in lower for phrase in _NOT_FOUND_PHRASES)


class GitHubClient:
    """
    GitHub REST client

    Usage:
        client = GitHubClient(token=resolve_token())
        runs = client.list_runs('owner/repo', page_size=10)
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = API_URL,
        timeout: int = 30,
    ):
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers['Accept'] = 'application/vnd.github+json'
        self.session.headers['X-GitHub-Api-Version'] = '2022-11-28'
        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict] = None,
        json: Optional[Dict] = None,
        raw: bool = False,
    ) -> Any:
        """Make HTTP request to API"""
        url = f'{self.api_url}/{path.lstrip("/")}'

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.Timeout:
            raise CIAPIError(f'Request to {url} timed out after {self.timeout}s')
        except requests.RequestException as e:
            raise CIAPIError(f'Request to {url} failed: {e}') from e

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.debug("%s %s -> %s %s", method, url, response.status_code, message)
            if response.status_code == 401:
                raise CIAuthenticationError(message)
            if response.status_code == 404:
                raise CINotFoundError(message)
            raise CIAPIError(message, status_code=response.status_code)

        if raw:
            return response.text
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get('message'):
            return f"{response.status_code}: {body['message']}"
        return f"{response.status_code}: {response.reason or 'request failed'}"

    # -- reads ---------------------------------------------------------------

    def list_runs(self, repo: str, page_size: int) -> List[Run]:
        """List the most recent workflow runs of a repository"""
        data = self._request(
            'GET', f'/repos/{repo}/actions/runs', params={'per_page': page_size}
        ) or {}
        return [Run.from_api(r) for r in data.get('workflow_runs', [])]

    def list_jobs(self, repo: str, run_id: int) -> List[Job]:
        """List the jobs of a workflow run"""
        data = self._request('GET', f'/repos/{repo}/actions/runs/{run_id}/jobs') or {}
        return [Job.from_api(j) for j in data.get('jobs', [])]

    def get_job_logs(self, repo: str, job_id: int) -> str:
        """Download the plain-text log of a job"""
        return self._request('GET', f'/repos/{repo}/actions/jobs/{job_id}/logs', raw=True) or ''

    # -- actions -------------------------------------------------------------

    def rerun(self, repo: str, run_id: int, debug: bool = False) -> None:
        """Re-run a workflow, optionally with debug logging enabled"""
        body = {'enable_debug_logging': True} if debug else None
        self._request('POST', f'/repos/{repo}/actions/runs/{run_id}/rerun', json=body)

    def rerun_failed_only(self, repo: str, run_id: int) -> None:
        """Re-run only the failed jobs of a workflow run"""
        self._request('POST', f'/repos/{repo}/actions/runs/{run_id}/rerun-failed-jobs')

    def cancel(self, repo: str, run_id: int) -> None:
        """Cancel a running workflow"""
        self._request('POST', f'/repos/{repo}/actions/runs/{run_id}/cancel')

    def dispatch(self, repo: str, workflow_file: str, ref: str) -> None:
        """Trigger a workflow_dispatch event on the given ref

        Raises:
            WorkflowNotDispatchableError: If the error indicates the workflow
                file does not exist on the default branch.
        """
        try:
            self._request(
                'POST',
                f'/repos/{repo}/actions/workflows/{workflow_file}/dispatches',
                json={'ref': ref},
            )
        except CIAPIError as e:
            if is_missing_workflow_error(str(e)):
                raise WorkflowNotDispatchableError(str(e), status_code=e.status_code) from e
            raise

    def open_in_browser(self, url: str) -> None:
        """Open a URL in the default browser"""
        if not webbrowser.open(url):
            raise CIError(f'could not open browser for {url}')
