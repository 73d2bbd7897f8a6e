"""Tests for the GitHub REST client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from cidash.client import GitHubClient, is_missing_workflow_error, resolve_token
from cidash.exceptions import (
    DISPATCH_HINT,
    CIAPIError,
    CIAuthenticationError,
    CIError,
    CINotFoundError,
    WorkflowNotDispatchableError,
)


def make_response(status=200, json_data=None, text="", reason="OK"):
    response = MagicMock()
    response.status_code = status
    response.reason = reason
    response.text = text
    response.content = text.encode() if text else (b"{}" if json_data is not None else b"")
    if json_data is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def client():
    return GitHubClient(token="t0ken", api_url="https://api.example.com/")


class TestRequest:
    """Tests for GitHubClient._request error mapping."""

    def test_headers(self, client):
        assert client.session.headers["Authorization"] == "Bearer t0ken"
        assert client.session.headers["Accept"] == "application/vnd.github+json"

    def test_anonymous_without_token(self):
        assert "Authorization" not in GitHubClient().session.headers

    def test_url_joining(self, client):
        with patch.object(client.session, "request", return_value=make_response(json_data={})) as req:
            client._request("GET", "/repos/a/b")
        assert req.call_args[0] == ("GET", "https://api.example.com/repos/a/b")

    def test_401(self, client):
        resp = make_response(401, {"message": "Bad credentials"})
        with patch.object(client.session, "request", return_value=resp):
            with pytest.raises(CIAuthenticationError, match="Bad credentials"):
                client._request("GET", "x")

    def test_404(self, client):
        with patch.object(client.session, "request", return_value=make_response(404, {"message": "Not Found"})):
            with pytest.raises(CINotFoundError) as exc_info:
                client._request("GET", "x")
        assert exc_info.value.status_code == 404

    def test_other_status(self, client):
        with patch.object(client.session, "request", return_value=make_response(500, reason="Server Error")):
            with pytest.raises(CIAPIError) as exc_info:
                client._request("GET", "x")
        assert exc_info.value.status_code == 500
        assert "Server Error" in str(exc_info.value)

    def test_timeout(self, client):
        with patch.object(client.session, "request", side_effect=requests.Timeout()):
            with pytest.raises(CIAPIError, match="timed out"):
                client._request("GET", "x")

    def test_connection_error(self, client):
        with patch.object(client.session, "request", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(CIAPIError, match="refused"):
                client._request("GET", "x")

    def test_no_content(self, client):
        with patch.object(client.session, "request", return_value=make_response(204)):
            assert client._request("POST", "x") is None


class TestEndpoints:
    """Tests for the data-source methods."""

    def test_list_runs(self, client):
        payload = {"workflow_runs": [
            {"id": 1, "name": "CI", "head_branch": "main", "status": "completed",
             "conclusion": "success", "path": ".github/workflows/ci.yml",
             "repository": {"full_name": "a/b", "html_url": "https://github.com/a/b"}},
        ]}
        with patch.object(client.session, "request", return_value=make_response(json_data=payload)) as req:
            runs = client.list_runs("a/b", 10)
        assert req.call_args[1]["params"] == {"per_page": 10}
        assert runs[0].repo == "a/b"
        assert runs[0].workflow_file == "ci.yml"

    def test_list_jobs(self, client):
        payload = {"jobs": [{"id": 5, "run_id": 1, "name": "build", "status": "queued", "steps": [{"name": "s", "number": 1}]}]}
        with patch.object(client.session, "request", return_value=make_response(json_data=payload)):
            jobs = client.list_jobs("a/b", 1)
        assert jobs[0].name == "build"
        assert jobs[0].steps[0].number == 1

    def test_get_job_logs_returns_text(self, client):
        with patch.object(client.session, "request", return_value=make_response(text="log line")):
            assert client.get_job_logs("a/b", 5) == "log line"

    def test_rerun_debug_body(self, client):
        with patch.object(client.session, "request", return_value=make_response(201)) as req:
            client.rerun("a/b", 1, debug=True)
        assert req.call_args[0][1].endswith("/repos/a/b/actions/runs/1/rerun")
        assert req.call_args[1]["json"] == {"enable_debug_logging": True}

    def test_rerun_plain_body(self, client):
        with patch.object(client.session, "request", return_value=make_response(201)) as req:
            client.rerun("a/b", 1)
        assert req.call_args[1]["json"] is None

    def test_rerun_failed_and_cancel_paths(self, client):
        with patch.object(client.session, "request", return_value=make_response(202)) as req:
            client.rerun_failed_only("a/b", 1)
            client.cancel("a/b", 1)
        urls = [c[0][1] for c in req.call_args_list]
        assert urls[0].endswith("/runs/1/rerun-failed-jobs")
        assert urls[1].endswith("/runs/1/cancel")

    def test_dispatch(self, client):
        with patch.object(client.session, "request", return_value=make_response(204)) as req:
            client.dispatch("a/b", "deploy.yml", "main")
        assert req.call_args[0][1].endswith("/repos/a/b/actions/workflows/deploy.yml/dispatches")
        assert req.call_args[1]["json"] == {"ref": "main"}

    def test_dispatch_missing_workflow_gets_hint(self, client):
        resp = make_response(404, {"message": "Not Found"})
        with patch.object(client.session, "request", return_value=resp):
            with pytest.raises(WorkflowNotDispatchableError) as exc_info:
                client.dispatch("a/b", "deploy.yml", "main")
        assert DISPATCH_HINT in str(exc_info.value)

    def test_dispatch_other_error_passes_through(self, client):
        resp = make_response(422, {"message": "Unexpected inputs provided"})
        with patch.object(client.session, "request", return_value=resp):
            with pytest.raises(CIAPIError) as exc_info:
                client.dispatch("a/b", "deploy.yml", "main")
        assert not isinstance(exc_info.value, WorkflowNotDispatchableError)

    def test_open_in_browser_failure(self, client):
        with patch("cidash.client.webbrowser.open", return_value=False):
            with pytest.raises(CIError):
                client.open_in_browser("https://x")


class TestHelpers:
    """Tests for token resolution and error classification."""

    @pytest.mark.parametrize("message", [
        "404: Not Found",
        "Workflow does not have 'workflow_dispatch' trigger: could not find",
        "no workflow file",
    ])
    def test_missing_workflow_phrases(self, message):
        assert is_missing_workflow_error(message)

    def test_other_errors(self):
        assert not is_missing_workflow_error("422: Unexpected inputs provided")

    def test_token_from_env(self, monkeypatch):
        monkeypatch.delenv("GH_TOKEN", raising=False)
        monkeypatch.setenv("GITHUB_TOKEN", "abc")
        assert resolve_token() == "abc"

    def test_token_from_gh_cli(self, monkeypatch):
        monkeypatch.delenv("GH_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("cidash.client.subprocess.run") as run:
            run.return_value = MagicMock(returncode=0, stdout="gho_123\n")
            assert resolve_token() == "gho_123"

    def test_no_token(self, monkeypatch):
        monkeypatch.delenv("GH_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("cidash.client.subprocess.run", side_effect=OSError("gh not installed")):
            assert resolve_token() is None
