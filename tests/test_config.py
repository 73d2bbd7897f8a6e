"""Tests for config loading and git remote detection."""

from unittest.mock import MagicMock, patch

import pytest

from cidash.config import (
    DEFAULT_LOG_CONTEXT,
    DEFAULT_PAGE_SIZE,
    detect_git_repo,
    get_config_path,
    get_log_path,
    load_config,
    parse_git_remote,
)
from cidash.exceptions import CIError


class TestParseGitRemote:
    """Tests for parse_git_remote()."""

    @pytest.mark.parametrize("url,expected", [
        ("git@github.com:acme/widgets.git", "acme/widgets"),
        ("git@github.com:acme/widgets", "acme/widgets"),
        ("https://github.com/acme/widgets.git\n", "acme/widgets"),
        ("https://github.com/acme/widgets", "acme/widgets"),
        ("https://gitlab.com/acme/widgets.git", ""),
    ])
    def test_forms(self, url, expected):
        assert parse_git_remote(url) == expected

    def test_detect_uses_origin(self):
        with patch("cidash.config.subprocess.run") as run:
            run.return_value = MagicMock(returncode=0, stdout="git@github.com:acme/widgets.git\n")
            assert detect_git_repo() == "acme/widgets"
        assert run.call_args[0][0] == ["git", "remote", "get-url", "origin"]

    def test_detect_outside_checkout(self):
        with patch("cidash.config.subprocess.run") as run:
            run.return_value = MagicMock(returncode=128, stdout="")
            assert detect_git_repo() == ""


class TestPaths:
    """Tests for environment overrides."""

    def test_config_path_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CIDASH_CONFIG", str(tmp_path / "c.yml"))
        assert get_config_path() == tmp_path / "c.yml"

    def test_log_path_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CIDASH_LOG_FILE", str(tmp_path / "x.log"))
        assert get_log_path() == tmp_path / "x.log"

    def test_default_log_path(self, monkeypatch):
        monkeypatch.delenv("CIDASH_LOG_FILE", raising=False)
        assert get_log_path().name == "cidash.log"


class TestLoadConfig:
    """Tests for load_config()."""

    def test_full_file(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(
            "repos:\n  - acme/widgets\n  - acme/gears\n"
            "default_branch: trunk\n"
            "refresh_interval: 5\n"
            "default_msg_timeout: 7\n"
            "page_size: 20\n"
            "log_context: 0\n"
        )
        cfg = load_config(path)
        assert cfg.repos == ["acme/widgets", "acme/gears"]
        assert cfg.default_branch == "trunk"
        assert cfg.refresh_interval == 5
        assert cfg.msg_timeout == 7
        assert cfg.page_size == 20
        assert cfg.log_context == 0

    def test_defaults_and_blank_branch(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("repos: [acme/widgets]\ndefault_branch: ''\n")
        cfg = load_config(path)
        assert cfg.default_branch == "main"
        assert cfg.page_size == DEFAULT_PAGE_SIZE
        assert cfg.log_context == DEFAULT_LOG_CONTEXT

    def test_missing_file_autodetects(self, tmp_path):
        with patch("cidash.config.detect_git_repo", return_value="acme/widgets"):
            cfg = load_config(tmp_path / "missing.yml")
        assert cfg.repos == ["acme/widgets"]

    def test_no_repos_autodetects(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("refresh_interval: 9\n")
        with patch("cidash.config.detect_git_repo", return_value="acme/widgets"):
            cfg = load_config(path)
        assert cfg.repos == ["acme/widgets"]
        assert cfg.refresh_interval == 9

    def test_nothing_found(self, tmp_path):
        with patch("cidash.config.detect_git_repo", return_value=""):
            assert load_config(tmp_path / "missing.yml").repos == []

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("repos: [unclosed\n")
        with pytest.raises(CIError, match="invalid config"):
            load_config(path)
