"""Configuration loading and constants for cidash."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .exceptions import CIError

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
DEFAULT_REFRESH_INTERVAL = 2  # seconds
DEFAULT_MSG_TIMEOUT = 3  # seconds
DEFAULT_PAGE_SIZE = 10  # runs per repository per full fetch
DEFAULT_LOG_CONTEXT = 3  # lines around each log search hit


@dataclass
class Config:
    repos: list[str] = field(default_factory=list)
    default_branch: str = DEFAULT_BRANCH
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL
    msg_timeout: int = DEFAULT_MSG_TIMEOUT
    page_size: int = DEFAULT_PAGE_SIZE
    log_context: int = DEFAULT_LOG_CONTEXT


def get_config_dir() -> Path:
    """Get the ~/.config/cidash directory."""
    return Path.home() / ".config" / "cidash"


def get_config_path() -> Path:
    """Get path to config.yml.

    Can be overridden via CIDASH_CONFIG environment variable (used by tests).
    """
    env_override = os.environ.get("CIDASH_CONFIG")
    if env_override:
        return Path(env_override)
    return get_config_dir() / "config.yml"


def get_log_path() -> Path:
    env_override = os.environ.get("CIDASH_LOG_FILE")
    if env_override:
        return Path(env_override)
    return get_config_dir() / "cidash.log"


def parse_git_remote(url: str) -> str:
    """Extract 'owner/repo' from a GitHub remote URL, or '' if not GitHub."""
    url = url.strip()
    if url.startswith("git@github.com:"):
        url = url[len("git@github.com:"):]
        return url[:-4] if url.endswith(".git") else url
    if "github.com/" in url:
        parts = url.split("github.com/")
        if len(parts) == 2:
            repo = parts[1]
            return repo[:-4] if repo.endswith(".git") else repo
    return ""


def detect_git_repo() -> str:
    """Detect the GitHub repo of the current checkout from its origin remote."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired):
        return ""
    if result.returncode != 0:
        return ""
    return parse_git_remote(result.stdout)


def load_config(path: Path | None = None) -> Config:
    """Load config.yml, falling back to auto-detecting the repo from git.

    Raises:
        CIError: If the config file exists but is not valid YAML.
    """
    cfg = Config()
    config_path = path or get_config_path()

    if config_path.exists():
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise CIError(f"invalid config file {config_path}: {e}") from e

        cfg.repos = [str(r) for r in data.get("repos") or []]
        cfg.default_branch = data.get("default_branch") or DEFAULT_BRANCH
        cfg.refresh_interval = int(data.get("refresh_interval") or DEFAULT_REFRESH_INTERVAL)
        cfg.msg_timeout = int(data.get("default_msg_timeout") or DEFAULT_MSG_TIMEOUT)
        cfg.page_size = int(data.get("page_size") or DEFAULT_PAGE_SIZE)
        cfg.log_context = int(data.get("log_context", DEFAULT_LOG_CONTEXT))
        if cfg.repos:
            return cfg

    repo = detect_git_repo()
    if repo:
        logger.debug("auto-detected repo %s from git remote", repo)
        cfg.repos = [repo]
    return cfg
