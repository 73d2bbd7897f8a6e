"""Entry point: python -m cidash"""

import argparse
import logging
import os
import sys
from pathlib import Path

from .client import GitHubClient, resolve_token
from .config import get_log_path, load_config
from .discovery import current_git_branch
from .exceptions import CIError
from .ui.app import CIDashboard


def _log_level() -> int:
    if os.environ.get("DEBUG"):
        return logging.DEBUG
    if os.environ.get("VERBOSE"):
        return logging.INFO
    return logging.WARNING


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cidash",
        description="Terminal dashboard for GitHub Actions workflow runs",
    )
    parser.add_argument(
        "--repo", "-R",
        action="append",
        dest="repos",
        metavar="OWNER/NAME",
        help="Repository to watch (repeatable; overrides the config file)",
    )
    parser.add_argument(
        "--refresh",
        type=int,
        metavar="SECONDS",
        help="Refresh interval in seconds",
    )
    parser.add_argument(
        "--config",
        type=Path,
        metavar="PATH",
        help="Path to config.yml",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    log_path = get_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(log_path),
        level=_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("cidash")

    try:
        config = load_config(args.config)
    except CIError as e:
        sys.exit(f"cidash: {e}")
    if args.repos:
        config.repos = args.repos
    if args.refresh:
        config.refresh_interval = args.refresh
    if not config.repos:
        sys.exit(
            "cidash: no repository to watch.\n"
            "Run inside a GitHub checkout, pass --repo OWNER/NAME, "
            "or list repos in ~/.config/cidash/config.yml"
        )

    try:
        app = CIDashboard(
            config,
            GitHubClient(token=resolve_token()),
            default_branch=config.default_branch,
            local_branch=current_git_branch(),
        )
        app.run()
    except Exception:
        logger.exception("Dashboard crashed")
        raise


if __name__ == "__main__":
    main()
