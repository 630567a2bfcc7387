"""
Command-line interface for the template upgrade notifier.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from . import github_utils as ghu
from .exceptions import NotifierError
from .orchestrator import DEFAULT_CONCURRENCY, Runner, RunnerConfig
from .summary import RunSummary
from .utils import setup_logging

EXIT_SUCCESS = 0
EXIT_FAILURES = 1
EXIT_CRITICAL = 2

DEFAULT_MIGRATIONS_PATH = "migrations/"


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        msg = f"must be at least 1, got {number}"
        raise argparse.ArgumentTypeError(msg)
    return number


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Find repositories on an outdated template version, open upgrade issues and optionally PRs"
    )

    _ = parser.add_argument(
        "--migrations-path",
        type=Path,
        default=Path(DEFAULT_MIGRATIONS_PATH),
        help=f"Directory containing migration definitions (default: {DEFAULT_MIGRATIONS_PATH})",
    )
    _ = parser.add_argument(
        "--token",
        default=os.environ.get("GITHUB_TOKEN"),
        help="GitHub token (default: GITHUB_TOKEN environment variable)",
    )
    _ = parser.add_argument(
        "--dry-run", action="store_true", help="Discover repositories and preview without creating anything"
    )
    _ = parser.add_argument(
        "--concurrency",
        type=_positive_int,
        default=DEFAULT_CONCURRENCY,
        help=f"Repositories processed in parallel (default: {DEFAULT_CONCURRENCY})",
    )
    _ = parser.add_argument(
        "--auto-pr", action="store_true", help="Open a pull request with the upgrade applied by the coding agent"
    )
    _ = parser.add_argument(
        "--agent-config",
        type=Path,
        help="Agent configuration file (default: config.toml next to the migrations directory)",
    )
    _ = parser.add_argument("--api-url", help="GitHub API base URL, for GitHub Enterprise Server")
    _ = parser.add_argument(
        "--clone-url",
        help="Base URL for git clone and push (default: derived from --api-url, else https://github.com)",
    )
    _ = parser.add_argument("--log-file", type=Path, help="Append debug logs to this file")
    _ = parser.add_argument(
        "--verbose", "-v", action="count", default=0, help="Increase console verbosity (-v info, -vv debug)"
    )

    return parser.parse_args(argv)


def _print_summary(summary: RunSummary) -> None:
    """Print the run statistics."""
    print("\nSummary:")
    print(f"  Mode: {'Dry Run' if summary.dry_run else 'Live'}")
    print(f"  Migrations processed: {summary.migrations_processed}")
    print(f"  Repositories discovered: {summary.repositories_discovered}")

    if not summary.dry_run:
        print(f"  Issues created: {summary.issues_created}")
        print(f"  Issues skipped: {summary.issues_skipped}")
        print(f"  Issues failed: {summary.issues_failed}")
        print(f"  PRs created: {summary.prs_created}")
        print(f"  PRs failed: {summary.prs_failed}")


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)
    setup_logging(verbosity=args.verbose, log_file=args.log_file)
    logger = logging.getLogger(__name__)

    if not args.token:
        logger.error("No GitHub token given. Use --token or set GITHUB_TOKEN.")
        sys.exit(EXIT_CRITICAL)

    config = RunnerConfig(
        migrations_path=args.migrations_path,
        token=args.token,
        dry_run=args.dry_run,
        concurrency=args.concurrency,
        auto_pr=args.auto_pr,
        agent_config_path=args.agent_config,
        api_url=args.api_url,
        clone_base_url=args.clone_url or ghu.clone_base_url_for(args.api_url),
    )

    try:
        summary = Runner(config).run()
    except NotifierError as e:
        logger.error(f"Run aborted: {e}")  # noqa: TRY400
        sys.exit(EXIT_CRITICAL)
    except Exception:
        logger.exception("Run failed")
        sys.exit(EXIT_CRITICAL)

    _print_summary(summary)
    sys.exit(EXIT_FAILURES if summary.has_failures() else EXIT_SUCCESS)
