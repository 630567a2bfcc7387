"""Run orchestrator that drives discovery, issues and pull requests.

Run Flow
--------
Phase 1: Load migrations
    Every valid migration under the migrations root, in path order. A
    missing root aborts the run; an invalid migration is skipped.

Phase 2: For each migration, in sequence
    a. Discover repositories whose target file still contains the old
       string. A discovery failure skips this migration only.
    b. Dry run: print a preview and stop here.
    c. Live with auto-PR: fetch each repository's default branch.
    d. Fan the repositories out onto a pool of ``concurrency`` workers.
       Each worker runs ``process_repository`` for one repository.
    e. Fold results into the RunSummary as they complete. Only this
       coordinating thread touches the summary.

Per Repository
--------------
    issue created? ──no──► done (skipped / failed issue)
         │yes
    auto-PR on? ──no──► done
         │yes
    create PR ──► PR created? ──yes──► update issue body with PR link

Nothing is retried within a run. Re-running is safe because issue creation
skips exact-title duplicates.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

from . import github_utils as ghu
from .agent import CommandAgent
from .config import default_agent_config_path, load_agent_config, load_migrations
from .discovery import discover_repositories
from .exceptions import DiscoveryError, NotifierError, TemplateError
from .issues import IssueManager
from .models import (
    IssueCreated,
    PrCreated,
    PrFailed,
    PrOutcome,
    ProcessingFailed,
    ProcessingResult,
    ProcessingSuccess,
)
from .pull_requests import PullRequestManager
from .rate_limit import RateLimiter
from .summary import RunSummary
from .templates import TemplateRenderer

if TYPE_CHECKING:
    from github import Github

    from .models import DiscoveredRepository, MigrationSpec
    from .protocols import CodingAgent

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY: Final = 5

# Lines of the sample issue body shown in the dry-run preview
PREVIEW_LINES: Final = 10


@dataclass
class RunnerConfig:
    """Resolved configuration for one run."""

    migrations_path: Path
    token: str
    dry_run: bool = False
    concurrency: int = DEFAULT_CONCURRENCY
    auto_pr: bool = False
    agent_config_path: Path | None = None
    api_url: str | None = None
    clone_base_url: str = ghu.DEFAULT_CLONE_BASE_URL

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            msg = f"concurrency must be at least 1, got {self.concurrency}"
            raise ValueError(msg)

    def resolved_agent_config_path(self) -> Path:
        """Explicit agent config path, else ``config.toml`` next to the migrations directory."""
        return self.agent_config_path or default_agent_config_path(self.migrations_path)


class Runner:
    """Runs every migration against the repositories that need it.

    Usage:
        config = RunnerConfig(migrations_path=Path("migrations"), token=token)
        summary = Runner(config).run()
    """

    config: RunnerConfig
    _client: Github
    _limiter: RateLimiter
    _renderer: TemplateRenderer
    _issues: IssueManager
    _pull_requests: PullRequestManager | None

    def __init__(
        self,
        config: RunnerConfig,
        *,
        client: Github | None = None,
        agent: CodingAgent | None = None,
        limiter: RateLimiter | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Resolved run configuration
            client: GitHub client (built from the token when omitted)
            agent: Coding agent for auto-PR (built from the agent config when omitted)
            limiter: Rate limiter (built around the client when omitted)

        Raises:
            ConfigError: If auto-PR is on and the agent configuration is invalid
        """
        self.config = config
        self._client = client or ghu.get_client(config.token, config.api_url)
        self._limiter = limiter or RateLimiter(self._client)
        self._renderer = TemplateRenderer()
        self._issues = IssueManager(self._client, self._limiter, self._renderer)

        self._pull_requests = None
        if config.auto_pr and not config.dry_run:
            if agent is None:
                agent_config = load_agent_config(config.resolved_agent_config_path())
                agent = CommandAgent(agent_config.command, agent_config.timeout_seconds, agent_config.model)
            self._pull_requests = PullRequestManager(
                self._client,
                self._limiter,
                self._renderer,
                agent,
                config.token,
                clone_base_url=config.clone_base_url,
            )

    def run(self) -> RunSummary:
        """Process every migration and return the run statistics.

        Raises:
            ConfigError: If the migrations root is missing or unreadable
        """
        summary = RunSummary(dry_run=self.config.dry_run)
        migrations = load_migrations(self.config.migrations_path)
        if not migrations:
            logger.warning("No migrations found")
            return summary

        logger.info(f"Found {len(migrations)} migrations")
        summary.migrations_processed = len(migrations)

        for migration in migrations:
            self.process_migration(migration, summary)
        return summary

    def process_migration(self, migration: MigrationSpec, summary: RunSummary) -> None:
        """Discover and process the repositories of one migration."""
        logger.info(f"Processing migration {migration.id}: {migration.old_string} -> {migration.new_string}")

        try:
            repositories = discover_repositories(
                self._client,
                self._limiter,
                migration,
                enrich=self._pull_requests is not None,
            )
        except DiscoveryError as e:
            logger.error(f"Failed to discover repositories for {migration.id}: {e}")  # noqa: TRY400
            return

        if not repositories:
            logger.info(f"No repositories found for {migration.id}")
            return

        logger.info(f"Found {len(repositories)} repositories for {migration.id}")
        summary.repositories_discovered += len(repositories)

        if self.config.dry_run:
            try:
                self.print_dry_run_preview(migration, repositories)
            except TemplateError as e:
                logger.error(f"Failed to render preview for {migration.id}: {e}")  # noqa: TRY400
            return

        with ThreadPoolExecutor(max_workers=self.config.concurrency) as executor:
            futures = [
                executor.submit(self.process_repository, repository, migration) for repository in repositories
            ]
            for future in as_completed(futures):
                summary.record_result(future.result())

    def process_repository(self, repository: DiscoveredRepository, migration: MigrationSpec) -> ProcessingResult:
        """Create the issue and, when enabled, the pull request for one repository.

        Never raises. Issue stage errors become ProcessingFailed, PR stage
        errors become PrFailed.
        """
        logger.info(f"Processing repository {repository.full_name}")

        try:
            issue = self._issues.create_issue(repository, migration)
        except Exception as e:
            logger.exception(f"Failed to create issue in {repository.full_name}")
            return ProcessingFailed(repository=repository.full_name, error=str(e))

        pr: PrOutcome | None = None
        if self._pull_requests is not None and isinstance(issue, IssueCreated):
            pr = self._create_pr(repository, migration)
            if isinstance(pr, PrCreated):
                self._issues.update_issue_with_pr(repository, issue.number, migration, pr, pr.url)

        return ProcessingSuccess(repository=repository.full_name, issue=issue, pr=pr)

    def _create_pr(self, repository: DiscoveredRepository, migration: MigrationSpec) -> PrOutcome:
        assert self._pull_requests is not None
        try:
            return self._pull_requests.create_pr(repository, migration)
        except NotifierError as e:
            logger.warning(f"Failed to create PR in {repository.full_name}: {e}")
            return PrFailed(error=str(e))
        except Exception as e:
            logger.exception(f"Unexpected error creating PR in {repository.full_name}")
            return PrFailed(error=str(e))

    def print_dry_run_preview(self, migration: MigrationSpec, repositories: list[DiscoveredRepository]) -> None:
        """Print what a live run would do for ``migration``.

        Everything is rendered before anything is printed.

        Raises:
            TemplateError: If a title, branch or body template cannot be rendered
        """
        issue_title = self._renderer.issue_title(migration)
        branch_name = self._renderer.branch_name(migration)
        body_lines = self._renderer.render_issue_body(migration).splitlines()

        print(f"\n[DRY RUN] Migration: {migration.id}")
        print(f"  Would upgrade: {migration.old_string} -> {migration.new_string}")
        print(f"  Found {len(repositories)} repositories:\n")

        for i, repository in enumerate(repositories, start=1):
            print(f"  [{i}/{len(repositories)}] {repository.full_name}")
            print(f'    Would create issue: "{issue_title}"')
            print(f"    Would create PR on branch: {branch_name}")

        print("\n  Sample issue body:")
        for line in body_lines[:PREVIEW_LINES]:
            print(f"    {line}")
        if len(body_lines) > PREVIEW_LINES:
            print("    ...")
        print()
