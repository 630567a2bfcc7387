"""Automated upgrade pull requests.

For one repository the workflow is: shallow clone into a private temporary
directory, create the upgrade branch, let the coding agent edit the working
tree, stop if nothing changed, otherwise commit as the bot identity, push
the branch and open the pull request against the default branch. The
temporary directory is removed on every exit path.

Only an invalid branch name escapes as an exception. Every other failure is
folded into a ``PrOutcome`` so that one repository never aborts the run.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

import requests
from github import GithubException

from . import git_utils
from . import github_utils as ghu
from .agent import build_instructions
from .exceptions import AgentError, AgentTimeoutError, GitCommandError
from .models import PrCreated, PrFailed, PrOutcome, PrSkipped, PrTimedOut

if TYPE_CHECKING:
    from pathlib import Path

    from github import Github

    from .models import DiscoveredRepository, MigrationSpec
    from .protocols import CodingAgent
    from .rate_limit import RateLimiter
    from .templates import TemplateRenderer

logger: logging.Logger = logging.getLogger(__name__)

BOT_NAME: Final = "Template Upgrade Bot"
BOT_EMAIL: Final = "bot@template-upgrade-notifier"


def build_commit_message(title: str, guide_link: str | None) -> str:
    """Commit title, followed by a migration guide paragraph when a link is known."""
    if guide_link:
        return f"{title}\n\nMigration guide: {guide_link}"
    return title


class PullRequestManager:
    """Creates upgrade pull requests using a coding agent."""

    _client: Github
    _limiter: RateLimiter
    _renderer: TemplateRenderer
    _agent: CodingAgent
    _token: str | None

    def __init__(
        self,
        client: Github,
        limiter: RateLimiter,
        renderer: TemplateRenderer,
        agent: CodingAgent,
        token: str | None,
        *,
        clone_base_url: str = ghu.DEFAULT_CLONE_BASE_URL,
        bot_name: str = BOT_NAME,
        bot_email: str = BOT_EMAIL,
    ) -> None:
        self._client = client
        self._limiter = limiter
        self._renderer = renderer
        self._agent = agent
        self._token = token
        self.clone_base_url = clone_base_url
        self.bot_name = bot_name
        self.bot_email = bot_email

    def create_pr(self, repository: DiscoveredRepository, migration: MigrationSpec) -> PrOutcome:
        """Run the remediation workflow for one repository.

        Returns:
            PrCreated, PrSkipped when the agent changed nothing, PrTimedOut
            when the agent ran out of time, PrFailed otherwise

        Raises:
            InvalidBranchNameError: If the rendered branch name is not a valid git ref
            TemplateError: If a title, branch or body template cannot be rendered
        """
        branch_name = self._renderer.branch_name(migration)
        git_utils.validate_branch_name(branch_name)
        title = self._renderer.pr_title(migration)

        logger.info(f"Creating PR for {repository.full_name} on branch {branch_name}")
        with git_utils.ephemeral_workspace() as workspace:
            outcome = self._prepare_branch(workspace, repository, migration, branch_name)
            if outcome is not None:
                return outcome

        return self._open_pull_request(repository, migration, branch_name, title)

    def _prepare_branch(
        self,
        workspace: Path,
        repository: DiscoveredRepository,
        migration: MigrationSpec,
        branch_name: str,
    ) -> PrOutcome | None:
        """Clone, apply, commit and push. Returns an outcome when the workflow stops early."""
        url = git_utils.repository_url(self.clone_base_url, repository.full_name)

        try:
            git_utils.clone_repository(url, workspace, self._token)
            git_utils.create_branch(workspace, branch_name)
        except GitCommandError as e:
            logger.warning(f"Could not prepare {repository.full_name}: {e}")
            return PrFailed(error=str(e))

        try:
            self._agent.apply(workspace, build_instructions(migration))
        except AgentTimeoutError as e:
            logger.warning(f"Coding agent timed out for {repository.full_name} after {e.timeout_seconds:g}s")
            return PrTimedOut(timeout_seconds=e.timeout_seconds)
        except AgentError as e:
            logger.warning(f"Coding agent failed for {repository.full_name}: {e}")
            return PrFailed(error=str(e))

        try:
            if not git_utils.has_changes(workspace):
                logger.info(f"Coding agent made no changes in {repository.full_name}, skipping PR")
                return PrSkipped(reason="no changes made")

            message = build_commit_message(self._renderer.commit_title(migration), migration.guide_link)
            git_utils.configure_identity(workspace, self.bot_name, self.bot_email)
            git_utils.commit_all(workspace, message)
            git_utils.push_branch(workspace, url, branch_name, self._token)
        except GitCommandError as e:
            logger.warning(f"Could not commit or push changes for {repository.full_name}: {e}")
            return PrFailed(error=str(e))

        return None

    def _open_pull_request(
        self,
        repository: DiscoveredRepository,
        migration: MigrationSpec,
        branch_name: str,
        title: str,
    ) -> PrOutcome:
        body = self._renderer.render_pr_body(migration)
        try:
            self._limiter.ensure_core()
            pull = ghu.get_repo(self._client, repository.full_name).create_pull(
                base=repository.default_branch,
                head=branch_name,
                title=title,
                body=body,
            )
        except (GithubException, requests.RequestException) as e:
            logger.warning(f"Failed to create PR in {repository.full_name}: {e}")
            return PrFailed(error=f"failed to create pull request: {e}")

        logger.info(f"Created PR #{pull.number} in {repository.full_name}")
        return PrCreated(number=pull.number, url=pull.html_url)
