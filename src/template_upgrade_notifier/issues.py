"""Upgrade notification issues.

Creating an issue is idempotent across runs: an open issue whose title is
exactly the rendered title counts as a duplicate and nothing is created.
Missing write access is an expected condition across a large fleet and is
reported as a skip rather than a failure.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import requests
from github import GithubException

from . import github_utils as ghu
from .exceptions import TemplateError
from .models import IssueCreated, IssueFailed, IssueOutcome, IssueSkipped, pr_status_label

if TYPE_CHECKING:
    from github import Github

    from .models import DiscoveredRepository, MigrationSpec, PrOutcome
    from .rate_limit import RateLimiter
    from .templates import TemplateRenderer

logger: logging.Logger = logging.getLogger(__name__)


class IssueManager:
    """Creates and updates upgrade issues in discovered repositories."""

    _client: Github
    _limiter: RateLimiter
    _renderer: TemplateRenderer

    def __init__(self, client: Github, limiter: RateLimiter, renderer: TemplateRenderer) -> None:
        self._client = client
        self._limiter = limiter
        self._renderer = renderer

    def find_duplicate_issue(self, repository: DiscoveredRepository, title: str) -> int | None:
        """Return the number of an open issue titled exactly ``title``, if one exists.

        The search API matches titles loosely, so only an exact string
        comparison counts as a duplicate.
        """
        # Search phrases cannot contain quotes
        phrase = title.replace('"', " ")
        query = f'repo:{repository.full_name} is:issue is:open in:title "{phrase}"'
        logger.debug(f"Checking {repository.full_name} for duplicate issue: {query}")

        self._limiter.ensure_search()
        for issue in self._client.search_issues(query).get_page(0):
            if issue.title == title:
                return issue.number
        return None

    def create_issue(self, repository: DiscoveredRepository, migration: MigrationSpec) -> IssueOutcome:
        """Create the upgrade issue for ``migration`` in ``repository``.

        Returns:
            IssueCreated on success, IssueSkipped for duplicates or missing
            write access, IssueFailed for any other API error

        Raises:
            TemplateError: If the title or body template cannot be rendered
        """
        title = self._renderer.issue_title(migration)

        try:
            existing = self.find_duplicate_issue(repository, title)
        except (GithubException, requests.RequestException) as e:
            logger.warning(f"Duplicate check failed for {repository.full_name}: {e}")
            return IssueFailed(error=f"duplicate check failed: {e}")
        if existing is not None:
            logger.info(f"Duplicate issue #{existing} exists in {repository.full_name}, skipping")
            return IssueSkipped(reason=f"duplicate issue exists (#{existing})")

        body = self._renderer.render_issue_body(migration)

        try:
            self._limiter.ensure_core()
            issue = ghu.get_repo(self._client, repository.full_name).create_issue(title=title, body=body)
        except GithubException as e:
            if ghu.is_permission_denied(e):
                logger.warning(f"No write access to {repository.full_name}, skipping")
                return IssueSkipped(reason="no write access")
            logger.warning(f"Failed to create issue in {repository.full_name}: {e}")
            return IssueFailed(error=str(e))
        except requests.RequestException as e:
            logger.warning(f"Failed to create issue in {repository.full_name}: {e}")
            return IssueFailed(error=str(e))

        logger.info(f"Created issue #{issue.number} in {repository.full_name}")
        return IssueCreated(number=issue.number, url=issue.html_url)

    def update_issue_with_pr(
        self,
        repository: DiscoveredRepository,
        issue_number: int,
        migration: MigrationSpec,
        pr_outcome: PrOutcome,
        pr_link: str | None,
    ) -> bool:
        """Re-render the issue body with the PR status and link.

        A failed update is logged and reported as False; the issue itself
        already exists, so this never fails the repository.
        """
        try:
            body = self._renderer.render_issue_body(
                migration,
                pr_status=pr_status_label(pr_outcome),
                pr_link=pr_link or "",
            )
            self._limiter.ensure_core()
            issue = ghu.get_repo(self._client, repository.full_name).get_issue(issue_number)
            issue.edit(body=body)
        except (GithubException, requests.RequestException, TemplateError) as e:
            logger.warning(f"Failed to update issue #{issue_number} in {repository.full_name} with PR info: {e}")
            return False

        logger.info(f"Updated issue #{issue_number} in {repository.full_name} with PR info")
        return True
