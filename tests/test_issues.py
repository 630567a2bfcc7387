"""
Tests for upgrade issue creation and updates.
"""

from __future__ import annotations

import dataclasses
from unittest.mock import MagicMock, Mock

import pytest
import requests
from github import GithubException

from template_upgrade_notifier.issues import IssueManager
from template_upgrade_notifier.models import (
    DiscoveredRepository,
    IssueCreated,
    IssueFailed,
    IssueSkipped,
    MigrationSpec,
    PrCreated,
)
from template_upgrade_notifier.templates import TemplateRenderer

TITLE = "Template Upgrade Available: T:1.0.0 -> T:1.0.1"


def _issue(number: int, title: str) -> Mock:
    issue = Mock(number=number, title=title)
    issue.html_url = f"https://github.com/octo/app/issues/{number}"
    return issue


@pytest.fixture
def manager(mock_client: MagicMock, limiter: Mock, renderer: TemplateRenderer) -> IssueManager:
    mock_client.search_issues.return_value.get_page.return_value = []
    return IssueManager(mock_client, limiter, renderer)


@pytest.mark.unit
class TestFindDuplicateIssue:
    def test_query_targets_open_issues_by_title(self, manager: IssueManager, mock_client: MagicMock) -> None:
        manager.find_duplicate_issue(Mock(full_name="octo/app"), TITLE)

        mock_client.search_issues.assert_called_once_with(f'repo:octo/app is:issue is:open in:title "{TITLE}"')

    def test_exact_title_match(self, manager: IssueManager, mock_client: MagicMock, limiter: Mock) -> None:
        mock_client.search_issues.return_value.get_page.return_value = [_issue(7, TITLE)]

        assert manager.find_duplicate_issue(Mock(full_name="octo/app"), TITLE) == 7
        limiter.ensure_search.assert_called_once()

    def test_similar_title_is_not_a_duplicate(self, manager: IssueManager, mock_client: MagicMock) -> None:
        mock_client.search_issues.return_value.get_page.return_value = [_issue(7, f"Re: {TITLE}")]

        assert manager.find_duplicate_issue(Mock(full_name="octo/app"), TITLE) is None

    def test_quotes_in_title_are_removed_from_query(self, manager: IssueManager, mock_client: MagicMock) -> None:
        title = 'Upgrade "base" template'
        mock_client.search_issues.return_value.get_page.return_value = [_issue(9, title)]

        assert manager.find_duplicate_issue(Mock(full_name="octo/app"), title) == 9
        mock_client.search_issues.assert_called_once_with(
            'repo:octo/app is:issue is:open in:title "Upgrade  base  template"'
        )


@pytest.mark.unit
class TestCreateIssue:
    def test_creates_issue(
        self,
        manager: IssueManager,
        mock_client: MagicMock,
        repository: DiscoveredRepository,
        migration: MigrationSpec,
    ) -> None:
        repo = mock_client.get_repo.return_value
        repo.create_issue.return_value = _issue(42, TITLE)

        outcome = manager.create_issue(repository, migration)

        assert outcome == IssueCreated(number=42, url="https://github.com/octo/app/issues/42")
        mock_client.get_repo.assert_called_once_with("octo/app", lazy=True)
        kwargs = repo.create_issue.call_args.kwargs
        assert kwargs["title"] == TITLE
        assert "T:1.0.1" in kwargs["body"]
        assert "automated pull request" not in kwargs["body"]

    def test_duplicate_skips_without_creating(
        self,
        manager: IssueManager,
        mock_client: MagicMock,
        repository: DiscoveredRepository,
        migration: MigrationSpec,
    ) -> None:
        mock_client.search_issues.return_value.get_page.return_value = [_issue(3, TITLE)]

        outcome = manager.create_issue(repository, migration)

        assert outcome == IssueSkipped(reason="duplicate issue exists (#3)")
        mock_client.get_repo.return_value.create_issue.assert_not_called()

    def test_custom_title_used_for_duplicate_check(
        self,
        manager: IssueManager,
        mock_client: MagicMock,
        repository: DiscoveredRepository,
        migration: MigrationSpec,
    ) -> None:
        custom = dataclasses.replace(migration, issue_title_format="Upgrade to {{ new_string }}")
        mock_client.search_issues.return_value.get_page.return_value = [_issue(9, "Upgrade to T:1.0.1")]

        assert manager.create_issue(repository, custom) == IssueSkipped(reason="duplicate issue exists (#9)")

    @pytest.mark.parametrize(
        "error",
        [
            GithubException(403, {"message": "Resource not accessible by integration"}, None),
            GithubException(410, "Forbidden", None),
            GithubException(422, {"message": "permission denied"}, None),
        ],
    )
    def test_permission_errors_are_skipped(
        self,
        manager: IssueManager,
        mock_client: MagicMock,
        repository: DiscoveredRepository,
        migration: MigrationSpec,
        error: GithubException,
    ) -> None:
        mock_client.get_repo.return_value.create_issue.side_effect = error

        assert manager.create_issue(repository, migration) == IssueSkipped(reason="no write access")

    def test_other_errors_fail(
        self,
        manager: IssueManager,
        mock_client: MagicMock,
        repository: DiscoveredRepository,
        migration: MigrationSpec,
    ) -> None:
        mock_client.get_repo.return_value.create_issue.side_effect = GithubException(
            500, {"message": "Server Error"}, None
        )

        outcome = manager.create_issue(repository, migration)

        assert isinstance(outcome, IssueFailed)
        assert "Server Error" in outcome.error

    def test_duplicate_check_error_fails(
        self,
        manager: IssueManager,
        mock_client: MagicMock,
        repository: DiscoveredRepository,
        migration: MigrationSpec,
    ) -> None:
        mock_client.search_issues.return_value.get_page.side_effect = GithubException(
            422, {"message": "Validation Failed"}, None
        )

        outcome = manager.create_issue(repository, migration)

        assert isinstance(outcome, IssueFailed)
        mock_client.get_repo.return_value.create_issue.assert_not_called()

    def test_network_error_fails(
        self,
        manager: IssueManager,
        mock_client: MagicMock,
        repository: DiscoveredRepository,
        migration: MigrationSpec,
    ) -> None:
        mock_client.get_repo.return_value.create_issue.side_effect = requests.ConnectionError("reset")

        assert manager.create_issue(repository, migration) == IssueFailed(error="reset")


@pytest.mark.unit
class TestUpdateIssueWithPr:
    def test_rewrites_body_with_pr_link(
        self,
        manager: IssueManager,
        mock_client: MagicMock,
        limiter: Mock,
        repository: DiscoveredRepository,
        migration: MigrationSpec,
    ) -> None:
        pr = PrCreated(number=5, url="https://github.com/octo/app/pull/5")

        assert manager.update_issue_with_pr(repository, 42, migration, pr, pr.url) is True

        repo = mock_client.get_repo.return_value
        repo.get_issue.assert_called_once_with(42)
        body = repo.get_issue.return_value.edit.call_args.kwargs["body"]
        assert "An automated pull request is ready: https://github.com/octo/app/pull/5" in body
        limiter.ensure_core.assert_called_once()

    def test_failure_returns_false(
        self,
        manager: IssueManager,
        mock_client: MagicMock,
        repository: DiscoveredRepository,
        migration: MigrationSpec,
    ) -> None:
        mock_client.get_repo.return_value.get_issue.return_value.edit.side_effect = GithubException(
            500, {"message": "Server Error"}, None
        )
        pr = PrCreated(number=5, url="https://github.com/octo/app/pull/5")

        assert manager.update_issue_with_pr(repository, 42, migration, pr, pr.url) is False

    def test_network_error_returns_false(
        self,
        manager: IssueManager,
        mock_client: MagicMock,
        repository: DiscoveredRepository,
        migration: MigrationSpec,
    ) -> None:
        mock_client.get_repo.return_value.get_issue.side_effect = requests.ConnectionError("reset")
        pr = PrCreated(number=5, url="https://github.com/octo/app/pull/5")

        assert manager.update_issue_with_pr(repository, 42, migration, pr, pr.url) is False
