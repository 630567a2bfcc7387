"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock, Mock

import pytest

from template_upgrade_notifier.models import DiscoveredRepository, MigrationSpec
from template_upgrade_notifier.rate_limit import RateLimiter
from template_upgrade_notifier.templates import TemplateRenderer

ISSUE_TEMPLATE = """\
## Template upgrade available

This repository uses `{{ old_string }}` in `{{ target_file }}`. Please upgrade to `{{ new_string }}`.
{% if guide_link %}
See the [migration guide]({{ guide_link }}).
{% endif %}
{% if pr_status == "created" %}
An automated pull request is ready: {{ pr_link }}
{% endif %}
"""

PR_TEMPLATE = """\
Upgrade `{{ old_string }}` to `{{ new_string }}` in `{{ target_file }}`.
"""


def make_rate_limit_overview(remaining: int, reset: int, limit: int = 30) -> Mock:
    """Build a stand-in for ``Github.get_rate_limit()`` with equal search and core quotas."""
    rate = Mock(remaining=remaining, limit=limit, reset=datetime.fromtimestamp(reset, tz=UTC))
    overview = Mock()
    overview.resources.search = rate
    overview.resources.core = rate
    return overview


@pytest.fixture
def migration() -> MigrationSpec:
    return MigrationSpec(
        id="my-template/v1.0.0-to-v1.0.1",
        old_string="T:1.0.0",
        new_string="T:1.0.1",
        guide_link="https://example.com/guide",
        issue_template=ISSUE_TEMPLATE,
        pr_template=PR_TEMPLATE,
    )


@pytest.fixture
def repository() -> DiscoveredRepository:
    return DiscoveredRepository(
        owner="octo",
        name="app",
        full_name="octo/app",
        matched_file_path="template-version.txt",
        matched_file_url="https://github.com/octo/app/blob/main/template-version.txt",
    )


@pytest.fixture
def mock_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def limiter() -> Mock:
    """Rate limiter that never waits."""
    fake = Mock(spec=RateLimiter)
    fake.ensure_search.return_value = False
    fake.ensure_core.return_value = False
    return fake


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()
