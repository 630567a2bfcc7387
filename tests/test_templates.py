"""
Tests for template rendering.
"""

from __future__ import annotations

import dataclasses

import pytest

from template_upgrade_notifier.exceptions import InvalidBranchNameError, TemplateError
from template_upgrade_notifier.git_utils import validate_branch_name
from template_upgrade_notifier.models import MigrationSpec
from template_upgrade_notifier.templates import TemplateRenderer


@pytest.mark.unit
class TestDefaultFormats:
    def test_issue_title(self, renderer: TemplateRenderer, migration: MigrationSpec) -> None:
        assert renderer.issue_title(migration) == "Template Upgrade Available: T:1.0.0 -> T:1.0.1"

    def test_pr_title(self, renderer: TemplateRenderer, migration: MigrationSpec) -> None:
        assert renderer.pr_title(migration) == "Template Upgrade: T:1.0.0 -> T:1.0.1"

    def test_branch_name(self, renderer: TemplateRenderer, migration: MigrationSpec) -> None:
        assert renderer.branch_name(migration) == "template-upgrade/my-template/v1.0.0-to-v1.0.1"

    def test_default_branch_name_is_valid(self, renderer: TemplateRenderer, migration: MigrationSpec) -> None:
        validate_branch_name(renderer.branch_name(migration))

    def test_branch_name_with_space_is_rejected(self, renderer: TemplateRenderer, migration: MigrationSpec) -> None:
        custom = dataclasses.replace(migration, branch_name_format="upgrade {{ id }}")

        with pytest.raises(InvalidBranchNameError):
            validate_branch_name(renderer.branch_name(custom))

    def test_commit_title(self, renderer: TemplateRenderer, migration: MigrationSpec) -> None:
        assert renderer.commit_title(migration) == "chore: upgrade T:1.0.0 -> T:1.0.1"


@pytest.mark.unit
class TestCustomFormats:
    def test_all_format_variables_available(self, renderer: TemplateRenderer, migration: MigrationSpec) -> None:
        custom = dataclasses.replace(
            migration,
            issue_title_format="[{{ id }}] {{ target_file }} {{ guide_link }}",
        )

        assert (
            renderer.issue_title(custom)
            == "[my-template/v1.0.0-to-v1.0.1] template-version.txt https://example.com/guide"
        )

    def test_missing_guide_link_renders_empty(self, renderer: TemplateRenderer, migration: MigrationSpec) -> None:
        custom = dataclasses.replace(migration, guide_link=None, commit_title_format="up{{ guide_link }}")

        assert renderer.commit_title(custom) == "up"

    def test_markdown_is_not_escaped(self, renderer: TemplateRenderer, migration: MigrationSpec) -> None:
        custom = dataclasses.replace(migration, old_string="<a & b>")

        assert "<a & b>" in renderer.issue_title(custom)


@pytest.mark.unit
class TestIssueBody:
    def test_without_pr_info(self, renderer: TemplateRenderer, migration: MigrationSpec) -> None:
        body = renderer.render_issue_body(migration)

        assert "`T:1.0.0`" in body
        assert "`T:1.0.1`" in body
        assert "https://example.com/guide" in body
        assert "automated pull request" not in body

    def test_with_created_pr(self, renderer: TemplateRenderer, migration: MigrationSpec) -> None:
        body = renderer.render_issue_body(migration, pr_status="created", pr_link="https://github.com/o/r/pull/2")

        assert "An automated pull request is ready: https://github.com/o/r/pull/2" in body

    def test_pr_body(self, renderer: TemplateRenderer, migration: MigrationSpec) -> None:
        assert renderer.render_pr_body(migration) == "Upgrade `T:1.0.0` to `T:1.0.1` in `template-version.txt`.\n"


@pytest.mark.unit
class TestErrors:
    def test_validate_rejects_syntax_error(self, renderer: TemplateRenderer) -> None:
        with pytest.raises(TemplateError, match="Invalid template"):
            renderer.validate("{% if %}")

    def test_validate_accepts_valid_template(self, renderer: TemplateRenderer) -> None:
        renderer.validate("{{ old_string }}")

    def test_unknown_variable_fails(self, renderer: TemplateRenderer) -> None:
        with pytest.raises(TemplateError, match="rendering error"):
            renderer.render("{{ nope }}", {})

    def test_pr_body_cannot_use_issue_only_variables(
        self, renderer: TemplateRenderer, migration: MigrationSpec
    ) -> None:
        custom = dataclasses.replace(migration, pr_template="{{ pr_link }}")

        with pytest.raises(TemplateError):
            renderer.render_pr_body(custom)
