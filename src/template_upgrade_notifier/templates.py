"""Render issue/PR bodies and title, branch and commit formats with Jinja2.

Output is markdown or plain text, so HTML escaping is disabled. Undefined
variables are errors rather than silently rendering as empty strings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import jinja2

from .exceptions import TemplateError

if TYPE_CHECKING:
    from .models import MigrationSpec


class TemplateRenderer:
    """Renders the templates attached to a migration."""

    _env: jinja2.Environment

    def __init__(self) -> None:
        self._env = jinja2.Environment(
            autoescape=False,  # noqa: S701 - markdown output
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
        )

    def validate(self, template: str) -> None:
        """Check that ``template`` compiles.

        Raises:
            TemplateError: If the template has a syntax error
        """
        try:
            self._env.from_string(template)
        except jinja2.TemplateSyntaxError as e:
            msg = f"Invalid template (line {e.lineno}): {e.message}"
            raise TemplateError(msg) from e

    def render(self, template: str, variables: dict[str, Any]) -> str:
        """Render ``template`` with ``variables``.

        Raises:
            TemplateError: If the template is invalid or references an unknown variable
        """
        try:
            return self._env.from_string(template).render(variables)
        except jinja2.TemplateError as e:
            msg = f"Template rendering error: {e}"
            raise TemplateError(msg) from e

    @staticmethod
    def format_variables(migration: MigrationSpec) -> dict[str, str]:
        """Variables available to title, branch and commit formats."""
        return {
            "id": migration.id,
            "old_string": migration.old_string,
            "new_string": migration.new_string,
            "target_file": migration.target_filename,
            "guide_link": migration.guide_link or "",
        }

    def issue_title(self, migration: MigrationSpec) -> str:
        return self.render(migration.issue_title_format, self.format_variables(migration)).strip()

    def pr_title(self, migration: MigrationSpec) -> str:
        return self.render(migration.pr_title_format, self.format_variables(migration)).strip()

    def branch_name(self, migration: MigrationSpec) -> str:
        return self.render(migration.branch_name_format, self.format_variables(migration)).strip()

    def commit_title(self, migration: MigrationSpec) -> str:
        return self.render(migration.commit_title_format, self.format_variables(migration)).strip()

    def render_issue_body(self, migration: MigrationSpec, pr_status: str = "", pr_link: str = "") -> str:
        """Render the issue template. ``pr_status`` and ``pr_link`` are blank until a PR exists."""
        variables = {
            "old_string": migration.old_string,
            "new_string": migration.new_string,
            "guide_link": migration.guide_link or "",
            "target_file": migration.target_filename,
            "pr_status": pr_status,
            "pr_link": pr_link,
        }
        return self.render(migration.issue_template, variables)

    def render_pr_body(self, migration: MigrationSpec) -> str:
        variables = {
            "old_string": migration.old_string,
            "new_string": migration.new_string,
            "guide_link": migration.guide_link or "",
            "target_file": migration.target_filename,
        }
        return self.render(migration.pr_template, variables)
