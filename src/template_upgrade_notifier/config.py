"""Migration definitions and agent configuration.

A migrations root holds one directory per migration, at any depth::

    migrations/
    ├── my-template/
    │   └── v1.0.0-to-v1.0.1/
    │       ├── metadata.toml
    │       ├── issue-template.md
    │       └── pr-template.md
    └── config.toml            (optional, agent settings)

A directory that contains ``metadata.toml`` is a migration and is not
descended into further. The migration id is its path relative to the root.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any, Final
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationError, field_validator

from . import git_utils
from .agent import DEFAULT_AGENT_COMMAND, DEFAULT_AGENT_TIMEOUT_SECONDS
from .exceptions import ConfigError, InvalidBranchNameError, TemplateError
from .models import (
    DEFAULT_BRANCH_NAME_FORMAT,
    DEFAULT_COMMIT_TITLE_FORMAT,
    DEFAULT_ISSUE_TITLE_FORMAT,
    DEFAULT_PR_TITLE_FORMAT,
    DEFAULT_TARGET_FILENAME,
    MigrationSpec,
)
from .templates import TemplateRenderer

logger: logging.Logger = logging.getLogger(__name__)

METADATA_FILENAME: Final = "metadata.toml"
ISSUE_TEMPLATE_FILENAME: Final = "issue-template.md"
PR_TEMPLATE_FILENAME: Final = "pr-template.md"
AGENT_CONFIG_FILENAME: Final = "config.toml"

# Stands in for the real PR link when issue templates are test-rendered
SAMPLE_PR_LINK: Final = "https://github.com/owner/repo/pull/1"


class MigrationMetadata(BaseModel):
    """Schema of ``metadata.toml``. Keys are kebab-case."""

    old_string: str = Field(alias="old-string")
    new_string: str = Field(alias="new-string")
    target_file: str = Field(default=DEFAULT_TARGET_FILENAME, alias="target-file")
    migration_guide_link: str | None = Field(default=None, alias="migration-guide-link")
    issue_title_format: str = Field(default=DEFAULT_ISSUE_TITLE_FORMAT, alias="issue-title-format")
    pr_title_format: str = Field(default=DEFAULT_PR_TITLE_FORMAT, alias="pr-title-format")
    branch_name_format: str = Field(default=DEFAULT_BRANCH_NAME_FORMAT, alias="branch-name-format")
    commit_title_format: str = Field(default=DEFAULT_COMMIT_TITLE_FORMAT, alias="commit-title-format")

    model_config = {"populate_by_name": True}


class AgentSettings(BaseModel):
    """Settings for the command-line coding agent, the ``[agent]`` table of ``config.toml``."""

    command: list[str] = Field(default_factory=lambda: list(DEFAULT_AGENT_COMMAND), min_length=1)
    timeout_seconds: float = Field(default=DEFAULT_AGENT_TIMEOUT_SECONDS, alias="timeout-secs", gt=0)
    model: str | None = None

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("command", mode="before")
    @classmethod
    def split_command(cls, value: Any) -> Any:
        """Accept a single command line as well as a list of arguments."""
        if isinstance(value, str):
            return value.split()
        return value


class AgentConfigFile(BaseModel):
    """Schema of ``config.toml``."""

    agent: AgentSettings = Field(default_factory=AgentSettings)


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except OSError as e:
        msg = f"Failed to read {path}: {e}"
        raise ConfigError(msg) from e
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse {path}: {e}"
        raise ConfigError(msg) from e


def _read_template(path: Path) -> str:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Failed to read {path}: {e}"
        raise ConfigError(msg) from e
    if not content.strip():
        msg = f"{path.name} is empty"
        raise ConfigError(msg)
    return content


def _is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def validate_migration(migration: MigrationSpec, renderer: TemplateRenderer | None = None) -> None:
    """Check a migration definition for consistency.

    Raises:
        ConfigError: If any field is invalid
    """
    renderer = renderer or TemplateRenderer()

    if not migration.old_string.strip():
        msg = "old-string must not be empty"
        raise ConfigError(msg)
    if not migration.new_string.strip():
        msg = "new-string must not be empty"
        raise ConfigError(msg)
    if migration.old_string == migration.new_string:
        msg = "old-string and new-string must be different"
        raise ConfigError(msg)
    if migration.guide_link is not None and not _is_valid_url(migration.guide_link):
        msg = f"migration-guide-link is not a valid URL: {migration.guide_link}"
        raise ConfigError(msg)
    if not migration.target_filename or "/" in migration.target_filename or "\\" in migration.target_filename:
        msg = f"target-file must be a file name without path separators: {migration.target_filename!r}"
        raise ConfigError(msg)

    try:
        for template in (
            migration.issue_title_format,
            migration.pr_title_format,
            migration.branch_name_format,
            migration.commit_title_format,
            migration.issue_template,
            migration.pr_template,
        ):
            renderer.validate(template)

        # Rendering once catches variables a template uses but never receives
        renderer.issue_title(migration)
        renderer.pr_title(migration)
        renderer.commit_title(migration)
        renderer.render_issue_body(migration, pr_status="created", pr_link=SAMPLE_PR_LINK)
        renderer.render_pr_body(migration)
        git_utils.validate_branch_name(renderer.branch_name(migration))
    except (TemplateError, InvalidBranchNameError) as e:
        raise ConfigError(str(e)) from e


def load_migration(path: Path, migration_id: str) -> MigrationSpec:
    """Load and validate the migration stored in directory ``path``.

    Raises:
        ConfigError: If a file is missing, unreadable or invalid
    """
    logger.debug(f"Loading migration {migration_id} from {path}")
    metadata_path = path / METADATA_FILENAME
    try:
        metadata = MigrationMetadata.model_validate(_read_toml(metadata_path))
    except ValidationError as e:
        msg = f"Invalid {METADATA_FILENAME} in {path}: {e}"
        raise ConfigError(msg) from e

    migration = MigrationSpec(
        id=migration_id,
        old_string=metadata.old_string,
        new_string=metadata.new_string,
        target_filename=metadata.target_file,
        guide_link=metadata.migration_guide_link,
        issue_template=_read_template(path / ISSUE_TEMPLATE_FILENAME),
        pr_template=_read_template(path / PR_TEMPLATE_FILENAME),
        issue_title_format=metadata.issue_title_format,
        pr_title_format=metadata.pr_title_format,
        branch_name_format=metadata.branch_name_format,
        commit_title_format=metadata.commit_title_format,
    )

    try:
        validate_migration(migration)
    except ConfigError as e:
        msg = f"Invalid migration in {path}: {e}"
        raise ConfigError(msg) from e
    return migration


def _scan(root: Path, current: Path, migrations: list[MigrationSpec]) -> None:
    for entry in sorted(current.iterdir()):
        if not entry.is_dir():
            continue
        if not (entry / METADATA_FILENAME).is_file():
            _scan(root, entry, migrations)
            continue

        migration_id = entry.relative_to(root).as_posix()
        try:
            migrations.append(load_migration(entry, migration_id))
        except ConfigError as e:
            logger.warning(f"Skipping migration {migration_id}: {e}")
            continue
        logger.debug(f"Loaded migration {migration_id}")


def load_migrations(root: Path) -> list[MigrationSpec]:
    """Load every valid migration below ``root``, ordered by path.

    Invalid migrations are logged and skipped.

    Raises:
        ConfigError: If ``root`` does not exist or cannot be read
    """
    logger.info(f"Scanning migrations directory {root}")
    if not root.is_dir():
        msg = f"Migrations directory not found: {root}"
        raise ConfigError(msg)

    migrations: list[MigrationSpec] = []
    try:
        _scan(root, root, migrations)
    except OSError as e:
        msg = f"Failed to read migrations directory {root}: {e}"
        raise ConfigError(msg) from e

    logger.info(f"Loaded {len(migrations)} migrations")
    return migrations


def default_agent_config_path(migrations_root: Path) -> Path:
    """``config.toml`` next to the migrations directory."""
    return migrations_root.resolve().parent / AGENT_CONFIG_FILENAME


def load_agent_config(path: Path | None) -> AgentSettings:
    """Read the ``[agent]`` table of ``path``. A missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid TOML or has wrongly typed values
    """
    if path is None or not path.exists():
        logger.debug(f"No agent configuration at {path}, using defaults")
        return AgentSettings()

    try:
        return AgentConfigFile.model_validate(_read_toml(path)).agent
    except ValidationError as e:
        msg = f"Invalid agent configuration in {path}: {e}"
        raise ConfigError(msg) from e
