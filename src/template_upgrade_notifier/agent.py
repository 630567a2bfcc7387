"""Coding agent backend driven through an external command."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import TYPE_CHECKING, Final

from .exceptions import AgentError, AgentTimeoutError

if TYPE_CHECKING:
    from pathlib import Path

    from .models import MigrationSpec

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_AGENT_COMMAND: Final = ("opencode", "run")
DEFAULT_AGENT_TIMEOUT_SECONDS: Final = 600.0

# Exported to the agent process when a model is configured
MODEL_ENV_VAR: Final = "TEMPLATE_UPGRADE_LLM_MODEL"

# Longest stderr excerpt carried into error messages
_STDERR_EXCERPT: Final = 500


def build_instructions(migration: MigrationSpec) -> str:
    """Build the prompt handed to the coding agent."""
    lines = [
        f"Apply the following template upgrade to this repository: {migration.old_string} -> {migration.new_string}",
        "",
        f"1. Find every file named `{migration.target_filename}` in the repository.",
        f"2. In each of them, replace `{migration.old_string}` with `{migration.new_string}`.",
        "3. If the upgrade requires further changes elsewhere in the repository, make them.",
    ]
    if migration.guide_link:
        lines += ["", f"Follow the migration guide: {migration.guide_link}"]
    lines += [
        "",
        "Keep the change minimal and do not touch unrelated code.",
        "Do not commit, push or create branches. Leave all changes in the working tree.",
    ]
    return "\n".join(lines)


class CommandAgent:
    """Runs an agent CLI with the prompt as its final argument.

    The process runs inside the workspace and is killed when it exceeds
    ``timeout_seconds``.
    """

    command: list[str]
    timeout_seconds: float
    model: str | None

    def __init__(
        self,
        command: list[str] | None = None,
        timeout_seconds: float = DEFAULT_AGENT_TIMEOUT_SECONDS,
        model: str | None = None,
    ) -> None:
        self.command = list(command) if command else list(DEFAULT_AGENT_COMMAND)
        self.timeout_seconds = timeout_seconds
        self.model = model

    def _environment(self) -> dict[str, str]:
        env = os.environ.copy()
        if self.model:
            env[MODEL_ENV_VAR] = self.model
        return env

    def apply(self, workspace: Path, instructions: str) -> None:
        """Run the agent in ``workspace``.

        Raises:
            AgentTimeoutError: If the process outlives ``timeout_seconds``
            AgentError: If the process cannot be started or exits non-zero
        """
        logger.debug(f"Running coding agent {self.command[0]} in {workspace} (timeout {self.timeout_seconds:g}s)")
        try:
            result = subprocess.run(  # noqa: S603
                [*self.command, instructions],
                cwd=workspace,
                check=False,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                env=self._environment(),
            )
        except subprocess.TimeoutExpired as e:
            raise AgentTimeoutError(self.timeout_seconds) from e
        except OSError as e:
            msg = f"Failed to start coding agent '{self.command[0]}': {e}"
            raise AgentError(msg) from e

        if result.returncode != 0:
            stderr = result.stderr.strip()[:_STDERR_EXCERPT]
            msg = f"Coding agent exited with status {result.returncode}: {stderr}"
            raise AgentError(msg)

        logger.debug(f"Coding agent finished in {workspace}")
