"""Protocols defining the contract for coding agents.

The remediation workflow owns the clone, the branch, the diff check and
everything that talks to GitHub. The agent only edits files in a working
tree. Keeping that boundary narrow allows:
- Swapping the agent backend (CLI tool, hosted API, scripted edit)
- Testing the remediation workflow with a fake agent
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pathlib import Path


class CodingAgent(Protocol):
    """Protocol for tools that apply a migration to a checked-out repository.

    Implementations edit files under ``workspace`` in place. They must not
    commit, push or switch branches; the caller inspects the working tree
    afterwards and decides whether there is anything to submit.
    """

    def apply(self, workspace: Path, instructions: str) -> None:
        """Apply ``instructions`` to the working tree at ``workspace``.

        Raises:
            AgentTimeoutError: If the agent exceeded its time budget
            AgentError: If the agent failed for any other reason
        """
        ...
