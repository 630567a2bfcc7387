"""
Custom exception classes for the template upgrade notifier.
"""

from __future__ import annotations


class NotifierError(Exception):
    """Base exception for notifier errors."""


class ConfigError(NotifierError):
    """Raised when a migration definition or agent configuration is invalid or unreadable."""


class TemplateError(NotifierError):
    """Raised when a template fails to compile or render."""


class DiscoveryError(NotifierError):
    """Raised when repository discovery fails at the provider."""


class RateLimitExceededError(DiscoveryError):
    """Raised when the provider refuses a discovery request because the quota is exhausted."""

    reset_at: int | None

    def __init__(self, reset_at: int | None = None) -> None:
        self.reset_at = reset_at
        when = f"reset at {reset_at}" if reset_at is not None else "reset time unknown"
        super().__init__(f"Rate limit exceeded, {when}")


class PullRequestError(NotifierError):
    """Base exception for remediation workflow errors."""


class InvalidBranchNameError(PullRequestError):
    """Raised when a rendered branch name is not a legal git reference name."""


class GitCommandError(PullRequestError):
    """Raised when a git subprocess exits non-zero.

    The message and ``stderr`` are sanitised and never contain access tokens.
    """

    stderr: str

    def __init__(self, message: str, stderr: str = "") -> None:
        self.stderr = stderr
        super().__init__(message)


class CloneError(GitCommandError):
    """Raised when cloning a repository fails."""


class PushError(GitCommandError):
    """Raised when pushing the upgrade branch fails."""


class AgentError(NotifierError):
    """Raised when the coding agent fails to apply a migration."""


class AgentTimeoutError(AgentError):
    """Raised when the coding agent exceeds its wall-clock budget."""

    timeout_seconds: float

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Coding agent timed out after {timeout_seconds:g} seconds")
