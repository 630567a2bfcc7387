"""Data models shared by discovery, issue, pull request and orchestration code.

Outcome types are closed unions of frozen dataclasses. Consumers match on
them exhaustively and finish with ``assert_never`` so that adding a variant
surfaces every place that needs to handle it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import assert_never

DEFAULT_TARGET_FILENAME = "template-version.txt"
DEFAULT_ISSUE_TITLE_FORMAT = "Template Upgrade Available: {{ old_string }} -> {{ new_string }}"
DEFAULT_PR_TITLE_FORMAT = "Template Upgrade: {{ old_string }} -> {{ new_string }}"
DEFAULT_BRANCH_NAME_FORMAT = "template-upgrade/{{ id }}"
DEFAULT_COMMIT_TITLE_FORMAT = "chore: upgrade {{ old_string }} -> {{ new_string }}"
DEFAULT_BRANCH = "main"


@dataclass(frozen=True)
class MigrationSpec:
    """A single old-string -> new-string upgrade definition.

    The id is derived from the migration's directory path relative to the
    migrations root (e.g. ``my-template/v1.0.0-to-v1.0.1``).
    """

    id: str
    old_string: str
    new_string: str
    target_filename: str = DEFAULT_TARGET_FILENAME
    guide_link: str | None = None
    issue_template: str = ""
    pr_template: str = ""
    issue_title_format: str = DEFAULT_ISSUE_TITLE_FORMAT
    pr_title_format: str = DEFAULT_PR_TITLE_FORMAT
    branch_name_format: str = DEFAULT_BRANCH_NAME_FORMAT
    commit_title_format: str = DEFAULT_COMMIT_TITLE_FORMAT


@dataclass(frozen=True)
class DiscoveredRepository:
    """A repository whose target file contains the outdated marker."""

    owner: str
    name: str
    full_name: str  # "owner/name", deduplication key
    matched_file_path: str
    matched_file_url: str
    default_branch: str = DEFAULT_BRANCH


# Issue outcomes


@dataclass(frozen=True)
class IssueCreated:
    number: int
    url: str


@dataclass(frozen=True)
class IssueSkipped:
    reason: str


@dataclass(frozen=True)
class IssueFailed:
    error: str


IssueOutcome = IssueCreated | IssueSkipped | IssueFailed


# Pull request outcomes


@dataclass(frozen=True)
class PrCreated:
    number: int
    url: str


@dataclass(frozen=True)
class PrSkipped:
    reason: str


@dataclass(frozen=True)
class PrFailed:
    error: str


@dataclass(frozen=True)
class PrTimedOut:
    """The coding agent exceeded its deadline. Counted as a failure."""

    timeout_seconds: float


PrOutcome = PrCreated | PrSkipped | PrFailed | PrTimedOut


def pr_status_label(outcome: PrOutcome) -> str:
    """Return the status string exposed to issue templates as ``pr_status``."""
    match outcome:
        case PrCreated():
            return "created"
        case PrSkipped():
            return "skipped"
        case PrFailed() | PrTimedOut():
            return "failed"
        case _:
            assert_never(outcome)


# Per-repository results


@dataclass(frozen=True)
class ProcessingSuccess:
    repository: str
    issue: IssueOutcome
    pr: PrOutcome | None = None


@dataclass(frozen=True)
class ProcessingSkipped:
    repository: str
    reason: str


@dataclass(frozen=True)
class ProcessingFailed:
    repository: str
    error: str


ProcessingResult = ProcessingSuccess | ProcessingSkipped | ProcessingFailed
