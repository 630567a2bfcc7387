"""Run statistics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import assert_never

from .models import (
    IssueCreated,
    IssueFailed,
    IssueSkipped,
    PrCreated,
    PrFailed,
    PrSkipped,
    PrTimedOut,
    ProcessingFailed,
    ProcessingResult,
    ProcessingSkipped,
    ProcessingSuccess,
)


@dataclass
class RunSummary:
    """Counters for one run. Only the coordinating thread updates them."""

    dry_run: bool = False
    migrations_processed: int = 0
    repositories_discovered: int = 0
    issues_created: int = 0
    issues_skipped: int = 0
    issues_failed: int = 0
    prs_created: int = 0
    prs_failed: int = 0

    def record_result(self, result: ProcessingResult) -> None:
        """Fold one repository's result into the counters."""
        match result:
            case ProcessingSuccess(issue=issue, pr=pr):
                match issue:
                    case IssueCreated():
                        self.issues_created += 1
                    case IssueSkipped():
                        self.issues_skipped += 1
                    case IssueFailed():
                        self.issues_failed += 1
                    case _:
                        assert_never(issue)
                match pr:
                    case None | PrSkipped():
                        pass
                    case PrCreated():
                        self.prs_created += 1
                    case PrFailed() | PrTimedOut():
                        self.prs_failed += 1
                    case _:
                        assert_never(pr)
            case ProcessingSkipped():
                self.issues_skipped += 1
            case ProcessingFailed():
                self.issues_failed += 1
            case _:
                assert_never(result)

    def has_failures(self) -> bool:
        return self.issues_failed > 0 or self.prs_failed > 0

    def all_success(self) -> bool:
        return not self.has_failures()
