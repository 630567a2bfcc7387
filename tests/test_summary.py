"""
Tests for run summary bookkeeping.
"""

from __future__ import annotations

import pytest

from template_upgrade_notifier.models import (
    IssueCreated,
    IssueFailed,
    IssueSkipped,
    PrCreated,
    PrFailed,
    PrSkipped,
    PrTimedOut,
    ProcessingFailed,
    ProcessingSkipped,
    ProcessingSuccess,
    pr_status_label,
)
from template_upgrade_notifier.summary import RunSummary

CREATED = IssueCreated(number=1, url="https://github.com/o/r/issues/1")


@pytest.mark.unit
class TestRecordResult:
    def test_created_issue_without_pr(self) -> None:
        summary = RunSummary()

        summary.record_result(ProcessingSuccess(repository="o/r", issue=CREATED))

        assert summary.issues_created == 1
        assert summary.prs_created == 0
        assert summary.all_success()

    def test_skipped_issue(self) -> None:
        summary = RunSummary()

        summary.record_result(ProcessingSuccess(repository="o/r", issue=IssueSkipped(reason="no write access")))

        assert summary.issues_skipped == 1
        assert not summary.has_failures()

    def test_failed_issue(self) -> None:
        summary = RunSummary()

        summary.record_result(ProcessingSuccess(repository="o/r", issue=IssueFailed(error="boom")))

        assert summary.issues_failed == 1
        assert summary.has_failures()

    def test_created_pr(self) -> None:
        summary = RunSummary()

        summary.record_result(
            ProcessingSuccess(repository="o/r", issue=CREATED, pr=PrCreated(number=2, url="u"))
        )

        assert summary.prs_created == 1
        assert summary.all_success()

    @pytest.mark.parametrize("pr", [PrFailed(error="boom"), PrTimedOut(timeout_seconds=600)])
    def test_failed_and_timed_out_prs_count_as_failures(self, pr: PrFailed | PrTimedOut) -> None:
        summary = RunSummary()

        summary.record_result(ProcessingSuccess(repository="o/r", issue=CREATED, pr=pr))

        assert summary.prs_failed == 1
        assert summary.issues_created == 1
        assert summary.has_failures()

    def test_skipped_pr_changes_nothing(self) -> None:
        summary = RunSummary()

        summary.record_result(
            ProcessingSuccess(repository="o/r", issue=CREATED, pr=PrSkipped(reason="no changes made"))
        )

        assert summary.prs_created == 0
        assert summary.prs_failed == 0

    def test_processing_skipped(self) -> None:
        summary = RunSummary()

        summary.record_result(ProcessingSkipped(repository="o/r", reason="archived"))

        assert summary.issues_skipped == 1

    def test_processing_failed(self) -> None:
        summary = RunSummary()

        summary.record_result(ProcessingFailed(repository="o/r", error="boom"))

        assert summary.issues_failed == 1
        assert summary.has_failures()

    def test_empty_summary_is_success(self) -> None:
        assert RunSummary().all_success()


@pytest.mark.unit
class TestPrStatusLabel:
    def test_labels(self) -> None:
        assert pr_status_label(PrCreated(number=1, url="u")) == "created"
        assert pr_status_label(PrSkipped(reason="r")) == "skipped"
        assert pr_status_label(PrFailed(error="e")) == "failed"
        assert pr_status_label(PrTimedOut(timeout_seconds=1)) == "failed"


@pytest.mark.unit
class TestAggregate:
    @pytest.mark.parametrize("count", [1, 4, 25])
    def test_all_created(self, count: int) -> None:
        summary = RunSummary()

        for i in range(count):
            summary.record_result(
                ProcessingSuccess(repository=f"o/r{i}", issue=CREATED, pr=PrCreated(number=i, url=f"u{i}"))
            )

        assert summary.issues_created == count
        assert summary.prs_created == count
        assert summary.all_success()

        summary.record_result(ProcessingSuccess(repository="o/bad", issue=IssueFailed(error="boom")))

        assert summary.has_failures()
