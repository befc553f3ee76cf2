from pathlib import Path

import pytest

from freshgit.models import FailureReason, OperationMode, OperationOutcome, OperationStatus, RepositoryDescriptor
from freshgit.services.aggregator import ResultAggregator, render_summary


def _descriptor(name: str) -> RepositoryDescriptor:
    return RepositoryDescriptor(source_url=f"https://example.com/{name}.git", local_path=Path("/work") / name)


async def _stream(outcomes: list[OperationOutcome]):  # noqa: ANN202
    for outcome in outcomes:
        yield outcome


@pytest.mark.asyncio
async def test_counts_and_exit_code() -> None:
    mode = OperationMode.UPDATE
    outcomes = [
        OperationOutcome.success(_descriptor("a"), mode, 0.1),
        OperationOutcome.failure(_descriptor("b"), mode, FailureReason.TIMEOUT, "git did not finish within 600s"),
        OperationOutcome.success(_descriptor("c"), mode, 0.2),
    ]

    summary = await ResultAggregator(expected=3).consume(_stream(outcomes))

    assert (summary.total, summary.succeeded, summary.failed) == (3, 2, 1)
    assert summary.exit_code == 1
    assert summary.failures[0].descriptor == _descriptor("b")
    assert summary.failures[0].reason == FailureReason.TIMEOUT


@pytest.mark.asyncio
async def test_all_succeeded_exit_zero() -> None:
    summary = await ResultAggregator().consume(
        _stream([OperationOutcome.success(_descriptor("a"), OperationMode.DOWNLOAD, 1.0)])
    )
    assert summary.exit_code == 0
    assert summary.failures == []


def test_render_summary_lists_failures() -> None:
    aggregator = ResultAggregator()
    aggregator.add(OperationOutcome.success(_descriptor("a"), OperationMode.DOWNLOAD, 1.0))
    aggregator.add(
        OperationOutcome.failure(
            _descriptor("b"), OperationMode.DOWNLOAD, FailureReason.NON_ZERO_EXIT, "remote: nope\nfatal: not found"
        )
    )

    report = render_summary(aggregator.summary)

    assert report.splitlines()[0] == "Total: 2  Succeeded: 1  Failed: 1"
    assert "https://example.com/b.git" in report
    assert "reason: non_zero_exit" in report
    assert "fatal: not found" in report
    assert "a.git" not in report


def test_failure_without_reason_is_recorded_as_internal_error() -> None:
    aggregator = ResultAggregator()
    aggregator.add(
        OperationOutcome(descriptor=_descriptor("a"), mode=OperationMode.UPDATE, status=OperationStatus.FAILURE)
    )

    assert aggregator.summary.exit_code == 1
    assert aggregator.summary.failures[0].reason == FailureReason.INTERNAL_ERROR
