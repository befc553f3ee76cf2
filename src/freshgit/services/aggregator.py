"""Tallying outcomes into the final run report."""

from collections.abc import AsyncIterable

from freshgit.logger import get_logger
from freshgit.models import FailureReason, FailureRecord, OperationOutcome, RunSummary
from freshgit.utils import redact_url

logger = get_logger(__name__)


class ResultAggregator:
    """Consumes outcomes one by one and keeps running counts."""

    def __init__(self, expected: int | None = None) -> None:
        self.expected = expected
        self.summary = RunSummary()

    def add(self, outcome: OperationOutcome) -> None:
        summary = self.summary
        summary.total += 1
        reason = None
        if outcome.succeeded:
            summary.succeeded += 1
        else:
            summary.failed += 1
            reason = outcome.reason or FailureReason.INTERNAL_ERROR
            summary.failures.append(FailureRecord(descriptor=outcome.descriptor, reason=reason, detail=outcome.detail))

        progress = f"{summary.total}/{self.expected}" if self.expected is not None else str(summary.total)
        log = logger.info if outcome.succeeded else logger.warning
        log(
            "Finished" if outcome.succeeded else "Failed",
            progress=progress,
            mode=outcome.mode.value,
            path=str(outcome.descriptor.local_path),
            reason=reason.value if reason else None,
            duration=round(outcome.duration, 2),
        )

    async def consume(self, outcomes: AsyncIterable[OperationOutcome]) -> RunSummary:
        """Drain ``outcomes`` and return the summary."""
        async for outcome in outcomes:
            self.add(outcome)
        return self.summary


def render_summary(summary: RunSummary) -> str:
    """Human-readable report: counts first, then one entry per failed repository."""
    lines = [f"Total: {summary.total}  Succeeded: {summary.succeeded}  Failed: {summary.failed}"]
    if summary.failures:
        lines.append("")
        lines.append("Failures:")
        for record in summary.failures:
            lines.append(f"  {redact_url(record.descriptor.source_url)} -> {record.descriptor.local_path}")
            lines.append(f"    reason: {record.reason.value}")
            for detail_line in record.detail.splitlines():
                lines.append(f"    {detail_line}")
    return "\n".join(lines)
