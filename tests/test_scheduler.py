import asyncio
from pathlib import Path

import pytest

from freshgit.models import (
    ExecutionPlan,
    ExecutionPolicy,
    FailureReason,
    OperationMode,
    OperationOutcome,
    RepositoryDescriptor,
)
from freshgit.services.scheduler import ConcurrencyScheduler


class RecordingOperation:
    """Sleeps instead of running git and records what happened."""

    def __init__(self, delay: float = 0.01, fail: tuple[str, ...] = (), raise_for: tuple[str, ...] = ()) -> None:
        self.delay = delay
        self.fail = fail
        self.raise_for = raise_for
        self.started: list[str] = []
        self.running = 0
        self.peak = 0

    async def execute(self, descriptor: RepositoryDescriptor, mode: OperationMode) -> OperationOutcome:
        name = descriptor.local_path.name
        self.started.append(name)
        self.running += 1
        self.peak = max(self.peak, self.running)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.running -= 1
        if name in self.raise_for:
            raise RuntimeError("boom")
        if name in self.fail:
            return OperationOutcome.failure(descriptor, mode, FailureReason.NON_ZERO_EXIT, "fatal: nope")
        return OperationOutcome.success(descriptor, mode, self.delay)


def _plan(names: list[str], policy: ExecutionPolicy, max_workers: int = 1) -> ExecutionPlan:
    descriptors = tuple(
        RepositoryDescriptor(source_url=f"https://example.com/{n}.git", local_path=Path("/work") / n) for n in names
    )
    return ExecutionPlan(descriptors=descriptors, mode=OperationMode.DOWNLOAD, policy=policy, max_workers=max_workers)


async def _collect(scheduler: ConcurrencyScheduler, plan: ExecutionPlan) -> list[OperationOutcome]:
    return [outcome async for outcome in scheduler.run(plan)]


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 2, 3, 7])
async def test_parallel_never_exceeds_limit(limit: int) -> None:
    names = [f"repo{i}" for i in range(20)]
    operation = RecordingOperation(delay=0.02)
    scheduler = ConcurrencyScheduler(operation)

    outcomes = await _collect(scheduler, _plan(names, ExecutionPolicy.PARALLEL, limit))

    assert len(outcomes) == len(names)
    assert sorted(o.descriptor.local_path.name for o in outcomes) == sorted(names)
    assert operation.peak <= limit
    assert scheduler.peak_running == operation.peak
    # Enough work to fill every slot
    assert operation.peak == limit
    assert scheduler.running == 0


@pytest.mark.asyncio
async def test_sequential_runs_in_order_and_continues_after_failure() -> None:
    operation = RecordingOperation(fail=("b",))
    scheduler = ConcurrencyScheduler(operation)

    outcomes = await _collect(scheduler, _plan(["a", "b", "c"], ExecutionPolicy.SEQUENTIAL, max_workers=8))

    assert operation.started == ["a", "b", "c"]
    assert [o.descriptor.local_path.name for o in outcomes] == ["a", "b", "c"]
    assert [o.succeeded for o in outcomes] == [True, False, True]
    assert operation.peak == 1


@pytest.mark.asyncio
async def test_unbounded_runs_everything_at_once() -> None:
    operation = RecordingOperation(delay=0.05)
    scheduler = ConcurrencyScheduler(operation)

    outcomes = await _collect(scheduler, _plan(["a", "b", "c", "d"], ExecutionPolicy.PARALLEL, max_workers=0))

    assert len(outcomes) == 4
    assert operation.peak == 4


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_failure() -> None:
    operation = RecordingOperation(raise_for=("b",))
    scheduler = ConcurrencyScheduler(operation)

    outcomes = await _collect(scheduler, _plan(["a", "b", "c"], ExecutionPolicy.PARALLEL, 2))

    by_name = {o.descriptor.local_path.name: o for o in outcomes}
    assert len(by_name) == 3
    assert by_name["b"].reason == FailureReason.INTERNAL_ERROR
    assert "boom" in by_name["b"].detail
    assert by_name["a"].succeeded and by_name["c"].succeeded


@pytest.mark.asyncio
async def test_outcomes_are_streamed() -> None:
    plan = _plan(["fast", "slow"], ExecutionPolicy.PARALLEL, 2)

    class Slow(RecordingOperation):
        async def execute(self, descriptor: RepositoryDescriptor, mode: OperationMode) -> OperationOutcome:
            if descriptor.local_path.name == "slow":
                await asyncio.sleep(0.5)
            return await super().execute(descriptor, mode)

    scheduler = ConcurrencyScheduler(Slow())
    stream = scheduler.run(plan)
    first = await asyncio.wait_for(stream.__anext__(), timeout=0.3)
    assert first.descriptor.local_path.name == "fast"
    await stream.aclose()


@pytest.mark.asyncio
async def test_closing_stream_stops_admission() -> None:
    operation = RecordingOperation(delay=0.05)
    scheduler = ConcurrencyScheduler(operation)
    stream = scheduler.run(_plan([f"r{i}" for i in range(10)], ExecutionPolicy.PARALLEL, 2))

    await stream.__anext__()
    await stream.aclose()
    await asyncio.sleep(0.1)

    assert len(operation.started) < 10
    assert scheduler.running == 0


@pytest.mark.asyncio
async def test_empty_plan_yields_nothing() -> None:
    scheduler = ConcurrencyScheduler(RecordingOperation())
    assert await _collect(scheduler, _plan([], ExecutionPolicy.PARALLEL, 4)) == []
