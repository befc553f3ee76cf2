"""Bounded worker pool running one git operation per repository."""

import asyncio
from collections.abc import AsyncIterator
from typing import Protocol

from freshgit.logger import get_logger
from freshgit.models import (
    ExecutionPlan,
    FailureReason,
    OperationMode,
    OperationOutcome,
    RepositoryDescriptor,
)

logger = get_logger(__name__)


class Operation(Protocol):
    async def execute(self, descriptor: RepositoryDescriptor, mode: OperationMode) -> OperationOutcome: ...


class ConcurrencyScheduler:
    """
    Runs an ExecutionPlan through a fixed number of worker slots.

    Every worker pulls the next pending descriptor from a FIFO queue as soon as
    its previous operation finished, so no more than ``plan.worker_count``
    operations are ever running. With a single worker (sequential policy) the
    descriptors run strictly in input order. Each descriptor is attempted once
    and yields exactly one outcome, whatever happened to the others.
    """

    def __init__(self, operation: Operation) -> None:
        self.operation = operation
        self.running = 0
        self.peak_running = 0

    async def run(self, plan: ExecutionPlan) -> AsyncIterator[OperationOutcome]:
        """
        Execute the plan, yielding outcomes as soon as they are known.

        Closing the iterator early or cancelling the consumer cancels the
        workers: nothing new is admitted and running git processes are killed.
        """
        total = len(plan.descriptors)
        workers = plan.worker_count
        if workers == 0:
            logger.info("Nothing to do")
            return

        logger.info("Starting", mode=plan.mode.value, repositories=total, policy=plan.policy.value, workers=workers)

        pending: asyncio.Queue[RepositoryDescriptor] = asyncio.Queue()
        for descriptor in plan.descriptors:
            pending.put_nowait(descriptor)
        results: asyncio.Queue[OperationOutcome] = asyncio.Queue()

        tasks = [
            asyncio.create_task(self._worker(pending, results, plan.mode), name=f"freshgit-worker-{n}")
            for n in range(workers)
        ]
        try:
            for _ in range(total):
                yield await results.get()
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _worker(
        self,
        pending: asyncio.Queue[RepositoryDescriptor],
        results: asyncio.Queue[OperationOutcome],
        mode: OperationMode,
    ) -> None:
        while True:
            try:
                descriptor = pending.get_nowait()
            except asyncio.QueueEmpty:
                return

            self.running += 1
            self.peak_running = max(self.peak_running, self.running)
            try:
                outcome = await self.operation.execute(descriptor, mode)
            except Exception as e:
                logger.exception("Unexpected error", path=str(descriptor.local_path))
                outcome = OperationOutcome.failure(descriptor, mode, FailureReason.INTERNAL_ERROR, repr(e))
            finally:
                self.running -= 1

            results.put_nowait(outcome)
