"""Bounded-concurrency task scheduler with halt-on-first-failure.

The scheduler owns the ordering and halting guarantees of a comparison run so
they can be tested without any network calls:

* tasks are dispatched in submission order, at most ``concurrency`` at a time;
* after the first failure no further task is started; tasks already in flight
  run to completion and their results are kept;
* results are keyed by submission index, so the caller can restore order.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

from backend.core.logging import LogEvent, get_logger

logger = get_logger(__name__)

T = TypeVar("T")
TaskFactory = Callable[[], Awaitable[T]]


class CancellationToken:
    """Signals that the owner of a run has gone away."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class SchedulerOutcome(Generic[T]):
    results: Dict[int, T] = field(default_factory=dict)
    error: Optional[BaseException] = None
    failed_index: Optional[int] = None
    dispatched: int = 0
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.cancelled

    def ordered_results(self) -> List[T]:
        return [self.results[index] for index in sorted(self.results)]


class TaskScheduler:
    """Queue of task factories drained by ``concurrency`` workers."""

    def __init__(self, concurrency: int = 1):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency

    async def run(
        self,
        tasks: Sequence[TaskFactory],
        cancel_token: Optional[CancellationToken] = None,
    ) -> SchedulerOutcome:
        outcome: SchedulerOutcome = SchedulerOutcome()
        if not tasks:
            return outcome

        queue: asyncio.Queue = asyncio.Queue()
        for index, factory in enumerate(tasks):
            queue.put_nowait((index, factory))

        halted = asyncio.Event()

        async def worker() -> None:
            while not halted.is_set():
                if cancel_token is not None and cancel_token.cancelled:
                    outcome.cancelled = True
                    halted.set()
                    return
                try:
                    index, factory = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                outcome.dispatched += 1
                try:
                    value = await factory()
                except Exception as exc:
                    # several in-flight calls may fail; report the earliest pair
                    if outcome.failed_index is None or index < outcome.failed_index:
                        outcome.error = exc
                        outcome.failed_index = index
                    logger.warning(
                        LogEvent.DISPATCH_HALTED,
                        failed_index=index,
                        error=str(exc),
                        remaining=queue.qsize(),
                    )
                    halted.set()
                    return
                outcome.results[index] = value

        workers = [asyncio.create_task(worker()) for _ in range(min(self.concurrency, len(tasks)))]
        try:
            await asyncio.gather(*workers)
        except asyncio.CancelledError:
            for task in workers:
                task.cancel()
            raise

        if cancel_token is not None and cancel_token.cancelled:
            outcome.cancelled = True
        return outcome
