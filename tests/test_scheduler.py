"""Tests for the bounded-concurrency task scheduler."""

from __future__ import annotations

import asyncio
from typing import List

import pytest

from backend.services.scheduler import CancellationToken, TaskScheduler


class Recorder:
    """Builds task factories that log start order and concurrency."""

    def __init__(self) -> None:
        self.started: List[int] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def task(self, index: int, fail: bool = False, delay: float = 0.0):
        async def run() -> int:
            self.started.append(index)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                await asyncio.sleep(delay)
                if fail:
                    raise RuntimeError(f"task {index} failed")
                return index * 10
            finally:
                self.in_flight -= 1
        return run


class TestTaskScheduler:
    """Ordering, halting and cancellation."""

    async def test_sequential_runs_in_submission_order(self) -> None:
        recorder = Recorder()

        outcome = await TaskScheduler(1).run([recorder.task(i) for i in range(5)])

        assert recorder.started == [0, 1, 2, 3, 4]
        assert recorder.max_in_flight == 1
        assert outcome.succeeded
        assert outcome.ordered_results() == [0, 10, 20, 30, 40]
        assert outcome.dispatched == 5

    async def test_halts_on_first_failure(self) -> None:
        """No task after the failing one is started."""
        recorder = Recorder()
        tasks = [recorder.task(i, fail=(i == 2)) for i in range(5)]

        outcome = await TaskScheduler(1).run(tasks)

        assert recorder.started == [0, 1, 2]
        assert outcome.failed_index == 2
        assert isinstance(outcome.error, RuntimeError)
        assert outcome.ordered_results() == [0, 10]
        assert not outcome.succeeded

    async def test_concurrency_limit_respected(self) -> None:
        recorder = Recorder()

        outcome = await TaskScheduler(3).run([recorder.task(i, delay=0.01) for i in range(9)])

        assert recorder.max_in_flight == 3
        assert outcome.ordered_results() == [i * 10 for i in range(9)]

    async def test_results_ordered_despite_completion_order(self) -> None:
        recorder = Recorder()
        delays = [0.03, 0.0, 0.02, 0.01]

        outcome = await TaskScheduler(4).run([recorder.task(i, delay=d) for i, d in enumerate(delays)])

        assert outcome.ordered_results() == [0, 10, 20, 30]

    async def test_in_flight_tasks_finish_after_failure(self) -> None:
        """Tasks already running when another fails keep their results."""
        recorder = Recorder()
        tasks = [
            recorder.task(0, delay=0.02),
            recorder.task(1, fail=True),
            recorder.task(2),
            recorder.task(3),
        ]

        outcome = await TaskScheduler(2).run(tasks)

        assert outcome.failed_index == 1
        assert outcome.results == {0: 0}
        assert 3 not in recorder.started

    async def test_cancellation_stops_dispatch(self) -> None:
        recorder = Recorder()
        token = CancellationToken()

        def cancelling_task():
            async def run() -> int:
                token.cancel()
                return -1
            return run

        tasks = [recorder.task(0), cancelling_task(), recorder.task(2), recorder.task(3)]

        outcome = await TaskScheduler(1).run(tasks, token)

        assert outcome.cancelled
        assert recorder.started == [0]
        assert outcome.dispatched == 2

    async def test_empty_task_list(self) -> None:
        outcome = await TaskScheduler(2).run([])

        assert outcome.succeeded
        assert outcome.ordered_results() == []

    def test_rejects_zero_concurrency(self) -> None:
        with pytest.raises(ValueError):
            TaskScheduler(0)
