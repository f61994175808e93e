"""Unit tests for services/task_runner.py."""

import asyncio

from services.task_runner import BackgroundTaskRunner


class TestBackgroundTaskRunner:
    async def test_submitted_task_runs_without_await(self):
        runner = BackgroundTaskRunner()
        done = asyncio.Event()

        async def job():
            done.set()

        runner.submit(job(), name="job")
        await asyncio.wait_for(done.wait(), timeout=1)

        assert done.is_set()

    async def test_finished_tasks_are_released(self):
        runner = BackgroundTaskRunner()

        async def job():
            return 1

        task = runner.submit(job(), name="job")
        await task
        await asyncio.sleep(0)

        assert runner.pending == 0

    async def test_failing_task_does_not_propagate(self):
        runner = BackgroundTaskRunner()

        async def job():
            raise RuntimeError("boom")

        runner.submit(job(), name="job")
        cancelled = await runner.drain(timeout=1)

        assert cancelled == 0
        assert runner.pending == 0

    async def test_drain_waits_for_pending(self):
        runner = BackgroundTaskRunner()
        results = []

        async def job(n):
            await asyncio.sleep(0.01)
            results.append(n)

        for n in range(3):
            runner.submit(job(n), name=f"job:{n}")

        assert await runner.drain(timeout=1) == 0
        assert sorted(results) == [0, 1, 2]

    async def test_drain_cancels_stragglers(self):
        runner = BackgroundTaskRunner()

        async def hang():
            await asyncio.sleep(60)

        task = runner.submit(hang(), name="hang")
        cancelled = await runner.drain(timeout=0.01)

        assert cancelled == 1
        assert task.cancelled()

    async def test_drain_with_nothing_pending(self):
        assert await BackgroundTaskRunner().drain() == 0
