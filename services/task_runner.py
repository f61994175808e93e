"""
Fire-and-forget background tasks detached from the request lifecycle.

asyncio keeps only weak references to tasks, so a task created and then
forgotten can be garbage-collected mid-flight. The runner holds a strong
reference until the task finishes, logs anything that escaped the
coroutine's own error handling, and lets the app lifespan drain pending
work on shutdown.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine

from shared.logging import get_logger

log = get_logger(__name__)


class BackgroundTaskRunner:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Schedule *coro* on the running loop; the caller does not await it."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            log.warning("background_task_cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            log.error(
                "background_task_failed",
                task=task.get_name(),
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def drain(self, timeout: float = 10.0) -> int:
        """Wait up to *timeout* seconds for pending tasks.

        Tasks still running afterwards are cancelled. Returns how many were
        cancelled.
        """
        if not self._tasks:
            return 0
        tasks = list(self._tasks)
        log.info("background_tasks_draining", pending=len(tasks))
        _, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            log.warning("background_tasks_cancelled", count=len(still_running))
        return len(still_running)
