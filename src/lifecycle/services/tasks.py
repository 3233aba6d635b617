"""Fire-and-forget background work for long-running operations."""

import asyncio
import logging
from typing import Coroutine, Optional


class TaskRunner:
    """Schedules coroutines on the running loop without awaiting them.

    Holds a strong reference to every task until it finishes so the event
    loop cannot garbage-collect it mid-flight.
    """

    def __init__(self):
        self.logger = logging.getLogger("lifecycle.tasks")
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        """Start a coroutine in the background.

        Args:
            coro: Coroutine to run
            name: Task name for logs

        Returns:
            The scheduled task
        """
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        self.logger.debug(f"Spawned background task {task.get_name()}")
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self.logger.warning(f"Background task {task.get_name()} cancelled")
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error(
                f"Background task {task.get_name()} failed: {exc}",
                exc_info=exc,
            )

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    async def wait(self) -> None:
        """Wait for every spawned task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
