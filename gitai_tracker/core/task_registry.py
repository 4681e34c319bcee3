"""Task registry for tracking in-flight checkpoint dispatches.

Dispatches are spawned as background tasks so the change-event path never
waits on the external process. The registry keeps strong references until
each task finishes and drains them on engine shutdown.
"""

from __future__ import annotations

import asyncio
from typing import Coroutine, TypeVar

from instrukt_ai_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class TaskRegistry:
    """Registry for tracking background asyncio tasks.

    Example:
        registry = TaskRegistry()
        task = registry.spawn(dispatcher.dispatch_agent(doc, "amazon-q"), name="checkpoint")
        await registry.shutdown(timeout=5.0)
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[object]] = set()

    def _on_task_done(self, task: asyncio.Task[object]) -> None:
        """Drop the finished task and log any exception it raised."""
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc:
            logger.error("Background task %s failed: %s", task.get_name(), exc, exc_info=exc)

    def spawn(self, coro: Coroutine[object, object, T], name: str | None = None) -> asyncio.Task[T]:
        """Spawn a tracked background task and return it."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)  # type: ignore[arg-type]
        task.add_done_callback(self._on_task_done)  # type: ignore[arg-type]
        logger.debug("Spawned tracked task: %s (total: %d)", name or f"<unnamed-{id(task)}>", len(self._tasks))
        return task

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Wait for in-flight tasks to finish, cancelling any still pending after `timeout`.

        In-flight dispatches are not cancelled up front: a started checkpoint
        runs to completion unless shutdown runs out of time. Tasks spawned by
        draining tasks are waited on as well.
        """
        if not self._tasks:
            return

        task_count = len(self._tasks)
        logger.info("Waiting for %d in-flight tasks (timeout=%.1fs)", task_count, timeout)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        pending = {task for task in self._tasks if not task.done()}
        while pending:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.wait(pending, timeout=remaining)
            pending = {task for task in self._tasks if not task.done()}

        if pending:
            logger.warning(
                "Shutdown timeout: %d/%d tasks still pending after %.1fs", len(pending), task_count, timeout
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    def task_count(self) -> int:
        return len(self._tasks)
