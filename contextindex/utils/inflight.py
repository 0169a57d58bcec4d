"""
In-flight operation registry.

Coalesces concurrent requests for the same key onto one running task.
The registry is an ordinary object owned by whoever needs deduplication;
there is no process-wide instance.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from contextindex.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class InFlightRegistry(Generic[T]):
    """
    Map of key -> running task.

    While a task for a key is running, further calls for that key await the
    same task. The entry is removed as soon as the task settles, so a later
    call starts a fresh run.
    """

    def __init__(self, name: str = "inflight"):
        self.name = name
        self._tasks: dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    async def run_once(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """
        Run factory() for key unless a run for key is already in flight.

        Args:
            key: Deduplication key
            factory: Zero-argument callable returning the awaitable to run

        Returns:
            Result of the (possibly shared) run
        """
        async with self._lock:
            task = self._tasks.get(key)
            if task is None:
                task = asyncio.ensure_future(factory())
                self._tasks[key] = task
                task.add_done_callback(lambda t, key=key: self._release(key, t))
            else:
                logger.bind(key=key, registry=self.name).debug(
                    f"Joining in-flight {self.name} run for {key}"
                )

        # A cancelled waiter must not cancel the shared run
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"{self.name} run for {key} failed: {task.exception()}")

    async def wait_all(self) -> list[Any]:
        """Wait for every in-flight run to settle."""
        tasks = list(self._tasks.values())
        if not tasks:
            return []
        return await asyncio.gather(*tasks, return_exceptions=True)
