"""
Background indexing worker pool.

Messages are queued on a bounded asyncio.Queue and processed by a fixed
number of worker tasks. When the queue is full, submit() waits for space,
so callers queue up instead of failing.
"""

import asyncio

from contextindex.models.indexing import IndexingResult
from contextindex.models.message import Message
from contextindex.services.indexing_coordinator import IndexingCoordinator
from contextindex.utils.logger import get_logger

logger = get_logger(__name__)


class IndexingWorker:
    """
    Fixed-size pool of indexing tasks.

    Usage:
        worker = IndexingWorker(coordinator, workers=5, queue_size=100)
        worker.start()
        future = await worker.submit(message)
        result = await future
        await worker.stop()
    """

    def __init__(
        self,
        coordinator: IndexingCoordinator,
        workers: int = 5,
        queue_size: int = 100,
    ):
        self.coordinator = coordinator
        self.workers = max(1, workers)
        self._queue: asyncio.Queue[tuple[Message, asyncio.Future]] = asyncio.Queue(
            maxsize=queue_size
        )
        self._tasks: list[asyncio.Task] = []
        self.processed = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Start the worker tasks (no-op if already running)."""
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"indexing-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info(f"Started {self.workers} indexing workers")

    async def submit(self, message: Message) -> asyncio.Future:
        """
        Queue a message for indexing.

        Returns:
            Future resolving to the IndexingResult (or the indexing exception)
        """
        if not self.running:
            raise RuntimeError("Indexing worker is not running")

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        await self._queue.put((message, future))
        return future

    async def _worker(self, worker_id: int) -> None:
        while True:
            message, future = await self._queue.get()
            try:
                if future.cancelled():
                    continue
                result: IndexingResult = await self.coordinator.index_message(message)
                self.processed += 1
                if not future.done():
                    future.set_result(result)
            except asyncio.CancelledError:
                if not future.done():
                    future.cancel()
                raise
            except Exception as e:
                self.failed += 1
                logger.bind(message_id=message.id, error=str(e)).error(
                    f"Indexing worker {worker_id} failed on message {message.id}: {e}"
                )
                if not future.done():
                    future.set_exception(e)
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued message has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Cancel the workers and any messages still queued."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        cancelled = 0
        while not self._queue.empty():
            _, future = self._queue.get_nowait()
            self._queue.task_done()
            if not future.done():
                future.cancel()
                cancelled += 1

        logger.info(
            f"Stopped indexing workers ({self.processed} processed, {cancelled} cancelled)"
        )
