"""Background queue that runs safety scans outside the request cycle."""

import asyncio
import logging
import traceback
from typing import Awaitable, Callable, List, Optional
from uuid import UUID

logger = logging.getLogger(__name__)

ScanHandler = Callable[[UUID], Awaitable[object]]

class ScanQueue:
    """asyncio.Queue of item ids drained by a fixed pool of worker tasks."""

    def __init__(self, concurrency: int = 2):
        """Initialize the queue.

        Args:
            concurrency: Number of worker tasks draining the queue
        """
        self.concurrency = concurrency
        self.queue: asyncio.Queue = asyncio.Queue()
        self.handler: Optional[ScanHandler] = None
        self.workers: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self.workers)

    def enqueue(self, item_id: UUID) -> None:
        """Schedule a scan; returns immediately."""
        self.queue.put_nowait(item_id)
        logger.debug(f"Queued scan for item {item_id} ({self.queue.qsize()} waiting)")

    def start(self, handler: ScanHandler) -> None:
        """Start the worker tasks on the running loop."""
        if self.running:
            return
        self.handler = handler
        self.workers = [
            asyncio.create_task(self._worker(n), name=f"scan-worker-{n}")
            for n in range(self.concurrency)
        ]
        logger.info(f"Scan queue started with {self.concurrency} workers")

    async def _worker(self, n: int) -> None:
        while True:
            item_id = await self.queue.get()
            try:
                await self.handler(item_id)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Scan worker {n} failed on item {item_id}: {str(e)}")
                logger.error(traceback.format_exc())
            finally:
                self.queue.task_done()

    async def join(self) -> None:
        """Wait until every queued scan has been handled."""
        await self.queue.join()

    async def stop(self) -> None:
        """Cancel the worker tasks.

        Scans still queued are dropped; their items stay pending in the store
        and are rescheduled on the next startup.
        """
        for worker in self.workers:
            worker.cancel()
        await asyncio.gather(*self.workers, return_exceptions=True)
        self.workers = []
        dropped = self.queue.qsize()
        if dropped:
            logger.warning(f"Scan queue stopped with {dropped} scans still queued")
        logger.info("Scan queue stopped")

__all__ = ['ScanQueue', 'ScanHandler']
