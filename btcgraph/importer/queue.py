"""
Background execution of ingestion runs.

Refresh requests are queued and a single worker task executes them one at
a time, so two runs never interleave their steps. The pipeline talks to
blocking clients and therefore runs in a thread. Finished runs are kept
in a short history that the API exposes.
"""

import asyncio
import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from btcgraph.importer.pipeline import IngestionPipeline, IngestionResult, PipelineState, next_run_id

logger = logging.getLogger(__name__)


@dataclass
class IngestionTicket:
    id: int
    future: 'asyncio.Future[IngestionResult]'

    async def wait(self) -> IngestionResult:
        return await asyncio.shield(self.future)


class IngestionQueue:
    def __init__(self, pipeline: IngestionPipeline, maxsize: int = 4, history: int = 20):
        self.pipeline = pipeline
        self.maxsize = maxsize
        self.history: Deque[IngestionResult] = deque(maxlen=history)
        self._ids = itertools.count(1)
        self._pending: Deque[IngestionTicket] = deque()
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return not self._stopping and self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def start(self):
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.maxsize)
        self._worker = asyncio.create_task(self._work(), name='ingestion-worker')
        logger.info(f"Ingestion queue started (size {self.maxsize})")

    def submit(self) -> IngestionTicket:
        """
        Queue one ingestion of the current chain tip.

        When the queue is full the newest pending ticket is returned; that
        run has not started yet and will read the live tip too.
        """
        if not self.running:
            raise RuntimeError("ingestion queue is not running")

        ticket = IngestionTicket(next(self._ids), asyncio.get_running_loop().create_future())
        try:
            self._queue.put_nowait(ticket)
        except asyncio.QueueFull:
            newest = self._pending[-1]
            logger.info(f"Ingestion queue full, refresh folded into job {newest.id}")
            return newest
        self._pending.append(ticket)
        logger.info(f"Queued ingestion job {ticket.id}")
        return ticket

    async def join(self):
        """Wait until every queued job has run"""
        if self._queue is not None:
            await self._queue.join()

    def recent(self) -> List[IngestionResult]:
        return list(self.history)

    async def _work(self):
        while True:
            ticket = await self._queue.get()
            try:
                if ticket is None:
                    return
                self._pending.remove(ticket)
                await self._execute(ticket)
            finally:
                self._queue.task_done()

    async def _execute(self, ticket: IngestionTicket):
        logger.info(f"Starting ingestion job {ticket.id}")
        try:
            result = await asyncio.to_thread(self.pipeline.run)
        except Exception as e:
            logger.exception(f"Ingestion job {ticket.id} crashed")
            result = IngestionResult(
                run_id=next_run_id(),
                state=PipelineState.FAILED,
                error=f"unexpected error: {e!r}",
                finished_at=time.time(),
            )

        self.history.appendleft(result)
        if result.succeeded:
            logger.info(f"Ingestion job {ticket.id} done: block {result.height}")
        else:
            stage = result.failed_in.value if result.failed_in else "unknown state"
            logger.error(f"Ingestion job {ticket.id} failed in {stage}: {result.error}")
        if not ticket.future.done():
            ticket.future.set_result(result)

    async def stop(self):
        """Drop pending jobs, let the running one finish, then end the worker"""
        if not self.running:
            return
        self._stopping = True
        while self._pending:
            ticket = self._pending.popleft()
            ticket.future.cancel()
            self._queue.get_nowait()
            self._queue.task_done()
        await self._queue.put(None)
        await self._worker
        self._worker = None
        self._stopping = False
        logger.info("Ingestion queue stopped")
