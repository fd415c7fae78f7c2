"""
Background recompute jobs processed by a small asyncio worker pool.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog

from wandascore.config.config import JobsConfig
from wandascore.models import utcnow
from wandascore.observability.metrics import METRICS
from wandascore.service import ScoreService

logger = structlog.get_logger(__name__)


@dataclass
class ScorePageJob:
    """Recompute and cache the score of one page."""

    page_title: str
    enqueued_at: datetime = field(default_factory=utcnow)

    async def run(self, service: ScoreService) -> bool:
        return await service.recompute(self.page_title)


class ScoreJobQueue:
    """
    Queue of ``ScorePageJob`` items drained by ``JobsConfig.workers`` workers.

    A failing job is counted and logged; it never stops its worker.
    """

    def __init__(self, service: ScoreService, config: Optional[JobsConfig] = None) -> None:
        self.service = service
        self.config = config or JobsConfig()
        self._queue: asyncio.Queue[Optional[ScorePageJob]] = asyncio.Queue(maxsize=self.config.queue_size)
        self._workers: List[asyncio.Task[None]] = []
        self._succeeded = 0
        self._failed = 0

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(f"score-worker-{i}")) for i in range(self.config.workers)
        ]
        logger.info("Score job workers started", workers=self.config.workers)

    async def enqueue(self, page_title: str) -> ScorePageJob:
        """Queue a recompute; waits when the queue is full."""
        job = ScorePageJob(page_title)
        await self._queue.put(job)
        METRICS["jobs"].labels(status="enqueued").inc()
        logger.debug("Score job enqueued", page_title=page_title, pending=self._queue.qsize())
        return job

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Let workers finish the queued jobs, then stop them."""
        if not self._workers:
            return
        for _ in self._workers:
            await self._queue.put(None)
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Score job workers stopped", **self.stats())

    # LazyInstance cleanup hook
    async def close(self) -> None:
        await self.stop()

    def stats(self) -> Dict[str, Any]:
        return {
            "pending": self._queue.qsize(),
            "succeeded": self._succeeded,
            "failed": self._failed,
            "workers": len(self._workers),
        }

    async def _worker(self, worker_id: str) -> None:
        while True:
            job = await self._queue.get()
            try:
                if job is None:
                    break
                ok = await job.run(self.service)
                if ok:
                    self._succeeded += 1
                    METRICS["jobs"].labels(status="succeeded").inc()
                else:
                    self._failed += 1
                    METRICS["jobs"].labels(status="failed").inc()
            except Exception as e:
                self._failed += 1
                METRICS["jobs"].labels(status="failed").inc()
                logger.error("Score job crashed", worker=worker_id, page_title=job.page_title, error=str(e))
            finally:
                self._queue.task_done()
