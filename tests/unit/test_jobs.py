"""Tests for the background recompute queue."""

import asyncio

import pytest
import pytest_asyncio

from wandascore.config import JobsConfig
from wandascore.jobs import ScoreJobQueue


class ExplodingService:
    async def recompute(self, page_title: str) -> bool:
        raise RuntimeError(f"boom: {page_title}")


@pytest_asyncio.fixture
async def job_queue(service):
    queue = ScoreJobQueue(service, JobsConfig(workers=2, queue_size=10))
    await queue.start()
    yield queue
    await queue.stop()


class TestScoreJobQueue:
    @pytest.mark.asyncio
    async def test_jobs_populate_cache(self, job_queue, memory_cache):
        job = await job_queue.enqueue("River Town")
        await job_queue.join()

        assert job.page_title == "River Town"
        assert job.enqueued_at.tzinfo is not None
        assert 7 in memory_cache.rows
        assert job_queue.stats()["succeeded"] == 1

    @pytest.mark.asyncio
    async def test_failed_jobs_are_counted(self, job_queue, memory_cache):
        for title in ("River Town", "No Such Page", "Empty Redirect", "Stub"):
            await job_queue.enqueue(title)
        await job_queue.join()

        stats = job_queue.stats()
        assert stats["succeeded"] == 2
        assert stats["failed"] == 2
        assert stats["pending"] == 0
        assert set(memory_cache.rows) == {7, 8}

    @pytest.mark.asyncio
    async def test_crashing_job_does_not_stop_worker(self):
        queue = ScoreJobQueue(ExplodingService(), JobsConfig(workers=1))
        await queue.start()

        await queue.enqueue("A")
        await queue.enqueue("B")
        await asyncio.wait_for(queue.join(), timeout=2)

        assert queue.stats()["failed"] == 2
        assert queue.is_running
        await queue.stop()

    @pytest.mark.asyncio
    async def test_stop_drains_queued_jobs(self, service, memory_cache):
        queue = ScoreJobQueue(service, JobsConfig(workers=1))
        await queue.enqueue("River Town")
        await queue.enqueue("Stub")

        await queue.start()
        await queue.stop()

        assert not queue.is_running
        assert queue.stats()["workers"] == 0
        assert memory_cache.puts == 2

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, job_queue):
        await job_queue.start()

        assert job_queue.stats()["workers"] == 2
