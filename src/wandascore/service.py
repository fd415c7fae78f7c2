"""
Scoring service: the entry point callers use to get a page's score.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Optional

import structlog

from wandascore.exceptions import (
    ContentSourceError,
    GenerationFailedError,
    NoContentError,
    PageNotFoundError,
    WandaScoreError,
)
from wandascore.models import ScoreReport
from wandascore.observability.metrics import METRICS
from wandascore.protocols import ContentSource, ScoreCache
from wandascore.scoring.aggregator import ScoreAggregator

logger = structlog.get_logger(__name__)


class ScoreService:
    """
    Resolves pages, serves cached reports and recomputes them on demand.

    Only ``PageNotFoundError`` and ``GenerationFailedError`` escape
    :meth:`get_score`.
    """

    def __init__(self, content_source: ContentSource, aggregator: ScoreAggregator, cache: ScoreCache) -> None:
        self.content_source = content_source
        self.aggregator = aggregator
        self.cache = cache
        self._in_flight: Dict[int, asyncio.Task[ScoreReport]] = {}

    async def get_score(self, page_title: str, force_refresh: bool = False) -> ScoreReport:
        """
        Get the score report for a page.

        Args:
            page_title: Title of the wiki page.
            force_refresh: Skip the cache and always recompute.

        Raises:
            PageNotFoundError: if the page does not exist.
            GenerationFailedError: if no report could be produced.
        """
        try:
            page = await self.content_source.get_page(page_title)
        except ContentSourceError as e:
            raise GenerationFailedError(str(e)) from e
        if page is None:
            raise PageNotFoundError(page_title)

        log = logger.bind(page_id=page.page_id, page_title=page.title)

        if not force_refresh:
            cached = await self._read_cache(page.page_id)
            if cached is not None:
                log.debug("Serving cached score")
                return cached

        task = self._in_flight.get(page.page_id)
        if task is None:
            task = asyncio.create_task(self._generate_and_store(page.page_id, page.title, page.content))
            self._in_flight[page.page_id] = task
            task.add_done_callback(lambda _t, pid=page.page_id: self._in_flight.pop(pid, None))
        else:
            log.debug("Joining in-flight scoring run")

        return await asyncio.shield(task)

    async def recompute(self, page_title: str) -> bool:
        """Recompute and cache a page's score. Returns False instead of raising."""
        try:
            report = await self.get_score(page_title, force_refresh=True)
        except WandaScoreError as e:
            logger.error("Error scoring page", page_title=page_title, error=str(e))
            return False
        logger.info("Successfully scored page", page_title=page_title, overall_score=report.overall_score)
        return True

    async def _generate_and_store(self, page_id: int, page_title: str, content: str | None) -> ScoreReport:
        try:
            report = await self.aggregator.score(page_title, content, page_id=page_id)
        except NoContentError as e:
            raise GenerationFailedError(str(e)) from e

        try:
            await self.cache.put(page_id, report)
        except Exception as e:
            # The fresh report is still valid; the next request recomputes it.
            logger.error("Failed to cache score report", page_id=page_id, page_title=page_title, error=repr(e))
        return report

    async def _read_cache(self, page_id: int) -> Optional[ScoreReport]:
        """Cache lookup where any storage failure counts as a miss."""
        try:
            return await self.cache.get(page_id)
        except Exception as e:
            logger.warning("Score cache read failed, treating as a miss", page_id=page_id, error=repr(e))
            METRICS["cache_lookups"].labels(result="error").inc()
            return None
