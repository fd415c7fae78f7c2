"""
Shared fixtures for the wandascore test suite.

The chat service, the wiki and the cache are replaced by in-process fakes so
the scoring pipeline can be exercised without any network access.
"""

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Union

import pytest
import pytest_asyncio

from wandascore.config import ScoringConfig, SQLiteConfig
from wandascore.exceptions import ChatServiceError
from wandascore.models import ChatOptions, PageRecord, ScoreReport
from wandascore.scoring.aggregator import ScoreAggregator
from wandascore.scoring.prompts import FACTOR_PROMPTS
from wandascore.service import ScoreService
from wandascore.storage.sqlite_cache import SQLiteScoreCache

LONG_CONTENT = (
    "The river town was founded in 1820 by traders who used the crossing to move grain. "
    "Its market square still hosts a weekly fair, and the old mill has been restored as a museum."
)

_FACTOR_BY_INSTRUCTIONS = {prompt.instructions: name for name, prompt in FACTOR_PROMPTS.items()}

Reply = Union[str, Exception, None]


class FakeChatClient:
    """Answers each factor query from a per-factor table of replies."""

    def __init__(self, replies: Optional[Dict[str, Reply]] = None, delay: float = 0.0) -> None:
        self.replies = replies or {}
        self.delay = delay
        self.calls: List[Dict[str, object]] = []

    async def complete(self, message: str, instructions: str, options: ChatOptions) -> str:
        factor = _FACTOR_BY_INSTRUCTIONS[instructions]
        self.calls.append({"factor": factor, "message": message, "options": options})
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.get(factor, f"SCORE: 90 DETAILS: {factor} looks fine.")
        if isinstance(reply, Exception):
            raise reply
        if reply is None:
            raise ChatServiceError("Chat service returned no response text")
        return reply

    @property
    def factors_called(self) -> List[str]:
        return [str(call["factor"]) for call in self.calls]


class FakeContentSource:
    def __init__(self, pages: Optional[Dict[str, PageRecord]] = None) -> None:
        self.pages = pages or {}
        self.lookups: List[str] = []

    async def get_page(self, title: str) -> Optional[PageRecord]:
        self.lookups.append(title)
        return self.pages.get(title)


class MemoryScoreCache:
    def __init__(self) -> None:
        self.rows: Dict[int, ScoreReport] = {}
        self.puts = 0

    async def get(self, page_id: int) -> Optional[ScoreReport]:
        return self.rows.get(page_id)

    async def put(self, page_id: int, report: ScoreReport) -> None:
        self.puts += 1
        self.rows[page_id] = report


@pytest.fixture
def scoring_config() -> ScoringConfig:
    return ScoringConfig()


@pytest.fixture
def chat_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
def aggregator(chat_client: FakeChatClient, scoring_config: ScoringConfig) -> ScoreAggregator:
    return ScoreAggregator(chat_client, scoring_config, call_timeout=1.0)


@pytest.fixture
def content_source() -> FakeContentSource:
    return FakeContentSource(
        {
            "River Town": PageRecord(page_id=7, title="River Town", content=LONG_CONTENT),
            "Stub": PageRecord(page_id=8, title="Stub", content="short text"),
            "Empty Redirect": PageRecord(page_id=9, title="Empty Redirect", content=None),
        }
    )


@pytest.fixture
def memory_cache() -> MemoryScoreCache:
    return MemoryScoreCache()


@pytest.fixture
def service(
    content_source: FakeContentSource, aggregator: ScoreAggregator, memory_cache: MemoryScoreCache
) -> ScoreService:
    return ScoreService(content_source, aggregator, memory_cache)


@pytest.fixture
def sqlite_config(tmp_path: Path) -> SQLiteConfig:
    return SQLiteConfig(db_path=tmp_path / "scores.db", pool_size=2)


@pytest_asyncio.fixture
async def sqlite_cache(sqlite_config: SQLiteConfig):
    cache = SQLiteScoreCache(sqlite_config)
    await cache.initialize()
    yield cache
    await cache.close()
