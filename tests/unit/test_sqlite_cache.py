"""Tests for the SQLite score cache."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from wandascore.models import FACTORS, ScoreFactor, ScoreReport
from wandascore.storage.sqlite_cache import SQLiteScoreCache


def make_report(page_id: int, overall: int, title: str = "Page") -> ScoreReport:
    return ScoreReport(
        overall_score=overall,
        factors={name: ScoreFactor(overall, f"<p>{name}</p>") for name in FACTORS},
        timestamp=datetime(2026, 10, 1, 12, 30, tzinfo=timezone.utc),
        page_id=page_id,
        page_title=title,
    )


@pytest.mark.unit
class TestSQLiteScoreCache:
    """Test cache reads and writes against a real database file."""

    @pytest.mark.asyncio
    async def test_get_missing_page(self, sqlite_cache):
        assert await sqlite_cache.get(404) is None

    @pytest.mark.asyncio
    async def test_put_then_get_returns_same_report(self, sqlite_cache):
        report = make_report(1, 72, "River Town")

        await sqlite_cache.put(1, report)

        assert await sqlite_cache.get(1) == report

    @pytest.mark.asyncio
    async def test_second_put_replaces_first(self, sqlite_cache):
        await sqlite_cache.put(1, make_report(1, 40))
        await sqlite_cache.put(1, make_report(1, 90))

        cached = await sqlite_cache.get(1)
        assert cached is not None
        assert cached.overall_score == 90
        assert await sqlite_cache.count() == 1

        async with sqlite_cache.get_connection() as conn:
            cursor = await conn.execute("SELECT ws_overall_score FROM wandascore WHERE ws_page_id = 1")
            rows = await cursor.fetchall()
        assert [row[0] for row in rows] == [90]

    @pytest.mark.asyncio
    async def test_pages_are_stored_independently(self, sqlite_cache):
        await sqlite_cache.put(1, make_report(1, 40))
        await sqlite_cache.put(2, make_report(2, 60))

        assert (await sqlite_cache.get(1)).overall_score == 40
        assert (await sqlite_cache.get(2)).overall_score == 60
        assert await sqlite_cache.count() == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw",
        [
            "not json at all",
            "[]",
            '{"overall_score": 50}',
            '{"overall_score": 50, "factors": {"bias": {"score": 1, "details": ""}}, "timestamp": "2026-01-01"}',
        ],
    )
    async def test_corrupt_row_is_a_miss(self, sqlite_cache, raw):
        async with sqlite_cache.get_connection() as conn:
            await conn.execute(
                "INSERT INTO wandascore (ws_page_id, ws_overall_score, ws_score_data, ws_timestamp) VALUES (?, ?, ?, ?)",
                (5, 50, raw, "2026-01-01T00:00:00+00:00"),
            )
            await conn.commit()

        assert await sqlite_cache.get(5) is None

    @pytest.mark.asyncio
    async def test_corrupt_row_is_overwritten_by_put(self, sqlite_cache):
        async with sqlite_cache.get_connection() as conn:
            await conn.execute(
                "INSERT INTO wandascore (ws_page_id, ws_overall_score, ws_score_data, ws_timestamp) VALUES (?, ?, ?, ?)",
                (5, 0, "{broken", "2026-01-01T00:00:00+00:00"),
            )
            await conn.commit()

        await sqlite_cache.put(5, make_report(5, 66))

        assert (await sqlite_cache.get(5)).overall_score == 66

    @pytest.mark.asyncio
    async def test_delete(self, sqlite_cache):
        await sqlite_cache.put(3, make_report(3, 70))

        assert await sqlite_cache.delete(3) is True
        assert await sqlite_cache.delete(3) is False
        assert await sqlite_cache.get(3) is None

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, sqlite_config):
        first = SQLiteScoreCache(sqlite_config)
        await first.initialize()
        await first.put(9, make_report(9, 81))
        await first.close()

        second = SQLiteScoreCache(sqlite_config)
        await second.initialize()
        try:
            assert (await second.get(9)).overall_score == 81
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_closed_cache_fails_fast(self, sqlite_config):
        cache = SQLiteScoreCache(sqlite_config)
        await cache.initialize()
        await cache.close()

        with pytest.raises(RuntimeError, match="closed"):
            await asyncio.wait_for(cache.get(1), timeout=1)
        with pytest.raises(RuntimeError):
            await asyncio.wait_for(cache.put(1, make_report(1, 50)), timeout=1)

    @pytest.mark.asyncio
    async def test_cache_can_be_reinitialized_after_close(self, sqlite_config):
        cache = SQLiteScoreCache(sqlite_config)
        await cache.initialize()
        await cache.put(4, make_report(4, 66))
        await cache.close()

        await cache.initialize()
        try:
            assert (await cache.get(4)).overall_score == 66
        finally:
            await cache.close()
