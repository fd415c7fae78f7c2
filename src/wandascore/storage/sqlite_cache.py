"""
SQLite-backed score cache.
"""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite
import structlog
from sqlalchemy import create_engine

from wandascore.config.config import SQLiteConfig
from wandascore.exceptions import CacheCorruptError
from wandascore.models import ScoreReport, utcnow
from wandascore.observability.metrics import METRICS

from .schema import metadata as db_metadata

logger = structlog.get_logger(__name__)

# Increment whenever the schema in schema.py changes.
CURRENT_SCHEMA_VERSION = 1

_UPSERT_SQL = """
INSERT INTO wandascore (ws_page_id, ws_overall_score, ws_score_data, ws_timestamp)
VALUES (?, ?, ?, ?)
ON CONFLICT(ws_page_id) DO UPDATE SET
    ws_overall_score = excluded.ws_overall_score,
    ws_score_data = excluded.ws_score_data,
    ws_timestamp = excluded.ws_timestamp
"""


class SQLiteScoreCache:
    """
    Stores one JSON-encoded report per page id.

    Corrupt rows are reported as cache misses. There is no expiry; callers
    bypass ``get`` when they want a fresh score.
    """

    def __init__(self, config: SQLiteConfig):
        self.config = config
        self.db_path = Path(config.db_path)
        self._pool: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue(maxsize=config.pool_size)
        self._initialized = False

    async def initialize(self) -> None:
        """Creates the connection pool and runs migrations."""
        if self._initialized:
            return
        for _ in range(self.config.pool_size):
            conn = await self._create_connection()
            await self._pool.put(conn)
        self._initialized = True

        try:
            async with self.get_connection() as conn:
                await self._run_migrations(conn)
        except Exception:
            await self.close()
            raise

    async def _create_connection(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path)
        if self.config.wal_mode:
            await conn.execute("PRAGMA journal_mode=WAL;")
        await conn.execute("PRAGMA busy_timeout = 5000;")
        conn.row_factory = aiosqlite.Row
        return conn

    @asynccontextmanager
    async def get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Gets a connection from the pool."""
        if not self._initialized:
            raise RuntimeError("SQLiteScoreCache is not initialized or has been closed")
        conn = await self._pool.get()
        try:
            yield conn
        finally:
            await self._pool.put(conn)

    async def _run_migrations(self, conn: aiosqlite.Connection) -> None:
        cursor = await conn.execute("PRAGMA user_version;")
        version_row = await cursor.fetchone()
        current_version = version_row[0] if version_row is not None else 0

        if current_version < CURRENT_SCHEMA_VERSION:
            logger.info("Migrating score cache schema", from_version=current_version, to_version=CURRENT_SCHEMA_VERSION)
            engine = create_engine(f"sqlite:///{self.db_path}")
            try:
                await asyncio.to_thread(db_metadata.create_all, engine)
            finally:
                engine.dispose()
            await conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION};")
            await conn.commit()

    async def get(self, page_id: int) -> Optional[ScoreReport]:
        """Return the cached report for a page, or None on a miss or a corrupt row."""
        async with self.get_connection() as conn:
            cursor = await conn.execute("SELECT ws_score_data FROM wandascore WHERE ws_page_id = ?", (page_id,))
            row = await cursor.fetchone()

        if row is None:
            METRICS["cache_lookups"].labels(result="miss").inc()
            return None

        try:
            report = self._decode(row["ws_score_data"])
        except CacheCorruptError as e:
            logger.warning("Ignoring corrupt cache entry", page_id=page_id, error=str(e))
            METRICS["cache_lookups"].labels(result="corrupt").inc()
            return None

        METRICS["cache_lookups"].labels(result="hit").inc()
        return report

    async def put(self, page_id: int, report: ScoreReport) -> None:
        """Insert or replace the report stored for a page."""
        score_data = json.dumps(report.to_dict())
        async with self.get_connection() as conn:
            await conn.execute(_UPSERT_SQL, (page_id, report.overall_score, score_data, utcnow().isoformat()))
            await conn.commit()
        logger.debug("Cached score report", page_id=page_id, overall_score=report.overall_score)

    async def delete(self, page_id: int) -> bool:
        async with self.get_connection() as conn:
            cursor = await conn.execute("DELETE FROM wandascore WHERE ws_page_id = ?", (page_id,))
            await conn.commit()
            return cursor.rowcount > 0

    async def count(self) -> int:
        async with self.get_connection() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM wandascore")
            row = await cursor.fetchone()
            return int(row[0]) if row is not None else 0

    async def close(self) -> None:
        """Closes all connections in the pool."""
        while not self._pool.empty():
            conn = await self._pool.get()
            await conn.close()
        self._initialized = False

    @staticmethod
    def _decode(raw: Optional[str]) -> ScoreReport:
        if raw is None:
            raise CacheCorruptError("Empty score data")
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise CacheCorruptError(f"Score data is not valid JSON: {e}") from e
        return ScoreReport.from_dict(data)
