"""Persistent score cache."""

from __future__ import annotations

from .schema import metadata as db_metadata
from .sqlite_cache import SQLiteScoreCache

__all__ = ["SQLiteScoreCache", "db_metadata"]
