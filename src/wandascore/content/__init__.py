"""Page content sources."""

from __future__ import annotations

from .source import MediaWikiContentSource

__all__ = ["MediaWikiContentSource"]
