"""
Error taxonomy for wandascore.

Only page-level failures (``PageNotFoundError``, ``GenerationFailedError``)
leave the scoring service. Factor-level and cache-level failures are absorbed
with fallback values.
"""

from __future__ import annotations

from typing import Optional


class WandaScoreError(Exception):
    """Base class for all wandascore errors."""


class PageNotFoundError(WandaScoreError):
    """The requested page does not exist."""

    def __init__(self, page_title: str) -> None:
        super().__init__(f"Page not found: {page_title}")
        self.page_title = page_title


class NoContentError(WandaScoreError):
    """The page exists but has no retrievable content."""


class GenerationFailedError(WandaScoreError):
    """A score report could not be produced for the page."""


class FactorCallFailedError(WandaScoreError):
    """A single factor query failed or timed out."""

    def __init__(self, factor: str, reason: str = "") -> None:
        super().__init__(f"Factor '{factor}' call failed: {reason}" if reason else f"Factor '{factor}' call failed")
        self.factor = factor
        self.reason = reason


class CacheCorruptError(WandaScoreError):
    """Stored score data could not be decoded."""


class ChatServiceError(WandaScoreError):
    """The chat completion service could not be reached or returned no usable answer."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ContentSourceError(WandaScoreError):
    """The wiki content source failed to answer."""
