"""Background score recomputation."""

from __future__ import annotations

from .queue import ScoreJobQueue, ScorePageJob

__all__ = ["ScoreJobQueue", "ScorePageJob"]
