"""
WandaScore - LLM-assisted content quality scores for wiki pages.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config
from .models import FACTORS, ScoreFactor, ScoreReport
from .service import ScoreService

__all__ = ["__version__", "Config", "FACTORS", "ScoreFactor", "ScoreReport", "ScoreService"]
