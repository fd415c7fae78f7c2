"""Response parsing, text formatting and score aggregation."""

from __future__ import annotations

from .aggregator import ScoreAggregator, compute_overall_score
from .formatter import format_details_text
from .parser import parse_score_response
from .prompts import FACTOR_PROMPTS, FactorPrompt

__all__ = [
    "ScoreAggregator",
    "compute_overall_score",
    "format_details_text",
    "parse_score_response",
    "FACTOR_PROMPTS",
    "FactorPrompt",
]
