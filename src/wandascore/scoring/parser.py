"""
Parses the free-text answers of the chat service into ``ScoreFactor`` values.

Responses are expected to look like ``SCORE: 73 DETAILS: explanation`` but
the service is a language model, so every part is optional.
"""

from __future__ import annotations

import re
from typing import Optional

from wandascore.models import NO_DETAILS, UNABLE_TO_ANALYZE, ScoreFactor
from wandascore.scoring.formatter import format_details_text

_SCORE_RE = re.compile(r"SCORE:\s*(\d+)", re.IGNORECASE)
# First DETAILS block only, up to the next SCORE marker.
_DETAILS_RE = re.compile(r"DETAILS:\s*(.+?)(?:SCORE:|$)", re.IGNORECASE | re.DOTALL)
_AFTER_SCORE_RE = re.compile(r"SCORE:\s*\d+(?!\d)\s*(.+?)$", re.IGNORECASE | re.DOTALL)
_LABEL_PREFIX_RE = re.compile(r"^(SCORE:\s*\d+\s*|DETAILS:\s*)", re.IGNORECASE)


def clamp_score(value: int) -> int:
    return max(0, min(100, value))


def extract_score(response: str, default_score: int) -> int:
    """Return the first ``SCORE: <digits>`` value, clamped to [0, 100]."""
    match = _SCORE_RE.search(response)
    if match is None:
        return default_score
    return clamp_score(int(match.group(1)))


def extract_details(response: str) -> str:
    """Return the explanation part of a response, without label remnants."""
    match = _DETAILS_RE.search(response) or _AFTER_SCORE_RE.search(response)
    details = match.group(1).strip() if match else response
    return _LABEL_PREFIX_RE.sub("", details, count=1)


def parse_score_response(response: Optional[str], default_score: int = 50) -> ScoreFactor:
    """
    Parse a score response from the chat service.

    Args:
        response: Raw response text, or None when the call failed.
        default_score: Score used when the call failed or no score is present.

    Returns:
        The parsed factor with HTML-formatted details.
    """
    if not response:
        return ScoreFactor(score=default_score, details=UNABLE_TO_ANALYZE)

    score = extract_score(response, default_score)
    details = format_details_text(extract_details(response).strip())

    return ScoreFactor(score=score, details=details or NO_DETAILS)
