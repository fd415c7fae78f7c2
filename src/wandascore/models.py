"""
Core data types shared by the scoring pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from wandascore.exceptions import CacheCorruptError

# Fixed set of scoring dimensions, in the order they are queried and reported.
FACTORS = ("bias", "llm_generated", "language", "grammar", "conciseness")

UNABLE_TO_ANALYZE = "Unable to analyze this factor"
NO_DETAILS = "No additional details available"
CONTENT_TOO_SHORT = "Content too short for analysis"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ScoreFactor:
    """Score for a single factor plus the formatted explanation."""

    score: int
    details: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "score", max(0, min(100, int(self.score))))

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "details": self.details}


@dataclass(frozen=True)
class ScoreReport:
    """Result of one scoring run for a page."""

    overall_score: int
    factors: Mapping[str, ScoreFactor]
    timestamp: datetime = field(default_factory=utcnow)
    page_id: Optional[int] = None
    page_title: Optional[str] = None

    def __post_init__(self) -> None:
        missing = [name for name in FACTORS if name not in self.factors]
        if missing or len(self.factors) != len(FACTORS):
            raise ValueError(f"A score report needs exactly the factors {FACTORS}, missing {missing}")
        ordered = {name: self.factors[name] for name in FACTORS}
        object.__setattr__(self, "factors", MappingProxyType(ordered))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON-serializable layout stored in the cache."""
        return {
            "overall_score": self.overall_score,
            "factors": {name: factor.to_dict() for name, factor in self.factors.items()},
            "timestamp": self.timestamp.isoformat(),
            "page_id": self.page_id,
            "page_title": self.page_title,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ScoreReport:
        """Create from a dictionary produced by :meth:`to_dict`."""
        if not isinstance(data, dict):
            raise CacheCorruptError(f"Expected a JSON object, got {type(data).__name__}")
        try:
            raw_factors = data["factors"]
            factors = {
                name: ScoreFactor(score=int(raw_factors[name]["score"]), details=str(raw_factors[name]["details"]))
                for name in FACTORS
            }
            timestamp = datetime.fromisoformat(data["timestamp"])
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
            page_id = data.get("page_id")
            return cls(
                overall_score=int(data["overall_score"]),
                factors=factors,
                timestamp=timestamp,
                page_id=int(page_id) if page_id is not None else None,
                page_title=data.get("page_title"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CacheCorruptError(f"Invalid score report data: {e}") from e


@dataclass(frozen=True)
class PageRecord:
    """A wiki page as returned by the content source."""

    page_id: int
    title: str
    content: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class ChatOptions:
    """Per-call options for the chat completion service."""

    use_public_knowledge: bool = True
    temperature: float = 0.0
    max_tokens: int = 10000
    skip_es_query: bool = True
