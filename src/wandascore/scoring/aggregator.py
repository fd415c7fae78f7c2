"""
Score aggregation: queries every factor, parses the answers and combines them
into a weighted overall score.
"""

from __future__ import annotations

import asyncio
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Mapping, Optional

import structlog

from wandascore.config.config import ScoringConfig
from wandascore.exceptions import ChatServiceError, FactorCallFailedError, NoContentError
from wandascore.models import CONTENT_TOO_SHORT, FACTORS, ChatOptions, ScoreFactor, ScoreReport, utcnow
from wandascore.observability.metrics import METRICS
from wandascore.protocols import ChatClient
from wandascore.scoring.parser import parse_score_response
from wandascore.scoring.prompts import FACTOR_PROMPTS, FactorPrompt

logger = structlog.get_logger(__name__)


def compute_overall_score(factors: Mapping[str, ScoreFactor], weights: Mapping[str, float]) -> int:
    """
    Weighted average of the factor scores, rounded half up.

    Args:
        factors: Parsed factor results, one per name in ``FACTORS``.
        weights: Weight per factor name.

    Raises:
        ValueError: if a factor or its weight is missing.
    """
    missing = [name for name in FACTORS if name not in factors or name not in weights]
    if missing:
        raise ValueError(f"Cannot aggregate without factors {missing}")

    total_weight = sum(Decimal(str(weights[name])) for name in FACTORS)
    weighted_sum = sum(Decimal(factors[name].score) * Decimal(str(weights[name])) for name in FACTORS)
    return int((weighted_sum / total_weight).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ScoreAggregator:
    """
    Issues the five factor queries for a page and assembles the report.

    A failed or timed-out query degrades to that factor's default score; it
    never aborts the other queries.
    """

    def __init__(
        self,
        chat_client: ChatClient,
        config: Optional[ScoringConfig] = None,
        chat_options: Optional[ChatOptions] = None,
        call_timeout: Optional[float] = 60.0,
        prompts: Mapping[str, FactorPrompt] = FACTOR_PROMPTS,
    ) -> None:
        self.chat_client = chat_client
        self.config = config or ScoringConfig()
        self.chat_options = chat_options or ChatOptions()
        self.call_timeout = call_timeout
        self.prompts = prompts

    async def score(
        self,
        page_title: str,
        page_content: Optional[str],
        page_id: Optional[int] = None,
    ) -> ScoreReport:
        """
        Score a page's content.

        Raises:
            NoContentError: if the page has no content at all.
        """
        if page_content is None:
            raise NoContentError(f"Page '{page_title}' has no content")

        if len(page_content) < self.config.min_content_length:
            logger.info("Content too short, skipping remote scoring", page_title=page_title, length=len(page_content))
            METRICS["reports_generated"].labels(outcome="short").inc()
            return self.short_content_report(page_title, page_id)

        excerpt = page_content[: self.config.max_content_chars]

        if self.config.concurrent_factors:
            results = await asyncio.gather(*(self._score_factor(name, excerpt) for name in FACTORS))
            factors = dict(zip(FACTORS, results))
        else:
            factors = {}
            for name in FACTORS:
                factors[name] = await self._score_factor(name, excerpt)

        overall = compute_overall_score(factors, self.config.weights)
        METRICS["reports_generated"].labels(outcome="scored").inc()
        logger.info("Page scored", page_title=page_title, page_id=page_id, overall_score=overall)

        return ScoreReport(
            overall_score=overall,
            factors=factors,
            timestamp=utcnow(),
            page_id=page_id,
            page_title=page_title,
        )

    def short_content_report(self, page_title: str, page_id: Optional[int] = None) -> ScoreReport:
        score = self.config.short_content_score
        factors: Dict[str, ScoreFactor] = {name: ScoreFactor(score, CONTENT_TOO_SHORT) for name in FACTORS}
        return ScoreReport(
            overall_score=score,
            factors=factors,
            timestamp=utcnow(),
            page_id=page_id,
            page_title=page_title,
        )

    async def _score_factor(self, factor: str, content: str) -> ScoreFactor:
        default_score = self.config.default_scores[factor]
        try:
            response: Optional[str] = await self._call_factor(factor, content)
        except FactorCallFailedError as e:
            logger.warning("Factor query failed, using default score", factor=factor, error=e.reason)
            response = None
        return parse_score_response(response, default_score)

    async def _call_factor(self, factor: str, content: str) -> str:
        prompt = self.prompts[factor]
        try:
            with METRICS["chat_latency"].labels(factor=factor).time():
                response = await asyncio.wait_for(
                    self.chat_client.complete(content, prompt.instructions, self.chat_options),
                    timeout=self.call_timeout,
                )
        except asyncio.TimeoutError as e:
            METRICS["chat_requests"].labels(factor=factor, status="timeout").inc()
            raise FactorCallFailedError(factor, f"timed out after {self.call_timeout}s") from e
        except ChatServiceError as e:
            METRICS["chat_requests"].labels(factor=factor, status="error").inc()
            raise FactorCallFailedError(factor, str(e)) from e
        except Exception as e:
            # Any chat client fault only costs this factor its score.
            METRICS["chat_requests"].labels(factor=factor, status="error").inc()
            logger.error("Unexpected chat client failure", factor=factor, error=repr(e))
            raise FactorCallFailedError(factor, f"unexpected error: {e!r}") from e

        METRICS["chat_requests"].labels(factor=factor, status="ok").inc()
        return response
