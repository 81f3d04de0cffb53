"""
Confidence scoring over retrieved evidence.

Raw cosine similarity is poorly calibrated, so confidence is an additive
model on top of it: corroborating sources raise it, short questions and a
single dominant outlier lower it, and band caps keep the final number
inside an interpretable range.

All functions here are pure: no I/O, no store, no LLM.
"""

from __future__ import annotations

import math
from typing import Sequence

from agentic_rag.schemas.confidence import ConfidenceBand, ConfidenceFactors, ConfidenceScore
from agentic_rag.schemas.retrieval import SearchResult
from agentic_rag.utils.logging import get_logger
from agentic_rag.utils.text import count_words

logger = get_logger("agentic_rag.pipeline.confidence")


def _std_dev(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for fewer than two values."""
    if len(values) <= 1:
        return 0.0
    mean = sum(values) / len(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def source_count_bonus(count: int) -> float:
    if count >= 4:
        return 7.0
    return {2: 3.0, 3: 5.0}.get(count, 0.0)


def consistency_bonus(scores: Sequence[float]) -> float:
    """Reward tightly clustered, high scores (needs ≥2 results)."""
    if len(scores) < 2:
        return 0.0
    spread = _std_dev(scores)
    mean = sum(scores) / len(scores)
    if spread < 0.10 and mean > 0.70:
        return 3.0
    if spread < 0.15 and mean > 0.60:
        return 2.0
    if spread < 0.20 and mean > 0.50:
        return 1.0
    return 0.0


def question_penalty(question: str | None) -> float:
    """Very short questions are ambiguous."""
    words = count_words(question)
    if words < 3:
        return -5.0
    if words < 5:
        return -2.0
    return 0.0


def score_gap_penalty(scores: Sequence[float]) -> float:
    """A large lead of top-1 over top-2 suggests an isolated match."""
    if len(scores) < 2:
        return 0.0
    gap = scores[0] - scores[1]
    if gap > 0.30:
        return -3.0
    if gap > 0.20:
        return -1.0
    return 0.0


def low_score_penalty(top_score: float) -> float:
    if top_score < 0.40:
        return -10.0
    if top_score < 0.60:
        return -5.0
    return 0.0


def apply_band_cap(total: float) -> float:
    if total >= 85:
        return min(total, 95.0)
    if total >= 70:
        return min(total, 85.0)
    if total >= 50:
        return min(total, 70.0)
    if total >= 30:
        return min(total, 50.0)
    return max(total, 5.0)


def confidence_band(value: float) -> ConfidenceBand:
    if value >= 85:
        return ConfidenceBand.VERY_HIGH
    if value >= 70:
        return ConfidenceBand.HIGH
    if value >= 50:
        return ConfidenceBand.MEDIUM
    if value >= 30:
        return ConfidenceBand.LOW
    return ConfidenceBand.VERY_LOW


class ConfidenceScorer:
    """
    Derives a 0–100 confidence from ordered search results and the question.

    ``results`` must already be ordered best-first; top-1/top-2 are read
    positionally.
    """

    def evaluate(self, results: Sequence[SearchResult], question: str | None) -> ConfidenceScore:
        if not results:
            return ConfidenceScore(value=0.0, band=ConfidenceBand.VERY_LOW)

        scores = [r.score for r in results]
        mean = sum(scores) / len(scores)

        factors = ConfidenceFactors(
            base=min(mean * 100, 90.0),
            source_bonus=source_count_bonus(len(scores)),
            consistency_bonus=consistency_bonus(scores),
            question_penalty=question_penalty(question),
            score_gap_penalty=score_gap_penalty(scores),
            low_score_penalty=low_score_penalty(scores[0]),
        )

        capped = apply_band_cap(factors.total)
        value = min(100.0, max(0.0, round(capped, 1)))

        logger.debug(
            "Confidence %.1f (base=%.1f sources=%+.0f consistency=%+.0f question=%+.0f gap=%+.0f low=%+.0f)",
            value, factors.base, factors.source_bonus, factors.consistency_bonus,
            factors.question_penalty, factors.score_gap_penalty, factors.low_score_penalty,
        )
        return ConfidenceScore(value=value, band=confidence_band(value), factors=factors)

    def score(self, results: Sequence[SearchResult], question: str | None) -> float:
        return self.evaluate(results, question).value
