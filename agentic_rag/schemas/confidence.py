"""
Confidence schema produced by the confidence scorer.

Scoring:
    total = base + source_bonus + consistency_bonus
            + question_penalty + score_gap_penalty + low_score_penalty

Bands:
    >= 85  → Very High  (capped at 95)
    >= 70  → High       (capped at 85)
    >= 50  → Medium     (capped at 70)
    >= 30  → Low        (capped at 50)
     < 30  → Very Low   (floored at 5)
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ConfidenceBand(str, Enum):
    VERY_HIGH = "Very High"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    VERY_LOW = "Very Low"


class ConfidenceFactors(BaseModel):
    """Every additive term that went into the score."""
    base: float = 0.0
    source_bonus: float = 0.0
    consistency_bonus: float = 0.0
    question_penalty: float = 0.0
    score_gap_penalty: float = 0.0
    low_score_penalty: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.base + self.source_bonus + self.consistency_bonus
            + self.question_penalty + self.score_gap_penalty + self.low_score_penalty
        )


class ConfidenceScore(BaseModel):
    value: float = Field(ge=0.0, le=100.0)
    band: ConfidenceBand
    factors: ConfidenceFactors = Field(default_factory=ConfidenceFactors)

    class Config:
        use_enum_values = True
