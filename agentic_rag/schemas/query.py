"""
Schemas for the /rag/query flow, which returns ranked sources alongside
the answer.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    question: str = ""
    top_k: int | None = None
    minimum_score: float | None = None
    # Defaults to the configured default collection
    collection: str | None = None


class SourceInfo(BaseModel):
    text: str
    score: float
    rank: int | None = None


class QueryResponse(BaseModel):
    answer: str = ""
    success: bool = True
    sources: list[SourceInfo] = Field(default_factory=list)
    confidence: float = 0.0
    confidence_band: str | None = None
    message: str = ""
    correlation_id: str = ""
    processing_time_ms: int = 0
