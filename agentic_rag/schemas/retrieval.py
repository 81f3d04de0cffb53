"""
Schemas for vector-store output.

Every search hit carries its text and a cosine similarity score so the
orchestrator never has to dig through raw backend payloads.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """One retrieved chunk."""
    text: str
    score: float
    collection: str | None = None
    rank: int | None = None


class CollectionStatus(BaseModel):
    """Whether a collection can be used to answer questions."""
    is_valid: bool
    message: str
    point_count: int = 0
