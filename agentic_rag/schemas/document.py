"""
Schemas for ingestion input: raw documents and the chunks cut from them.

Chunks are transient: they are embedded and persisted as vector-store
points; there is no separate chunk store.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class Document(BaseModel):
    """Raw text plus the identifier of where it came from (usually a file name)."""
    source: str
    text: str


class Chunk(BaseModel):
    """One bounded text span of a document, in document order."""
    text: str
    index: int = Field(ge=0)
    source: str
