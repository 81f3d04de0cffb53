"""
Schemas for ingestion and duplicate validation.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class IngestionResult(BaseModel):
    collection: str
    chunk_count: int
    chunks: list[str] = Field(default_factory=list)
    embeddings_count: int = 0


class ChunkValidationResult(BaseModel):
    chunk: str
    chunk_index: int = 0
    exists_in_store: bool = False
    similarity_score: float | None = None


class CollectionInfo(BaseModel):
    name: str
    total_stored_chunks: int = 0


class ValidationResponse(BaseModel):
    chunk_count: int
    found_in_store: int = 0
    exists_in_store: bool = False
    validation_results: list[ChunkValidationResult] = Field(default_factory=list)
    message: str = ""
    collection_info: CollectionInfo | None = None
