"""
Pydantic schemas for every pipeline boundary.
Each module covers one stage or cross-cutting concern.
"""

from agentic_rag.schemas.document import Document, Chunk
from agentic_rag.schemas.retrieval import SearchResult, CollectionStatus
from agentic_rag.schemas.confidence import (
    ConfidenceBand,
    ConfidenceFactors,
    ConfidenceScore,
)
from agentic_rag.schemas.intent import ActionMatch, ActionResult
from agentic_rag.schemas.chat import ChatRequest, ChatResponse
from agentic_rag.schemas.query import QueryRequest, QueryResponse, SourceInfo
from agentic_rag.schemas.datastore import (
    IngestionResult,
    ChunkValidationResult,
    CollectionInfo,
    ValidationResponse,
)

__all__ = [
    # Ingestion
    "Document",
    "Chunk",
    # Retrieval
    "SearchResult",
    "CollectionStatus",
    # Confidence
    "ConfidenceBand",
    "ConfidenceFactors",
    "ConfidenceScore",
    # Intent
    "ActionMatch",
    "ActionResult",
    # API
    "ChatRequest",
    "ChatResponse",
    "QueryRequest",
    "QueryResponse",
    "SourceInfo",
    "IngestionResult",
    "ChunkValidationResult",
    "CollectionInfo",
    "ValidationResponse",
]
