"""
Thin API route for /rag/query (answer plus ranked sources).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from agentic_rag.api.dependencies import get_orchestrator
from agentic_rag.pipeline.orchestrator import RagOrchestrator
from agentic_rag.schemas.query import QueryRequest, QueryResponse
from agentic_rag.utils.logging import get_logger

logger = get_logger("agentic_rag.api.query")

router = APIRouter(prefix="/rag", tags=["RAG"])


@router.post("/query", response_model=QueryResponse)
async def query(request: QueryRequest, orchestrator: RagOrchestrator = Depends(get_orchestrator)):
    response = await orchestrator.query(request)
    logger.info(
        "[QUERY] %s in %dms | %s",
        "OK" if response.success else "FAILED",
        response.processing_time_ms,
        response.message,
    )
    return response
