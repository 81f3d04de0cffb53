"""
Health check endpoint for monitoring.

Reports "degraded" instead of failing when the vector store cannot be
listed, so load balancers can tell a slow store from a dead process.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from agentic_rag import __version__
from agentic_rag.api.dependencies import get_store
from agentic_rag.utils.logging import get_logger
from agentic_rag.vector_logic.vector_store import VectorStoreClient

logger = get_logger("agentic_rag.api.health")

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(store: VectorStoreClient = Depends(get_store)):
    try:
        collections = await store.list_collections()
    except Exception as e:
        logger.warning("[HEALTH] Vector store check failed: %s", e)
        return {"status": "degraded", "version": __version__, "vector_store": "unavailable"}
    return {
        "status": "ok",
        "version": __version__,
        "vector_store": "ok",
        "collections": len(collections),
    }
