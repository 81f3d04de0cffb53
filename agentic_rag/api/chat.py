"""
Thin API routes for the chat flows.

No business logic: each route hands the request to the orchestrator and
returns its ChatResponse.  Provider problems come back as
``success=False`` bodies with status 200; malformed input is a 400.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from agentic_rag.api.dependencies import get_orchestrator
from agentic_rag.pipeline.orchestrator import RagOrchestrator
from agentic_rag.schemas.chat import ChatRequest, ChatResponse

router = APIRouter(prefix="/chat", tags=["Chat"])


@router.post("/ask", response_model=ChatResponse)
async def ask(request: ChatRequest, orchestrator: RagOrchestrator = Depends(get_orchestrator)):
    """Answer from the default collection, or the one named in ``look_in_file_name``."""
    return await orchestrator.ask(request)


@router.post("/ask-enhanced", response_model=ChatResponse)
async def ask_enhanced(request: ChatRequest, orchestrator: RagOrchestrator = Depends(get_orchestrator)):
    """Answer from every collection at once."""
    return await orchestrator.ask_across_collections(request)


@router.post("/ask-actions", response_model=ChatResponse)
async def ask_actions(request: ChatRequest, orchestrator: RagOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.ask_with_actions(request)


@router.post("/ask-unified", response_model=ChatResponse)
async def ask_unified(request: ChatRequest, orchestrator: RagOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.ask_unified(request)
