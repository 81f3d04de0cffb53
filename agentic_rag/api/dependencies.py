"""
FastAPI dependency providers.

Each returns a process-wide instance wired from ``settings``; tests swap
them through ``app.dependency_overrides``.
"""

from __future__ import annotations

import threading

from agentic_rag.pipeline.ingestion import IngestionService
from agentic_rag.pipeline.orchestrator import RagOrchestrator
from agentic_rag.services.embedding import get_embedding_provider
from agentic_rag.services.llm import get_generation_provider
from agentic_rag.vector_logic.actions import build_default_catalog
from agentic_rag.vector_logic.intent_router import ActionCatalog, IntentRouter, LLMParameterResolver
from agentic_rag.vector_logic.vector_store import VectorStoreClient, get_vector_store

_lock = threading.Lock()
_catalog: ActionCatalog | None = None
_orchestrator: RagOrchestrator | None = None
_ingestion: IngestionService | None = None


def get_action_catalog() -> ActionCatalog:
    global _catalog
    if _catalog is None:
        with _lock:
            if _catalog is None:
                _catalog = build_default_catalog()
    return _catalog


def get_store() -> VectorStoreClient:
    return get_vector_store()


def get_orchestrator() -> RagOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        catalog = get_action_catalog()
        with _lock:
            if _orchestrator is None:
                generator = get_generation_provider()
                _orchestrator = RagOrchestrator(
                    get_vector_store(),
                    get_embedding_provider(),
                    generator,
                    router=IntentRouter(catalog, resolver=LLMParameterResolver(generator)),
                )
    return _orchestrator


def get_ingestion_service() -> IngestionService:
    global _ingestion
    if _ingestion is None:
        with _lock:
            if _ingestion is None:
                _ingestion = IngestionService(get_vector_store(), get_embedding_provider())
    return _ingestion
