"""
Pipeline orchestrator: the top-level entry point for every question.

Stages:
  Validate → CheckCorpusNonEmpty → Embed → Retrieve → FilterByThreshold
  → BuildPromptContext → Generate → ComputeConfidence → Respond

Any stage that yields "no data" short-circuits to a friendly message.
Provider and store failures, and request timeouts, become
``success=False`` responses; only InputValidationError escapes, so the
API layer can answer 400 for malformed requests.

The collection to search is passed explicitly through every call; the
orchestrator holds no per-request state.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from agentic_rag.core.config import settings
from agentic_rag.core.exceptions import (
    ActionDispatchError,
    InputValidationError,
    ParameterResolutionError,
    ProviderFailureError,
)
from agentic_rag.pipeline.confidence import ConfidenceScorer
from agentic_rag.prompts.answer_generator import (
    build_chat_prompt,
    build_query_prompt,
    build_service_prompt,
    build_unified_prompt,
    serialize_for_prompt,
)
from agentic_rag.schemas.chat import ChatRequest, ChatResponse
from agentic_rag.schemas.intent import ActionResult
from agentic_rag.schemas.query import QueryRequest, QueryResponse, SourceInfo
from agentic_rag.schemas.retrieval import CollectionStatus, SearchResult
from agentic_rag.services.embedding import EmbeddingProvider
from agentic_rag.services.llm import GenerationProvider
from agentic_rag.utils.logging import get_logger
from agentic_rag.utils.text import new_correlation_id, normalize_collection_name, truncate_text
from agentic_rag.utils.timing import Timer
from agentic_rag.vector_logic.intent_router import IntentRouter
from agentic_rag.vector_logic.vector_store import VectorStoreClient

logger = get_logger("agentic_rag.pipeline.orchestrator")

T = TypeVar("T")

# ── User-facing messages ────────────────────────────────────────────
NO_DOCUMENTS_REPLY = (
    "I don't have access to any documents yet. Please upload some documents first, "
    "then I'll be able to answer questions about them."
)
NO_DOCUMENTS_ANSWER = "I don't have any documents to reference yet. Please upload some documents first."
EMBEDDING_FAILED_REPLY = "I'm having trouble processing your question right now. Please try again in a moment."
NO_RELEVANT_REPLY = (
    "I couldn't find information relevant to your question in the uploaded documents. "
    "Try asking about different topics or rephrasing your question."
)
GENERATION_FAILED_REPLY = "I'm experiencing technical difficulties generating a response. Please try again."
GENERIC_ERROR_REPLY = "I encountered an error while processing your question. Please try again."
TIMEOUT_REPLY = "Answering your question took too long. Please try again in a moment."
ACTION_FAILED_REPLY = "Failed to process your request using the available services."
NOTHING_FOUND_REPLY = "I couldn't find relevant documents or services to answer your query."


class RagOrchestrator:
    """Composes store, providers, scorer and router into request/response cycles."""

    def __init__(
        self,
        store: VectorStoreClient,
        embedder: EmbeddingProvider,
        generator: GenerationProvider,
        *,
        router: IntentRouter | None = None,
        scorer: ConfidenceScorer | None = None,
        request_timeout: float | None = None,
    ):
        self.store = store
        self.embedder = embedder
        self.generator = generator
        self.router = router
        self.scorer = scorer or ConfidenceScorer()
        self.request_timeout = settings.request_timeout_seconds if request_timeout is None else request_timeout

    # ── Validation ──────────────────────────────────────────────────

    @staticmethod
    def _validate_message(message: str | None) -> str:
        if not message or not message.strip():
            raise InputValidationError("Please provide a question.")
        if len(message) > settings.max_message_length:
            raise InputValidationError(
                f"Question is too long. Please keep it under {settings.max_message_length} characters."
            )
        return message.strip()

    @staticmethod
    def _validate_query(request: QueryRequest) -> None:
        if not request.question or not request.question.strip():
            raise InputValidationError("Question text is required")
        if len(request.question) > settings.max_question_length:
            raise InputValidationError(
                f"Question exceeds maximum length of {settings.max_question_length} characters"
            )
        if request.top_k is not None and not 1 <= request.top_k <= settings.query_max_top_k:
            raise InputValidationError(f"TopK must be between 1 and {settings.query_max_top_k}")
        if request.minimum_score is not None and not 0.0 <= request.minimum_score <= 1.0:
            raise InputValidationError("MinimumScore must be between 0 and 1")

    @staticmethod
    def _collection_for(name: str | None) -> str:
        return normalize_collection_name(name or "") or normalize_collection_name(settings.default_collection)

    # ── Guard ───────────────────────────────────────────────────────

    async def _guarded(
        self,
        label: str,
        correlation_id: str,
        work: Awaitable[T],
        on_failure: Callable[[str], T],
    ) -> T:
        """Run *work* under the request timeout; failures become *on_failure(message)*."""
        try:
            return await asyncio.wait_for(work, timeout=self.request_timeout)
        except asyncio.TimeoutError:
            logger.error("[%s] Timed out after %.0fs - ID: %s", label, self.request_timeout, correlation_id)
            return on_failure(TIMEOUT_REPLY)
        except InputValidationError:
            raise
        except Exception as exc:
            logger.error("[%s] Failed - ID: %s: %s", label, correlation_id, exc, exc_info=True)
            return on_failure(GENERIC_ERROR_REPLY)

    def _chat_failure(self, correlation_id: str) -> Callable[[str], ChatResponse]:
        return lambda reply: ChatResponse(reply=reply, success=False, correlation_id=correlation_id)

    # ── Shared stages ───────────────────────────────────────────────

    async def check_collection_status(self, collection: str) -> CollectionStatus:
        """Existence + non-emptiness check; store failures read as "unavailable"."""
        try:
            texts = await self.store.list_payload_texts(collection)
        except Exception as exc:
            logger.warning("Failed to check collection status for '%s': %s", collection, exc)
            return CollectionStatus(is_valid=False, message="Knowledge base is not available")
        if not texts:
            return CollectionStatus(is_valid=False, message="No documents available in the knowledge base")
        return CollectionStatus(
            is_valid=True,
            message=f"{len(texts)} documents available",
            point_count=len(texts),
        )

    @staticmethod
    def _rank(results: list[SearchResult]) -> list[SearchResult]:
        return [r.model_copy(update={"rank": i}) for i, r in enumerate(results, start=1)]

    def _answered(
        self,
        answer: str,
        results: list[SearchResult],
        question: str,
        correlation_id: str,
    ) -> ChatResponse:
        confidence = self.scorer.evaluate(results, question)
        logger.info(
            "Chat response generated - ID: %s, Sources: %d, Confidence: %.1f",
            correlation_id, len(results), confidence.value,
        )
        return ChatResponse(
            reply=answer,
            success=True,
            has_sources=True,
            confidence=confidence.value,
            confidence_band=confidence.band,
            source_count=len(results),
            correlation_id=correlation_id,
        )

    # ── /ask ────────────────────────────────────────────────────────

    async def ask(self, request: ChatRequest) -> ChatResponse:
        """Single-collection retrieval (default collection unless a file is named)."""
        question = self._validate_message(request.message)
        collection = self._collection_for(request.look_in_file_name)
        cid = new_correlation_id()
        logger.info("Chat question: '%s' - ID: %s", question[:50], cid)
        return await self._guarded(
            "ASK", cid,
            self._ask(question, collection, cid),
            self._chat_failure(cid),
        )

    async def _ask(
        self,
        question: str,
        collection: str,
        cid: str,
        query_vector: list[float] | None = None,
    ) -> ChatResponse:
        status = await self.check_collection_status(collection)
        if not status.is_valid:
            return ChatResponse(reply=NO_DOCUMENTS_REPLY, success=True, has_sources=False, correlation_id=cid)

        if query_vector is None:
            try:
                query_vector = await self.embedder.embed(question)
            except ProviderFailureError as exc:
                logger.warning("Embedding failed - ID: %s: %s", cid, exc)
                return ChatResponse(reply=EMBEDDING_FAILED_REPLY, success=False, correlation_id=cid)

        results = await self.store.search(collection, query_vector, settings.chat_top_k)
        relevant = self._rank([r for r in results if r.score >= settings.chat_min_score])
        if not relevant:
            return ChatResponse(reply=NO_RELEVANT_REPLY, success=True, has_sources=False, correlation_id=cid)

        try:
            answer = await self.generator.generate(build_chat_prompt(relevant, question))
        except ProviderFailureError as exc:
            logger.warning("Generation failed - ID: %s: %s", cid, exc)
            return ChatResponse(reply=GENERATION_FAILED_REPLY, success=False, correlation_id=cid)

        return self._answered(answer, relevant, question, cid)

    # ── /ask-enhanced ───────────────────────────────────────────────

    async def ask_across_collections(self, request: ChatRequest) -> ChatResponse:
        """Fan-out retrieval across every collection (or the named one)."""
        question = self._validate_message(request.message)
        cid = new_correlation_id()
        logger.info("Enhanced chat question: '%s' - ID: %s", question[:50], cid)
        return await self._guarded(
            "ASK_ENHANCED", cid,
            self._ask_across_collections(question, request.look_in_file_name, cid),
            self._chat_failure(cid),
        )

    async def _ask_across_collections(self, question: str, collection: str | None, cid: str) -> ChatResponse:
        try:
            query_vector = await self.embedder.embed(question)
        except ProviderFailureError as exc:
            logger.warning("Embedding failed - ID: %s: %s", cid, exc)
            return ChatResponse(reply=EMBEDDING_FAILED_REPLY, success=False, correlation_id=cid)

        relevant = self._rank(
            await self.store.search_all(collection, query_vector, settings.multi_collection_top_k)
        )
        if not relevant:
            return ChatResponse(
                reply="I couldn't find information relevant to your question in the uploaded documents.",
                success=True,
                has_sources=False,
                correlation_id=cid,
            )

        try:
            answer = await self.generator.generate(build_chat_prompt(relevant, question))
        except ProviderFailureError as exc:
            logger.warning("Generation failed - ID: %s: %s", cid, exc)
            return ChatResponse(reply=GENERATION_FAILED_REPLY, success=False, correlation_id=cid)

        return self._answered(answer, relevant, question, cid)

    # ── /ask-actions ────────────────────────────────────────────────

    async def _ensure_router(self) -> IntentRouter:
        if self.router is None:
            raise RuntimeError("No intent router configured")
        if not self.router.catalog.is_warm:
            await self.router.catalog.warm(self.embedder)
        return self.router

    async def ask_with_actions(self, request: ChatRequest) -> ChatResponse:
        """Dispatch the best-matching action; without a match, fall back to ``ask``."""
        question = self._validate_message(request.message)
        collection = self._collection_for(request.look_in_file_name)
        cid = new_correlation_id()
        logger.info("Action chat question: '%s' - ID: %s", question[:50], cid)
        return await self._guarded(
            "ASK_ACTIONS", cid,
            self._ask_with_actions(question, collection, cid),
            self._chat_failure(cid),
        )

    async def _ask_with_actions(self, question: str, collection: str, cid: str) -> ChatResponse:
        router = await self._ensure_router()
        try:
            query_vector = await self.embedder.embed(question)
        except ProviderFailureError as exc:
            logger.warning("Embedding failed - ID: %s: %s", cid, exc)
            return ChatResponse(reply=EMBEDDING_FAILED_REPLY, success=False, correlation_id=cid)

        try:
            result = await router.dispatch(question, query_vector)
        except (ParameterResolutionError, ActionDispatchError) as exc:
            logger.error("Action dispatch failed - ID: %s: %s", cid, exc)
            return ChatResponse(reply=ACTION_FAILED_REPLY, success=False, correlation_id=cid)

        if result is None:
            return await self._ask(question, collection, cid, query_vector=query_vector)

        return ChatResponse(
            reply=f"Service response ({result.action_id}):\n{serialize_for_prompt(result.data)}",
            success=True,
            has_sources=True,
            correlation_id=cid,
        )

    # ── /ask-unified ────────────────────────────────────────────────

    async def ask_unified(self, request: ChatRequest) -> ChatResponse:
        """Retrieval and action routing run concurrently; both feed one answer."""
        question = self._validate_message(request.message)
        cid = new_correlation_id()
        logger.info("Unified chat question: '%s' - ID: %s", question[:50], cid)
        return await self._guarded(
            "ASK_UNIFIED", cid,
            self._ask_unified(question, request.look_in_file_name, cid),
            self._chat_failure(cid),
        )

    async def _ask_unified(self, question: str, collection: str | None, cid: str) -> ChatResponse:
        router = await self._ensure_router()
        try:
            query_vector = await self.embedder.embed(question)
        except ProviderFailureError as exc:
            logger.warning("Embedding failed - ID: %s: %s", cid, exc)
            return ChatResponse(reply=EMBEDDING_FAILED_REPLY, success=False, correlation_id=cid)

        retrieved, dispatched = await asyncio.gather(
            self.store.search_all(collection, query_vector, settings.multi_collection_top_k),
            router.dispatch_all(question, query_vector),
            return_exceptions=True,
        )
        documents: list[SearchResult] = []
        actions: list[ActionResult] = []
        if isinstance(retrieved, Exception):
            logger.error("Unified retrieval failed - ID: %s: %s", cid, retrieved)
        else:
            documents = self._rank(retrieved)
        if isinstance(dispatched, Exception):
            logger.error("Unified action routing failed - ID: %s: %s", cid, dispatched)
        else:
            actions = dispatched

        if documents and actions:
            prompt = build_unified_prompt(documents, actions, question)
        elif documents:
            prompt = build_chat_prompt(documents, question)
        elif actions:
            prompt = build_service_prompt(actions, question)
        else:
            return ChatResponse(reply=NOTHING_FOUND_REPLY, success=False, has_sources=False, correlation_id=cid)

        try:
            answer = await self.generator.generate(prompt)
        except ProviderFailureError as exc:
            logger.warning("Generation failed - ID: %s: %s", cid, exc)
            return ChatResponse(reply=GENERATION_FAILED_REPLY, success=False, correlation_id=cid)

        logger.info(
            "Unified response generated - ID: %s, Documents: %d, Actions: %d",
            cid, len(documents), len(actions),
        )
        if documents:
            return self._answered(answer, documents, question, cid)
        return ChatResponse(reply=answer, success=True, has_sources=True, correlation_id=cid)

    # ── /query ──────────────────────────────────────────────────────

    async def query(self, request: QueryRequest) -> QueryResponse:
        """Retrieval answer with ranked, truncated sources and timing."""
        self._validate_query(request)
        cid = new_correlation_id()
        top_k = settings.query_default_top_k if request.top_k is None else request.top_k
        top_k = min(top_k, settings.query_max_top_k)
        min_score = (
            settings.query_default_min_score if request.minimum_score is None else request.minimum_score
        )
        collection = self._collection_for(request.collection)
        logger.info("RAG Query started: '%s' (TopK: %d) - ID: %s", request.question[:50], top_k, cid)

        def failure(answer: str) -> QueryResponse:
            return QueryResponse(answer=answer, success=False, message="Query failed", correlation_id=cid)

        async with Timer() as timer:
            response = await self._guarded(
                "QUERY", cid,
                self._query(request.question.strip(), collection, top_k, min_score, cid),
                failure,
            )
        response.processing_time_ms = timer.elapsed_ms_int
        return response

    async def _query(
        self,
        question: str,
        collection: str,
        top_k: int,
        min_score: float,
        cid: str,
    ) -> QueryResponse:
        status = await self.check_collection_status(collection)
        if not status.is_valid:
            return QueryResponse(answer=NO_DOCUMENTS_ANSWER, message=status.message, correlation_id=cid)

        try:
            query_vector = await self.embedder.embed(question)
        except ProviderFailureError as exc:
            logger.warning("Embedding failed - ID: %s: %s", cid, exc)
            return QueryResponse(
                answer=EMBEDDING_FAILED_REPLY,
                success=False,
                message="Failed to generate embedding for the question",
                correlation_id=cid,
            )

        results = await self.store.search(collection, query_vector, top_k)
        if not results:
            return QueryResponse(
                answer=(
                    "I couldn't find any relevant information to answer your question. "
                    "Try rephrasing or asking about different topics."
                ),
                message="No relevant chunks found",
                correlation_id=cid,
            )

        relevant = self._rank([r for r in results if r.score >= min_score])
        if not relevant:
            return QueryResponse(
                answer=(
                    "The available information doesn't seem relevant to your question. "
                    "Could you try rephrasing or asking about something more specific?"
                ),
                sources=[SourceInfo(text=truncate_text(r.text, 200), score=r.score) for r in results],
                message="No chunks met minimum relevance threshold",
                correlation_id=cid,
            )

        try:
            answer = await self.generator.generate(build_query_prompt(relevant, question))
        except ProviderFailureError as exc:
            logger.warning("Generation failed - ID: %s: %s", cid, exc)
            return QueryResponse(
                answer=GENERATION_FAILED_REPLY,
                success=False,
                message="LLM returned empty response",
                correlation_id=cid,
            )

        confidence = self.scorer.evaluate(relevant, question)
        logger.info(
            "RAG Query completed successfully - ID: %s, Sources: %d, Confidence: %.1f",
            cid, len(relevant), confidence.value,
        )
        return QueryResponse(
            answer=answer,
            sources=[
                SourceInfo(text=truncate_text(r.text, 300), score=r.score, rank=r.rank)
                for r in relevant
            ],
            confidence=confidence.value,
            confidence_band=confidence.band,
            message=f"Found {len(relevant)} relevant sources",
            correlation_id=cid,
        )
