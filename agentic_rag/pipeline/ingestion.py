"""
Document ingestion and duplicate validation.

Ingestion:   chunk → embed (bounded pool) → ensure collection → upsert
Validation:  chunk → export stored texts → exact normalized-text match

Collections are created lazily on the first write, sized from the first
embedding.
"""

from __future__ import annotations

from agentic_rag.core.exceptions import InputValidationError
from agentic_rag.schemas.datastore import (
    ChunkValidationResult,
    CollectionInfo,
    IngestionResult,
    ValidationResponse,
)
from agentic_rag.schemas.document import Document
from agentic_rag.services.embedding import EmbeddingProvider
from agentic_rag.utils.logging import get_logger
from agentic_rag.utils.text import normalize_chunk_text, normalize_collection_name
from agentic_rag.utils.timing import Timer
from agentic_rag.vector_logic.chunking import TextChunker
from agentic_rag.vector_logic.vector_store import VectorStoreClient

logger = get_logger("agentic_rag.pipeline.ingestion")

# Number of missing chunks previewed in the validation log
_MISSING_PREVIEW = 5


def validation_message(found: int, total: int) -> str:
    if found == 0:
        return "No chunks found in the vector store. This appears to be a new document."
    if found == total:
        return "All chunks already exist in the vector store. Document appears to be fully uploaded."
    return f"Partial match: {found}/{total} chunks found in the vector store."


class IngestionService:
    def __init__(
        self,
        store: VectorStoreClient,
        embedder: EmbeddingProvider,
        chunker: TextChunker | None = None,
    ):
        self.store = store
        self.embedder = embedder
        self.chunker = chunker or TextChunker()

    def _resolve_collection(self, document: Document, collection: str | None) -> str:
        name = normalize_collection_name(collection or document.source)
        if not name:
            raise InputValidationError("A collection name or document source is required")
        return name

    async def ingest(self, document: Document, collection: str | None = None) -> IngestionResult:
        """
        Chunk, embed and store *document*.

        Embedding failures abort the whole write (ProviderFailureError):
        storing a document with holes would make duplicate validation lie.
        """
        name = self._resolve_collection(document, collection)
        chunks = self.chunker.chunk_document(document)
        if not chunks:
            raise InputValidationError("Document contains no processable text content")

        texts = [c.text for c in chunks]
        async with Timer(f"embed {len(texts)} chunks", log=logger):
            vectors = await self.embedder.embed_batch(texts)

        await self.store.ensure_collection(name, len(vectors[0]))
        await self.store.upsert(
            name,
            texts,
            vectors,
            metadata=[{"chunk_index": c.index, "source": c.source} for c in chunks],
        )

        logger.info("[INGEST] %s → '%s': %d chunks", document.source, name, len(chunks))
        return IngestionResult(
            collection=name,
            chunk_count=len(chunks),
            chunks=texts,
            embeddings_count=len(vectors),
        )

    async def validate(self, document: Document, collection: str | None = None) -> ValidationResponse:
        """Report which chunks of *document* are already stored (exact normalized match)."""
        name = self._resolve_collection(document, collection)
        chunks = self.chunker.chunk(document.text)
        if not chunks:
            raise InputValidationError("Document contains no processable text content")

        if not await self.store.collection_exists(name):
            return ValidationResponse(
                chunk_count=len(chunks),
                found_in_store=0,
                exists_in_store=False,
                validation_results=[
                    ChunkValidationResult(chunk=chunk, chunk_index=i)
                    for i, chunk in enumerate(chunks)
                ],
                message=f"Collection '{name}' does not exist in the vector store.",
            )

        stored = await self.store.list_payload_texts(name)
        stored_normalized = {normalize_chunk_text(t) for t in stored}

        results = [
            ChunkValidationResult(
                chunk=chunk,
                chunk_index=i,
                exists_in_store=normalize_chunk_text(chunk) in stored_normalized,
            )
            for i, chunk in enumerate(chunks)
        ]
        found = sum(1 for r in results if r.exists_in_store)
        self._log_validation(document.source, results)

        return ValidationResponse(
            chunk_count=len(chunks),
            found_in_store=found,
            exists_in_store=found == len(chunks),
            validation_results=results,
            message=validation_message(found, len(chunks)),
            collection_info=CollectionInfo(name=name, total_stored_chunks=len(stored)),
        )

    def _log_validation(self, source: str, results: list[ChunkValidationResult]) -> None:
        missing = [r for r in results if not r.exists_in_store]
        if not missing:
            logger.info("[VALIDATE] All chunks from '%s' exist in the store", source)
            return
        logger.info("[VALIDATE] '%s': missing %d of %d chunks", source, len(missing), len(results))
        for r in missing[:_MISSING_PREVIEW]:
            preview = r.chunk if len(r.chunk) <= 100 else r.chunk[:100] + "..."
            logger.debug("  [%d] %s", r.chunk_index, preview)
        if len(missing) > _MISSING_PREVIEW:
            logger.debug("  ... and %d more missing chunks", len(missing) - _MISSING_PREVIEW)
