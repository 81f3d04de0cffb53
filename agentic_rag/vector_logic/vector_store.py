"""
Vector-store orchestration.

Two layers:

1. ``VectorBackend``: the four load-bearing store operations (collection
   CRUD, point upsert, top-K search, full scroll).  ``ChromaVectorBackend``
   implements them on a persistent ChromaDB client.  Tests swap in an
   in-memory backend.
2. ``VectorStoreClient``: async orchestration on top, with idempotent
   collection creation, dimension checks, fan-out search across every
   collection with score filtering, and existence checks that degrade to
   ``False``.

Points are written without locking; concurrent upserts rely on fresh
random ids, and a search racing an upsert may see a partially indexed
collection.
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from pathlib import Path
from typing import Any, Protocol, Sequence

import chromadb

from agentic_rag.core.config import settings
from agentic_rag.core.exceptions import (
    ArgumentMismatchError,
    CollectionNotFoundError,
    DimensionMismatchError,
    StoreUnavailableError,
)
from agentic_rag.schemas.retrieval import SearchResult
from agentic_rag.utils.logging import get_logger
from agentic_rag.utils.text import normalize_collection_name

logger = get_logger("agentic_rag.vector_logic.vector_store")

Vector = Sequence[float]


class VectorBackend(Protocol):
    """Synchronous store operations; every method may raise."""

    def get_dimension(self, name: str) -> int:
        """Vector size fixed at creation. Raises CollectionNotFoundError if absent."""
        ...

    def create_collection(self, name: str, dimension: int) -> None: ...

    def delete_collection(self, name: str) -> None: ...

    def list_collections(self) -> list[str]: ...

    def upsert(
        self,
        name: str,
        ids: list[str],
        vectors: list[list[float]],
        payloads: list[dict[str, Any]],
    ) -> None: ...

    def search(self, name: str, vector: list[float], limit: int) -> list[dict[str, Any]]:
        """Raw hits: ``{"id": ..., "score": float, "payload": {...}}``."""
        ...

    def scroll(self, name: str, limit: int, offset: int) -> list[dict[str, Any]]:
        """A page of payloads, in insertion order."""
        ...


# ── ChromaDB backend ────────────────────────────────────────────────

def _get_persist_directory(persist_directory: str | None = None) -> str:
    """
    Resolve the directory where ChromaDB data is stored.
    Defaults to agentic_rag/vector_db/chroma_db.
    """
    if persist_directory is not None:
        return persist_directory

    if settings.chromadb_persist_directory:
        return settings.chromadb_persist_directory

    base_dir = Path(__file__).resolve().parents[1]
    return str(base_dir / "vector_db" / "chroma_db")


def _is_not_found(exc: Exception) -> bool:
    msg = str(exc).lower()
    return "does not exist" in msg or "not found" in msg or "not exist" in msg


class ChromaVectorBackend:
    """
    ChromaDB implementation of ``VectorBackend``.

    Collections use cosine space, so ``score = 1 - distance``.  The
    dimension is recorded in collection metadata at creation time.
    """

    def __init__(self, persist_directory: str | None = None, client: Any | None = None):
        self._path = _get_persist_directory(persist_directory)
        self._client = client
        self._lock = threading.Lock()

    @property
    def client(self) -> Any:
        # Only one thread may open the SQLite-backed client.
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = chromadb.PersistentClient(
                        path=self._path,
                        settings=chromadb.Settings(
                            anonymized_telemetry=False,
                            allow_reset=True,
                        ),
                    )
                    logger.info("ChromaDB client opened at %s", self._path)
        return self._client

    def _collection(self, name: str) -> Any:
        try:
            return self.client.get_collection(name=name)
        except Exception as exc:
            if _is_not_found(exc):
                raise CollectionNotFoundError(name) from exc
            raise

    def get_dimension(self, name: str) -> int:
        metadata = self._collection(name).metadata or {}
        return int(metadata.get("dimension", 0))

    def create_collection(self, name: str, dimension: int) -> None:
        self.client.create_collection(
            name=name,
            metadata={
                "hnsw:space": "cosine",
                "dimension": dimension,
                "description": f"Chunks for collection {name}",
            },
        )

    def delete_collection(self, name: str) -> None:
        try:
            self.client.delete_collection(name=name)
        except Exception as exc:
            if _is_not_found(exc):
                raise CollectionNotFoundError(name) from exc
            raise

    def list_collections(self) -> list[str]:
        # Depending on the chromadb release this is a list of names or of Collection objects.
        return [c if isinstance(c, str) else c.name for c in self.client.list_collections()]

    def upsert(
        self,
        name: str,
        ids: list[str],
        vectors: list[list[float]],
        payloads: list[dict[str, Any]],
    ) -> None:
        self._collection(name).upsert(
            ids=ids,
            embeddings=vectors,
            documents=[p.get("text", "") for p in payloads],
            metadatas=payloads,
        )

    def search(self, name: str, vector: list[float], limit: int) -> list[dict[str, Any]]:
        collection = self._collection(name)
        raw = collection.query(
            query_embeddings=[vector],
            n_results=limit,
            include=["documents", "metadatas", "distances"],
        )
        ids = (raw.get("ids") or [[]])[0]
        documents = (raw.get("documents") or [[]])[0]
        metadatas = (raw.get("metadatas") or [[]])[0]
        distances = (raw.get("distances") or [[]])[0]

        hits: list[dict[str, Any]] = []
        for i, point_id in enumerate(ids):
            payload = dict(metadatas[i] or {}) if i < len(metadatas) else {}
            if i < len(documents) and documents[i] is not None:
                payload.setdefault("text", documents[i])
            distance = distances[i] if i < len(distances) else None
            hits.append({
                "id": point_id,
                "score": None if distance is None else 1.0 - float(distance),
                "payload": payload,
            })
        return hits

    def scroll(self, name: str, limit: int, offset: int) -> list[dict[str, Any]]:
        page = self._collection(name).get(
            limit=limit,
            offset=offset,
            include=["documents", "metadatas"],
        )
        documents = page.get("documents") or []
        metadatas = page.get("metadatas") or []
        payloads: list[dict[str, Any]] = []
        for i, point_id in enumerate(page.get("ids") or []):
            payload = dict(metadatas[i] or {}) if i < len(metadatas) else {}
            if i < len(documents) and documents[i] is not None:
                payload.setdefault("text", documents[i])
            payloads.append(payload)
        return payloads


# ── Async orchestration ─────────────────────────────────────────────

class VectorStoreClient:
    """
    Collection lifecycle, upsert and similarity search over a ``VectorBackend``.

    Blocking backend calls run in the default executor so the event loop
    stays free while ChromaDB works.
    """

    def __init__(
        self,
        backend: VectorBackend,
        *,
        multi_collection_min_score: float | None = None,
        multi_collection_max_results: int | None = None,
        scroll_page_size: int | None = None,
    ):
        self.backend = backend
        self.multi_collection_min_score = (
            settings.multi_collection_min_score
            if multi_collection_min_score is None
            else multi_collection_min_score
        )
        self.multi_collection_max_results = (
            settings.multi_collection_max_results
            if multi_collection_max_results is None
            else multi_collection_max_results
        )
        self.scroll_page_size = scroll_page_size or settings.scroll_page_size

    async def _run(self, fn: Any, *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    # ── Collections ─────────────────────────────────────────────────

    async def ensure_collection(self, name: str, dimension: int) -> bool:
        """
        Create *name* with *dimension* unless it already exists.

        Returns True when a collection was created.  Any backend error
        other than "not found" raises StoreUnavailableError.
        """
        try:
            existing = await self._run(self.backend.get_dimension, name)
        except CollectionNotFoundError:
            existing = None
        except Exception as exc:
            raise StoreUnavailableError(f"Could not inspect collection '{name}': {exc}") from exc

        if existing is not None:
            if existing and existing != dimension:
                logger.warning(
                    "Collection '%s' exists with dimension %d (requested %d)",
                    name, existing, dimension,
                )
            return False

        try:
            await self._run(self.backend.create_collection, name, dimension)
        except Exception as exc:
            raise StoreUnavailableError(f"Could not create collection '{name}': {exc}") from exc
        logger.info("Created collection '%s' (dimension=%d)", name, dimension)
        return True

    async def delete_collection(self, name: str) -> None:
        await self._run(self.backend.delete_collection, name)
        logger.info("Deleted collection '%s'", name)

    async def list_collections(self) -> list[str]:
        return await self._run(self.backend.list_collections)

    async def collection_exists(self, name: str) -> bool:
        """Read-only existence check: any failure counts as absent."""
        try:
            await self._run(self.backend.get_dimension, name)
            return True
        except Exception as exc:
            logger.debug("Collection '%s' treated as absent: %s", name, exc)
            return False

    # ── Points ──────────────────────────────────────────────────────

    async def upsert(
        self,
        collection: str,
        chunks: Sequence[str],
        vectors: Sequence[Vector],
        *,
        metadata: Sequence[dict[str, Any]] | None = None,
    ) -> list[str]:
        """
        Store one point per chunk; returns the freshly generated point ids.

        Raises ArgumentMismatchError when counts differ and
        DimensionMismatchError when vector sizes disagree with each other
        or with the collection.
        """
        if len(chunks) != len(vectors):
            raise ArgumentMismatchError(
                f"Chunks and embeddings count must match ({len(chunks)} != {len(vectors)})"
            )
        if metadata is not None and len(metadata) != len(chunks):
            raise ArgumentMismatchError("Metadata count must match chunk count")
        if not chunks:
            return []

        expected = len(vectors[0])
        for i, vector in enumerate(vectors):
            if len(vector) != expected:
                raise DimensionMismatchError(
                    f"Embedding length mismatch at index {i}",
                    expected=expected,
                    actual=len(vector),
                )

        stored = await self._run(self.backend.get_dimension, collection)
        if stored and stored != expected:
            raise DimensionMismatchError(
                f"Collection '{collection}' expects {stored}-d vectors, got {expected}-d",
                expected=stored,
                actual=expected,
            )

        ids = [str(uuid.uuid4()) for _ in chunks]
        payloads = []
        for i, text in enumerate(chunks):
            payload: dict[str, Any] = dict(metadata[i]) if metadata is not None else {}
            payload["text"] = text
            payloads.append(payload)

        await self._run(
            self.backend.upsert,
            collection,
            ids,
            [[float(x) for x in v] for v in vectors],
            payloads,
        )
        logger.info("Upserted %d points into '%s'", len(ids), collection)
        return ids

    async def search(self, collection: str, query_vector: Vector, top_k: int = 3) -> list[SearchResult]:
        """
        Up to *top_k* hits, sorted by descending score.

        Malformed hits (missing score, empty text) are skipped and logged.
        """
        hits = await self._run(self.backend.search, collection, list(query_vector), top_k)

        results: list[SearchResult] = []
        for hit in hits or []:
            try:
                score = hit.get("score")
                text = (hit.get("payload") or {}).get("text") or ""
                if score is None or not isinstance(text, str) or not text.strip():
                    logger.warning("Skipping malformed hit %s in '%s'", hit.get("id"), collection)
                    continue
                results.append(SearchResult(text=text, score=float(score), collection=collection))
            except (AttributeError, TypeError, ValueError) as exc:
                logger.warning("Error processing search hit in '%s': %s", collection, exc)

        results.sort(key=lambda r: r.score, reverse=True)
        return results[:top_k]

    async def search_all(
        self,
        collection_name: str | None,
        query_vector: Vector,
        top_k_per_collection: int = 5,
    ) -> list[SearchResult]:
        """
        Search one collection, or fan out across every collection.

        With a name this is plain ``search``.  Without one, every collection
        is searched concurrently, results are flattened, filtered by the
        fixed multi-collection score floor and capped to the global top N.
        """
        if collection_name and collection_name.strip():
            return await self.search(
                normalize_collection_name(collection_name),
                query_vector,
                top_k_per_collection,
            )

        collections = await self.list_collections()
        if not collections:
            return []

        per_collection = await asyncio.gather(*(
            self.search(name, query_vector, top_k_per_collection)
            for name in collections
        ))

        merged = [r for results in per_collection for r in results]
        filtered = [r for r in merged if r.score >= self.multi_collection_min_score]
        filtered.sort(key=lambda r: r.score, reverse=True)
        top = filtered[: self.multi_collection_max_results]

        logger.info(
            "Fan-out search over %d collections: %d hits, %d above %.2f, returning %d",
            len(collections), len(merged), len(filtered),
            self.multi_collection_min_score, len(top),
        )
        return top

    async def list_payload_texts(self, collection: str) -> list[str]:
        """Export every stored chunk text in *collection* (paged scroll)."""
        texts: list[str] = []
        offset = 0
        while True:
            page = await self._run(self.backend.scroll, collection, self.scroll_page_size, offset)
            for payload in page:
                text = (payload or {}).get("text")
                if isinstance(text, str):
                    texts.append(text)
            if len(page) < self.scroll_page_size:
                break
            offset += len(page)
        return texts


_default_client: VectorStoreClient | None = None
_default_client_lock = threading.Lock()


def get_vector_store() -> VectorStoreClient:
    """Process-wide client on the configured ChromaDB directory."""
    global _default_client
    if _default_client is None:
        with _default_client_lock:
            if _default_client is None:
                _default_client = VectorStoreClient(ChromaVectorBackend())
    return _default_client
