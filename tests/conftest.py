"""
Shared test fixtures for the whole suite.

Provides: an in-memory vector backend, a deterministic embedder keyed by
exact text, and a scripted generator. No network, no model downloads.
"""

from __future__ import annotations

import math
from typing import Any

import pytest

from agentic_rag.core.exceptions import CollectionNotFoundError
from agentic_rag.pipeline.confidence import ConfidenceScorer
from agentic_rag.pipeline.orchestrator import RagOrchestrator
from agentic_rag.services.embedding import EmbeddingProvider
from agentic_rag.services.llm import GenerationProvider
from agentic_rag.vector_logic.intent_router import ActionCatalog, IntentRouter
from agentic_rag.vector_logic.vector_store import VectorStoreClient


def _cosine(a: list[float], b: list[float]) -> float:
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if not norm:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / norm


class InMemoryVectorBackend:
    """Dict-backed ``VectorBackend`` with exact cosine search."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, Any]] = {}

    def _get(self, name: str) -> dict[str, Any]:
        if name not in self.collections:
            raise CollectionNotFoundError(name)
        return self.collections[name]

    def get_dimension(self, name: str) -> int:
        return self._get(name)["dimension"]

    def create_collection(self, name: str, dimension: int) -> None:
        self.collections[name] = {"dimension": dimension, "points": []}

    def delete_collection(self, name: str) -> None:
        self._get(name)
        del self.collections[name]

    def list_collections(self) -> list[str]:
        return list(self.collections)

    def upsert(self, name: str, ids: list[str], vectors: list[list[float]], payloads: list[dict]) -> None:
        points = self._get(name)["points"]
        for point_id, vector, payload in zip(ids, vectors, payloads):
            points.append({"id": point_id, "vector": vector, "payload": payload})

    def search(self, name: str, vector: list[float], limit: int) -> list[dict[str, Any]]:
        hits = [
            {"id": p["id"], "score": _cosine(vector, p["vector"]), "payload": p["payload"]}
            for p in self._get(name)["points"]
        ]
        hits.sort(key=lambda h: h["score"], reverse=True)
        return hits[:limit]

    def scroll(self, name: str, limit: int, offset: int) -> list[dict[str, Any]]:
        return [p["payload"] for p in self._get(name)["points"][offset:offset + limit]]

    # Test helper
    def add(self, name: str, text: str, vector: list[float]) -> None:
        if name not in self.collections:
            self.create_collection(name, len(vector))
        self.upsert(name, [f"{name}-{len(self.collections[name]['points'])}"], [vector], [{"text": text}])


class FakeEmbedder(EmbeddingProvider):
    """Looks vectors up by exact text; unknown text gets ``default``."""

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
        fail_on: set[str] | None = None,
    ):
        super().__init__(max_concurrency=4, timeout=5)
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0, 0.0]
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    async def _embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.fail_on:
            raise RuntimeError("embedding backend down")
        return self.vectors.get(text, self.default)


class ScriptedGenerator(GenerationProvider):
    """Returns ``reply`` for every prompt (or raises when ``fail`` is set)."""

    def __init__(self, reply: str = "Generated answer.", fail: bool = False):
        super().__init__(timeout=5)
        self.reply = reply
        self.fail = fail
        self.prompts: list[str] = []

    async def _generate(self, prompt: str) -> str | None:
        self.prompts.append(prompt)
        if self.fail:
            raise RuntimeError("generation backend down")
        return self.reply


@pytest.fixture
def backend() -> InMemoryVectorBackend:
    """Empty in-memory vector backend."""
    return InMemoryVectorBackend()


@pytest.fixture
def store(backend: InMemoryVectorBackend) -> VectorStoreClient:
    """Vector store client over the in-memory backend."""
    return VectorStoreClient(backend)


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator()


@pytest.fixture
def catalog() -> ActionCatalog:
    """Catalog with a single zero-argument action, embedded along [0, 0, 1]."""
    catalog = ActionCatalog()
    catalog.register(
        "employees.list_all",
        "Returns all the employees",
        lambda: [{"name": "Alice Johnson"}],
    )
    catalog.get("employees.list_all").embedding = [0.0, 0.0, 1.0]
    return catalog


@pytest.fixture
def orchestrator(store, embedder, generator, catalog) -> RagOrchestrator:
    """Orchestrator wired to the in-memory fakes."""
    return RagOrchestrator(
        store,
        embedder,
        generator,
        router=IntentRouter(catalog),
        scorer=ConfidenceScorer(),
        request_timeout=5,
    )
