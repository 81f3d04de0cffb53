"""
Embedding providers (text → fixed-length vector).

Two implementations behind one interface:
  - SentenceTransformerEmbeddingProvider: local model, CPU-bound, run in
    the default executor.
  - OllamaEmbeddingProvider: HTTP call to an Ollama ``/api/embeddings``
    endpoint.

``embed_batch`` issues one independent call per text through a bounded
semaphore and reports every failed index at once.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any

import httpx

from agentic_rag.core.config import settings
from agentic_rag.core.exceptions import ProviderFailureError
from agentic_rag.utils.logging import get_logger

logger = get_logger("agentic_rag.services.embedding")


class EmbeddingProvider:
    """Base class: subclasses implement ``_embed``."""

    def __init__(self, max_concurrency: int | None = None, timeout: float | None = None):
        if max_concurrency is None:
            max_concurrency = settings.embedding_max_workers
        self.max_concurrency = max(1, max_concurrency)
        self.timeout = settings.provider_timeout_seconds if timeout is None else timeout

    async def _embed(self, text: str) -> list[float]:
        raise NotImplementedError

    async def embed(self, text: str) -> list[float]:
        """Embed one text. Empty output or any error raises ProviderFailureError."""
        try:
            vector = await asyncio.wait_for(self._embed(text), timeout=self.timeout)
        except ProviderFailureError:
            raise
        except asyncio.TimeoutError as exc:
            raise ProviderFailureError(f"Embedding timed out after {self.timeout:.0f}s") from exc
        except Exception as exc:
            raise ProviderFailureError(f"Embedding failed: {exc}") from exc

        if not vector:
            raise ProviderFailureError("Embedding provider returned an empty vector")
        return [float(x) for x in vector]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """
        Embed every text with at most ``max_concurrency`` calls in flight.

        Output order matches input order.  If any call fails the whole
        batch raises, naming every failed index.
        """
        if not texts:
            return []
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _one(text: str) -> list[float]:
            async with semaphore:
                return await self.embed(text)

        results = await asyncio.gather(*(_one(t) for t in texts), return_exceptions=True)

        failed = [i for i, r in enumerate(results) if isinstance(r, BaseException)]
        if failed:
            first = results[failed[0]]
            logger.error("Embedding failed for %d/%d texts (first: %s)", len(failed), len(texts), first)
            raise ProviderFailureError(
                f"Embedding failed for chunk(s) {failed}: {first}"
            ) from first  # type: ignore[misc]
        return results  # type: ignore[return-value]

    async def close(self) -> None:
        return None


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    """Local SentenceTransformer model, loaded once and cached."""

    def __init__(self, model_name: str | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.model_name = model_name or settings.sentence_transformer_model
        self._model: Any | None = None
        self._model_lock = threading.Lock()

    def _get_model(self) -> Any:
        if self._model is None:
            with self._model_lock:
                if self._model is None:
                    from sentence_transformers import SentenceTransformer

                    self._model = SentenceTransformer(self.model_name)
                    logger.info("Loaded embedding model %s", self.model_name)
        return self._model

    def _encode(self, text: str) -> list[float]:
        # show_progress_bar=False keeps tqdm away from stderr.
        return self._get_model().encode(text, show_progress_bar=False).tolist()

    async def _embed(self, text: str) -> list[float]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._encode, text)


class OllamaEmbeddingProvider(EmbeddingProvider):
    """Calls Ollama's embeddings endpoint: ``{"model", "prompt"} → {"embedding"}``."""

    def __init__(
        self,
        url: str | None = None,
        model_name: str | None = None,
        client: httpx.AsyncClient | None = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.url = url or settings.ollama_embedding_url
        self.model_name = model_name or settings.ollama_embedding_model
        self._client = client or httpx.AsyncClient(timeout=self.timeout)

    async def _embed(self, text: str) -> list[float]:
        response = await self._client.post(
            self.url,
            json={"model": self.model_name, "prompt": text},
        )
        response.raise_for_status()
        return response.json().get("embedding") or []

    async def close(self) -> None:
        await self._client.aclose()


_provider_lock = threading.Lock()
_provider_instance: EmbeddingProvider | None = None


def get_embedding_provider() -> EmbeddingProvider:
    """Return the configured provider singleton."""
    global _provider_instance
    if _provider_instance is not None:
        return _provider_instance

    with _provider_lock:
        if _provider_instance is None:
            backend = settings.embedding_backend.lower()
            if backend == "ollama":
                _provider_instance = OllamaEmbeddingProvider()
            elif backend == "sentence_transformers":
                _provider_instance = SentenceTransformerEmbeddingProvider()
            else:
                raise RuntimeError(f"Unknown embedding backend: {settings.embedding_backend}")
            logger.info("Embedding provider initialized (%s)", backend)
        return _provider_instance
