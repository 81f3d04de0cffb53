"""
Generation provider (prompt → answer text).

Uses the OpenAI SDK against any OpenAI-compatible chat endpoint (OpenAI
itself, or Ollama's ``/v1``).  Failure or empty text always raises
ProviderFailureError; callers never receive an empty answer.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any

from openai import AsyncOpenAI

from agentic_rag.core.config import settings
from agentic_rag.core.exceptions import ProviderFailureError
from agentic_rag.utils.logging import get_logger

logger = get_logger("agentic_rag.services.llm")


class GenerationProvider:
    """Base class: subclasses implement ``_generate``."""

    def __init__(self, timeout: float | None = None):
        self.timeout = settings.provider_timeout_seconds if timeout is None else timeout

    async def _generate(self, prompt: str) -> str | None:
        raise NotImplementedError

    async def generate(self, prompt: str) -> str:
        try:
            text = await asyncio.wait_for(self._generate(prompt), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise ProviderFailureError(f"Generation timed out after {self.timeout:.0f}s") from exc
        except ProviderFailureError:
            raise
        except Exception as exc:
            raise ProviderFailureError(f"Generation failed: {exc}") from exc

        if not text or not text.strip():
            raise ProviderFailureError("Generation provider returned an empty response")
        return text.strip()

    async def close(self) -> None:
        return None


class OpenAIGenerationProvider(GenerationProvider):
    """Single-turn chat completion with a user message carrying the full prompt."""

    def __init__(
        self,
        model: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        client: Any | None = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.model = model or settings.llm_model
        self.max_tokens = settings.llm_max_tokens if max_tokens is None else max_tokens
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self._client = client or AsyncOpenAI(
            base_url=base_url or settings.llm_base_url,
            api_key=api_key or settings.llm_api_key,
            timeout=self.timeout,
            max_retries=0,
        )

    async def _generate(self, prompt: str) -> str | None:
        logger.debug("Sending prompt to %s (%d chars)", self.model, len(prompt))
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        if not response.choices:
            logger.warning("No choices in generation response")
            return None
        return response.choices[0].message.content

    async def close(self) -> None:
        await self._client.close()


_client_lock = threading.Lock()
_client_instance: GenerationProvider | None = None


def get_generation_provider() -> GenerationProvider:
    """Return a module-level generation provider singleton."""
    global _client_instance
    if _client_instance is not None:
        return _client_instance

    with _client_lock:
        if _client_instance is None:
            _client_instance = OpenAIGenerationProvider()
            logger.info("Generation provider initialized (model=%s)", settings.llm_model)
        return _client_instance
