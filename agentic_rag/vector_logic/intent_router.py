"""
Semantic intent router.

Maps a natural-language query to a registered action by comparing the
query embedding with each action's description embedding:

  query vector ──cosine──▶ every catalog entry ──max──▶ best ≥ threshold?
                                                         │yes          │no
                                                  resolve args     NO MATCH
                                                  invoke handler   (caller falls
                                                                    back to RAG)

Actions are registered explicitly at startup; description embeddings are
computed once by ``ActionCatalog.warm`` and never re-derived per request.
Arguments come from a ``ParameterResolver`` which fails loudly
(ParameterResolutionError) instead of guessing.
"""

from __future__ import annotations

import asyncio
import inspect
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, Sequence

import numpy as np
from pydantic import BaseModel, ValidationError

from agentic_rag.core.config import settings
from agentic_rag.core.exceptions import (
    ActionDispatchError,
    ParameterResolutionError,
    ProviderFailureError,
)
from agentic_rag.schemas.intent import ActionMatch, ActionResult
from agentic_rag.utils.logging import get_logger

logger = get_logger("agentic_rag.vector_logic.intent_router")


def cosine_similarity(v1: Sequence[float], v2: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Returns -1 for mismatched lengths, empty vectors or zero magnitude so
    such candidates can never win a max() comparison.
    """
    if len(v1) != len(v2) or len(v1) == 0:
        return -1.0
    a = np.asarray(v1, dtype=float)
    b = np.asarray(v2, dtype=float)
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom == 0:
        return -1.0
    return float(np.dot(a, b) / denom)


class NoParameters(BaseModel):
    """Parameter model for zero-argument actions."""


# =====================================================================
# ACTION CATALOG
# =====================================================================
@dataclass
class ActionSpec:
    """One routable capability: id, intent description, handler, parameter schema."""
    action_id: str
    description: str
    handler: Callable[..., Any]
    params_model: type[BaseModel] = NoParameters
    embedding: list[float] | None = field(default=None, repr=False)

    @property
    def parameter_schema(self) -> dict[str, Any]:
        return self.params_model.model_json_schema()

    async def invoke(self, arguments: dict[str, Any]) -> Any:
        result = self.handler(**arguments)
        if inspect.isawaitable(result):
            result = await result
        return result


class ActionCatalog:
    """
    Static action-id → ActionSpec mapping, built once at startup.

    Usage:
        catalog = ActionCatalog()

        @catalog.action("employees.list_all", "Returns all the employees ...")
        def list_employees() -> list[dict]:
            ...
    """

    def __init__(self) -> None:
        self._actions: dict[str, ActionSpec] = {}

    def register(
        self,
        action_id: str,
        description: str,
        handler: Callable[..., Any],
        params_model: type[BaseModel] = NoParameters,
    ) -> ActionSpec:
        if action_id in self._actions:
            raise ValueError(f"Action '{action_id}' is already registered")
        if not description or not description.strip():
            raise ValueError(f"Action '{action_id}' needs an intent description")
        spec = ActionSpec(action_id, description.strip(), handler, params_model)
        self._actions[action_id] = spec
        return spec

    def action(
        self,
        action_id: str,
        description: str,
        params_model: type[BaseModel] = NoParameters,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of ``register``; returns the function unchanged."""
        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.register(action_id, description, fn, params_model)
            return fn
        return decorator

    def get(self, action_id: str) -> ActionSpec:
        return self._actions[action_id]

    def __iter__(self):
        return iter(self._actions.values())

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def is_warm(self) -> bool:
        return all(spec.embedding is not None for spec in self._actions.values())

    async def warm(self, embedder: Any) -> None:
        """
        Embed every description that has no vector yet.

        A description that fails to embed stays unembedded: it scores -1
        against any query until a later ``warm`` call succeeds, and
        ``is_warm`` stays False so callers know to retry.
        """
        pending = [s for s in self._actions.values() if s.embedding is None]
        if not pending:
            return
        results = await asyncio.gather(
            *(embedder.embed(s.description) for s in pending),
            return_exceptions=True,
        )
        failed = 0
        for spec, result in zip(pending, results):
            if isinstance(result, BaseException):
                logger.warning("Could not embed description for '%s': %s", spec.action_id, result)
                failed += 1
            else:
                spec.embedding = list(result)
        logger.info("Action catalog warmed (%d embedded, %d failed)", len(pending) - failed, failed)


# =====================================================================
# PARAMETER RESOLUTION
# =====================================================================
class ParameterResolver(Protocol):
    async def resolve(self, spec: ActionSpec, question: str) -> dict[str, Any]:
        """Return keyword arguments for *spec* or raise ParameterResolutionError."""
        ...


class DefaultParameterResolver:
    """
    Uses only the declared defaults of the parameter model.

    Works for zero-argument and fully defaulted actions; any required
    field makes resolution fail instead of passing a guessed value.
    """

    async def resolve(self, spec: ActionSpec, question: str) -> dict[str, Any]:
        try:
            params = spec.params_model()
        except ValidationError as exc:
            missing = [".".join(str(p) for p in e["loc"]) for e in exc.errors()]
            raise ParameterResolutionError(
                f"Cannot resolve required parameter(s) {missing} for '{spec.action_id}'"
            ) from exc
        return params.model_dump()


class LLMParameterResolver:
    """
    Asks the generation provider for a JSON object matching the action's
    parameter schema, then validates it with the pydantic model.
    """

    def __init__(self, generator: Any):
        self.generator = generator

    def _build_prompt(self, spec: ActionSpec, question: str) -> str:
        schema = json.dumps(spec.parameter_schema, indent=2)
        return (
            "Extract the arguments for the function below from the user's request.\n"
            f"Function: {spec.action_id}\n"
            f"Purpose: {spec.description}\n"
            f"JSON schema of the arguments:\n{schema}\n\n"
            f"User request: {question}\n\n"
            "Reply with a single JSON object and nothing else. "
            "Omit fields the request does not mention."
        )

    async def resolve(self, spec: ActionSpec, question: str) -> dict[str, Any]:
        if not spec.params_model.model_fields:
            return {}
        try:
            raw = await self.generator.generate(self._build_prompt(spec, question))
        except ProviderFailureError as exc:
            raise ParameterResolutionError(f"Argument extraction failed: {exc}") from exc

        start, end = raw.find("{"), raw.rfind("}")
        if start < 0 or end < start:
            raise ParameterResolutionError(f"No JSON object in extraction output for '{spec.action_id}'")
        try:
            params = spec.params_model.model_validate_json(raw[start:end + 1])
        except ValidationError as exc:
            raise ParameterResolutionError(
                f"Extracted arguments for '{spec.action_id}' are invalid: {exc.error_count()} error(s)"
            ) from exc
        return params.model_dump()


# =====================================================================
# ROUTER
# =====================================================================
class IntentRouter:
    """Stateless per call; holds only the catalog and the resolver."""

    def __init__(
        self,
        catalog: ActionCatalog,
        resolver: ParameterResolver | None = None,
        threshold: float | None = None,
    ):
        self.catalog = catalog
        self.resolver = resolver or DefaultParameterResolver()
        self.threshold = settings.intent_match_threshold if threshold is None else threshold

    def rank(self, query_vector: Sequence[float]) -> list[ActionMatch]:
        """Every catalog entry with its similarity, best first."""
        matches = [
            ActionMatch(
                action_id=spec.action_id,
                description=spec.description,
                score=cosine_similarity(query_vector, spec.embedding or []),
            )
            for spec in self.catalog
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    def match(self, query_vector: Sequence[float]) -> ActionMatch | None:
        """Best match at or above the threshold, or None."""
        ranked = self.rank(query_vector)
        if not ranked or ranked[0].score < self.threshold:
            best = ranked[0].score if ranked else -1.0
            logger.info("[ROUTER] No action above %.2f (best=%.3f)", self.threshold, best)
            return None
        logger.info("[ROUTER] Matched %s (score=%.3f)", ranked[0].action_id, ranked[0].score)
        return ranked[0]

    def match_all(self, query_vector: Sequence[float]) -> list[ActionMatch]:
        """Every match at or above the threshold, best first."""
        return [m for m in self.rank(query_vector) if m.score >= self.threshold]

    async def invoke(self, match: ActionMatch, question: str) -> ActionResult:
        """
        Resolve arguments and call the handler.

        Raises ParameterResolutionError or ActionDispatchError.
        """
        spec = self.catalog.get(match.action_id)
        arguments = await self.resolver.resolve(spec, question)
        try:
            data = await spec.invoke(arguments)
        except Exception as exc:
            raise ActionDispatchError(f"Action '{spec.action_id}' failed: {exc}") from exc
        return ActionResult(action_id=spec.action_id, score=match.score, arguments=arguments, data=data)

    async def dispatch(self, question: str, query_vector: Sequence[float]) -> ActionResult | None:
        """Invoke the best match; None means "no match, fall back to retrieval"."""
        best = self.match(query_vector)
        if best is None:
            return None
        return await self.invoke(best, question)

    async def dispatch_all(self, question: str, query_vector: Sequence[float]) -> list[ActionResult]:
        """
        Invoke every match above the threshold.

        A match whose arguments cannot be resolved or whose handler raises
        is logged and skipped; the rest still run.
        """
        results: list[ActionResult] = []
        for match in self.match_all(query_vector):
            try:
                result = await self.invoke(match, question)
            except (ParameterResolutionError, ActionDispatchError) as exc:
                logger.error("[ROUTER] Skipping %s: %s", match.action_id, exc)
                continue
            if result.data is not None:
                results.append(result)
        return results
