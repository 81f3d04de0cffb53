"""
Tests for semantic action routing: similarity, thresholding, parameter
resolution and dispatch.
"""

from unittest.mock import AsyncMock

import pytest
from pydantic import BaseModel

from agentic_rag.core.exceptions import (
    ActionDispatchError,
    ParameterResolutionError,
    ProviderFailureError,
)
from agentic_rag.vector_logic.actions import build_default_catalog
from agentic_rag.vector_logic.intent_router import (
    ActionCatalog,
    DefaultParameterResolver,
    IntentRouter,
    LLMParameterResolver,
    cosine_similarity,
)


class Lookup(BaseModel):
    name: str


class Paging(BaseModel):
    limit: int = 10


def _catalog(**embeddings) -> ActionCatalog:
    """Catalog of no-op actions with fixed description embeddings."""
    catalog = ActionCatalog()
    for action_id, vector in embeddings.items():
        catalog.register(action_id, f"Action {action_id}", lambda action_id=action_id: {"from": action_id})
        catalog.get(action_id).embedding = vector
    return catalog


class TestCosineSimilarity:
    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    @pytest.mark.parametrize(
        "v1, v2",
        [([1.0, 0.0], [1.0, 0.0, 0.0]), ([], []), ([0.0, 0.0], [1.0, 0.0])],
    )
    def test_degenerate_inputs_score_minus_one(self, v1, v2):
        assert cosine_similarity(v1, v2) == -1.0


class TestActionCatalog:
    def test_duplicate_registration_should_fail(self):
        catalog = ActionCatalog()
        catalog.register("a", "does a", lambda: None)
        with pytest.raises(ValueError):
            catalog.register("a", "does a again", lambda: None)

    def test_decorator_should_register_and_return_function(self):
        catalog = ActionCatalog()

        @catalog.action("greet", "Says hello")
        def greet():
            return "hello"

        assert greet() == "hello"
        assert catalog.get("greet").handler is greet
        assert len(catalog) == 1

    async def test_warm_should_embed_once_and_retry_only_failures(self):
        catalog = ActionCatalog()
        catalog.register("ok", "works", lambda: None)
        catalog.register("broken", "breaks", lambda: None)

        async def embed(text):
            if text == "works":
                return [1.0, 0.0]
            raise ProviderFailureError("down")

        embedder = AsyncMock()
        embedder.embed.side_effect = embed

        await catalog.warm(embedder)

        assert not catalog.is_warm
        assert catalog.get("ok").embedding == [1.0, 0.0]
        assert catalog.get("broken").embedding is None

        await catalog.warm(embedder)

        # Only the failed description is embedded again
        assert [c.args[0] for c in embedder.embed.call_args_list] == ["works", "breaks", "breaks"]

    async def test_failed_description_should_never_match_until_rewarmed(self):
        catalog = ActionCatalog()
        catalog.register("broken", "breaks", lambda: None)
        router = IntentRouter(catalog, threshold=0.5)
        embedder = AsyncMock()
        embedder.embed.side_effect = ProviderFailureError("down")

        await catalog.warm(embedder)
        assert router.match([0.0, 1.0]) is None

        embedder.embed.side_effect = None
        embedder.embed.return_value = [0.0, 1.0]
        await catalog.warm(embedder)

        assert catalog.is_warm
        assert router.match([0.0, 1.0]).action_id == "broken"

    def test_default_catalog_should_expose_employee_actions(self):
        catalog = build_default_catalog()
        employees = catalog.get("employees.list_all").handler()

        assert {e["name"] for e in employees} == {"Alice Johnson", "Bob Smith", "Charlie Brown"}
        assert catalog.get("employees.find_by_name").handler(name="bob")[0]["position"] == "Product Manager"


class TestIntentRouter:
    def test_match_should_pick_best_above_threshold(self):
        router = IntentRouter(_catalog(a=[1.0, 0.0], b=[0.6, 0.8]), threshold=0.6)

        match = router.match([0.0, 1.0])

        assert match.action_id == "b"
        assert match.score == pytest.approx(0.8)

    def test_match_below_threshold_should_be_none(self):
        router = IntentRouter(_catalog(a=[1.0, 0.0]), threshold=0.6)
        assert router.match([0.0, 1.0]) is None

    def test_match_on_empty_catalog_should_be_none(self):
        assert IntentRouter(ActionCatalog()).match([1.0]) is None

    def test_match_all_should_keep_every_action_above_threshold(self):
        router = IntentRouter(_catalog(a=[1.0, 0.0], b=[0.6, 0.8], c=[-1.0, 0.0]), threshold=0.5)
        assert [m.action_id for m in router.match_all([0.6, 0.8])] == ["b", "a"]

    async def test_dispatch_should_invoke_best_match(self):
        router = IntentRouter(_catalog(a=[1.0, 0.0]))

        result = await router.dispatch("anything", [1.0, 0.0])

        assert result.action_id == "a"
        assert result.data == {"from": "a"}

    async def test_dispatch_without_match_should_return_none(self):
        router = IntentRouter(_catalog(a=[1.0, 0.0]))
        assert await router.dispatch("anything", [0.0, 1.0]) is None

    async def test_async_handler_should_be_awaited(self):
        catalog = ActionCatalog()

        async def fetch():
            return [1, 2, 3]

        catalog.register("fetch", "Fetches numbers", fetch)
        catalog.get("fetch").embedding = [1.0]

        result = await IntentRouter(catalog).dispatch("numbers", [1.0])

        assert result.data == [1, 2, 3]

    async def test_failing_handler_should_raise_dispatch_error(self):
        catalog = ActionCatalog()
        catalog.register("boom", "Explodes", lambda: 1 / 0)
        catalog.get("boom").embedding = [1.0]

        with pytest.raises(ActionDispatchError):
            await IntentRouter(catalog).dispatch("boom", [1.0])

    async def test_dispatch_all_should_skip_failing_actions(self):
        catalog = _catalog(good=[1.0, 0.0])
        catalog.register("bad", "Explodes", lambda: 1 / 0)
        catalog.get("bad").embedding = [1.0, 0.1]

        results = await IntentRouter(catalog).dispatch_all("anything", [1.0, 0.0])

        assert [r.action_id for r in results] == ["good"]


class TestParameterResolvers:
    async def test_default_resolver_should_use_declared_defaults(self):
        catalog = ActionCatalog()
        catalog.register("page", "Pages", lambda limit: limit, params_model=Paging)

        assert await DefaultParameterResolver().resolve(catalog.get("page"), "q") == {"limit": 10}

    async def test_default_resolver_should_refuse_required_fields(self):
        catalog = ActionCatalog()
        catalog.register("find", "Finds", lambda name: name, params_model=Lookup)

        with pytest.raises(ParameterResolutionError):
            await DefaultParameterResolver().resolve(catalog.get("find"), "find Bob")

    async def test_llm_resolver_should_parse_json_from_reply(self):
        catalog = ActionCatalog()
        catalog.register("find", "Finds", lambda name: name, params_model=Lookup)
        generator = AsyncMock()
        generator.generate.return_value = 'Sure! {"name": "Bob"}'

        arguments = await LLMParameterResolver(generator).resolve(catalog.get("find"), "find Bob")

        assert arguments == {"name": "Bob"}

    @pytest.mark.parametrize("reply", ["no json here", '{"nickname": "Bob"}'])
    async def test_llm_resolver_should_reject_unusable_replies(self, reply):
        catalog = ActionCatalog()
        catalog.register("find", "Finds", lambda name: name, params_model=Lookup)
        generator = AsyncMock()
        generator.generate.return_value = reply

        with pytest.raises(ParameterResolutionError):
            await LLMParameterResolver(generator).resolve(catalog.get("find"), "find Bob")

    async def test_llm_resolver_should_skip_generation_without_parameters(self):
        catalog = _catalog(a=[1.0])
        generator = AsyncMock()

        assert await LLMParameterResolver(generator).resolve(catalog.get("a"), "q") == {}
        generator.generate.assert_not_awaited()

    async def test_unresolvable_action_should_be_skipped_by_dispatch_all(self):
        catalog = _catalog(plain=[1.0, 0.0])
        catalog.register("find", "Finds", lambda name: name, params_model=Lookup)
        catalog.get("find").embedding = [1.0, 0.0]

        results = await IntentRouter(catalog).dispatch_all("find someone", [1.0, 0.0])

        assert [r.action_id for r in results] == ["plain"]
