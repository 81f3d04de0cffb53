"""
Tests for VectorStoreClient: collection lifecycle, upsert validation,
search ordering and multi-collection fan-out.
"""

from unittest.mock import MagicMock

import pytest

from agentic_rag.core.exceptions import (
    ArgumentMismatchError,
    CollectionNotFoundError,
    DimensionMismatchError,
    StoreUnavailableError,
)
from agentic_rag.vector_logic.vector_store import VectorStoreClient


def _hit(text, score, point_id="p"):
    return {"id": point_id, "score": score, "payload": {"text": text}}


class TestCollections:
    async def test_ensure_collection_should_be_idempotent(self, store, backend):
        assert await store.ensure_collection("docs", 3) is True
        assert await store.ensure_collection("docs", 3) is False
        assert backend.get_dimension("docs") == 3

    async def test_ensure_collection_should_raise_when_backend_is_down(self):
        backend = MagicMock()
        backend.get_dimension.side_effect = RuntimeError("connection refused")
        store = VectorStoreClient(backend)

        with pytest.raises(StoreUnavailableError):
            await store.ensure_collection("docs", 3)
        backend.create_collection.assert_not_called()

    async def test_collection_exists_should_be_false_on_any_error(self):
        backend = MagicMock()
        backend.get_dimension.side_effect = RuntimeError("connection refused")
        store = VectorStoreClient(backend)

        assert await store.collection_exists("docs") is False

    async def test_collection_exists_should_reflect_backend(self, store, backend):
        assert await store.collection_exists("docs") is False
        backend.create_collection("docs", 3)
        assert await store.collection_exists("docs") is True

    async def test_delete_missing_collection_should_raise_not_found(self, store):
        with pytest.raises(CollectionNotFoundError):
            await store.delete_collection("missing")


class TestUpsert:
    async def test_upsert_should_store_text_payloads(self, store, backend):
        await store.ensure_collection("docs", 2)
        ids = await store.upsert("docs", ["one", "two"], [[1.0, 0.0], [0.0, 1.0]])

        assert len(ids) == 2
        assert len(set(ids)) == 2
        assert await store.list_payload_texts("docs") == ["one", "two"]

    async def test_count_mismatch_should_raise(self, store):
        await store.ensure_collection("docs", 2)
        with pytest.raises(ArgumentMismatchError):
            await store.upsert("docs", ["one", "two"], [[1.0, 0.0]])

    async def test_ragged_batch_should_raise_dimension_mismatch(self, store):
        await store.ensure_collection("docs", 2)
        with pytest.raises(DimensionMismatchError) as exc_info:
            await store.upsert("docs", ["one", "two"], [[1.0, 0.0], [1.0, 0.0, 0.0]])
        assert exc_info.value.expected == 2
        assert exc_info.value.actual == 3

    async def test_vectors_not_matching_collection_should_raise(self, store):
        await store.ensure_collection("docs", 3)
        with pytest.raises(DimensionMismatchError) as exc_info:
            await store.upsert("docs", ["one"], [[1.0, 0.0]])
        assert exc_info.value.expected == 3
        assert exc_info.value.actual == 2

    async def test_dimension_mismatch_is_an_argument_mismatch(self):
        assert issubclass(DimensionMismatchError, ArgumentMismatchError)


class TestSearch:
    async def test_search_should_sort_descending_and_skip_malformed_hits(self):
        backend = MagicMock()
        backend.search.return_value = [
            _hit("low", 0.2),
            {"id": "no-score", "payload": {"text": "missing score"}},
            _hit("high", 0.9),
            {"id": "no-text", "score": 0.95, "payload": {}},
            _hit("   ", 0.99),
            _hit("mid", 0.5),
        ]
        store = VectorStoreClient(backend)

        results = await store.search("docs", [1.0, 0.0], top_k=5)

        assert [r.text for r in results] == ["high", "mid", "low"]
        assert all(r.collection == "docs" for r in results)

    async def test_search_should_rank_by_cosine(self, store, backend):
        backend.add("docs", "east", [1.0, 0.0])
        backend.add("docs", "north", [0.0, 1.0])
        backend.add("docs", "north-east", [1.0, 1.0])

        results = await store.search("docs", [1.0, 0.0], top_k=2)

        assert [r.text for r in results] == ["east", "north-east"]
        assert results[0].score == pytest.approx(1.0)

    async def test_search_all_with_name_should_search_that_collection_only(self):
        backend = MagicMock()
        backend.search.return_value = [_hit("only", 0.1)]
        store = VectorStoreClient(backend)

        results = await store.search_all(" My-File ", [1.0], top_k_per_collection=4)

        backend.search.assert_called_once_with("my_file", [1.0], 4)
        backend.list_collections.assert_not_called()
        # No fan-out floor on the named path
        assert [r.text for r in results] == ["only"]

    async def test_search_all_should_floor_sort_and_cap_across_collections(self):
        scores = [0.9, 0.8, 0.7, 0.6, 0.5, 0.3]
        backend = MagicMock()
        backend.list_collections.return_value = ["a", "b", "c"]
        backend.search.side_effect = lambda name, vector, limit: [
            _hit(f"{name}-{s}", s - 0.01 * "abc".index(name)) for s in scores
        ]
        store = VectorStoreClient(backend, multi_collection_min_score=0.4, multi_collection_max_results=10)

        results = await store.search_all(None, [1.0], top_k_per_collection=10)

        assert len(results) == 10
        assert all(r.score >= 0.4 for r in results)
        assert [r.score for r in results] == sorted((r.score for r in results), reverse=True)
        assert results[0].text == "a-0.9"

    async def test_search_all_without_collections_should_be_empty(self, store):
        assert await store.search_all(None, [1.0, 0.0]) == []

    async def test_list_payload_texts_should_page_through_everything(self, backend):
        for i in range(5):
            backend.add("docs", f"chunk {i}", [1.0, float(i)])
        store = VectorStoreClient(backend, scroll_page_size=2)

        assert await store.list_payload_texts("docs") == [f"chunk {i}" for i in range(5)]
