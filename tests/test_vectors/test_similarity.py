"""Tests for SimilarityIndex and InMemoryVectorStore."""

from __future__ import annotations

import math

import pytest

from diversity_scorecard.errors import DimensionMismatchError, UndefinedSimilarityError
from diversity_scorecard.vectors.similarity import SimilarityIndex
from diversity_scorecard.vectors.store import InMemoryVectorStore


def _at_similarity(s: float) -> list[float]:
    """Unit vector whose cosine similarity to [1, 0] is exactly ``s``."""
    return [s, math.sqrt(1.0 - s * s)]


QUERY = [1.0, 0.0]


class TestFindSimilar:
    def test_threshold_filters_and_sorts(self, vector_store, similarity_index):
        vector_store.upsert("trials", "a", _at_similarity(0.95))
        vector_store.upsert("trials", "b", _at_similarity(0.5))
        vector_store.upsert("trials", "c", _at_similarity(0.92))

        hits = similarity_index.find_similar("trials", QUERY, limit=5, threshold=0.9)

        assert [h.id for h in hits] == ["a", "c"]
        assert [h.similarity for h in hits] == pytest.approx([0.95, 0.92])

    def test_limit_truncates(self, vector_store, similarity_index):
        for i, s in enumerate([0.71, 0.99, 0.8, 0.9]):
            vector_store.upsert("trials", f"r{i}", _at_similarity(s))
        hits = similarity_index.find_similar("trials", QUERY, limit=2, threshold=0.7)
        assert [h.id for h in hits] == ["r1", "r3"]

    def test_ties_keep_candidate_order(self, vector_store, similarity_index):
        for rid in ["x", "y", "z"]:
            vector_store.upsert("trials", rid, [2.0, 0.0])
        hits = similarity_index.find_similar("trials", QUERY, threshold=0.0)
        assert [h.id for h in hits] == ["x", "y", "z"]

    def test_threshold_is_inclusive(self, vector_store, similarity_index):
        vector_store.upsert("trials", "edge", [1.0, 0.0])
        hits = similarity_index.find_similar("trials", QUERY, threshold=1.0)
        assert [h.id for h in hits] == ["edge"]

    def test_empty_collection(self, similarity_index):
        assert similarity_index.find_similar("nothing-here", QUERY) == []

    def test_zero_limit(self, vector_store, similarity_index):
        vector_store.upsert("trials", "a", [1.0, 0.0])
        assert similarity_index.find_similar("trials", QUERY, limit=0) == []

    def test_records_without_embedding_are_skipped(self, vector_store, similarity_index):
        vector_store.upsert("trials", "none", None)
        vector_store.upsert("trials", "ok", [1.0, 0.0])
        hits = similarity_index.find_similar("trials", QUERY, threshold=0.0)
        assert [h.id for h in hits] == ["ok"]

    def test_zero_embeddings_are_skipped(self, vector_store, similarity_index):
        vector_store.upsert("trials", "zero", [0.0, 0.0])
        vector_store.upsert("trials", "ok", [0.0, 1.0])
        hits = similarity_index.find_similar("trials", QUERY, threshold=-1.0)
        assert [h.id for h in hits] == ["ok"]

    def test_mismatched_embedding_raises(self, vector_store, similarity_index):
        vector_store.upsert("trials", "ok", [1.0, 0.0])
        vector_store.upsert("trials", "wide", [1.0, 0.0, 0.0])
        with pytest.raises(DimensionMismatchError):
            similarity_index.find_similar("trials", QUERY, threshold=-1.0)

    def test_exclude_ids(self, vector_store, similarity_index):
        vector_store.upsert("trials", "self", [1.0, 0.0])
        vector_store.upsert("trials", "other", [1.0, 0.1])
        hits = similarity_index.find_similar("trials", QUERY, exclude_ids=["self"])
        assert [h.id for h in hits] == ["other"]

    def test_collections_are_separate(self, vector_store, similarity_index):
        vector_store.upsert("a", "in-a", [1.0, 0.0])
        vector_store.upsert("b", "in-b", [1.0, 0.0])
        assert [h.id for h in similarity_index.find_similar("a", QUERY)] == ["in-a"]

    def test_zero_query_raises(self, similarity_index):
        with pytest.raises(UndefinedSimilarityError):
            similarity_index.find_similar("trials", [0.0, 0.0])

    def test_store_is_not_modified(self, vector_store, similarity_index):
        vector_store.upsert("trials", "a", [1.0, 0.0], drug="Alpha")
        before = dict(vector_store.get("trials", "a"))
        hits = similarity_index.find_similar("trials", QUERY)
        assert vector_store.get("trials", "a") == before
        assert hits[0].record["drug"] == "Alpha"

    def test_works_with_any_store(self):
        class ListStore:
            def candidates(self, collection_id):
                return [{"id": 1, "embedding": (1.0, 0.0)}]

        hits = SimilarityIndex(ListStore()).find_similar("c", QUERY)
        assert hits[0].id == "1"


class TestInMemoryVectorStore:
    def test_upsert_replaces(self):
        store = InMemoryVectorStore()
        store.upsert("c", "a", [1.0], drug="Old")
        store.upsert("c", "a", [2.0], drug="New")
        assert len(store) == 1
        assert store.get("c", "a")["drug"] == "New"

    def test_get_missing(self):
        assert InMemoryVectorStore().get("c", "missing") is None
