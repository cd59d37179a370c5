"""
Test cases for SemanticStore ingest/query orchestration.
"""

import math
from functools import partial

import pytest
from unittest.mock import MagicMock

from semstore.core.backing_store import InMemoryBackingStore
from semstore.core.errors import (
    BackingStoreError,
    DimensionMismatch,
    EmbeddingProviderError,
    EmptyStore,
    InvalidArgument,
    NotFound
)
from semstore.vector.embeddings import DeterministicHashEmbedding, IEmbeddingProvider
from semstore.vector.index import FlatIndex
from semstore.vector.metrics import DistanceMetric
from semstore.vector.record_store import VectorRecordStore
from semstore.vector.semantic_store import SemanticStore
from semstore.vector.types import EmbeddingPurpose


class TableEmbedding(IEmbeddingProvider):
    """Provider mapping known texts to fixed vectors."""

    name = "table"

    def __init__(self, table):
        self.table = table
        self.calls = []

    def embed_text(self, text, purpose=EmbeddingPurpose.DOCUMENT):
        self.calls.append((text, EmbeddingPurpose(purpose)))
        return self.table[text]

    def get_dimension(self):
        return len(next(iter(self.table.values())))


@pytest.fixture
def provider():
    return TableEmbedding({
        "origin": [0.0, 0.0],
        "far": [3.0, 4.0],
        "near": [1.0, 1.0],
        "three_d": [1.0, 1.0, 1.0],
    })


@pytest.fixture
def store(provider):
    return SemanticStore(provider)


def test_end_to_end_nearest(store):
    """Test ingest then query on the A/B/C reference scenario."""
    store.ingest("A", "origin")
    store.ingest("B", "far")
    store.ingest("C", "near")

    results = store.query("origin", 2)

    assert [r.id for r in results] == ["A", "C"]
    assert results[0].distance == 0.0
    assert results[1].distance == pytest.approx(math.sqrt(2))


def test_query_empty_store_raises(store, provider):
    """Test that querying before any ingest fails without calling the provider."""
    with pytest.raises(EmptyStore):
        store.query("origin", 1)

    assert provider.calls == []


def test_query_invalid_k(store):
    """Test that k < 1 is rejected."""
    store.ingest("A", "origin")

    with pytest.raises(InvalidArgument):
        store.query("origin", 0)


def test_purposes_passed_to_provider(store, provider):
    """Test that ingest embeds as document and query embeds as query."""
    store.ingest("A", "origin")
    store.query("near", 1)

    assert provider.calls == [("origin", EmbeddingPurpose.DOCUMENT), ("near", EmbeddingPurpose.QUERY)]


def test_failing_provider_leaves_store_unchanged():
    """Test that a provider network error propagates and writes nothing."""
    provider = MagicMock(spec=IEmbeddingProvider)
    store = SemanticStore(provider)
    provider.embed_text.return_value = [1.0, 2.0]
    store.ingest("existing", "some text")
    store.query("anything", 1)
    assert not store.is_stale

    failure = ConnectionError("simulated network error")
    provider.embed_text.side_effect = failure

    with pytest.raises(EmbeddingProviderError) as exc_info:
        store.ingest("X", "some text")

    assert exc_info.value.cause is failure
    assert store.records.ids() == ["existing"]
    assert not store.is_stale


def test_failing_provider_on_query_returns_nothing(store, provider):
    """Test that a provider failure during query surfaces unchanged."""
    store.ingest("A", "origin")

    with pytest.raises(EmbeddingProviderError):
        store.query("unknown text", 1)  # KeyError inside the provider


def test_dirty_flag_lifecycle(store):
    """Test clean -> dirty on ingest and dirty -> clean on query."""
    assert not store.is_stale

    store.ingest("A", "origin")
    assert store.is_stale

    store.query("origin", 1)
    assert not store.is_stale

    store.ingest("C", "near")
    assert store.is_stale

    # Newly ingested record is visible after the lazy rebuild
    assert store.query("near", 1)[0].id == "C"


def test_index_not_rebuilt_when_clean(provider):
    """Test that a clean store reuses its index."""
    factory = MagicMock(side_effect=FlatIndex)
    store = SemanticStore(provider, index_factory=factory)
    store.ingest("A", "origin")

    store.query("origin", 1)
    store.query("near", 1)

    assert factory.call_count == 1


def test_rebuild_index_is_idempotent(store):
    """Test that explicit rebuilds answer identically."""
    store.ingest("A", "origin")
    store.ingest("B", "far")
    store.ingest("C", "near")

    first = store.rebuild_index()
    second = store.rebuild_index()

    for query in ([0.0, 0.0], [2.0, 2.0], [5.0, 5.0]):
        assert first.nearest(query, 3) == second.nearest(query, 3)


def test_rebuild_index_with_no_records(store):
    """Test that rebuilding an empty store is not an error."""
    assert store.rebuild_index() is None
    assert not store.is_stale


def test_ingest_dimension_mismatch_leaves_state(store):
    """Test that a wrong-dimension embedding is rejected without marking the index dirty."""
    store.ingest("A", "origin")
    store.query("origin", 1)

    with pytest.raises(DimensionMismatch):
        store.ingest("D", "three_d")

    assert "D" not in store.records
    assert not store.is_stale


def test_ingest_replaces_existing(store):
    """Test that re-ingesting an id replaces its vector."""
    store.ingest("A", "origin")
    store.ingest("A", "far")

    assert len(store) == 1
    assert list(store.get("A").vector) == [3.0, 4.0]


def test_get_and_delete(store):
    """Test record lookup and removal through the store."""
    store.ingest("A", "origin")
    store.ingest("B", "far")

    store.delete("A")

    with pytest.raises(NotFound):
        store.get("A")
    assert [r.id for r in store.query("origin", 5)] == ["B"]


class TestIngestMany:
    """Batch ingestion is all or nothing."""

    def test_ingest_many_mapping(self, store):
        """Test ingesting a dict of id -> text."""
        records = store.ingest_many({"A": "origin", "B": "far", "C": "near"})

        assert [r.id for r in records] == ["A", "B", "C"]
        assert store.query("origin", 1)[0].id == "A"

    def test_ingest_many_provider_failure_writes_nothing(self, store):
        """Test that one failing text prevents every write."""
        with pytest.raises(EmbeddingProviderError):
            store.ingest_many([("A", "origin"), ("B", "not in table")])

        assert len(store) == 0
        assert not store.is_stale

    def test_ingest_many_dimension_mismatch_writes_nothing(self, store):
        """Test that a batch of the wrong dimension is rejected up front."""
        store.ingest("A", "origin")

        with pytest.raises(DimensionMismatch):
            store.ingest_many([("B", "three_d")])

        assert store.records.ids() == ["A"]

    def test_ingest_many_backing_failure_rolls_back(self):
        """Test that a backing store failure on the second key leaves the store as it was."""
        class FailingOnKey(InMemoryBackingStore):
            def set_fields(self, key, fields):
                if key == "fact:b":
                    raise BackingStoreError("disk full", key=key)
                super().set_fields(key, fields)

        backing = FailingOnKey()
        embedder = DeterministicHashEmbedding(dimension=16)
        store = SemanticStore(embedder, record_store=VectorRecordStore(backing_store=backing))
        store.ingest("seed", "seed")
        store.query("seed", 1)

        with pytest.raises(BackingStoreError):
            store.ingest_many([("a", "alpha"), ("b", "beta")])

        assert store.records.ids() == ["seed"]
        assert backing.list_keys("fact:") == ["fact:seed"]
        assert [r.id for r in store.query("alpha", 5)] == ["seed"]

    def test_ingest_many_empty(self, store):
        """Test that an empty batch is a no-op."""
        assert store.ingest_many([]) == []
        assert not store.is_stale


def test_cosine_index_factory(provider):
    """Test that the metric strategy is pluggable."""
    store = SemanticStore(provider, index_factory=partial(FlatIndex, metric=DistanceMetric.COSINE))
    store.ingest("B", "far")
    store.ingest("C", "near")

    results = store.query("near", 2)

    assert results[0].id == "C"
    assert results[0].distance == pytest.approx(0.0)


def test_store_with_persisted_records_starts_stale():
    """Test that a store over preloaded records rebuilds on first query."""
    backing = InMemoryBackingStore()
    writer = VectorRecordStore(backing_store=backing)
    embedder = DeterministicHashEmbedding(dimension=16)
    writer.put("fact", embedder.embed_text("the sky is blue"))

    records = VectorRecordStore(backing_store=backing)
    records.load()
    store = SemanticStore(embedder, record_store=records)

    assert store.is_stale
    results = store.query("the sky is blue", 1)
    assert results[0].id == "fact"
    assert results[0].distance == pytest.approx(0.0)


def test_direct_record_changes_trigger_rebuild(provider):
    """Test that writes made on the record store itself are picked up by the next query."""
    store = SemanticStore(provider)
    store.ingest("A", "origin")
    store.query("origin", 1)

    store.records.put("C", [1.0, 1.0])

    assert store.is_stale
    assert store.query("near", 1)[0].id == "C"


def test_load_after_query_triggers_rebuild():
    """Test that records loaded from the backing store after a query become searchable."""
    backing = InMemoryBackingStore()
    embedder = DeterministicHashEmbedding(dimension=16)
    store = SemanticStore(embedder, record_store=VectorRecordStore(backing_store=backing))
    store.ingest("seed", "seed text")
    store.query("seed text", 1)

    other = VectorRecordStore(backing_store=backing)
    other.put("late", embedder.embed_text("late text"))
    assert store.records.load() == 2

    assert store.is_stale
    results = store.query("late text", 1)
    assert results[0].id == "late"
    assert results[0].distance == pytest.approx(0.0)


def test_health(store):
    """Test the health report."""
    health = store.health()
    assert health["size"] == 0
    assert health["index_strategy"] == "flat"
    assert health["stale"] is False

    store.ingest("A", "origin")
    store.query("origin", 1)
    health = store.health()

    assert health["size"] == 1
    assert health["dimension"] == 2
    assert health["provider"] == "table"
    assert health["metric"] == "l2"
    assert health["indexed"] == 1
    assert health["persistent"] is False
