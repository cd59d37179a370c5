"""
Test cases for the persistent backing stores.
"""

import pytest

from semstore.core.backing_store import IBackingStore, InMemoryBackingStore, SQLiteBackingStore
from semstore.core.db import health_check
from semstore.vector.record_store import VectorRecordStore, encode_vector


@pytest.fixture(params=["memory", "sqlite"])
def backing(request, tmp_path):
    """Both backing store implementations."""
    if request.param == "memory":
        return InMemoryBackingStore()
    return SQLiteBackingStore(str(tmp_path / "data" / "test.db"))


def test_implements_interface(backing):
    assert isinstance(backing, IBackingStore)


def test_set_and_get_fields(backing):
    """Test storing mixed field types under one key."""
    blob = encode_vector([1.0, 2.0])
    backing.set_fields("fact:a", {"id": "a", "dim": 2, "vector": blob})

    fields = backing.get_fields("fact:a")

    assert fields == {"id": "a", "dim": 2, "vector": blob}


def test_set_fields_merges(backing):
    """Test that setting fields updates only those fields."""
    backing.set_fields("k", {"a": "1", "b": "2"})
    backing.set_fields("k", {"b": "3"})

    assert backing.get_fields("k") == {"a": "1", "b": "3"}


def test_get_missing_key(backing):
    assert backing.get_fields("missing") == {}


def test_list_keys_by_prefix(backing):
    """Test prefix filtering and sorted order."""
    backing.set_fields("fact:b", {"x": 1})
    backing.set_fields("fact:a", {"x": 1})
    backing.set_fields("other:c", {"x": 1})
    backing.set_fields("fact%_literal", {"x": 1})

    assert backing.list_keys("fact:") == ["fact:a", "fact:b"]
    assert backing.list_keys("fact%") == ["fact%_literal"]
    assert len(backing.list_keys()) == 4


def test_delete_key(backing):
    backing.set_fields("k", {"a": 1})

    backing.delete_key("k")
    backing.delete_key("k")  # deleting twice is fine

    assert backing.list_keys() == []


def test_sqlite_survives_reopen(tmp_path):
    """Test that records written by one process are read by the next."""
    db_path = str(tmp_path / "store.db")
    first = VectorRecordStore(backing_store=SQLiteBackingStore(db_path))
    first.put("a", [0.1, 0.2, 0.3])
    first.put("b", [1 / 3, 2 / 3, 1.0])

    second = VectorRecordStore(backing_store=SQLiteBackingStore(db_path))
    second.load()

    assert second.ids() == ["a", "b"]
    assert list(second.get("b").vector) == [1 / 3, 2 / 3, 1.0]
    assert health_check(db_path)
