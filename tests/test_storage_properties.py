"""Property-based tests for storage module.

Tests the storage service round-trip properties using Hypothesis.
"""

from __future__ import annotations

import tempfile
from typing import Any

import pytest
from hypothesis import given, settings, strategies as st

from stocksim.storage import JsonFileStorage, MemoryStorage


json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(max_size=20),
    lambda children: st.lists(children, max_size=5) | st.dictionaries(st.text(max_size=10), children, max_size=5),
    max_leaves=20,
)

storage_keys = st.text(min_size=1, max_size=50, alphabet=st.characters(whitelist_categories=("L", "N")))


@given(key=storage_keys, value=json_values)
@settings(max_examples=100)
def test_json_file_storage_round_trip(key: str, value: Any):
    """Whatever is saved under a key is loaded back unchanged."""
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = JsonFileStorage(tmpdir)
        storage.save(key, value)
        assert storage.load(key) == value


@given(key=storage_keys, value=json_values)
@settings(max_examples=100)
def test_memory_storage_matches_file_storage(key: str, value: Any):
    memory = MemoryStorage()
    memory.save(key, value)
    with tempfile.TemporaryDirectory() as tmpdir:
        files = JsonFileStorage(tmpdir)
        files.save(key, value)
        assert memory.load(key) == files.load(key)


@given(key=storage_keys)
@settings(max_examples=100)
def test_storage_delete_removes_data(key: str):
    """Test that delete properly removes stored data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        for storage in (JsonFileStorage(tmpdir), MemoryStorage()):
            storage.save(key, {"test": "value"})
            assert storage.load(key) == {"test": "value"}

            storage.delete(key)
            assert storage.load(key) is None
            # Deleting again is a no-op
            storage.delete(key)


def test_storage_load_nonexistent_returns_none():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert JsonFileStorage(tmpdir).load("nonexistent_key") is None
    assert MemoryStorage().load("nonexistent_key") is None


def test_corrupted_file_loads_as_none():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = JsonFileStorage(tmpdir)
        (storage.base_path / "broken.json").write_text("{not json", encoding="utf-8")
        assert storage.load("broken") is None


def test_memory_storage_returns_copies():
    storage = MemoryStorage({"watchlist": ["AAPL"]})
    loaded = storage.load("watchlist")
    loaded.append("MSFT")
    assert storage.load("watchlist") == ["AAPL"]


def test_unserializable_data_is_rejected():
    with pytest.raises(TypeError):
        MemoryStorage().save("bad", object())
