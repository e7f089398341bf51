"""
Unit tests for the option cache: key derivation, entries, store and backoff.
"""
import pytest

from remote_options.cache import (
    BackoffPolicy,
    CacheEntry,
    CacheStore,
    EntryState,
    cache_key,
)


# =============================================================================
# Cache keys
# =============================================================================

def test_cache_key_ignores_param_insertion_order():
    a = cache_key("/internal/files", {"folder_path": "checkpoints", "sort": "name"})
    b = cache_key("/internal/files", {"sort": "name", "folder_path": "checkpoints"})
    assert a == b


def test_cache_key_differs_by_route_and_values():
    base = cache_key("/internal/files", {"folder_path": "checkpoints"})
    assert base != cache_key("/internal/models", {"folder_path": "checkpoints"})
    assert base != cache_key("/internal/files", {"folder_path": "loras"})
    assert base != cache_key("/internal/files", {})


def test_cache_key_keeps_list_order():
    assert cache_key("/r", {"ext": ["a", "b"]}) != cache_key("/r", {"ext": ["b", "a"]})
    assert cache_key("/r", {"ext": ("a", "b")}) == cache_key("/r", {"ext": ["a", "b"]})


def test_cache_key_without_params():
    assert cache_key("/r") == cache_key("/r", {})


# =============================================================================
# Entries
# =============================================================================

def test_empty_entry_is_not_fresh():
    assert not CacheEntry().is_fresh(0)


def test_ready_entry_with_ttl_expires():
    entry = CacheEntry(data=["a"], fetched_at=1000, ttl_ms=500, state=EntryState.READY)
    assert entry.is_fresh(1499)
    assert not entry.is_fresh(1500)


def test_zero_ttl_never_expires():
    entry = CacheEntry(data=["a"], fetched_at=0, ttl_ms=0, state=EntryState.READY)
    assert entry.is_fresh(10 ** 9)


def test_failed_entry_is_not_fresh_even_with_data():
    entry = CacheEntry(data=["a"], ttl_ms=0, state=EntryState.FAILED, failed_attempts=1)
    assert not entry.is_fresh(0)


def test_backoff_elapsed():
    entry = CacheEntry(last_attempt_at=1000)
    assert not entry.backoff_elapsed(1999, 1000)
    assert entry.backoff_elapsed(2000, 1000)
    assert CacheEntry().backoff_elapsed(0, 1000)


def test_entry_to_dict():
    entry = CacheEntry(data=["a", "b"], state=EntryState.READY, ttl_ms=100)
    result = entry.to_dict()
    assert result["state"] == "ready"
    assert result["items"] == 2
    assert result["ttlMs"] == 100


# =============================================================================
# Store
# =============================================================================

def test_store_get_put_invalidate():
    store = CacheStore()
    assert store.get("k") is None

    entry = CacheEntry(data=["x"], state=EntryState.READY)
    store.put("k", entry)
    assert store.get("k") is entry
    assert "k" in store
    assert len(store) == 1

    assert store.invalidate("k") is True
    assert store.get("k") is None
    assert store.invalidate("k") is False


def test_store_clear_and_stats():
    store = CacheStore()
    store.put("a", CacheEntry(state=EntryState.READY, data=[]))
    store.put("b", CacheEntry(state=EntryState.FAILED, failed_attempts=2))

    stats = store.get_stats()
    assert stats["entries"] == 2
    assert stats["by_state"]["ready"] == 1
    assert stats["by_state"]["failed"] == 1

    assert store.clear() == 2
    assert store.keys() == []


# =============================================================================
# Backoff
# =============================================================================

def test_backoff_sequence():
    policy = BackoffPolicy()
    delays = [policy.delay_ms(n) for n in (1, 2, 3, 4, 5)]
    assert delays == [1000, 2000, 4000, 8000, 10000]


def test_backoff_no_delay_before_failures():
    assert BackoffPolicy().delay_ms(0) == 0


def test_backoff_stays_capped():
    assert BackoffPolicy().delay_ms(50) == 10000


def test_backoff_custom_limits():
    policy = BackoffPolicy(base_delay_ms=250, max_delay_ms=1500)
    assert [policy.delay_ms(n) for n in (1, 2, 3, 4)] == [250, 500, 1000, 1500]


def test_backoff_rejects_negative_attempts():
    with pytest.raises(ValueError):
        BackoffPolicy().delay_ms(-1)
