"""
Option cache: keyed entries, fetch state tracking and retry backoff.
"""
from .core import CacheEntry, EntryState, cache_key
from .store import CacheStore, get_default_store
from .backoff import BackoffPolicy, DEFAULT_BASE_DELAY_MS, DEFAULT_MAX_DELAY_MS

__all__ = [
    # Core types
    "CacheEntry",
    "EntryState",
    "cache_key",
    # Store
    "CacheStore",
    "get_default_store",
    # Backoff
    "BackoffPolicy",
    "DEFAULT_BASE_DELAY_MS",
    "DEFAULT_MAX_DELAY_MS",
]
