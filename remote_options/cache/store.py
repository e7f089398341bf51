"""
Process-wide option cache store.
"""
import itertools
import logging
import threading
from concurrent.futures import Future
from typing import Any, Dict, List, Optional, Tuple

from .core import CacheEntry, EntryState

logger = logging.getLogger("remote_options.store")


class CacheStore:
    """
    Keyed store of option fetch results shared by every field using the same key.

    Entries live until explicitly invalidated or the store is cleared;
    there is no automatic eviction.

    The store also owns in-flight fetch bookkeeping, so every fetcher using
    the same store sees the same pending requests:
    - at most one in-flight Future per key
    - a per-key sequence number of the most recently issued fetch; only that
      fetch may commit its outcome

    All access goes through one re-entrant lock, exposed as `lock` so callers
    can make check-then-transition sequences atomic.
    """

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}
        self._in_flight: Dict[str, Tuple[int, Future]] = {}
        self._latest_issued: Dict[str, int] = {}
        self._sequence = itertools.count(1)
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def get(self, key: str) -> Optional[CacheEntry]:
        """Look up an entry without side effects."""
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, entry: CacheEntry) -> None:
        """Insert or replace the entry for a key."""
        with self._lock:
            self._entries[key] = entry

    def invalidate(self, key: str) -> bool:
        """
        Remove the entry for a key and forget its in-flight marker.

        A fetch already running is not cancelled. It may still commit unless
        a newer fetch for the key is issued first.

        Returns:
            True if an entry was found and removed
        """
        with self._lock:
            self._in_flight.pop(key, None)
            if key in self._entries:
                del self._entries[key]
                logger.info(f"Invalidated options cache: {key}")
                return True
            return False

    def clear(self) -> int:
        """
        Remove all entries.

        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._in_flight.clear()
            logger.info(f"Cleared {count} option cache entries")
            return count

    def in_flight(self, key: str) -> Optional[Future]:
        """Future of the fetch currently running for a key, if any."""
        with self._lock:
            in_flight = self._in_flight.get(key)
            return in_flight[1] if in_flight is not None else None

    def begin_fetch(self, key: str) -> Tuple[int, Future]:
        """
        Register a new fetch for a key.

        Returns:
            (sequence, future) of the fetch, which supersedes any earlier one
        """
        with self._lock:
            sequence = next(self._sequence)
            future: Future = Future()
            self._latest_issued[key] = sequence
            self._in_flight[key] = (sequence, future)
            return sequence, future

    def finish_fetch(self, key: str, sequence: int) -> bool:
        """
        Release the in-flight slot of a fetch.

        Returns:
            True if the fetch is still the most recently issued one for the key
            and may commit its outcome
        """
        with self._lock:
            in_flight = self._in_flight.get(key)
            if in_flight is not None and in_flight[0] == sequence:
                del self._in_flight[key]
            return self._latest_issued.get(key) == sequence

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries.keys())

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        """Get entry counts by state and in-flight fetches."""
        with self._lock:
            by_state = {state.value: 0 for state in EntryState}
            for entry in self._entries.values():
                by_state[entry.state.value] += 1
            return {
                "entries": len(self._entries),
                "by_state": by_state,
                "in_flight": len(self._in_flight),
                "in_flight_keys": list(self._in_flight.keys()),
            }


# Default store instance, for callers that do not inject their own
_default_store: Optional[CacheStore] = None


def get_default_store() -> CacheStore:
    """Get or create the shared default cache store."""
    global _default_store
    if _default_store is None:
        _default_store = CacheStore()
    return _default_store
