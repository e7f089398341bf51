"""
Core cache data structures.
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

QueryParams = Mapping[str, Union[str, Sequence[str]]]


class EntryState(Enum):
    """Lifecycle states of a cached option list."""
    EMPTY = "empty"       # Created, never fetched
    PENDING = "pending"   # Fetch in flight
    READY = "ready"       # Last fetch succeeded
    FAILED = "failed"     # Last fetch failed, prior data kept


def cache_key(route: str, query_params: Optional[QueryParams] = None) -> str:
    """
    Build a deterministic cache key from a route and its query parameters.

    Parameter order does not matter; list values keep their order.
    """
    params: Dict[str, Any] = {}
    for name, value in (query_params or {}).items():
        if isinstance(value, str):
            params[name] = value
        else:
            params[name] = list(value)
    return f"{route}?{json.dumps(params, sort_keys=True, separators=(',', ':'))}"


@dataclass
class CacheEntry:
    """
    Represents a cached option list with fetch bookkeeping.

    Times are milliseconds on the fetcher's clock.
    """
    data: Optional[List[Any]] = None
    fetched_at: float = 0.0
    ttl_ms: int = 0                # 0 = fetch once, never auto-expire
    failed_attempts: int = 0
    state: EntryState = EntryState.EMPTY
    last_attempt_at: Optional[float] = None
    last_error: Optional[str] = None

    def age_ms(self, now_ms: float) -> float:
        """Milliseconds since data was fetched."""
        return now_ms - self.fetched_at

    def is_fresh(self, now_ms: float) -> bool:
        """Check if cached data can be served without network access."""
        if self.state is not EntryState.READY:
            return False
        if self.ttl_ms == 0:
            return self.data is not None
        return self.age_ms(now_ms) < self.ttl_ms

    def backoff_elapsed(self, now_ms: float, delay_ms: float) -> bool:
        """Check if enough time passed since the last attempt to retry."""
        if self.last_attempt_at is None:
            return True
        return (now_ms - self.last_attempt_at) >= delay_ms

    def to_dict(self) -> dict:
        """Convert to dictionary for diagnostics."""
        return {
            "state": self.state.value,
            "items": len(self.data) if self.data is not None else None,
            "fetchedAt": self.fetched_at,
            "ttlMs": self.ttl_ms,
            "failedAttempts": self.failed_attempts,
            "lastError": self.last_error,
        }
