"""
Remote option fetching with per-key coalescing, TTL refresh and failure backoff.

Every call to fetch_options returns immediately with a Future. The Future is
either already resolved (cache hit, backoff window) or shared with the single
in-flight request for that cache key. It always resolves to a value and never
to an exception: failures are recorded on the cache entry and the previous
data (possibly None) is returned instead.
"""
import logging
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from remote_options.cache import (
    BackoffPolicy,
    CacheEntry,
    CacheStore,
    EntryState,
    get_default_store,
)
from remote_options.errors import MalformedResponse, NetworkError
from remote_options.schemas import RemoteOptionSpec

logger = logging.getLogger("remote_options.fetcher")

DEFAULT_TIMEOUT_MS = 10000


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


def _resolved(value: Any) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


class RemoteOptionFetcher:
    """
    Loads combo option lists from remote routes into a shared CacheStore.

    Pattern:
    - First read of an uncached key issues one background request
    - Reads while that request is pending share its Future, also across
      fetchers using the same store
    - Fresh READY entries are served without network access
    - FAILED entries are retried only after the backoff delay has passed
    - Only the most recently issued request for a key may commit its result

    Usage:
        fetcher = RemoteOptionFetcher(store=CacheStore(), base_url="http://127.0.0.1:8188")
        future = fetcher.fetch_options(spec)
        options = fetcher.peek(spec)       # current best-known value, never blocks
    """

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        backoff: Optional[BackoffPolicy] = None,
        session: Any = None,
        base_url: str = "",
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_workers: int = 4,
        executor: Optional[Executor] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            store: Cache store shared by all fields (the process-wide default if omitted)
            backoff: Retry delay policy after failures
            session: requests-compatible object with get(url, params=, timeout=)
            base_url: Prefix for relative routes
            timeout_ms: Default request timeout when the spec sets none
            max_workers: Background pool size (ignored when executor is given)
            executor: Executor running the requests
            clock: Callable returning the current time in milliseconds
        """
        self._store = store if store is not None else get_default_store()
        self._backoff = backoff or BackoffPolicy()
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()
        self._base_url = base_url.rstrip("/")
        self._timeout_ms = timeout_ms
        self._clock = clock or _monotonic_ms

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="remote-options",
        )

        # Stats tracking, updated under the store lock
        self._stats = {
            "hits": 0,
            "misses": 0,
            "coalesced": 0,
            "backoff_skips": 0,
            "failures": 0,
            "discarded": 0,
        }

    @classmethod
    def from_settings(cls, app_settings=None, **kwargs) -> "RemoteOptionFetcher":
        """Build a fetcher from pydantic settings (config.settings by default)."""
        if app_settings is None:
            from config.settings import settings as app_settings

        kwargs.setdefault("base_url", app_settings.base_url)
        kwargs.setdefault("timeout_ms", app_settings.request_timeout_ms)
        kwargs.setdefault("max_workers", app_settings.max_fetch_workers)
        kwargs.setdefault(
            "backoff",
            BackoffPolicy(
                base_delay_ms=app_settings.backoff_base_delay_ms,
                max_delay_ms=app_settings.backoff_max_delay_ms,
            ),
        )
        return cls(**kwargs)

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def backoff(self) -> BackoffPolicy:
        return self._backoff

    def fetch_options(self, spec: RemoteOptionSpec) -> Future:
        """
        Resolve the option list for a remote spec without blocking.

        Returns:
            Future resolving to the option list (or prior data / None on failure)
        """
        key = spec.cache_key
        now = self._clock()

        with self._store.lock:
            entry = self._store.get(key)
            if entry is None:
                entry = CacheEntry(ttl_ms=spec.refresh)
                self._store.put(key, entry)

            in_flight = self._store.in_flight(key)
            if entry.state is EntryState.PENDING and in_flight is not None:
                self._stats["coalesced"] += 1
                logger.debug(f"Joining in-flight options fetch for {key}")
                return in_flight

            if entry.is_fresh(now):
                self._stats["hits"] += 1
                logger.debug(f"OPTIONS HIT: {key} [age={entry.age_ms(now):.0f}ms]")
                return _resolved(entry.data)

            if entry.state is EntryState.FAILED and not self._may_retry(entry, spec, now):
                self._stats["backoff_skips"] += 1
                logger.debug(
                    f"Backing off {key} after {entry.failed_attempts} failed attempt(s)"
                )
                return _resolved(entry.data)

            sequence, future = self._store.begin_fetch(key)
            self._store.put(
                key,
                replace(entry, state=EntryState.PENDING, last_attempt_at=now),
            )
            self._stats["misses"] += 1
            prior = entry.data

        logger.info(f"OPTIONS MISS: {key} [state={entry.state.value}]")
        try:
            self._executor.submit(self._run_fetch, spec, key, sequence, future, prior)
        except RuntimeError as e:
            # Executor shut down: record a failed attempt instead of leaving the key PENDING
            logger.warning(f"Could not schedule options fetch for {key}: {e}")
            future.set_result(self._commit_failure(spec, key, sequence, e, prior))
        return future

    def _may_retry(self, entry: CacheEntry, spec: RemoteOptionSpec, now: float) -> bool:
        """
        Check the retry cap and backoff window for a FAILED entry.

        max_retries counts retries after the initial attempt, so automatic
        fetching stops once failed_attempts exceeds it.
        """
        if spec.max_retries is not None and entry.failed_attempts > spec.max_retries:
            return False
        delay = self._backoff.delay_ms(entry.failed_attempts)
        return entry.backoff_elapsed(now, delay)

    def _run_fetch(
        self,
        spec: RemoteOptionSpec,
        key: str,
        sequence: int,
        future: Future,
        prior: Optional[List[Any]],
    ) -> None:
        """Perform one request and publish its outcome."""
        try:
            data = self._request(spec)
        except Exception as e:
            logger.warning(f"Options fetch failed for {key}: {e}")
            result = self._commit_failure(spec, key, sequence, e, prior)
        else:
            result = self._commit_success(spec, key, sequence, data)
        future.set_result(result)

    def _request(self, spec: RemoteOptionSpec) -> List[Any]:
        """
        Issue the GET request and extract the option list.

        Raises:
            NetworkError: On connection errors, timeouts or non-2xx status
            MalformedResponse: If the body lacks a list at response_key
        """
        timeout_ms = spec.timeout or self._timeout_ms
        try:
            response = self._session.get(
                self._url_for(spec.route),
                params=spec.query_params,
                timeout=timeout_ms / 1000,
            )
        except requests.RequestException as e:
            raise NetworkError(f"Request to {spec.route} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise NetworkError(f"Request to {spec.route} returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponse(f"Response from {spec.route} is not JSON") from e

        return extract_options(payload, spec.response_key)

    def _url_for(self, route: str) -> str:
        if route.startswith(("http://", "https://")) or not self._base_url:
            return route
        return f"{self._base_url}/{route.lstrip('/')}"

    def _commit_success(
        self,
        spec: RemoteOptionSpec,
        key: str,
        sequence: int,
        data: List[Any],
    ) -> List[Any]:
        with self._store.lock:
            if not self._claim(key, sequence):
                return data
            entry = self._store.get(key) or CacheEntry()
            self._store.put(
                key,
                replace(
                    entry,
                    data=data,
                    fetched_at=self._clock(),
                    ttl_ms=spec.refresh,
                    failed_attempts=0,
                    state=EntryState.READY,
                    last_error=None,
                ),
            )
        logger.info(f"Options loaded for {key} ({len(data)} items)")
        return data

    def _commit_failure(
        self,
        spec: RemoteOptionSpec,
        key: str,
        sequence: int,
        error: Exception,
        prior: Optional[List[Any]],
    ) -> Optional[List[Any]]:
        with self._store.lock:
            self._stats["failures"] += 1
            if not self._claim(key, sequence):
                return prior
            entry = self._store.get(key) or CacheEntry(ttl_ms=spec.refresh)
            updated = replace(
                entry,
                failed_attempts=entry.failed_attempts + 1,
                state=EntryState.FAILED,
                last_attempt_at=self._clock(),
                last_error=str(error),
            )
            self._store.put(key, updated)
        return updated.data

    def _claim(self, key: str, sequence: int) -> bool:
        """
        Release the in-flight slot and report whether this request may commit.

        Must be called with the store lock held.
        """
        if self._store.finish_fetch(key, sequence):
            return True
        self._stats["discarded"] += 1
        logger.debug(f"Discarding superseded options fetch for {key}")
        return False

    def peek(self, spec: RemoteOptionSpec) -> List[Any]:
        """Current best-known options: cached data, else the spec default."""
        entry = self._store.get(spec.cache_key)
        if entry is not None and entry.data is not None:
            return entry.data
        return spec.default_options()

    def get_entry(self, spec_or_key: Union[RemoteOptionSpec, str]) -> Optional[CacheEntry]:
        return self._store.get(_key_of(spec_or_key))

    def invalidate(self, spec_or_key: Union[RemoteOptionSpec, str]) -> bool:
        """
        Drop the cache entry so the next read issues a fresh request.

        A request already in flight is not cancelled; it still commits unless
        a newer request for the same key has been issued.

        Returns:
            True if an entry was found and removed
        """
        return self._store.invalidate(_key_of(spec_or_key))

    def get_stats(self) -> Dict[str, Any]:
        """Get fetcher statistics."""
        with self._store.lock:
            store_stats = self._store.get_stats()
            return {
                **self._stats,
                "in_flight": store_stats["in_flight"],
                "in_flight_keys": store_stats["in_flight_keys"],
                "store": store_stats,
            }

    def shutdown(self, wait: bool = True) -> None:
        """Stop the background pool and close the HTTP session if this fetcher created them."""
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "RemoteOptionFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()


def extract_options(payload: Any, response_key: str) -> List[Any]:
    """
    Pull the option list out of a decoded JSON response.

    Raises:
        MalformedResponse: If the body is not an object or the list is missing
    """
    if not isinstance(payload, dict) or response_key not in payload:
        raise MalformedResponse(f"Response has no '{response_key}' field")

    options = payload[response_key]
    if not isinstance(options, list):
        raise MalformedResponse(
            f"Expected a list of options, got {type(options).__name__}"
        )
    return options


def _key_of(spec_or_key: Union[RemoteOptionSpec, str]) -> str:
    if isinstance(spec_or_key, str):
        return spec_or_key
    return spec_or_key.cache_key


__all__ = [
    "RemoteOptionFetcher",
    "extract_options",
]
