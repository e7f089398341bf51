"""
Deferred access to a combo field's option list.
"""
import logging
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, List, Optional

from remote_options.cache import CacheEntry, EntryState
from remote_options.fetcher import RemoteOptionFetcher
from remote_options.schemas import RemoteOptionSpec

logger = logging.getLogger("remote_options.accessor")


@dataclass
class ComboOptions:
    """Host-side option container of a combo field."""
    values: List[Any] = field(default_factory=list)
    placeholder: Optional[str] = None


class DeferredOptions:
    """
    ComboOptions stand-in whose option list loads on first read.

    Exposes the same fields as ComboOptions. `placeholder` reads and writes
    go straight to the wrapped container. Reading `values` starts a
    background fetch and returns the best-known value right away: cached
    data if there is any, else the spec's default. `values` is read-only
    here since the remote source owns it.

    Names reserved by the wrapper: option_spec, wrapped, last_fetch,
    cache_entry, fetch_state, failed_attempts, force_update.
    """

    def __init__(
        self,
        target: ComboOptions,
        spec: RemoteOptionSpec,
        fetcher: RemoteOptionFetcher,
    ):
        self._target = target
        self._spec = spec
        self._fetcher = fetcher
        self._last_fetch: Optional[Future] = None

    def __repr__(self) -> str:
        return f"DeferredOptions({self._spec.route!r}, placeholder={self.placeholder!r})"

    @property
    def values(self) -> List[Any]:
        # Value as of the read; a fetch finishing meanwhile shows up next read
        current = self._fetcher.peek(self._spec)
        self._last_fetch = self._fetcher.fetch_options(self._spec)
        return current

    @property
    def placeholder(self) -> Optional[str]:
        return self._target.placeholder

    @placeholder.setter
    def placeholder(self, value: Optional[str]) -> None:
        self._target.placeholder = value

    @property
    def option_spec(self) -> RemoteOptionSpec:
        return self._spec

    @property
    def wrapped(self) -> ComboOptions:
        return self._target

    @property
    def last_fetch(self) -> Optional[Future]:
        """Future of the fetch started by the most recent read, if any."""
        return self._last_fetch

    @property
    def cache_entry(self) -> Optional[CacheEntry]:
        return self._fetcher.get_entry(self._spec)

    @property
    def fetch_state(self) -> EntryState:
        entry = self.cache_entry
        return entry.state if entry is not None else EntryState.EMPTY

    @property
    def failed_attempts(self) -> int:
        entry = self.cache_entry
        return entry.failed_attempts if entry is not None else 0

    def force_update(self) -> bool:
        """
        Invalidate the cached options. The next read triggers a fresh fetch.

        Returns:
            True if a cache entry was removed
        """
        logger.info(f"Force update requested for {self._spec.cache_key}")
        return self._fetcher.invalidate(self._spec)
