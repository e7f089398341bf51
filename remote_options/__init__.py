"""
Deferred loading of remote combo options with shared caching, TTL refresh and retry backoff.
"""
from .cache import BackoffPolicy, CacheEntry, CacheStore, EntryState, cache_key
from .errors import ConfigError, MalformedResponse, NetworkError, OptionFetchError
from .schemas import ComboInputSpec, RemoteOptionSpec, parse_combo_input, parse_remote_spec
from .fetcher import RemoteOptionFetcher
from .accessor import DeferredOptions
from .widgets import ComboOptions, ComboWidget, RemoteComboWidget, create_combo_widget

__all__ = [
    # Cache
    "BackoffPolicy",
    "CacheEntry",
    "CacheStore",
    "EntryState",
    "cache_key",
    # Errors
    "ConfigError",
    "MalformedResponse",
    "NetworkError",
    "OptionFetchError",
    # Schemas
    "ComboInputSpec",
    "RemoteOptionSpec",
    "parse_combo_input",
    "parse_remote_spec",
    # Loading
    "RemoteOptionFetcher",
    "DeferredOptions",
    # Widgets
    "ComboOptions",
    "ComboWidget",
    "RemoteComboWidget",
    "create_combo_widget",
]
