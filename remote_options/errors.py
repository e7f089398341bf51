"""Error types for remote option loading."""


class ConfigError(ValueError):
    """Invalid remote option configuration. Raised at parse time, never retried."""


class OptionFetchError(Exception):
    """A fetch attempt failed. Recorded on the cache entry, not raised to readers."""


class NetworkError(OptionFetchError):
    """Connection failure, timeout or non-success HTTP status."""


class MalformedResponse(OptionFetchError):
    """Response body is not JSON or lacks the expected option list."""
