"""
Retry delay policy for failed option fetches.
"""
from tenacity import RetryCallState, wait_exponential

DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_MAX_DELAY_MS = 10000


class BackoffPolicy:
    """
    Exponential backoff between failed fetch attempts.

    Stateless: callers track failed attempts and the last attempt time.

        delay = min(base * 2^(failed_attempts - 1), max)   for failed_attempts >= 1
        delay = 0                                          for failed_attempts == 0
    """

    def __init__(
        self,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        max_delay_ms: int = DEFAULT_MAX_DELAY_MS,
    ):
        if base_delay_ms < 0 or max_delay_ms < 0:
            raise ValueError("Backoff delays must be non-negative")
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._wait = wait_exponential(multiplier=base_delay_ms, max=max_delay_ms)

    def delay_ms(self, failed_attempts: int) -> float:
        """
        Milliseconds to wait before the next attempt may be made.

        Args:
            failed_attempts: Consecutive failures recorded so far

        Raises:
            ValueError: If failed_attempts is negative
        """
        if failed_attempts < 0:
            raise ValueError(f"failed_attempts must be >= 0, got {failed_attempts}")
        if failed_attempts == 0:
            return 0
        state = RetryCallState(retry_object=None, fn=None, args=(), kwargs={})
        state.attempt_number = failed_attempts
        return self._wait(state)

    def __repr__(self) -> str:
        return f"BackoffPolicy(base_delay_ms={self.base_delay_ms}, max_delay_ms={self.max_delay_ms})"
