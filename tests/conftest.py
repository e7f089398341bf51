"""
Shared fixtures: controllable clock, fake HTTP session and a fetcher wired to both.
"""
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from remote_options.cache import BackoffPolicy, CacheStore
from remote_options.fetcher import RemoteOptionFetcher
from remote_options.schemas import RemoteOptionSpec


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, invalid_json: bool = False):
        self._payload = payload
        self.status_code = status_code
        self._invalid_json = invalid_json

    def json(self) -> Any:
        if self._invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """
    requests-compatible session returning queued responses in call order.

    Queued exceptions are raised. Once the queue is empty `default` is returned.
    Setting `gate` to an Event holds every request until it is set.
    """

    def __init__(self, default: Optional[FakeResponse] = None):
        self.calls: List[Dict[str, Any]] = []
        self.default = default or FakeResponse({"files": ["a.safetensors", "b.safetensors"]})
        self.gate: Optional[threading.Event] = None
        self._queue: List[Union[FakeResponse, Exception]] = []
        self._lock = threading.Lock()

    def queue(self, *items: Union[FakeResponse, Exception]) -> None:
        with self._lock:
            self._queue.extend(items)

    def get(self, url: str, params=None, timeout=None):
        with self._lock:
            self.calls.append({"url": url, "params": params, "timeout": timeout})
            item = self._queue.pop(0) if self._queue else self.default
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if isinstance(item, Exception):
            raise item
        return item


def wait_until(condition: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll until condition() is true."""
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("Condition not met before timeout")
        time.sleep(0.005)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    fake = FakeSession()
    yield fake
    # Never leave workers blocked on a gate
    if fake.gate is not None:
        fake.gate.set()


@pytest.fixture
def store():
    return CacheStore()


@pytest.fixture
def fetcher(store, session, clock):
    instance = RemoteOptionFetcher(
        store=store,
        backoff=BackoffPolicy(),
        session=session,
        base_url="http://options.test",
        clock=clock,
    )
    yield instance
    if session.gate is not None:
        session.gate.set()
    instance.shutdown(wait=True)


@pytest.fixture
def checkpoints_spec():
    return RemoteOptionSpec(
        route="/internal/files",
        query_params={"folder_path": "checkpoints"},
        response_key="files",
        refresh=0,
    )


@pytest.fixture
def refreshing_spec():
    return RemoteOptionSpec(
        route="/internal/files",
        query_params={"folder_path": "loras"},
        response_key="files",
        refresh=1000,
    )
