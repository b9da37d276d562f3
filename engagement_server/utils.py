"""Pure helpers and small async primitives shared by services and routes."""

import asyncio
import contextlib
import functools
import inspect
import logging
from typing import Awaitable, Dict, Hashable, TypeVar

from .errors import EngagementError, UpstreamUnavailable

T = TypeVar("T")

# Page size limits for history and favorites listings
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


async def guarded(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """
    Await a store/catalog call with a bounded timeout.

    Timeouts and back-end errors are raised as UpstreamUnavailable; domain
    errors (EngagementError subclasses) pass through unchanged.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise UpstreamUnavailable(f"{operation} timed out after {timeout}s", operation) from e
    except EngagementError:
        raise
    except Exception as e:
        raise UpstreamUnavailable(f"{operation} failed: {e}", operation) from e


class KeyedLocks:
    """One asyncio.Lock per key, dropped once nothing holds or waits on it."""

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._waiters: Dict[Hashable, int] = {}

    @contextlib.asynccontextmanager
    async def __call__(self, *key: Hashable):
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class BoundedCalls:
    """
    Proxy that runs every coroutine method of the wrapped store/catalog through
    guarded(), so each call has a timeout and raises UpstreamUnavailable.
    """

    def __init__(self, target, timeout: float, name: str = ""):
        self._target = target
        self._timeout = timeout
        self._name = name or type(target).__name__

    @property
    def target(self):
        return self._target

    def __getattr__(self, attr: str):
        value = getattr(self._target, attr)
        if not inspect.iscoroutinefunction(value):
            return value

        @functools.wraps(value)
        async def bounded(*args, **kwargs):
            return await guarded(value(*args, **kwargs), self._timeout, f"{self._name}.{attr}")

        return bounded
