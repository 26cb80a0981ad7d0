"""Rate-limited httpx transport.

Cloud Monitor enforces per-account API quotas. Every client for an account
shares one RateLimitedTransport, so all of its in-flight calls draw from the
same request budget. When the budget is exhausted a request waits for
capacity; it is never rejected.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)


class TokenBucket:
    """Asyncio token bucket with first-come-first-served admission.

    Waiters queue on an asyncio.Lock, which wakes them in FIFO order, so no
    caller is starved. There is no limit on the number of waiters.

    Args:
        rate: Tokens added per second. Must be positive.
        burst: Bucket capacity. Defaults to one second worth of tokens
            (at least 1).
        clock: Monotonic clock, injectable for tests.
        sleep: Async sleep, injectable for tests.
    """

    def __init__(
        self,
        rate: float,
        burst: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        self.rate = float(rate)
        self.capacity = float(burst) if burst is not None else max(1.0, self.rate)
        if self.capacity < 1:
            raise ValueError(f"burst must be at least 1, got {burst}")
        self._clock = clock
        self._sleep = sleep
        self._tokens = self.capacity
        self._updated = clock()
        self._lock: asyncio.Lock | None = None

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the admission lock (lazy to avoid event loop issues)."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._updated = now

    @property
    def tokens(self) -> float:
        """Tokens currently available (after refilling)."""
        self._refill()
        return self._tokens

    async def acquire(self) -> None:
        """Take one token, waiting until one is available."""
        async with self._get_lock():
            self._refill()
            while self._tokens < 1.0:
                wait = (1.0 - self._tokens) / self.rate
                logger.debug("rate budget exhausted, waiting %.3fs", wait)
                await self._sleep(wait)
                self._refill()
            self._tokens -= 1.0


class RateLimitedTransport(httpx.AsyncBaseTransport):
    """Transport decorator that admits each request through a TokenBucket.

    Example:
        ```python
        transport = RateLimitedTransport(rate=10)
        async with httpx.AsyncClient(transport=transport) as client:
            await client.get("https://metrics.cn-hangzhou.aliyuncs.com/")
        ```

    Args:
        rate: Requests per second. Ignored when ``limiter`` is given.
        transport: Wrapped transport (default: httpx.AsyncHTTPTransport()).
        limiter: Bucket to share with other transports, if any.
    """

    def __init__(
        self,
        rate: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        limiter: TokenBucket | None = None,
    ) -> None:
        self.limiter = limiter or TokenBucket(rate)
        self._transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await self.limiter.acquire()
        return await self._transport.handle_async_request(request)

    async def aclose(self) -> None:
        await self._transport.aclose()
