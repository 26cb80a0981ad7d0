"""Tests for the token bucket and rate-limited transport."""

import asyncio

import httpx
import pytest

from aliyun_exporter.adapters.transport import RateLimitedTransport, TokenBucket


class FakeClock:
    """Manual clock whose sleep advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestTokenBucket:
    """Tests for TokenBucket."""

    @pytest.mark.transport
    @pytest.mark.parametrize("rate", [0, -1])
    def test_rejects_non_positive_rate(self, rate: float) -> None:
        with pytest.raises(ValueError):
            TokenBucket(rate)

    @pytest.mark.transport
    def test_capacity_defaults_to_one_second_of_tokens(self) -> None:
        assert TokenBucket(5).capacity == 5.0
        assert TokenBucket(0.5).capacity == 1.0

    @pytest.mark.transport
    async def test_burst_is_admitted_without_waiting(self) -> None:
        clock = FakeClock()
        bucket = TokenBucket(3, clock=clock, sleep=clock.sleep)
        for _ in range(3):
            await bucket.acquire()
        assert clock.sleeps == []

    @pytest.mark.transport
    async def test_exhausted_budget_blocks_instead_of_failing(self) -> None:
        """Once the burst is spent, each further call waits 1/rate seconds."""
        clock = FakeClock()
        bucket = TokenBucket(2, clock=clock, sleep=clock.sleep)
        for _ in range(4):
            await bucket.acquire()
        assert clock.sleeps == [pytest.approx(0.5), pytest.approx(0.5)]
        assert clock.now == pytest.approx(1.0)

    @pytest.mark.transport
    async def test_tokens_refill_over_time(self) -> None:
        clock = FakeClock()
        bucket = TokenBucket(1, clock=clock, sleep=clock.sleep)
        await bucket.acquire()
        assert bucket.tokens == pytest.approx(0.0)
        clock.now += 10
        assert bucket.tokens == pytest.approx(1.0)

    @pytest.mark.transport
    async def test_concurrent_waiters_are_admitted_in_arrival_order(self) -> None:
        clock = FakeClock()
        bucket = TokenBucket(1, clock=clock, sleep=clock.sleep)
        order: list[int] = []

        async def worker(n: int) -> None:
            await bucket.acquire()
            order.append(n)

        await asyncio.gather(*(worker(n) for n in range(5)))
        assert order == [0, 1, 2, 3, 4]
        assert clock.now == pytest.approx(4.0)


class TestRateLimitedTransport:
    """Tests for RateLimitedTransport."""

    @pytest.mark.transport
    async def test_forwards_requests_to_wrapped_transport(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, text="ok")

        transport = RateLimitedTransport(rate=100, transport=httpx.MockTransport(handler))
        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get("https://metrics.cn-hangzhou.aliyuncs.com/")

        assert response.text == "ok"
        assert seen == ["https://metrics.cn-hangzhou.aliyuncs.com/"]

    @pytest.mark.transport
    async def test_every_request_takes_a_token(self) -> None:
        clock = FakeClock()
        limiter = TokenBucket(1, clock=clock, sleep=clock.sleep)
        transport = RateLimitedTransport(
            transport=httpx.MockTransport(lambda r: httpx.Response(204)),
            limiter=limiter,
        )
        async with httpx.AsyncClient(transport=transport) as client:
            await asyncio.gather(*(client.get("http://test/") for _ in range(3)))

        assert len(clock.sleeps) == 2
        assert clock.now == pytest.approx(2.0)

    @pytest.mark.transport
    async def test_shared_limiter_is_exposed(self) -> None:
        limiter = TokenBucket(4)
        transport = RateLimitedTransport(limiter=limiter)
        assert transport.limiter is limiter
        await transport.aclose()
