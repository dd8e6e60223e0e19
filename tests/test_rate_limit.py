"""
Tests for the sliding-window rate limiters and middleware.
"""

import asyncio
from collections import deque
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from menu_api.core import rate_limit
from menu_api.core.exceptions import TooManyRequestsError
from menu_api.core.rate_limit import MemoryRateLimiter, RateLimitMiddleware, RedisRateLimiter


class TestMemoryRateLimiter:

    @pytest.mark.asyncio
    async def test_allows_up_to_limit_then_rejects(self):
        limiter = MemoryRateLimiter(max_requests=3, window_seconds=60)

        results = [await limiter.allow("10.0.0.1", now=1000 + i) for i in range(4)]

        assert results == [True, True, True, False]

    @pytest.mark.asyncio
    async def test_window_slides(self):
        limiter = MemoryRateLimiter(max_requests=2, window_seconds=60)
        assert await limiter.allow("c", now=0)
        assert await limiter.allow("c", now=30)
        assert not await limiter.allow("c", now=59)

        # The request at t=0 leaves the window at t=60
        assert await limiter.allow("c", now=60)
        assert not await limiter.allow("c", now=61)

    @pytest.mark.asyncio
    async def test_rejected_requests_are_not_counted(self):
        limiter = MemoryRateLimiter(max_requests=1, window_seconds=10)
        assert await limiter.allow("c", now=0)
        for t in range(1, 10):
            assert not await limiter.allow("c", now=t)

        assert await limiter.allow("c", now=10)

    @pytest.mark.asyncio
    async def test_clients_are_independent(self):
        limiter = MemoryRateLimiter(max_requests=1, window_seconds=60)
        assert await limiter.allow("a", now=0)
        assert await limiter.allow("b", now=0)
        assert not await limiter.allow("a", now=1)

    @pytest.mark.asyncio
    async def test_idle_clients_are_swept(self):
        limiter = MemoryRateLimiter(max_requests=5, window_seconds=60, sweep_interval=60)
        limiter._last_sweep = 0
        for i in range(20):
            await limiter.allow(f"client-{i}", now=1)
        assert limiter.tracked_clients == 20

        # Next request after the sweep interval evicts everyone idle
        await limiter.allow("late", now=200)

        assert limiter.tracked_clients == 1

    def test_sweep_keeps_active_clients(self):
        limiter = MemoryRateLimiter(max_requests=5, window_seconds=60)
        limiter._requests = {"idle": deque([10.0]), "active": deque([10.0, 95.0])}

        assert limiter.sweep(now=100) == 1
        assert limiter.tracked_clients == 1

    @pytest.mark.asyncio
    async def test_hit_raises_with_retry_after(self):
        limiter = MemoryRateLimiter(max_requests=1, window_seconds=900)
        await limiter.hit("c", now=0)

        with pytest.raises(TooManyRequestsError) as exc_info:
            await limiter.hit("c", now=1)

        assert exc_info.value.retry_after == 900
        assert exc_info.value.headers == {"Retry-After": "900"}
        assert exc_info.value.to_dict()["retryAfter"] == 900

    def test_rejects_bad_configuration(self):
        with pytest.raises(ValueError):
            MemoryRateLimiter(max_requests=0)
        with pytest.raises(ValueError):
            MemoryRateLimiter(window_seconds=0)


class FakeScriptedRedis:
    """
    Stand-in for redis.asyncio.Redis that runs the sliding-window script
    against in-process sorted sets. Each script call completes without
    interleaving, the way Redis executes scripts.
    """

    def __init__(self, error: Exception = None):
        self.error = error
        self.sets: dict[str, dict[str, float]] = {}
        self.expiry: dict[str, int] = {}
        self.calls = []
        self.aclose = AsyncMock()

    def register_script(self, script: str):
        assert "ZREMRANGEBYSCORE" in script and "ZADD" in script

        async def run(keys, args):
            self.calls.append((keys, args))
            await asyncio.sleep(0)
            if self.error:
                raise self.error

            key = keys[0]
            now, window, limit, member, ttl = args
            entries = self.sets.setdefault(key, {})
            for stale in [m for m, score in entries.items() if score <= now - window]:
                del entries[stale]
            if len(entries) >= limit:
                return 0
            entries[member] = now
            self.expiry[key] = ttl
            return 1

        return run


class TestRedisRateLimiter:

    @pytest.mark.asyncio
    async def test_records_request_under_limit(self):
        client = FakeScriptedRedis()
        limiter = RedisRateLimiter(client, max_requests=3, window_seconds=60)

        assert await limiter.allow("10.0.0.1", now=1000.0)

        keys, args = client.calls[0]
        assert keys == ["rate_limit:10.0.0.1"]
        assert args[:3] == [1000.0, 60, 3]
        assert len(client.sets["rate_limit:10.0.0.1"]) == 1
        assert client.expiry["rate_limit:10.0.0.1"] == 60

    @pytest.mark.asyncio
    async def test_rejects_at_limit_without_recording(self):
        client = FakeScriptedRedis()
        limiter = RedisRateLimiter(client, max_requests=3, window_seconds=60)
        for i in range(3):
            assert await limiter.allow("10.0.0.1", now=1000.0 + i)

        assert not await limiter.allow("10.0.0.1", now=1010.0)
        assert len(client.sets["rate_limit:10.0.0.1"]) == 3

    @pytest.mark.asyncio
    async def test_window_slides(self):
        client = FakeScriptedRedis()
        limiter = RedisRateLimiter(client, max_requests=1, window_seconds=60)

        assert await limiter.allow("c", now=0.0)
        assert not await limiter.allow("c", now=59.0)
        assert await limiter.allow("c", now=60.0)

    @pytest.mark.asyncio
    async def test_concurrent_requests_cannot_exceed_limit(self):
        client = FakeScriptedRedis()
        limiter = RedisRateLimiter(client, max_requests=5, window_seconds=60)

        results = await asyncio.gather(*(limiter.allow("1.2.3.4", now=1000.0) for _ in range(20)))

        assert results.count(True) == 5
        assert len(client.calls) == 20
        assert len(client.sets["rate_limit:1.2.3.4"]) == 5

    @pytest.mark.asyncio
    async def test_fails_open_when_redis_is_down(self):
        client = FakeScriptedRedis(error=RedisConnectionError("connection refused"))
        limiter = RedisRateLimiter(client, max_requests=1, window_seconds=60)

        assert await limiter.allow("10.0.0.1")
        assert await limiter.allow("10.0.0.1")

    @pytest.mark.asyncio
    async def test_close_releases_client(self):
        client = FakeScriptedRedis()
        limiter = RedisRateLimiter(client)

        await limiter.close()

        client.aclose.assert_awaited_once()


class TestRateLimitMiddleware:

    def test_returns_429_envelope(self, monkeypatch):
        limiter = MemoryRateLimiter(max_requests=2, window_seconds=900)
        monkeypatch.setattr(rate_limit, "get_rate_limiter", lambda: limiter)

        app = FastAPI()
        app.add_middleware(RateLimitMiddleware)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        client = TestClient(app)
        assert client.get("/ping").status_code == 200
        assert client.get("/ping").status_code == 200

        response = client.get("/ping")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "900"
        assert response.json() == {
            "success": False,
            "message": "Too many requests. Please try again later.",
            "retryAfter": 900,
        }
