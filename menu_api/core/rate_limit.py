"""
Sliding-window rate limiting.

Each client (keyed by network address) may make max_requests requests in
any window_seconds span. A rejected request is not counted.

Two backends share one interface:
    - MemoryRateLimiter: process-local, evicts idle clients periodically
    - RedisRateLimiter: sorted set per client in Redis, shared by every
      instance of the service
"""

import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from collections import deque
from functools import lru_cache
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from menu_api.core.config import RateLimitBackend, get_settings
from menu_api.core.exceptions import TooManyRequestsError

logger = logging.getLogger(__name__)


class BaseRateLimiter(ABC):
    """Contract shared by rate limiter backends."""

    def __init__(self, max_requests: int = 100, window_seconds: float = 15 * 60):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    @property
    def retry_after(self) -> int:
        """Retry hint in whole seconds (the window length)."""
        return max(1, int(round(self.window_seconds)))

    @abstractmethod
    async def allow(self, client_id: str, now: Optional[float] = None) -> bool:
        """Record a request and report whether it is within the limit."""

    async def hit(self, client_id: str, now: Optional[float] = None) -> None:
        """
        Like allow() but raises on rejection.

        Raises:
            TooManyRequestsError: The client is over its limit
        """
        if not await self.allow(client_id, now):
            raise TooManyRequestsError(retry_after=self.retry_after)

    async def close(self) -> None:
        """Release backend resources."""


class MemoryRateLimiter(BaseRateLimiter):
    """
    Process-local sliding window.

    Timestamps live in one deque per client. Every sweep_interval seconds
    clients with no request inside the current window are dropped, so the
    map only holds recently active clients.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 15 * 60,
        sweep_interval: Optional[float] = None,
    ):
        super().__init__(max_requests, window_seconds)
        self.sweep_interval = sweep_interval if sweep_interval is not None else window_seconds
        self._requests: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = time.time()

    @property
    def tracked_clients(self) -> int:
        """Number of clients currently holding state."""
        return len(self._requests)

    async def allow(self, client_id: str, now: Optional[float] = None) -> bool:
        now = now if now is not None else time.time()
        window_start = now - self.window_seconds

        with self._lock:
            if now - self._last_sweep >= self.sweep_interval:
                self._sweep(window_start)
                self._last_sweep = now

            requests = self._requests.get(client_id)
            if requests is None:
                requests = self._requests[client_id] = deque()

            while requests and requests[0] <= window_start:
                requests.popleft()

            if len(requests) >= self.max_requests:
                return False

            requests.append(now)
            return True

    def sweep(self, now: Optional[float] = None) -> int:
        """Evict idle clients now; returns how many were dropped."""
        now = now if now is not None else time.time()
        with self._lock:
            dropped = self._sweep(now - self.window_seconds)
            self._last_sweep = now
        return dropped

    def _sweep(self, window_start: float) -> int:
        idle = [
            client for client, requests in self._requests.items()
            if not requests or requests[-1] <= window_start
        ]
        for client in idle:
            del self._requests[client]
        if idle:
            logger.debug(f"Rate limiter evicted {len(idle)} idle clients")
        return len(idle)

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()


class RedisRateLimiter(BaseRateLimiter):
    """
    Sliding window over a Redis sorted set per client.

    Members are unique request ids scored by timestamp; the key expires one
    window after the last accepted request. Trim, count and record run as a
    single server-side script so concurrent callers cannot overshoot.
    """

    KEY_PREFIX = "rate_limit"

    # KEYS[1] = client key
    # ARGV = now, window_seconds, max_requests, member, ttl
    SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
redis.call('ZREMRANGEBYSCORE', key, 0, now - tonumber(ARGV[2]))
if redis.call('ZCARD', key) >= tonumber(ARGV[3]) then
    return 0
end
redis.call('ZADD', key, now, ARGV[4])
redis.call('EXPIRE', key, tonumber(ARGV[5]))
return 1
"""

    def __init__(
        self,
        redis_client: redis.Redis,
        max_requests: int = 100,
        window_seconds: float = 15 * 60,
    ):
        super().__init__(max_requests, window_seconds)
        self.redis_client = redis_client
        self._sliding_window = redis_client.register_script(self.SLIDING_WINDOW_SCRIPT)

    def _key(self, client_id: str) -> str:
        return f"{self.KEY_PREFIX}:{client_id}"

    async def allow(self, client_id: str, now: Optional[float] = None) -> bool:
        now = now if now is not None else time.time()
        member = f"{now}:{uuid.uuid4().hex[:8]}"

        try:
            allowed = await self._sliding_window(
                keys=[self._key(client_id)],
                args=[now, self.window_seconds, self.max_requests, member, self.retry_after],
            )
        except RedisError as e:
            # Fail open while Redis is unreachable
            logger.error(f"Redis rate limiting error: {e}")
            return True
        return bool(int(allowed))

    async def close(self) -> None:
        await self.redis_client.aclose()


@lru_cache()
def get_rate_limiter() -> BaseRateLimiter:
    """
    Rate limiter selected by RATE_LIMIT_BACKEND (cached).
    """
    settings = get_settings()

    if settings.rate_limit_backend == RateLimitBackend.REDIS:
        logger.info("Rate limiter: Using RedisRateLimiter")
        return RedisRateLimiter(
            redis.from_url(settings.redis_url, decode_responses=True),
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )

    logger.info("Rate limiter: Using MemoryRateLimiter")
    return MemoryRateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


def reset_rate_limiter() -> None:
    """Clear the cached rate limiter instance."""
    get_rate_limiter.cache_clear()


def client_identifier(request: Request) -> str:
    """Network address of the caller."""
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject callers over their request budget with 429."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        limiter = get_rate_limiter()
        client = client_identifier(request)

        try:
            await limiter.hit(client)
        except TooManyRequestsError as e:
            logger.warning(f"Rate limit exceeded for {client} on {request.method} {request.url.path}")
            return JSONResponse(status_code=e.status_code, content=e.to_dict(), headers=e.headers)

        return await call_next(request)
