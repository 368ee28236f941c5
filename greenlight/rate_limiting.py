"""Per-client token-bucket rate limiting for Greenlight API endpoints."""

import math
import threading
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from .constants import (
    LIMITER_BURST,
    LIMITER_IDLE_SECONDS,
    LIMITER_RPS,
    LIMITER_SWEEP_INTERVAL,
)
from .logging_config import get_logger
from .metrics import record_rate_limited
from .request_utils import get_client_ip, is_api_request

logger = get_logger(__name__)

Clock = Callable[[], float]


class TokenBucket:
    """Holds up to ``burst`` tokens, refilled at ``rate`` tokens per second.

    Not thread-safe on its own; RateLimiter serialises access.
    """

    def __init__(self, rate: float, burst: int, now: float):
        self.rate = rate
        self.burst = burst
        self.tokens = float(burst)
        self.last_refill = now
        self.last_seen = now

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(float(self.burst), self.tokens + elapsed * self.rate)
        self.last_refill = now

    def allow(self, now: float) -> bool:
        self._refill(now)
        self.last_seen = now
        if self.tokens >= 1:
            self.tokens -= 1
            return True
        return False

    def remaining(self, now: float) -> int:
        self._refill(now)
        return int(self.tokens)


class RateLimiter:
    """Token bucket per client identity, created lazily on first contact.

    One lock covers the lookup-or-create and the allow decision. Buckets idle
    for longer than ``idle_seconds`` are swept every ``sweep_interval``.
    """

    def __init__(
        self,
        rate: float = LIMITER_RPS,
        burst: int = LIMITER_BURST,
        idle_seconds: float = LIMITER_IDLE_SECONDS,
        sweep_interval: float = LIMITER_SWEEP_INTERVAL,
        clock: Clock = time.monotonic,
        enabled: bool = True,
    ):
        self.rate = rate
        self.burst = burst
        self.idle_seconds = idle_seconds
        self.sweep_interval = sweep_interval
        self.enabled = enabled
        self._clock = clock
        self._lock = threading.Lock()
        self._buckets: dict[str, TokenBucket] = {}
        self._last_sweep = clock()

    def disable(self) -> None:
        """Disable rate limiting (for testing)."""
        self.enabled = False

    def enable(self) -> None:
        self.enabled = True

    def reset(self) -> None:
        """Forget every client."""
        with self._lock:
            self._buckets.clear()

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._buckets)

    def retry_after(self) -> int:
        """Seconds until a drained bucket holds one token again."""
        return max(1, math.ceil(1 / self.rate))

    def allow(self, client_id: str) -> bool:
        """Take one token from the client's bucket, if there is one."""
        with self._lock:
            now = self._clock()
            self._sweep_if_due(now)
            bucket = self._buckets.get(client_id)
            if bucket is None:
                bucket = TokenBucket(self.rate, self.burst, now)
                self._buckets[client_id] = bucket
            return bucket.allow(now)

    def remaining(self, client_id: str) -> int:
        with self._lock:
            bucket = self._buckets.get(client_id)
            if bucket is None:
                return self.burst
            return bucket.remaining(self._clock())

    def sweep(self, max_idle: float | None = None) -> int:
        """Drop buckets not seen for ``max_idle`` seconds; returns how many."""
        with self._lock:
            return self._sweep(self._clock(), max_idle)

    def _sweep_if_due(self, now: float) -> None:
        if now - self._last_sweep >= self.sweep_interval:
            self._sweep(now, None)

    def _sweep(self, now: float, max_idle: float | None) -> int:
        idle_limit = self.idle_seconds if max_idle is None else max_idle
        stale = [
            client_id
            for client_id, bucket in self._buckets.items()
            if now - bucket.last_seen > idle_limit
        ]
        for client_id in stale:
            del self._buckets[client_id]
        self._last_sweep = now
        if stale:
            logger.debug("Swept idle rate limiter clients", removed=len(stale))
        return len(stale)


async def rate_limit_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Admit or reject API requests before they reach a route."""
    limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None or not limiter.enabled or not is_api_request(request):
        return await call_next(request)

    client_ip = get_client_ip(request)
    if not limiter.allow(client_ip):
        logger.warning(
            "Rate limit exceeded", client_ip=client_ip, path=request.url.path
        )
        record_rate_limited()
        retry_after = limiter.retry_after()
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"error": "rate limit exceeded", "retry_after": retry_after},
            headers={"Retry-After": str(retry_after)},
        )

    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(limiter.burst)
    response.headers["X-RateLimit-Remaining"] = str(limiter.remaining(client_ip))
    return response
