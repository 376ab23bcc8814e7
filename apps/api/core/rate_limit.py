"""
Login rate limiting.

Fixed-window counters keyed by "<scope>:<client ip>". The first hit opens
a window; hits past the limit are rejected until the window resets.

Backends:
- memory: a dict guarded by a lock. Increment-and-check is atomic per key
  inside one process; separate processes keep separate counts.
- redis: INCR + EXPIRE on a shared key, so all workers share a count.
"""
import math
import threading
import time
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
from fastapi import Request
from core.config import settings
from core.cache import get_redis_client
from core.exceptions import RateLimitedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_after_seconds: int


class InMemoryRateLimiter:
    """Per-process fixed-window counters."""

    # Expired buckets are swept once the map grows past this many keys.
    MAX_BUCKETS_BEFORE_SWEEP = 10_000

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        # key -> [count, reset_at]
        self._buckets: Dict[str, List[float]] = {}

    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            if len(self._buckets) > self.MAX_BUCKETS_BEFORE_SWEEP:
                self._sweep(now)

            bucket = self._buckets.get(key)
            if bucket is None or bucket[1] <= now:
                self._buckets[key] = [1, now + window_seconds]
                return RateLimitResult(True, limit - 1, window_seconds)

            reset_after = max(0, math.ceil(bucket[1] - now))
            if bucket[0] >= limit:
                return RateLimitResult(False, 0, reset_after)

            bucket[0] += 1
            return RateLimitResult(True, int(limit - bucket[0]), reset_after)

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, reset_at) in self._buckets.items() if reset_at <= now]
        for k in expired:
            del self._buckets[k]

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


class RedisRateLimiter:
    """Shared fixed-window counters in Redis. Fails open when Redis is down."""

    def __init__(self, client_factory: Callable = get_redis_client, prefix: str = "rate_limit"):
        self._client_factory = client_factory
        self._prefix = prefix

    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        client = self._client_factory()
        if not client:
            logger.warning("Redis unavailable, skipping rate limit check")
            return RateLimitResult(True, limit, window_seconds)

        redis_key = f"{self._prefix}:{key}"
        try:
            count = client.incr(redis_key)
            if count == 1:
                client.expire(redis_key, window_seconds)
            ttl = client.ttl(redis_key)
            if ttl is None or ttl < 0:
                # Key lost its expiry (e.g. crash between INCR and EXPIRE)
                client.expire(redis_key, window_seconds)
                ttl = window_seconds
            if count > limit:
                return RateLimitResult(False, 0, int(ttl))
            return RateLimitResult(True, max(0, limit - count), int(ttl))
        except Exception as e:
            # On error, allow request (fail open)
            logger.error(f"Rate limit check error: {e}")
            return RateLimitResult(True, limit, window_seconds)

    def reset(self) -> None:
        client = self._client_factory()
        if not client:
            return
        for redis_key in client.scan_iter(f"{self._prefix}:*"):
            client.delete(redis_key)


_limiter = None
_limiter_lock = threading.Lock()


def get_rate_limiter():
    """Process-wide limiter for the configured backend."""
    global _limiter
    if _limiter is None:
        with _limiter_lock:
            if _limiter is None:
                if settings.RATE_LIMIT_BACKEND == "redis":
                    _limiter = RedisRateLimiter()
                else:
                    _limiter = InMemoryRateLimiter()
    return _limiter


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


def enforce_rate_limit(
    request: Request,
    scope: str,
    limit: int,
    window_seconds: int,
    limiter=None,
) -> Optional[RateLimitResult]:
    """Count one attempt for this client and raise RateLimitedError past the limit."""
    if not settings.RATE_LIMIT_ENABLED:
        return None

    limiter = limiter or get_rate_limiter()
    client_ip = get_client_ip(request)
    result = limiter.hit(f"{scope}:{client_ip}", limit, window_seconds)
    if not result.allowed:
        logger.warning(
            "Rate limit exceeded",
            extra={"extra_fields": {
                "scope": scope,
                "client_ip": client_ip,
                "retry_after_seconds": result.reset_after_seconds,
            }},
        )
        raise RateLimitedError(result.reset_after_seconds)
    return result


def enforce_login_rate_limit(request: Request) -> None:
    """FastAPI dependency guarding POST /auth/login."""
    enforce_rate_limit(
        request,
        scope="login",
        limit=settings.LOGIN_RATE_LIMIT_MAX,
        window_seconds=settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
    )
