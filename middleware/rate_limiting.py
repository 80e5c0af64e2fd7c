"""
Sliding-window rate limiting.

Each identity (authenticated user id, else client address) owns an ordered list
of request timestamps in milliseconds. A check prunes timestamps that fell out
of the trailing window, rejects when the remaining count has reached the limit
and otherwise records the current request.

Window state lives in an injectable store. MemoryWindowStore keeps it in the
process and only holds for a single instance; RedisWindowStore shares it
between instances and runs the whole check as one server-side script.
"""
import logging
import math
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol

import redis
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 60000
DEFAULT_MAX_REQUESTS = 100
DEFAULT_EXEMPT_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")


@dataclass(frozen=True)
class WindowHit:
    """Result of one prune-then-record step against a store."""
    allowed: bool
    count: int
    oldest: float


class WindowStore(Protocol):
    """Storage for per-identity request timestamps."""

    # Stores doing network I/O are checked off the event loop.
    blocking: bool

    def get(self, identity: str) -> List[float]:
        ...

    def hit(self, identity: str, now: float, window_ms: int, max_requests: int) -> WindowHit:
        ...


class MemoryWindowStore:
    """Process-local window store."""

    blocking = False

    def __init__(self):
        self._windows: Dict[str, List[float]] = {}

    def get(self, identity: str) -> List[float]:
        return list(self._windows.get(identity, ()))

    def put(self, identity: str, window: List[float]) -> None:
        if window:
            self._windows[identity] = list(window)
        else:
            self._windows.pop(identity, None)

    def hit(self, identity: str, now: float, window_ms: int, max_requests: int) -> WindowHit:
        window = [ts for ts in self.get(identity) if now - ts < window_ms]

        if len(window) >= max_requests:
            self.put(identity, window)
            return WindowHit(allowed=False, count=len(window), oldest=window[0])

        window.append(now)
        self.put(identity, window)
        return WindowHit(allowed=True, count=len(window), oldest=window[0])

    def __len__(self) -> int:
        return len(self._windows)


# KEYS[1] window key; ARGV: now_ms, window_ms, max_requests, member.
# Scores <= now - window are pruned, so an entry exactly one window old is gone.
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
local count = redis.call('ZCARD', key)

if count >= limit then
    local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
    return {0, count, oldest[2]}
end

redis.call('ZADD', key, now, ARGV[4])
redis.call('PEXPIRE', key, window)
local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
return {1, count + 1, oldest[2]}
"""


class RedisWindowStore:
    """
    Window store backed by Redis, one sorted set of timestamps per identity.

    The prune, count and append run inside a single Lua script so concurrent
    instances never interleave on the same identity. Keys expire after one
    window so idle identities do not accumulate.
    """

    blocking = True

    def __init__(self, client: "redis.Redis", window_ms: int = DEFAULT_WINDOW_MS, key_prefix: str = "rate_limit:"):
        self.client = client
        self.window_ms = window_ms
        self.key_prefix = key_prefix
        self._script = client.register_script(SLIDING_WINDOW_SCRIPT)

    def _key(self, identity: str) -> str:
        return f"{self.key_prefix}{identity}"

    def get(self, identity: str) -> List[float]:
        entries = self.client.zrange(self._key(identity), 0, -1, withscores=True)
        return [float(score) for _, score in entries]

    def hit(self, identity: str, now: float, window_ms: int, max_requests: int) -> WindowHit:
        allowed, count, oldest = self._script(
            keys=[self._key(identity)],
            args=[now, window_ms, max_requests, f"{now}:{uuid.uuid4().hex}"],
        )
        return WindowHit(allowed=bool(int(allowed)), count=int(count), oldest=float(oldest))


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single rate-limit check."""
    allowed: bool
    limit: int
    remaining: int
    retry_after: int = 0


class SlidingWindowRateLimiter:
    """Per-identity sliding-window counter with reject-over-threshold policy."""

    def __init__(
        self,
        store: Optional[WindowStore] = None,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
    ):
        if window_ms <= 0 or max_requests <= 0:
            raise ValueError("window_ms and max_requests must be positive")
        self.store = store if store is not None else MemoryWindowStore()
        self.window_ms = window_ms
        self.max_requests = max_requests
        # Serializes prune-then-append for callers running on worker threads.
        self._lock = threading.Lock()

    def check(self, identity: str, now_ms: Optional[float] = None) -> RateLimitDecision:
        """Record a request for `identity` at `now_ms` unless it is over the limit."""
        now = time.time() * 1000 if now_ms is None else now_ms

        with self._lock:
            hit = self.store.hit(identity, now, self.window_ms, self.max_requests)

        if not hit.allowed:
            return RateLimitDecision(
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                retry_after=math.ceil((hit.oldest + self.window_ms - now) / 1000),
            )

        return RateLimitDecision(
            allowed=True,
            limit=self.max_requests,
            remaining=self.max_requests - hit.count,
        )


def resolve_identity(request: Request) -> str:
    """Authenticated user id, else client address; unauthenticated callers behind one address share a bucket."""
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"

    if request.client and request.client.host:
        return f"ip:{request.client.host}"

    return "ip:unknown"


def build_window_store(redis_url: Optional[str], window_ms: int = DEFAULT_WINDOW_MS, timeout: int = 5) -> WindowStore:
    """Redis store when a URL is configured and reachable, else the in-memory store."""
    if not redis_url:
        logger.info("ℹ️ [RATE-LIMITER] No Redis URL, using memory backend")
        return MemoryWindowStore()

    try:
        client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=timeout,
            socket_timeout=timeout,
        )
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"⚠️ [RATE-LIMITER] Redis unavailable, using memory backend: {e}")
        return MemoryWindowStore()

    logger.info("✅ [RATE-LIMITER] Using Redis backend")
    return RedisWindowStore(client, window_ms=window_ms)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects over-limit callers with 429 before any validation or handler runs."""

    def __init__(
        self,
        app: ASGIApp,
        limiter: SlidingWindowRateLimiter,
        exempt_paths: Iterable[str] = DEFAULT_EXEMPT_PATHS,
    ):
        super().__init__(app)
        self.limiter = limiter
        self.exempt_paths = frozenset(exempt_paths)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exempt_paths or request.method == "OPTIONS":
            return await call_next(request)

        identity = resolve_identity(request)

        try:
            if getattr(self.limiter.store, "blocking", False):
                decision = await run_in_threadpool(self.limiter.check, identity)
            else:
                # In-process store: nothing may interleave between prune and append.
                decision = self.limiter.check(identity)
        except redis.RedisError as e:
            # Fail open for availability
            logger.error(f"❌ [RATE-LIMITER] Store error, allowing request: {e}")
            return await call_next(request)

        if not decision.allowed:
            logger.warning(
                f"🚫 [RATE-LIMITER] Rate limit exceeded for {identity}",
                extra={"identity": identity, "retry_after": decision.retry_after, "path": request.url.path},
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": "Too many requests", "retryAfter": decision.retry_after},
                headers={
                    "Retry-After": str(decision.retry_after),
                    "X-RateLimit-Limit": str(decision.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response
