"""In-process fixed-window rate limiter for the /api routes.

Usage:
    limiter = FixedWindowRateLimiter(limit=8, window_seconds=10)
    app.add_middleware(RateLimitMiddleware, limiter=limiter)

Counters live in this process only; each instance keeps its own.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Protocol
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from turntable_ai.services.utils.http_utils import client_ip

_logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please wait a few seconds."


class RateLimiter(Protocol):
    """Anything the middleware can ask whether a key may proceed."""

    def hit(self, key: str) -> bool: ...


@dataclass
class _Bucket:
    hits: int
    started_at: float


class FixedWindowRateLimiter:
    """Counts hits per key inside a fixed window.

    A bucket resets lazily on the first hit after its window has elapsed.
    """

    def __init__(
        self,
        limit: int = 8,
        window_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}

    def hit(self, key: str) -> bool:
        """Record one request for ``key``.

        Returns:
            True if the request is within the limit, False if it should be rejected.
        """
        now = self._clock()
        bucket = self._buckets.get(key)
        if bucket is None or now - bucket.started_at > self.window_seconds:
            bucket = _Bucket(hits=0, started_at=now)
            self._buckets[key] = bucket

        bucket.hits += 1
        return bucket.hits <= self.limit

    def reset(self) -> None:
        self._buckets.clear()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies a limiter per (client IP, path) to /api/ requests."""

    def __init__(self, app, limiter: RateLimiter, prefix: str = "/api/"):
        super().__init__(app)
        self.limiter = limiter
        self.prefix = prefix

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path.startswith(self.prefix):
            key = f"{client_ip(request)}:{path}"
            if not self.limiter.hit(key):
                _logger.warning(f"Rate limit exceeded for {key}")
                return JSONResponse(
                    status_code=429,
                    content={"ok": False, "error": RATE_LIMIT_MESSAGE},
                )
        return await call_next(request)
