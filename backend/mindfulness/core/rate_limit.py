# backend/mindfulness/core/rate_limit.py
"""Per-client sliding-window rate limiting for the HTTP API."""
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from mindfulness.core.errors import ErrorCodes, error_body

logger = structlog.get_logger(__name__)

EXEMPT_PATHS = {"/", "/health"}
RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int  # seconds until the oldest counted request leaves the window


class RateLimiter:
    """
    In-process sliding window: a deque of request timestamps per client.
    Checks never await, so concurrent requests on one event loop cannot interleave.
    """

    def __init__(self, limit: int, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._checks = 0

    def check(self, client_id: str) -> RateLimitResult:
        now = self._clock()
        window_start = now - self.window_seconds
        hits = self._hits.setdefault(client_id, deque())
        while hits and hits[0] <= window_start:
            hits.popleft()

        allowed = len(hits) < self.limit
        if allowed:
            hits.append(now)

        retry_after = math.ceil(hits[0] + self.window_seconds - now) if hits else 0
        self._checks += 1
        if self._checks % 1000 == 0:
            self._prune(window_start)

        return RateLimitResult(
            allowed=allowed,
            limit=self.limit,
            remaining=max(0, self.limit - len(hits)),
            retry_after=retry_after,
        )

    def _prune(self, window_start: float) -> None:
        stale = [k for k, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for k in stale:
            del self._hits[k]
        if stale:
            logger.debug("Pruned rate limit entries", removed=len(stale))

    def reset(self) -> None:
        self._hits.clear()


def client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_middleware(request: Request, call_next):
    if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
        return await call_next(request)

    limiter: RateLimiter = request.app.state.rate_limiter
    client_id = client_ip(request)
    result = limiter.check(client_id)
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
    }

    if not result.allowed:
        logger.warning("Rate limit exceeded", client_id=client_id, path=request.url.path)
        headers["Retry-After"] = str(result.retry_after)
        return JSONResponse(
            status_code=429,
            content=error_body(request, ErrorCodes.RATE_LIMIT_EXCEEDED, RATE_LIMIT_MESSAGE),
            headers=headers,
        )

    response = await call_next(request)
    response.headers.update(headers)
    return response
