"""Blanket per-client-IP rate limiting for inbound requests."""

import logging
import math
import time
from dataclasses import dataclass, field

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    max_requests: int = 100  # Requests allowed per window
    window_seconds: float = 15 * 60

    @property
    def refill_rate(self) -> float:
        """Tokens regained per second."""
        return self.max_requests / self.window_seconds


@dataclass
class TokenBucket:
    """Token bucket for rate limiting."""

    capacity: int
    refill_rate: float  # tokens per second
    tokens: float = field(default=0.0)
    last_refill: float = field(default_factory=time.monotonic)

    def __post_init__(self):
        self.tokens = float(self.capacity)

    def _refill(self) -> None:
        """Refill tokens based on elapsed time."""
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def acquire(self, tokens: int = 1) -> float:
        """Try to acquire tokens.

        Returns:
            Wait time in seconds (0 if tokens acquired immediately)
        """
        self._refill()

        if self.tokens >= tokens:
            self.tokens -= tokens
            return 0.0

        tokens_needed = tokens - self.tokens
        return tokens_needed / self.refill_rate

    @property
    def is_full(self) -> bool:
        self._refill()
        return self.tokens >= self.capacity


class RateLimiter:
    """Per-key token buckets. Requests over the limit are rejected, never queued."""

    # Full buckets are dropped once this many keys are tracked
    PRUNE_THRESHOLD = 10_000

    def __init__(self, config: RateLimitConfig | None = None):
        self.config = config or RateLimitConfig()
        self._buckets: dict[str, TokenBucket] = {}

    def _get_bucket(self, key: str) -> TokenBucket:
        """Get or create a token bucket for a client key."""
        if key not in self._buckets:
            if len(self._buckets) >= self.PRUNE_THRESHOLD:
                self._prune()
            self._buckets[key] = TokenBucket(
                capacity=self.config.max_requests,
                refill_rate=self.config.refill_rate,
            )
        return self._buckets[key]

    def _prune(self) -> None:
        for key in [k for k, bucket in self._buckets.items() if bucket.is_full]:
            del self._buckets[key]

    def check(self, key: str) -> float:
        """Consume one request for ``key``.

        Returns:
            0 if the request is allowed, otherwise seconds until it would be
        """
        return self._get_bucket(key).acquire()

    def reset(self) -> None:
        self._buckets.clear()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests beyond the configured rate with 429."""

    def __init__(self, app: ASGIApp, limiter: RateLimiter) -> None:
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client_ip = request.client.host if request.client else "unknown"
        wait_time = self.limiter.check(client_ip)
        if wait_time > 0:
            logger.warning(f"Rate limit exceeded for {client_ip} ({request.method} {request.url.path})")
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too many requests",
                    "message": "Too many requests from this IP, please try again later.",
                },
                headers={"Retry-After": str(math.ceil(wait_time))},
            )
        return await call_next(request)
