"""
SnippetDeck Backend — Rate Limiting Middleware
===============================================

What:  Per-IP sliding-window rate limiter with two budgets:
         auth  /api/auth/*  login/registration (tight, slows password guessing)
         api   everything else
Why:   Registration and login run a deliberately slow password hash
       (pbkdf2_sha256); an unthrottled client could pin the CPU or
       brute-force accounts.
How:   Each (bucket, IP) pair keeps the timestamps of its requests inside the
       window. A request is rejected with 429 and Retry-After once the count
       reaches the bucket's limit.
Who:   Applied to every request via Starlette middleware.
When:  Outermost in the chain, so rejected requests never reach a route or
       open a database session.

Algorithm: Sliding Window Counter
    1. Drop timestamps older than `now - window` for the caller's key
    2. If the remaining count >= limit, reject with 429
       (Retry-After = seconds until the oldest timestamp leaves the window)
    3. Otherwise record `now` and pass the request on

    A fixed window resets at a boundary and lets a client burst twice the
    limit across it; the sliding window always counts the last N seconds.

    Keys whose timestamps have all expired are swept every CLEANUP_EVERY
    requests so idle IPs do not accumulate.

Deployment:
    State is in-process memory: correct for a single uvicorn worker.
    Multi-worker deployments need a shared store (e.g. Redis INCR with TTL).
"""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from snippetdeck.config import Settings, settings
from snippetdeck.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

CLEANUP_EVERY = 1000


@dataclass(frozen=True)
class Bucket:
    name: str
    limit: int
    window: int  # seconds


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Excluded paths (/api/health, docs) are never counted.
    """

    EXCLUDED_PATHS = {"/api/health", "/docs", "/openapi.json", "/redoc"}
    AUTH_PREFIX = "/api/auth/"

    def __init__(self, app, config: Settings = settings, **kwargs):
        super().__init__(app, **kwargs)
        self.api_bucket = Bucket("api", config.rate_limit_requests, config.rate_limit_window)
        self.auth_bucket = Bucket(
            "auth", config.auth_rate_limit_requests, config.auth_rate_limit_window
        )
        self._requests: Dict[Tuple[str, str], List[float]] = defaultdict(list)
        self._seen = 0

    def bucket_for(self, path: str) -> Bucket:
        return self.auth_bucket if path.startswith(self.AUTH_PREFIX) else self.api_bucket

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        bucket = self.bucket_for(path)
        key = (bucket.name, client_ip)

        now = time.time()
        window_start = now - bucket.window
        recent = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = recent

        if len(recent) >= bucket.limit:
            retry_after = int(recent[0] + bucket.window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s on %s bucket: %d requests in %ds",
                client_ip, bucket.name, len(recent), bucket.window,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                },
                headers={"Retry-After": str(retry_after)},
            )

        recent.append(now)

        self._seen += 1
        if self._seen % CLEANUP_EVERY == 0:
            self._cleanup_inactive(now)

        return await call_next(request)

    def _cleanup_inactive(self, now: float) -> None:
        """Drop (bucket, IP) keys with no request inside their window."""
        windows = {self.api_bucket.name: self.api_bucket.window,
                   self.auth_bucket.name: self.auth_bucket.window}
        stale = [
            key for key, stamps in self._requests.items()
            if not stamps or stamps[-1] < now - windows[key[0]]
        ]
        for key in stale:
            del self._requests[key]
        if stale:
            logger.debug("Cleaned up %d inactive rate-limit entries", len(stale))
