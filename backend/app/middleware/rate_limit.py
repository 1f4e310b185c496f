"""
Inkwell Backend - Rate Limiting Middleware
============================================

What:  Per-IP sliding window rate limiter.
How:   Tracks request timestamps per IP in memory.
When:  First in the middleware chain. Off in development unless
       RATE_LIMIT_ENABLED is set; 100 requests per 15 minutes by default.

Algorithm: Sliding Window Log
    1. Each IP gets a list of request timestamps
    2. On each request, drop timestamps older than the window
    3. If the remaining count >= limit, reject with 429
    4. Otherwise record the current timestamp and let it through

Single-process only: each uvicorn worker keeps its own counters.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.config import Settings
from app.exceptions import RateLimitExceededError
from app.middleware.request_id import resolve_request_id

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Excluded paths:
        - /health: probes should never be rate-limited
        - /docs, /openapi.json, /redoc
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, config: Settings, **kwargs):
        super().__init__(app, **kwargs)
        self.enabled = config.rate_limiting_active
        self.max_requests = config.rate_limit_requests
        self.window = config.rate_limit_window
        self._requests: Dict[str, List[float]] = defaultdict(list)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self.enabled or request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = (
            getattr(request.client, "host", "unknown")
            if request.client
            else "unknown"
        )

        now = time.time()
        window_start = now - self.window

        self._requests[client_ip] = [
            ts for ts in self._requests[client_ip] if ts > window_start
        ]

        if len(self._requests[client_ip]) >= self.max_requests:
            oldest = self._requests[client_ip][0]
            exc = RateLimitExceededError(retry_after=int(oldest + self.window - now) + 1)
            # Runs before RequestIDMiddleware, so the id is resolved here
            rid = resolve_request_id(request)

            logger.warning(
                "[%s] Rate limit exceeded for IP %s: %d requests in %ds window",
                rid,
                client_ip,
                len(self._requests[client_ip]),
                self.window,
            )

            # Exception handlers do not see errors raised in middleware,
            # so the error body is rendered here
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": exc.message,
                    "request_id": rid,
                },
                headers={"Retry-After": str(exc.retry_after), "X-Request-ID": rid},
            )

        self._requests[client_ip].append(now)

        # Amortized cleanup of IPs that went quiet
        if sum(len(v) for v in self._requests.values()) % 1000 == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or max(timestamps) < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
