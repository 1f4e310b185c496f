"""
Inkwell Backend - Request Logging Middleware
==============================================

What:  One access log line per request on the `inkwell.access` logger.
How:   Measures wall time around the downstream call and picks the level
       from the status class (5xx ERROR, 4xx WARNING, else INFO).

What we log vs what we DON'T log (privacy):
    ✅ Log: method, path, status, duration, IP, request ID, account id
    ❌ Don't log: request bodies (user text, passwords), Authorization header
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("inkwell.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status, duration and client for each request.

    Typical durations:
        - GET /health: 1-5ms
        - POST /humanize_text (local humanizer): 5-50ms
        - POST /detect_ai with an external scorer: up to the scorer timeout
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        path = request.url.path
        rid = request_id_var.get("")

        # Health probes run every few seconds
        if path == "/health":
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        # Set by the auth gate on authenticated routes
        account = getattr(request.state, "account", None)
        account_id = account.id if account is not None else "-"

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s account=%s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            account_id,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
