"""
Inkwell Backend - Request ID Middleware
=========================================

What:  Assigns a short id to each request and echoes it in X-Request-ID.
How:   Reuses a client-supplied X-Request-ID, otherwise generates one; stores
       it in a ContextVar for loggers and error handlers and on request.state
       for route handlers.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def resolve_request_id(request: Request) -> str:
    # 8 chars is enough to correlate log lines
    return request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request)

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
