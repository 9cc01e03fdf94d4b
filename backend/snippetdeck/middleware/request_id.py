"""
SnippetDeck Backend — Request ID Middleware
============================================

What:  Tags every request with a correlation ID and echoes it in X-Request-ID.
Why:   Ties the access-log line, any error log and the JSON error body of one
       request together, so a client can quote a single value in a bug report.
How:   Reuses the client's X-Request-ID header when present, otherwise
       generates a short UUID prefix. The value is stored in a ContextVar
       (read by the access logger and the exception handlers) and on
       `request.state.request_id`.
Who:   Applied to every request via Starlette middleware.
When:  Right after rate limiting, before the access logger reads the ID.

Why a ContextVar:
    Concurrent requests share one thread on the event loop, so
    threading.local would leak IDs between them. Each asyncio task gets its
    own copy of a ContextVar, which makes `request_id_var.get()` safe from
    any code running inside the request, including exception handlers that
    have no Request object at hand.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns and propagates a per-request correlation ID."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        # Left set after the response: the catch-all 500 handler runs outside
        # this middleware and still reads it
        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
