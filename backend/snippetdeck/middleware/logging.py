"""
SnippetDeck Backend — Request Logging Middleware
=================================================

What:  One access-log line per request: method, path, status, duration,
       request ID and client IP.
Why:   Gives operators latency and error rates per endpoint without a
       separate metrics stack, and a request ID to pivot into error logs.
How:   Measures wall time around `call_next`; the level follows the status
       class (5xx → ERROR, 4xx → WARNING, otherwise INFO). The structured
       fields are also attached via `extra` for JSON log formatters.
Who:   Applied to every request via Starlette middleware.
When:  Inside the request ID middleware, so the ID is already set.

What we log vs what we DON'T log:
    ✅ method, path, status code, duration in ms
    ✅ request ID and client IP
    ❌ request bodies (they contain snippet code and passwords)
    ❌ the Authorization header and query strings
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from snippetdeck.middleware.request_id import request_id_var

logger = logging.getLogger("snippetdeck.access")

QUIET_PATHS = {"/api/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each completed request with its status and duration."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        logger.log(
            level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
