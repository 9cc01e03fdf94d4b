"""
SnippetDeck Backend — Middleware Package
=========================================

What:  Cross-cutting concerns applied to every request.
Why:   Throttling, correlation IDs and access logging apply to all routes
       alike and stay out of the route handlers.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    Why this order:
    1. Rate Limit first: rejected requests cost nothing downstream
    2. Request ID: set before anything logs
    3. Access Log: sees the request ID and the final status code
    4. GZip and CORS: FastAPI/Starlette built-ins closest to the routes

    Responses pass back through the same chain in reverse, picking up the
    X-Request-ID header and the access-log line on the way out.
"""
