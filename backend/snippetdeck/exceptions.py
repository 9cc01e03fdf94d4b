"""
SnippetDeck Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every expected failure.
How:   Each exception carries a user-safe message and an optional context dict.
       Global exception handlers (registered in main.py) translate them into
       structured JSON responses with the matching HTTP status code.
Who:   Raised by services, the store and middleware; caught by global handlers.

Exception Hierarchy:
    SnippetDeckError (base)
    ├── ValidationFailedError   → 400 Bad Request (one message list per field)
    ├── UnauthenticatedError    → 401 Unauthorized
    ├── ForbiddenError          → 403 Forbidden
    ├── NotFoundError           → 404 Not Found
    ├── ConflictError           → 409 Conflict
    ├── RateLimitExceededError  → 429 Too Many Requests
    └── DatabaseError           → 500 Internal Server Error

The first four are the domain outcomes of the access-control model. All of
them are recoverable by the caller and are never retried internally.
"""

from typing import Any, Dict, List, Optional


class SnippetDeckError(Exception):
    """
    Base exception for all SnippetDeck application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where noted)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationFailedError(SnippetDeckError):
    """
    Raised when a payload or query parameter fails field constraints.

    `fields` maps each offending field to its messages. The top-level message
    is every field message joined with ", ", e.g.:

        {
            "error": "validation_failed",
            "message": "Title is required, Code content is required",
            "details": {"fields": {"title": ["Title is required"],
                                   "code": ["Code content is required"]}}
        }
    """

    def __init__(
        self,
        fields: Dict[str, List[str]],
        context: Optional[Dict[str, Any]] = None,
    ):
        self.fields = {name: list(messages) for name, messages in fields.items()}
        message = ", ".join(
            msg for messages in self.fields.values() for msg in messages
        ) or "Validation failed"
        ctx = context or {}
        ctx["fields"] = self.fields
        super().__init__(message=message, context=ctx)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailedError":
        """Shortcut for a failure on one field."""
        return cls({field: [message]})


class UnauthenticatedError(SnippetDeckError):
    """
    No usable caller credential for an operation that requires one.

    Covers a missing bearer token, a malformed or expired token, a token whose
    user no longer exists, and failed logins.
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(SnippetDeckError):
    """The caller is authenticated but may not act on this resource."""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SnippetDeckError):
    """
    Raised when an identifier does not resolve to an accessible resource.

    The service layer also raises it in place of ForbiddenError for private
    snippets accessed by non-owners, so the two cases look identical.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(SnippetDeckError):
    """A uniqueness constraint would be violated (e.g. email already registered)."""

    def __init__(
        self,
        message: str = "Resource already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class DatabaseError(SnippetDeckError):
    """
    Raised when a database operation fails unexpectedly.

    The message returned to the client is always generic; the context is
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(SnippetDeckError):
    """
    Raised when a client exceeds its per-IP request budget.

    `retry_after` is the number of seconds until the oldest request in the
    window expires; it is sent back in the Retry-After header.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
