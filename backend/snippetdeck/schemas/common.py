"""
SnippetDeck Backend — Shared Response Schemas
==============================================

What:  Error and health payloads used across routers.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standard error body for every non-2xx response.

    Example:
        {
            "error": "validation_failed",
            "message": "Title is required",
            "details": {"fields": {"title": ["Title is required"]}},
            "request_id": "3f2a9c1e"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
