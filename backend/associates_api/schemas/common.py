"""
Associates Backend — Shared Response Schemas
=============================================

What:  Error, message and health response models used across routes.
Why:   Clients parse one error structure regardless of which endpoint failed,
       and the OpenAPI docs show it on every route.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body for non-auth failures.

    Example:
        {
            "error": "not_found",
            "message": "blog with ID '...' was not found",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    """
    Bare message body.

    Auth failures use exactly this shape ({"message": "unauthenticated"},
    {"message": "invalid credentials"}) so nothing about the cause leaks.
    """
    message: str


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    media_host: str = Field(description="Media host: configured, not_configured")
    uptime_seconds: float = Field(description="Seconds since service started")
