"""
Murmur Backend — Shared Pydantic Schemas
=========================================

What:  Base model with the camelCase wire convention, the lightweight user
       reference, and the error/message/health envelopes.
Why:   Clients read `createdAt`, `isPinned`, `followersCount`; Python code
       keeps snake_case. The alias generator bridges the two, and
       populate_by_name lets requests use either spelling.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every request/response body exchanged with clients."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserRef(CamelModel):
    """
    What:  Lightweight pointer to a user: enough to render a name and avatar.
    Who:   Embedded as post author, comment author, follower/following entries.
    """
    id: uuid.UUID = Field(description="User identifier")
    username: str = Field(description="Username at the time of the response")
    avatar: str = Field(default="", description="Avatar URL (may be empty)")


class MessageResponse(CamelModel):
    """Plain confirmation body for deletions."""
    message: str = Field(description="Human-readable outcome")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and database status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
