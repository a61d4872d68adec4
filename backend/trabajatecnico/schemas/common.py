"""
TrabajaTecnico Backend — Shared Schemas
========================================

What:  Response models shared by every router: errors, plain messages,
       pagination and health. JSON keys are camelCase, matching the web
       client.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for API models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    """Offset pagination block of list responses."""

    page: int
    limit: int
    total: int
    total_pages: int


class MessageResponse(BaseModel):
    message: str = Field(description="Human-readable outcome")


class ErrorResponse(BaseModel):
    """
    Standardized error body.

    Example:
        {
            "error": "cv_required",
            "message": "You must upload your CV before applying to projects",
            "request_id": "1f3a9c2e"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(CamelModel):
    status: str = Field(description="healthy or unhealthy")
    version: str
    environment: str
    database: str = Field(description="connected or disconnected")
    email_configured: bool = Field(description="Whether SMTP credentials are present")
    uptime_seconds: float
