"""
Inkwell Backend - Shared Schema Pieces
========================================

What:  Base model for camelCase JSON payloads, error and health responses.

Response bodies keep the field spelling existing clients already parse
(`processingTime`, `limitExceeded`, `paymentStatus`, ...). Python code uses
snake_case attributes; `CamelModel` maps between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes snake_case attributes as camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "success": false,
            "message": "Payment required to access this feature",
            "request_id": "1f2e3d4c"
        }
    """
    success: bool = Field(default=False)
    message: str = Field(description="Human-readable error description")
    error: Optional[str] = Field(default=None, description="Failure detail, when safe to share")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Service and dependency status for monitors and load balancers."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="connected, disconnected, or not_used")
    store_backend: str = Field(description="sql or memory")
    uptime_seconds: float = Field(description="Seconds since service started")


class RootResponse(BaseModel):
    message: str
    version: str
    status: str
    timestamp: str
    environment: str
