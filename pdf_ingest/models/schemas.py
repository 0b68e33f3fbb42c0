"""
Pydantic Schemas for shared API responses (errors, rate limits, health)
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from pdf_ingest.models.ingestion_job import utc_now


class ComponentStatus(str, Enum):
    """Status of a system component"""
    HEALTHY = "healthy"
    UNAVAILABLE = "unavailable"


class ComponentHealth(BaseModel):
    """Health of a single component"""
    name: str
    status: ComponentStatus
    message: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    components: dict[str, ComponentHealth] = Field(default_factory=dict)


class ErrorDetail(BaseModel):
    """Detail of a validation or processing error"""
    field: Optional[str] = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")
    code: Optional[str] = Field(default=None, description="Error code")


class ErrorResponse(BaseModel):
    """Standard error response format"""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[list[ErrorDetail]] = Field(default=None, description="Error details")
    request_id: Optional[str] = Field(default=None, description="Request ID for tracking")
    timestamp: datetime = Field(default_factory=utc_now, description="Error timestamp")


class RateLimitResponse(BaseModel):
    """Rate limit exceeded response"""
    error: str = Field(default="rate_limited", description="Error type")
    message: str = Field(default="Rate limit exceeded", description="Error message")
    retry_after: int = Field(..., description="Seconds until rate limit resets")
