# backend/portfolio_dashboard/schemas/errors.py
"""
Error response schemas.

Every error the API returns uses ErrorDetail, whether it comes from a
service exception, request validation or the rate limiter.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Standard error response format."""

    error: str = Field(
        ...,
        description="Error type (e.g., 'TickerNotFoundError')"
    )
    message: str = Field(
        ...,
        description="Human-readable error message"
    )
    details: dict | list | None = Field(
        default=None,
        description="Additional error context (optional)"
    )
