"""
Error envelope schemas shared by all endpoints.

Declared in each route's ``responses=`` so the OpenAPI document describes
the error payloads, not just the happy path.
"""

from typing import List

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error envelope returned by every non-validation error handler."""

    error: bool = Field(default=True, description="Always ``true`` for errors")
    message: str = Field(
        ...,
        description="Human-readable error description",
        examples=["Mutual fund with scheme_code '119551' not found"],
    )


class ValidationErrorDetail(BaseModel):
    """Single parameter-level validation failure."""

    field: str = Field(
        ...,
        description="Path to the invalid parameter",
        examples=["query -> min_rating"],
    )
    message: str = Field(
        ...,
        description="Explanation of the validation failure",
        examples=["Input should be less than or equal to 5"],
    )


class ValidationErrorResponse(BaseModel):
    """Response body for 400 Bad Request (query validation failure)."""

    error: bool = Field(default=True, description="Always ``true`` for errors")
    message: str = Field(default="Invalid query parameters", description="Summary message")
    details: List[ValidationErrorDetail] = Field(..., description="Per-parameter failures")
