"""Shared schemas: prices and the problem+json error body."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Money(BaseModel):
    """Price in minor currency units."""

    amount: int = Field(..., ge=0, description="Amount in minor units (e.g., cents)")
    currency: str = Field(..., pattern=r"^[A-Z]{3}$", description="ISO 4217 currency code")


class Violation(BaseModel):
    path: str = Field(..., description="Location of the rejected field")
    message: str


class Problem(BaseModel):
    """Error body returned with application/problem+json."""

    type: Optional[str] = Field(None, description="Problem type URI")
    title: str
    status: int
    detail: Optional[str] = Field(None, description="Message safe to show the traveler")
    code: Optional[str] = Field(None, description="Stable machine-readable error code")
    retryable: Optional[bool] = None
    available: Optional[int] = Field(None, description="Units still free when a hold did not fit")
    reason: Optional[str] = Field(None, description="Which request bound was violated")
    hold_status: Optional[str] = Field(None, description="Status of a hold that is already finalized")
    trace_id: Optional[str] = None
    violations: Optional[List[Violation]] = None


def problem_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """OpenAPI `responses` entries documenting problem+json errors."""
    return {
        status_code: {"model": Problem, "content": {"application/problem+json": {}}}
        for status_code in status_codes
    }
