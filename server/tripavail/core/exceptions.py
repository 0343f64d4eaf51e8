"""Custom exceptions following RFC 9457 Problem Details for HTTP APIs."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


def _isoformat(value: datetime) -> str:
    return value.replace(tzinfo=None).isoformat() + "Z"


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            type_uri: URI reference that identifies the problem type
            instance: URI reference that identifies the specific occurrence
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance
        self.extensions = extensions or {}

        self.problem_details = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
        }

        if self.detail:
            self.problem_details["detail"] = self.detail

        if self.instance:
            self.problem_details["instance"] = self.instance

        self.problem_details.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=self.problem_details,
            headers=headers
        )

    @property
    def code(self) -> Optional[str]:
        """Application-specific error code."""
        return self.problem_details.get("code")

    @property
    def message(self) -> str:
        """Plain-language description for the traveler."""
        return self.problem_details.get("detail") or self.title

    def __str__(self) -> str:
        return self.message


class ValidationError(ProblemDetailsException):
    """Exception for request validation errors."""

    def __init__(
        self,
        detail: str = "The request data failed validation",
        errors: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if errors:
            extensions["errors"] = errors

        super().__init__(
            status_code=400,
            title="Validation Error",
            detail=detail,
            type_uri="https://tripavail.com/problems/validation-error",
            instance=instance,
            extensions=extensions,
        )


class NotFoundError(ProblemDetailsException):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions = {
            "code": "NOT_FOUND",
            "retryable": False,
            "resource_type": resource_type,
        }
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=detail,
            type_uri="https://tripavail.com/problems/resource-not-found",
            instance=instance,
            extensions=extensions,
        )


class ConflictError(ProblemDetailsException):
    """Exception for resource conflict errors."""

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if conflicting_resource:
            extensions["conflicting_resource"] = conflicting_resource

        super().__init__(
            status_code=409,
            title="Resource Conflict",
            detail=detail,
            type_uri="https://tripavail.com/problems/resource-conflict",
            instance=instance,
            extensions=extensions,
        )


# Booking-hold error kinds

class CapacityExceededError(ProblemDetailsException):
    """Requested quantity no longer fits; carries the current true availability."""

    def __init__(
        self,
        inventory_unit_id: str,
        requested: int,
        available: int,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            noun = "seat" if available == 1 else "seats"
            detail = f"Only {available} {noun} available, you requested {requested}"

        super().__init__(
            status_code=409,
            title="Capacity Exceeded",
            detail=detail,
            type_uri="https://tripavail.com/problems/capacity-exceeded",
            instance=instance,
            extensions={
                "code": "CAPACITY_EXCEEDED",
                "retryable": False,
                "inventory_unit_id": inventory_unit_id,
                "requested": requested,
                "available": available,
            },
        )
        self.inventory_unit_id = inventory_unit_id
        self.requested = requested
        self.available = available


class DatesUnavailableError(CapacityExceededError):
    """Package already has an overlapping stay for the requested dates."""

    def __init__(self, package_id: str, check_in: str, check_out: str, guest_count: int):
        super().__init__(
            inventory_unit_id=package_id,
            requested=guest_count,
            available=0,
            detail=f"Package not available from {check_in} to {check_out}",
        )
        self.problem_details.update({"check_in_date": check_in, "check_out_date": check_out})


class InvalidRequestError(ProblemDetailsException):
    """Guest/seat count or stay length outside the allowed bounds."""

    def __init__(
        self,
        detail: str,
        reason: str,
        instance: Optional[str] = None,
        **context: Any,
    ):
        super().__init__(
            status_code=400,
            title="Invalid Booking Request",
            detail=detail,
            type_uri="https://tripavail.com/problems/invalid-request",
            instance=instance,
            extensions={
                "code": "INVALID_REQUEST",
                "retryable": False,
                "reason": reason,
                **context,
            },
        )
        self.reason = reason


class HoldMismatchError(ProblemDetailsException):
    """Payment intent resolves to a different hold than the caller claimed."""

    def __init__(self, payment_intent_id: str, claimed_hold_id: str, actual_hold_id: str):
        super().__init__(
            status_code=409,
            title="Hold Mismatch",
            detail="Booking ID does not match the payment",
            type_uri="https://tripavail.com/problems/hold-mismatch",
            extensions={
                "code": "HOLD_MISMATCH",
                "retryable": False,
                "payment_intent_id": payment_intent_id,
                "hold_id": claimed_hold_id,
            },
        )
        self.actual_hold_id = actual_hold_id


class AlreadyFinalizedError(ProblemDetailsException):
    """Hold already left the pending state."""

    def __init__(self, hold_id: str, status: str):
        super().__init__(
            status_code=409,
            title="Hold Already Finalized",
            detail=f"Booking is {status}",
            type_uri="https://tripavail.com/problems/already-finalized",
            extensions={
                "code": "ALREADY_FINALIZED",
                "retryable": False,
                "hold_id": hold_id,
                "hold_status": status,
            },
        )
        self.hold_status = status


class HoldExpiredError(ProblemDetailsException):
    """Hold deadline has passed; the traveler must restart the booking."""

    def __init__(self, hold_id: str, expired_at: datetime):
        super().__init__(
            status_code=410,
            title="Hold Expired",
            detail="Booking hold has expired. Please book again.",
            type_uri="https://tripavail.com/problems/hold-expired",
            extensions={
                "code": "HOLD_EXPIRED",
                "retryable": False,
                "hold_id": hold_id,
                "expired_at": _isoformat(expired_at),
            },
        )


class TransientStoreError(ProblemDetailsException):
    """Data store unreachable or timed out."""

    def __init__(self, operation: str):
        super().__init__(
            status_code=503,
            title="Service Temporarily Unavailable",
            detail="The booking store is temporarily unavailable. Please try again.",
            type_uri="https://tripavail.com/problems/store-unavailable",
            extensions={
                "code": "STORE_UNAVAILABLE",
                "retryable": True,
                "operation": operation,
            },
            headers={"Retry-After": "5"},
        )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """
    Exception handler for Problem Details exceptions.

    Args:
        request: FastAPI request object
        exc: Problem Details exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    content = dict(exc.problem_details)
    content.setdefault("instance", request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=exc.headers,
        media_type="application/problem+json",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to Problem Details format.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    problem_details = {
        "type": "https://tripavail.com/problems/internal-server-error",
        "title": "Internal Server Error",
        "status": 500,
        "detail": "An unexpected error occurred while processing the request",
        "instance": request.url.path,
        "error_id": str(uuid.uuid4()),
        "timestamp": _isoformat(datetime.now(timezone.utc)),
    }

    return JSONResponse(
        status_code=500,
        content=problem_details,
        media_type="application/problem+json",
    )
