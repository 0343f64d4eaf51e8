"""Service layer package."""

from .availability_service import AvailabilityService, PackageAvailabilityResult
from .catalog_service import CatalogService
from .expiry_service import ExpirySweeper, SweepResult, expire_pending_holds
from .hold_service import HoldService
from .payment_service import ConfirmationResult, PaymentService
from .validation import (
    ensure_hold_payable,
    is_hold_expired,
    is_hold_still_valid,
    nights_between,
    validate_guest_ceiling,
    validate_guest_or_seat_count,
    validate_stay_length,
)
from .webhook_service import WebhookResult, WebhookService

__all__ = [
    "AvailabilityService",
    "CatalogService",
    "ConfirmationResult",
    "ExpirySweeper",
    "HoldService",
    "PackageAvailabilityResult",
    "PaymentService",
    "SweepResult",
    "WebhookResult",
    "WebhookService",
    "ensure_hold_payable",
    "expire_pending_holds",
    "is_hold_expired",
    "is_hold_still_valid",
    "nights_between",
    "validate_guest_ceiling",
    "validate_guest_or_seat_count",
    "validate_stay_length",
]
