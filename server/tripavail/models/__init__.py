"""Models module exporting all database models."""

from .booking import (
    HOLD_MODELS,
    BookingType,
    Hold,
    HoldStatus,
    PackageBooking,
    PaymentStatus,
    TourBooking,
    hold_model_for,
)
from .inventory import Tour, TourSchedule, TravelPackage
from .payment_webhook import PaymentWebhookRecord

__all__ = [
    # Inventory units
    "Tour",
    "TourSchedule",
    "TravelPackage",

    # Holds
    "Hold",
    "HoldStatus",
    "PaymentStatus",
    "BookingType",
    "TourBooking",
    "PackageBooking",
    "HOLD_MODELS",
    "hold_model_for",

    # Payment webhook ledger
    "PaymentWebhookRecord",
]
