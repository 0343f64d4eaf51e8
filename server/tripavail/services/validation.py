"""Business-rule preconditions for hold admission and payment."""

import logging
from datetime import date, datetime

from ..core.database import utcnow
from ..core.exceptions import AlreadyFinalizedError, CapacityExceededError, HoldExpiredError, InvalidRequestError
from ..models.booking import Hold, HoldStatus

logger = logging.getLogger(__name__)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def validate_guest_or_seat_count(requested: int, available: int, inventory_unit_id: str = "") -> None:
    """
    Check a requested quantity against current availability.

    Args:
        requested: Seats or guests asked for
        available: Current availability from the inventory query
        inventory_unit_id: Schedule or package ID for error context

    Raises:
        InvalidRequestError: If fewer than one unit is requested
        CapacityExceededError: If more units are requested than are available
    """
    if requested < 1:
        raise InvalidRequestError(
            detail="At least 1 guest is required",
            reason="count_below_minimum",
            requested=requested,
        )
    if requested > available:
        raise CapacityExceededError(
            inventory_unit_id=inventory_unit_id,
            requested=requested,
            available=max(available, 0),
        )


def nights_between(check_in: date, check_out: date) -> int:
    """
    Number of nights in a stay.

    Raises:
        InvalidRequestError: If check-out is not after check-in
    """
    nights = (check_out - check_in).days
    if nights < 1:
        raise InvalidRequestError(
            detail="Check-out date must be after check-in date",
            reason="invalid_date_range",
            check_in_date=check_in.isoformat(),
            check_out_date=check_out.isoformat(),
        )
    return nights


def validate_stay_length(nights: int, minimum: int, maximum: int | None) -> None:
    """
    Inclusive bounds check on stay length.

    Too short and too long are reported with distinct reasons so the
    traveler sees which bound applies.
    """
    if nights < minimum:
        raise InvalidRequestError(
            detail=f"Minimum stay is {_plural(minimum, 'night')}",
            reason="stay_too_short",
            nights=nights,
            minimum_nights=minimum,
        )
    if maximum is not None and nights > maximum:
        raise InvalidRequestError(
            detail=f"Maximum stay is {_plural(maximum, 'night')}",
            reason="stay_too_long",
            nights=nights,
            maximum_nights=maximum,
        )


def validate_guest_ceiling(guest_count: int, max_guests: int | None) -> None:
    """Check a party size against a package's per-stay guest ceiling."""
    if guest_count < 1:
        raise InvalidRequestError(
            detail="At least 1 guest is required",
            reason="count_below_minimum",
            requested=guest_count,
        )
    if max_guests is not None and guest_count > max_guests:
        raise InvalidRequestError(
            detail=f"This package allows at most {_plural(max_guests, 'guest')}",
            reason="too_many_guests",
            requested=guest_count,
            max_guests=max_guests,
        )


def is_hold_still_valid(hold: Hold, now: datetime | None = None) -> bool:
    """Whether a hold may still be paid for or confirmed: pending and before its deadline."""
    now = now or utcnow()
    return hold.status == HoldStatus.PENDING.value and now < hold.expires_at


def is_hold_expired(hold: Hold, now: datetime | None = None) -> bool:
    """Whether a hold has lapsed, either swept already or past its deadline while still pending."""
    now = now or utcnow()
    if hold.status == HoldStatus.EXPIRED.value:
        return True
    return hold.status == HoldStatus.PENDING.value and now >= hold.expires_at


def ensure_hold_payable(hold: Hold, now: datetime | None = None) -> None:
    """
    Raise the error kind describing why a hold cannot be paid.

    Raises:
        HoldExpiredError: If the hold lapsed; the traveler must book again
        AlreadyFinalizedError: If the hold left the pending state otherwise
    """
    now = now or utcnow()
    if is_hold_still_valid(hold, now):
        return

    if is_hold_expired(hold, now):
        logger.info(
            "Hold no longer payable - expired",
            extra={"hold_id": str(hold.id), "expires_at": hold.expires_at.isoformat()}
        )
        raise HoldExpiredError(hold_id=str(hold.id), expired_at=hold.expires_at)

    logger.info(
        "Hold no longer payable - already finalized",
        extra={"hold_id": str(hold.id), "status": hold.status}
    )
    raise AlreadyFinalizedError(hold_id=str(hold.id), status=hold.status)
