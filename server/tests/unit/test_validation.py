"""Unit tests for booking validation rules."""

from datetime import date, timedelta

import pytest

from tripavail.core.database import utcnow
from tripavail.core.exceptions import (
    AlreadyFinalizedError,
    CapacityExceededError,
    HoldExpiredError,
    InvalidRequestError,
)
from tripavail.models.booking import HoldStatus, TourBooking
from tripavail.services.validation import (
    ensure_hold_payable,
    is_hold_expired,
    is_hold_still_valid,
    nights_between,
    validate_guest_ceiling,
    validate_guest_or_seat_count,
    validate_stay_length,
)


def make_hold(status: HoldStatus, expires_in: timedelta) -> TourBooking:
    now = utcnow()
    return TourBooking(
        traveler_id="traveler_1",
        pax_count=1,
        status=status.value,
        total_price_amount=10000,
        price_currency="USD",
        created_at=now,
        expires_at=now + expires_in,
    )


class TestGuestOrSeatCount:
    def test_within_availability(self):
        validate_guest_or_seat_count(2, 3)
        validate_guest_or_seat_count(3, 3)

    @pytest.mark.parametrize("requested", [0, -1])
    def test_below_minimum(self, requested):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_guest_or_seat_count(requested, 10)

        assert str(exc_info.value) == "At least 1 guest is required"
        assert exc_info.value.reason == "count_below_minimum"

    def test_exceeds_availability_reports_current_count(self):
        with pytest.raises(CapacityExceededError) as exc_info:
            validate_guest_or_seat_count(3, 2, "schedule_1")

        error = exc_info.value
        assert error.available == 2
        assert error.requested == 3
        assert error.status_code == 409
        assert error.problem_details["code"] == "CAPACITY_EXCEEDED"
        assert error.problem_details["detail"] == "Only 2 seats available, you requested 3"

    def test_single_seat_left_message(self):
        with pytest.raises(CapacityExceededError) as exc_info:
            validate_guest_or_seat_count(2, 1)

        assert str(exc_info.value) == "Only 1 seat available, you requested 2"


class TestStayLength:
    def test_nights_between(self):
        assert nights_between(date(2026, 7, 1), date(2026, 7, 4)) == 3

    @pytest.mark.parametrize("check_out", [date(2026, 7, 1), date(2026, 6, 30)])
    def test_check_out_must_follow_check_in(self, check_out):
        with pytest.raises(InvalidRequestError) as exc_info:
            nights_between(date(2026, 7, 1), check_out)

        assert exc_info.value.reason == "invalid_date_range"

    def test_bounds_are_inclusive(self):
        validate_stay_length(2, 2, 7)
        validate_stay_length(7, 2, 7)

    def test_too_short(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_stay_length(1, 2, 7)

        assert str(exc_info.value) == "Minimum stay is 2 nights"
        assert exc_info.value.reason == "stay_too_short"

    def test_too_long(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_stay_length(8, 2, 7)

        assert str(exc_info.value) == "Maximum stay is 7 nights"
        assert exc_info.value.reason == "stay_too_long"

    def test_singular_night(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_stay_length(2, 1, 1)

        assert str(exc_info.value) == "Maximum stay is 1 night"

    def test_no_maximum(self):
        validate_stay_length(90, 1, None)


class TestGuestCeiling:
    def test_within_ceiling(self):
        validate_guest_ceiling(4, 4)
        validate_guest_ceiling(12, None)

    def test_above_ceiling(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_guest_ceiling(5, 4)

        assert exc_info.value.reason == "too_many_guests"
        assert exc_info.value.status_code == 400

    def test_zero_guests(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_guest_ceiling(0, 4)

        assert exc_info.value.reason == "count_below_minimum"


class TestHoldValidity:
    def test_pending_before_deadline_is_valid(self):
        hold = make_hold(HoldStatus.PENDING, timedelta(minutes=5))

        assert is_hold_still_valid(hold)
        assert not is_hold_expired(hold)
        ensure_hold_payable(hold)

    def test_deadline_is_exclusive(self):
        hold = make_hold(HoldStatus.PENDING, timedelta(minutes=5))

        assert not is_hold_still_valid(hold, hold.expires_at)
        assert is_hold_expired(hold, hold.expires_at)

    def test_pending_past_deadline_is_expired_before_sweep(self):
        hold = make_hold(HoldStatus.PENDING, timedelta(minutes=-1))

        assert not is_hold_still_valid(hold)
        assert is_hold_expired(hold)
        with pytest.raises(HoldExpiredError) as exc_info:
            ensure_hold_payable(hold)
        assert exc_info.value.status_code == 410
        assert str(exc_info.value) == "Booking hold has expired. Please book again."

    def test_swept_hold_is_expired(self):
        hold = make_hold(HoldStatus.EXPIRED, timedelta(minutes=-1))

        with pytest.raises(HoldExpiredError):
            ensure_hold_payable(hold)

    @pytest.mark.parametrize("status", [HoldStatus.CONFIRMED, HoldStatus.CANCELLED, HoldStatus.REFUNDED])
    def test_finalized_hold_is_not_payable(self, status):
        hold = make_hold(status, timedelta(minutes=5))

        assert not is_hold_still_valid(hold)
        assert not is_hold_expired(hold)
        with pytest.raises(AlreadyFinalizedError) as exc_info:
            ensure_hold_payable(hold)
        assert exc_info.value.hold_status == status.value
