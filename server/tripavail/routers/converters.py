"""Conversions between request identifiers, models and response schemas."""

from uuid import UUID

from ..core.exceptions import NotFoundError
from ..models.booking import BookingType, Hold as HoldModel, PackageBooking
from ..models.inventory import Tour as TourModel, TourSchedule as TourScheduleModel, TravelPackage as TravelPackageModel
from ..schemas.booking import Hold
from ..schemas.catalog import Tour, TourSchedule, TravelPackage
from ..schemas.common import Money


def parse_id(value: str, resource_type: str) -> UUID:
    """Parse an identifier from a request body; malformed IDs cannot match any resource."""
    try:
        return UUID(value)
    except (TypeError, ValueError):
        raise NotFoundError(resource_type=resource_type, resource_id=value) from None


def hold_to_schema(hold: HoldModel) -> Hold:
    """Convert hold model to schema."""
    package_fields = {}
    if isinstance(hold, PackageBooking):
        package_fields = {
            "check_in_date": hold.check_in_date,
            "check_out_date": hold.check_out_date,
            "number_of_nights": hold.number_of_nights,
        }

    return Hold(
        id=str(hold.id),
        booking_type=BookingType(hold.booking_type),
        inventory_unit_id=str(hold.inventory_unit_id),
        traveler_id=hold.traveler_id,
        requested_units=hold.requested_units,
        status=hold.status,
        payment_status=hold.payment_status,
        payment_intent_id=hold.payment_intent_id,
        total_price=Money(amount=hold.total_price_amount, currency=hold.price_currency),
        created_at=hold.created_at,
        expires_at=hold.expires_at,
        confirmed_at=hold.confirmed_at,
        paid_at=hold.paid_at,
        **package_fields,
    )


def tour_to_schema(tour: TourModel) -> Tour:
    """Convert tour model to schema."""
    return Tour(
        id=str(tour.id),
        operator_id=tour.operator_id,
        title=tour.title,
        slug=tour.slug,
        description=tour.description,
    )


def schedule_to_schema(schedule: TourScheduleModel) -> TourSchedule:
    """Convert tour schedule model to schema."""
    return TourSchedule(
        id=str(schedule.id),
        tour_id=str(schedule.tour_id),
        starts_at=schedule.starts_at,
        capacity=schedule.capacity,
        price=Money(amount=schedule.price_amount, currency=schedule.price_currency),
    )


def package_to_schema(package: TravelPackageModel) -> TravelPackage:
    """Convert package model to schema."""
    return TravelPackage(
        id=str(package.id),
        owner_id=package.owner_id,
        name=package.name,
        slug=package.slug,
        max_guests=package.max_guests,
        minimum_nights=package.minimum_nights,
        maximum_nights=package.maximum_nights,
        price_per_night=Money(amount=package.price_per_night_amount, currency=package.price_currency),
    )
