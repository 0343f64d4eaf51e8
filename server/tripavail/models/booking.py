"""Hold (booking) model definitions."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Union
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .inventory import TourSchedule, TravelPackage


class HoldStatus(str, Enum):
    """Hold lifecycle state."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    """Payment progress recorded on a hold."""
    UNPAID = "unpaid"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class BookingType(str, Enum):
    """Kind of inventory a hold is admitted against."""
    TOUR = "tour"
    PACKAGE = "package"


class HoldMixin:
    """Columns shared by tour and package holds."""

    booking_type: ClassVar[BookingType]

    id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), primary_key=True, default=uuid4)
    traveler_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=HoldStatus.PENDING.value)

    # Frozen at creation, minor units
    total_price_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    price_currency: Mapped[str] = mapped_column(String(3), nullable=False)

    # Set once at creation and never extended
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Payment linkage
    payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True, index=True)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default=PaymentStatus.UNPAID.value)
    payment_method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    payment_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    payment_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    booking_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )


class TourBooking(HoldMixin, Base):
    """Hold on seats of a tour schedule."""

    __tablename__ = "tour_bookings"
    booking_type = BookingType.TOUR

    schedule_id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True),
        ForeignKey("tour_schedules.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    pax_count: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("pax_count > 0", name="ck_tour_booking_pax_positive"),
        CheckConstraint("total_price_amount >= 0", name="ck_tour_booking_price_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'expired', 'refunded')",
            name="ck_tour_booking_status_valid"
        ),
        CheckConstraint(
            "status != 'confirmed' OR payment_status = 'paid'",
            name="ck_tour_booking_confirmed_is_paid"
        ),
        Index("ix_tour_bookings_status_expires_at", "status", "expires_at"),
    )

    schedule: Mapped["TourSchedule"] = relationship("TourSchedule", back_populates="bookings")

    @property
    def inventory_unit_id(self) -> UUID:
        return self.schedule_id

    @property
    def requested_units(self) -> int:
        return self.pax_count

    def __repr__(self) -> str:
        return (
            f"<TourBooking(id={self.id}, schedule_id={self.schedule_id}, "
            f"pax={self.pax_count}, status={self.status}, expires_at={self.expires_at})>"
        )


class PackageBooking(HoldMixin, Base):
    """Hold on a package for a check-in/check-out date range."""

    __tablename__ = "package_bookings"
    booking_type = BookingType.PACKAGE

    package_id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True),
        ForeignKey("packages.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    guest_count: Mapped[int] = mapped_column(Integer, nullable=False)
    check_in_date: Mapped[date] = mapped_column(Date, nullable=False)
    check_out_date: Mapped[date] = mapped_column(Date, nullable=False)
    number_of_nights: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_night_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("guest_count > 0", name="ck_package_booking_guests_positive"),
        CheckConstraint("check_out_date > check_in_date", name="ck_package_booking_dates_ordered"),
        CheckConstraint("number_of_nights > 0", name="ck_package_booking_nights_positive"),
        CheckConstraint("total_price_amount >= 0", name="ck_package_booking_price_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'expired', 'refunded')",
            name="ck_package_booking_status_valid"
        ),
        CheckConstraint(
            "status != 'confirmed' OR payment_status = 'paid'",
            name="ck_package_booking_confirmed_is_paid"
        ),
        Index("ix_package_bookings_status_expires_at", "status", "expires_at"),
        Index("ix_package_bookings_package_dates", "package_id", "check_in_date", "check_out_date"),
    )

    package: Mapped["TravelPackage"] = relationship("TravelPackage", back_populates="bookings")

    @property
    def inventory_unit_id(self) -> UUID:
        return self.package_id

    @property
    def requested_units(self) -> int:
        return self.guest_count

    def __repr__(self) -> str:
        return (
            f"<PackageBooking(id={self.id}, package_id={self.package_id}, "
            f"{self.check_in_date}..{self.check_out_date}, status={self.status})>"
        )


Hold = Union[TourBooking, PackageBooking]

HOLD_MODELS: dict[BookingType, type[TourBooking] | type[PackageBooking]] = {
    BookingType.TOUR: TourBooking,
    BookingType.PACKAGE: PackageBooking,
}


def hold_model_for(booking_type: BookingType | str) -> type[TourBooking] | type[PackageBooking]:
    """Resolve the table backing a booking type."""
    return HOLD_MODELS[BookingType(booking_type)]
