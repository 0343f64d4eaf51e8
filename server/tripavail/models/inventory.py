"""Inventory unit model definitions: tours, tour schedules and packages."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import PackageBooking, TourBooking


class Tour(Base):
    """Tour offering published by a tour operator."""

    __tablename__ = "tours"

    id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), primary_key=True, default=uuid4)
    operator_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        server_onupdate=func.now()
    )

    schedules: Mapped[list["TourSchedule"]] = relationship(
        "TourSchedule",
        back_populates="tour",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, title='{self.title}', slug='{self.slug}')>"


class TourSchedule(Base):
    """A fixed-capacity tour departure; the seat pool holds are admitted against."""

    __tablename__ = "tour_schedules"

    id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), primary_key=True, default=uuid4)
    tour_id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True),
        ForeignKey("tours.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    starts_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    # Price per seat in minor units
    price_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    price_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    created_at: Mapped[datetime] = mapped_column(nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        server_onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_tour_schedule_capacity_positive"),
        CheckConstraint("price_amount >= 0", name="ck_tour_schedule_price_non_negative"),
        CheckConstraint("length(price_currency) = 3", name="ck_tour_schedule_currency_length"),
    )

    tour: Mapped["Tour"] = relationship("Tour", back_populates="schedules")
    bookings: Mapped[list["TourBooking"]] = relationship("TourBooking", back_populates="schedule")

    def __repr__(self) -> str:
        return (
            f"<TourSchedule(id={self.id}, tour_id={self.tour_id}, "
            f"starts_at={self.starts_at}, capacity={self.capacity})>"
        )


class TravelPackage(Base):
    """
    Date-ranged package sold by a hotel manager.

    Capacity is one concurrent stay per overlapping date range; max_guests
    caps the party size of that stay.
    """

    __tablename__ = "packages"

    id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), primary_key=True, default=uuid4)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    max_guests: Mapped[int | None] = mapped_column(Integer, nullable=True)
    minimum_nights: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    maximum_nights: Mapped[int | None] = mapped_column(Integer, nullable=True)

    price_per_night_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    price_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    created_at: Mapped[datetime] = mapped_column(nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        server_onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("minimum_nights >= 1", name="ck_package_minimum_nights_positive"),
        CheckConstraint(
            "maximum_nights IS NULL OR maximum_nights >= minimum_nights",
            name="ck_package_maximum_nights_gte_minimum"
        ),
        CheckConstraint("max_guests IS NULL OR max_guests > 0", name="ck_package_max_guests_positive"),
        CheckConstraint("price_per_night_amount >= 0", name="ck_package_price_non_negative"),
    )

    bookings: Mapped[list["PackageBooking"]] = relationship("PackageBooking", back_populates="package")

    def __repr__(self) -> str:
        return (
            f"<TravelPackage(id={self.id}, slug='{self.slug}', "
            f"nights={self.minimum_nights}..{self.maximum_nights})>"
        )
