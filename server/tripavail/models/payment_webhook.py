"""Payment webhook ledger model definition."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class PaymentWebhookRecord(Base):
    """
    One delivery of a payment-provider event.

    The unique stripe_event_id makes redelivered events detectable, so each
    event has at most one set of side effects on holds.
    """

    __tablename__ = "payment_webhooks"

    id: Mapped[UUID] = mapped_column(PgUUID(as_uuid=True), primary_key=True, default=uuid4)

    stripe_event_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)

    # Hold the event refers to, when the provider metadata names one
    booking_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    booking_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    event_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("length(stripe_event_id) > 0", name="ck_payment_webhook_event_id_not_empty"),
        CheckConstraint("length(event_type) > 0", name="ck_payment_webhook_event_type_not_empty"),
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentWebhookRecord(event_id='{self.stripe_event_id}', type='{self.event_type}', "
            f"processed={self.processed})>"
        )
