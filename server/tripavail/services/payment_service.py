"""Payment reconciliation service: pre-payment checks, confirmation, failures and refunds."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import translate_store_errors, utcnow
from ..core.exceptions import (
    AlreadyFinalizedError,
    ConflictError,
    HoldExpiredError,
    HoldMismatchError,
    NotFoundError,
    ProblemDetailsException,
)
from ..core.observability import metrics_collector
from ..models.booking import HOLD_MODELS, BookingType, Hold, HoldStatus, PaymentStatus, hold_model_for
from ..schemas.payment import ConfirmationOutcome
from .validation import ensure_hold_payable, is_hold_expired

logger = logging.getLogger(__name__)


@dataclass
class ConfirmationResult:
    """
    Outcome of a confirmation attempt.

    ALREADY_FINALIZED is a normal result: the browser return and the
    provider webhook both confirm, and whichever arrives second sees it.
    """

    outcome: ConfirmationOutcome
    hold: Hold
    previous_status: str

    @property
    def confirmed(self) -> bool:
        return self.outcome == ConfirmationOutcome.CONFIRMED


class PaymentService:
    """Service for reconciling holds with payment-provider signals."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_hold_by_payment_intent(self, booking_type: BookingType, payment_intent_id: str) -> Hold | None:
        """Get hold by payment intent ID."""
        model = hold_model_for(booking_type)
        stmt = select(model).where(model.payment_intent_id == payment_intent_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_hold_by_payment_intent(self, payment_intent_id: str) -> Hold | None:
        """Search every booking type for the hold linked to a payment intent."""
        for booking_type in HOLD_MODELS:
            hold = await self.get_hold_by_payment_intent(booking_type, payment_intent_id)
            if hold:
                return hold
        return None

    async def _get_hold_or_raise(self, booking_type: BookingType, hold_id: UUID) -> Hold:
        model = hold_model_for(booking_type)
        result = await self.db.execute(select(model).where(model.id == hold_id))
        hold = result.scalar_one_or_none()
        if not hold:
            await self.db.rollback()
            logger.warning(
                "Hold not found for payment",
                extra={"booking_type": BookingType(booking_type).value, "hold_id": str(hold_id)}
            )
            raise NotFoundError(resource_type="booking", resource_id=str(hold_id), detail="Booking not found")
        return hold

    async def _get_by_intent_or_raise(self, booking_type: BookingType, payment_intent_id: str) -> Hold:
        hold = await self.get_hold_by_payment_intent(booking_type, payment_intent_id)
        if not hold:
            await self.db.rollback()
            logger.warning(
                "No hold linked to payment intent",
                extra={
                    "booking_type": BookingType(booking_type).value,
                    "payment_intent_id": payment_intent_id
                }
            )
            raise NotFoundError(
                resource_type="booking",
                resource_id=payment_intent_id,
                detail="Booking not found for this payment",
            )
        return hold

    async def validate_before_payment(
        self,
        booking_type: BookingType,
        hold_id: UUID,
        now: datetime | None = None
    ) -> Hold:
        """
        Confirm a hold may still be paid for before a payment attempt begins.

        Returns:
            The pending, unexpired hold

        Raises:
            NotFoundError: If the hold does not exist
            HoldExpiredError: If the deadline has passed; the traveler must book again
            AlreadyFinalizedError: If the hold is no longer pending
            TransientStoreError: If the store is unreachable
        """
        now = now or utcnow()
        async with translate_store_errors(self.db, "validate_before_payment"):
            hold = await self._get_hold_or_raise(booking_type, hold_id)
            await self.db.commit()

        ensure_hold_payable(hold, now)
        return hold

    async def start_payment(
        self,
        booking_type: BookingType,
        hold_id: UUID,
        payment_intent_id: str,
        now: datetime | None = None
    ) -> Hold:
        """
        Link a payment intent to a payable hold and mark the payment as processing.

        A traveler retrying after a failed attempt may link a new intent.

        Raises:
            NotFoundError: If the hold does not exist
            HoldExpiredError: If the deadline has passed
            AlreadyFinalizedError: If the hold is no longer pending
            ConflictError: If the payment intent is already linked to another hold
            TransientStoreError: If the store is unreachable
        """
        now = now or utcnow()
        model = hold_model_for(booking_type)

        async with translate_store_errors(self.db, "start_payment"):
            try:
                hold = await self._get_hold_or_raise(booking_type, hold_id)
                ensure_hold_payable(hold, now)

                stmt = (
                    update(model)
                    .where(
                        model.id == hold_id,
                        model.status == HoldStatus.PENDING.value,
                        model.expires_at > now,
                    )
                    .values(
                        payment_intent_id=payment_intent_id,
                        payment_status=PaymentStatus.PROCESSING.value,
                        payment_error=None,
                    )
                    .execution_options(synchronize_session=False)
                )
                result = await self.db.execute(stmt)
                await self.db.refresh(hold)

                if result.rowcount == 0:
                    ensure_hold_payable(hold, now)

                await self.db.commit()

            except ProblemDetailsException:
                await self.db.rollback()
                raise

            except IntegrityError as e:
                await self.db.rollback()
                logger.warning(
                    "Payment intent already linked to another hold",
                    extra={"hold_id": str(hold_id), "payment_intent_id": payment_intent_id}
                )
                raise ConflictError(
                    detail="This payment is already linked to another booking",
                    conflicting_resource={"payment_intent_id": payment_intent_id},
                ) from e

        logger.info(
            "Payment started for hold",
            extra={
                "booking_type": BookingType(booking_type).value,
                "hold_id": str(hold_id),
                "payment_intent_id": payment_intent_id,
                "expires_at": hold.expires_at.isoformat()
            }
        )
        return hold

    async def confirm_on_payment_success(
        self,
        booking_type: BookingType,
        payment_intent_id: str,
        hold_id: UUID,
        payment_method: str | None = None,
        payment_metadata: dict[str, Any] | None = None,
        now: datetime | None = None
    ) -> ConfirmationResult:
        """
        Transition a hold to confirmed on a payment-succeeded signal.

        The conditional update on (pending, unexpired) is the only gate.
        When two callers race, the one whose update matches wins and the
        other observes ALREADY_FINALIZED.

        Args:
            booking_type: Kind of hold
            payment_intent_id: Provider payment intent the signal refers to
            hold_id: Hold the caller claims was paid
            payment_method: Payment method to record
            payment_metadata: Provider-specific detail to record
            now: Reference time for the deadline check

        Returns:
            ConfirmationResult with outcome CONFIRMED or ALREADY_FINALIZED

        Raises:
            NotFoundError: If no hold is linked to the payment intent
            HoldMismatchError: If the intent belongs to a different hold
            HoldExpiredError: If the hold lapsed before the payment arrived
            TransientStoreError: If the store is unreachable
        """
        now = now or utcnow()
        model = hold_model_for(booking_type)
        type_label = BookingType(booking_type).value

        async with translate_store_errors(self.db, "confirm_on_payment_success"):
            hold = await self._get_by_intent_or_raise(booking_type, payment_intent_id)

            if str(hold.id) != str(hold_id):
                actual_hold_id = str(hold.id)
                await self.db.rollback()
                logger.warning(
                    "Booking ID mismatch on payment confirmation",
                    extra={
                        "payment_intent_id": payment_intent_id,
                        "claimed_hold_id": str(hold_id),
                        "actual_hold_id": actual_hold_id
                    }
                )
                raise HoldMismatchError(
                    payment_intent_id=payment_intent_id,
                    claimed_hold_id=str(hold_id),
                    actual_hold_id=actual_hold_id,
                )

            previous_status = hold.status
            stmt = (
                update(model)
                .where(
                    model.id == hold.id,
                    model.status == HoldStatus.PENDING.value,
                    model.expires_at > now,
                )
                .values(
                    status=HoldStatus.CONFIRMED.value,
                    payment_status=PaymentStatus.PAID.value,
                    paid_at=now,
                    confirmed_at=now,
                    payment_method=payment_method,
                    payment_metadata=payment_metadata,
                )
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)
            await self.db.refresh(hold)
            await self.db.commit()

        if result.rowcount == 1:
            metrics_collector.record_hold_confirmed(type_label)
            logger.info(
                "Hold confirmed after payment",
                extra={
                    "booking_type": type_label,
                    "hold_id": str(hold.id),
                    "payment_intent_id": payment_intent_id,
                    "paid_at": now.isoformat()
                }
            )
            return ConfirmationResult(
                outcome=ConfirmationOutcome.CONFIRMED,
                hold=hold,
                previous_status=HoldStatus.PENDING.value,
            )

        if is_hold_expired(hold, now):
            logger.warning(
                "Payment arrived after hold expired",
                extra={
                    "booking_type": type_label,
                    "hold_id": str(hold.id),
                    "payment_intent_id": payment_intent_id,
                    "status": hold.status,
                    "expires_at": hold.expires_at.isoformat()
                }
            )
            raise HoldExpiredError(hold_id=str(hold.id), expired_at=hold.expires_at)

        metrics_collector.record_confirmation_already_finalized(type_label)
        logger.info(
            "Hold already finalized - confirmation is a no-op",
            extra={
                "booking_type": type_label,
                "hold_id": str(hold.id),
                "payment_intent_id": payment_intent_id,
                "status": hold.status,
                "observed_status": previous_status
            }
        )
        return ConfirmationResult(
            outcome=ConfirmationOutcome.ALREADY_FINALIZED,
            hold=hold,
            previous_status=hold.status,
        )

    async def record_payment_failure(
        self,
        booking_type: BookingType,
        payment_intent_id: str,
        error: str,
        now: datetime | None = None
    ) -> Hold:
        """
        Record a failed payment attempt.

        The hold stays pending so the traveler can retry until the deadline.
        Failures reported for a hold that already left pending are logged
        and leave it untouched.

        Raises:
            NotFoundError: If no hold is linked to the payment intent
            TransientStoreError: If the store is unreachable
        """
        model = hold_model_for(booking_type)

        async with translate_store_errors(self.db, "record_payment_failure"):
            hold = await self._get_by_intent_or_raise(booking_type, payment_intent_id)
            stmt = (
                update(model)
                .where(model.id == hold.id, model.status == HoldStatus.PENDING.value)
                .values(payment_status=PaymentStatus.FAILED.value, payment_error=error)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)
            await self.db.refresh(hold)
            await self.db.commit()

        if result.rowcount == 0:
            logger.info(
                "Payment failure ignored - hold no longer pending",
                extra={
                    "hold_id": str(hold.id),
                    "payment_intent_id": payment_intent_id,
                    "status": hold.status
                }
            )
        else:
            logger.warning(
                "Payment failed for hold",
                extra={
                    "hold_id": str(hold.id),
                    "payment_intent_id": payment_intent_id,
                    "error": error,
                    "expires_at": hold.expires_at.isoformat()
                }
            )
        return hold

    async def mark_refunded(
        self,
        booking_type: BookingType,
        payment_intent_id: str,
        now: datetime | None = None
    ) -> Hold:
        """
        Transition a confirmed hold to refunded.

        Raises:
            NotFoundError: If no hold is linked to the payment intent
            AlreadyFinalizedError: If the hold is not confirmed (including already refunded)
            TransientStoreError: If the store is unreachable
        """
        now = now or utcnow()
        model = hold_model_for(booking_type)

        async with translate_store_errors(self.db, "mark_refunded"):
            hold = await self._get_by_intent_or_raise(booking_type, payment_intent_id)
            stmt = (
                update(model)
                .where(model.id == hold.id, model.status == HoldStatus.CONFIRMED.value)
                .values(
                    status=HoldStatus.REFUNDED.value,
                    payment_status=PaymentStatus.REFUNDED.value,
                )
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)
            await self.db.refresh(hold)
            await self.db.commit()

        if result.rowcount == 0:
            raise AlreadyFinalizedError(hold_id=str(hold.id), status=hold.status)

        logger.info(
            "Hold refunded",
            extra={
                "booking_type": BookingType(booking_type).value,
                "hold_id": str(hold.id),
                "payment_intent_id": payment_intent_id,
                "refunded_at": now.isoformat()
            }
        )
        return hold
