"""Payment webhook service: at-most-once processing of provider events."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import translate_store_errors, utcnow
from ..core.exceptions import (
    AlreadyFinalizedError,
    HoldExpiredError,
    HoldMismatchError,
    NotFoundError,
    TransientStoreError,
)
from ..core.observability import metrics_collector
from ..models.booking import BookingType
from ..models.payment_webhook import PaymentWebhookRecord
from .payment_service import PaymentService

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"
CHARGE_REFUNDED = "charge.refunded"

# Outcomes a redelivery cannot change; the event is closed with the error recorded
FINAL_DOMAIN_ERRORS = (HoldExpiredError, HoldMismatchError, NotFoundError, AlreadyFinalizedError)


@dataclass
class WebhookResult:
    """Processing outcome for one delivery."""

    event_id: str
    event_type: str
    status: str
    error: str | None = None


class WebhookService:
    """Service for recording and dispatching payment-provider events."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.payment_service = PaymentService(db)

    async def get_record(self, stripe_event_id: str) -> PaymentWebhookRecord | None:
        """Get webhook record by provider event ID."""
        stmt = select(PaymentWebhookRecord).where(PaymentWebhookRecord.stripe_event_id == stripe_event_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def process_event(self, event: dict[str, Any], now: datetime | None = None) -> WebhookResult:
        """
        Record a provider event and apply its side effects at most once.

        Args:
            event: Provider event payload with id, type and data.object
            now: Reference time passed through to the payment handlers

        Returns:
            WebhookResult with status processed, duplicate, ignored or failed

        Raises:
            TransientStoreError: If the store is unreachable; the record stays
                unprocessed so the provider's retry runs the event again
        """
        now = now or utcnow()
        event_id = event["id"]
        event_type = event["type"]
        payload = (event.get("data") or {}).get("object") or {}
        metadata = payload.get("metadata") or {}

        async with translate_store_errors(self.db, "record_webhook_event"):
            record = await self.get_record(event_id)
            if record and record.processed:
                await self.db.commit()
                metrics_collector.record_webhook_event(event_type, "duplicate")
                logger.info(
                    "Duplicate webhook delivery ignored",
                    extra={
                        "stripe_event_id": event_id,
                        "event_type": event_type,
                        "processed_at": record.processed_at.isoformat() if record.processed_at else None
                    }
                )
                return WebhookResult(event_id=event_id, event_type=event_type, status="duplicate")

            if record is None:
                self.db.add(PaymentWebhookRecord(
                    stripe_event_id=event_id,
                    event_type=event_type,
                    booking_type=metadata.get("booking_type"),
                    booking_id=metadata.get("booking_id"),
                    event_data=event,
                ))
                try:
                    await self.db.commit()
                except IntegrityError:
                    # A concurrent delivery of the same event recorded it first
                    await self.db.rollback()
                    metrics_collector.record_webhook_event(event_type, "duplicate")
                    logger.info(
                        "Webhook event recorded concurrently - treating as duplicate",
                        extra={"stripe_event_id": event_id, "event_type": event_type}
                    )
                    return WebhookResult(event_id=event_id, event_type=event_type, status="duplicate")
            else:
                await self.db.commit()
                logger.info(
                    "Retrying unprocessed webhook event",
                    extra={"stripe_event_id": event_id, "event_type": event_type}
                )

        try:
            status = await self._dispatch(event_type, payload, metadata, event_id, now)
        except FINAL_DOMAIN_ERRORS as e:
            await self._mark_processed(event_id, now, error=e.message)
            metrics_collector.record_webhook_event(event_type, "failed")
            logger.warning(
                "Webhook event closed with a domain error",
                extra={
                    "stripe_event_id": event_id,
                    "event_type": event_type,
                    "code": e.code,
                    "error": e.message
                }
            )
            return WebhookResult(event_id=event_id, event_type=event_type, status="failed", error=e.message)
        except TransientStoreError:
            metrics_collector.record_webhook_event(event_type, "retry")
            logger.error(
                "Webhook event left unprocessed for retry",
                extra={"stripe_event_id": event_id, "event_type": event_type}
            )
            raise

        await self._mark_processed(event_id, now)
        metrics_collector.record_webhook_event(event_type, status)
        logger.info(
            "Webhook event processed",
            extra={"stripe_event_id": event_id, "event_type": event_type, "status": status}
        )
        return WebhookResult(event_id=event_id, event_type=event_type, status=status)

    async def _dispatch(
        self,
        event_type: str,
        payload: dict[str, Any],
        metadata: dict[str, Any],
        event_id: str,
        now: datetime
    ) -> str:
        if event_type == PAYMENT_SUCCEEDED:
            payment_intent_id = self._payment_intent_id(payload)
            booking_type, hold_id = await self._resolve_hold(payment_intent_id, metadata)
            await self.payment_service.confirm_on_payment_success(
                booking_type=booking_type,
                payment_intent_id=payment_intent_id,
                hold_id=hold_id,
                payment_method=self._payment_method(payload),
                payment_metadata={
                    "stripe_event_id": event_id,
                    "amount_received": payload.get("amount_received"),
                    "currency": payload.get("currency"),
                },
                now=now,
            )
            return "processed"

        if event_type == PAYMENT_FAILED:
            payment_intent_id = self._payment_intent_id(payload)
            booking_type, _ = await self._resolve_hold(payment_intent_id, metadata)
            error = (payload.get("last_payment_error") or {}).get("message") or "Payment failed"
            await self.payment_service.record_payment_failure(booking_type, payment_intent_id, error, now=now)
            return "processed"

        if event_type == CHARGE_REFUNDED:
            payment_intent_id = payload.get("payment_intent")
            if not payment_intent_id:
                raise NotFoundError(resource_type="payment_intent", detail="Refund is not linked to a payment")
            booking_type, _ = await self._resolve_hold(payment_intent_id, metadata)
            await self.payment_service.mark_refunded(booking_type, payment_intent_id, now=now)
            return "processed"

        return "ignored"

    async def _resolve_hold(self, payment_intent_id: str, metadata: dict[str, Any]) -> tuple[BookingType, str]:
        """Booking type and hold ID for an event, from its metadata or from the intent linkage."""
        booking_type = metadata.get("booking_type")
        hold_id = metadata.get("booking_id")
        if booking_type in {t.value for t in BookingType} and hold_id:
            return BookingType(booking_type), hold_id

        async with translate_store_errors(self.db, "resolve_webhook_hold"):
            hold = await self.payment_service.find_hold_by_payment_intent(payment_intent_id)
        if not hold:
            await self.db.rollback()
            raise NotFoundError(
                resource_type="booking",
                resource_id=payment_intent_id,
                detail="Booking not found for this payment",
            )
        return hold.booking_type, hold_id or str(hold.id)

    @staticmethod
    def _payment_intent_id(payload: dict[str, Any]) -> str:
        payment_intent_id = payload.get("id")
        if not payment_intent_id:
            raise NotFoundError(resource_type="payment_intent", detail="Event does not identify a payment")
        return payment_intent_id

    @staticmethod
    def _payment_method(payload: dict[str, Any]) -> str | None:
        method_types = payload.get("payment_method_types") or []
        return method_types[0] if method_types else None

    async def _mark_processed(self, event_id: str, now: datetime, error: str | None = None) -> None:
        async with translate_store_errors(self.db, "mark_webhook_processed"):
            stmt = (
                update(PaymentWebhookRecord)
                .where(PaymentWebhookRecord.stripe_event_id == event_id)
                .values(processed=True, processed_at=now, error_message=error)
            )
            await self.db.execute(stmt)
            await self.db.commit()
