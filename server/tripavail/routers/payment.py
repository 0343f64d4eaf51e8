"""Payment router for pre-payment checks, confirmations and provider webhooks."""

import json
import logging

import stripe
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import get_db, utcnow
from ..core.exceptions import ValidationError
from ..schemas.booking import Hold
from ..schemas.common import Money, problem_responses
from ..schemas.payment import (
    ConfirmationResponse,
    ConfirmPaymentRequest,
    PaymentEligibility,
    RecordPaymentFailureRequest,
    RefundRequest,
    StartPaymentRequest,
    ValidatePaymentRequest,
    WebhookAck,
)
from ..services.payment_service import PaymentService
from ..services.webhook_service import WebhookService
from .converters import hold_to_schema, parse_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/payment", tags=["payment"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
SIGNATURE_HEADER = Header(None, alias="Stripe-Signature")


@router.post("/validate", response_model=PaymentEligibility, responses=problem_responses(404, 409, 410))
async def validate_before_payment(
    request: ValidatePaymentRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Check a hold can still be paid before a payment attempt begins.

    An expired hold answers 410: the traveler must book again.
    """
    hold_id = parse_id(request.hold_id, "booking")
    now = utcnow()
    hold = await PaymentService(db).validate_before_payment(request.booking_type, hold_id, now=now)

    response_data = PaymentEligibility(
        hold_id=str(hold.id),
        payable=True,
        expires_at=hold.expires_at,
        seconds_remaining=max(int((hold.expires_at - now).total_seconds()), 0),
        total_price=Money(amount=hold.total_price_amount, currency=hold.price_currency),
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/start", response_model=Hold)
async def start_payment(request: StartPaymentRequest, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Link a payment intent to a payable hold."""
    hold_id = parse_id(request.hold_id, "booking")
    hold = await PaymentService(db).start_payment(request.booking_type, hold_id, request.payment_intent_id)
    return JSONResponse(status_code=200, content=hold_to_schema(hold).model_dump(mode="json"))


@router.post("/confirm", response_model=ConfirmationResponse, responses=problem_responses(404, 409, 410))
async def confirm_payment(request: ConfirmPaymentRequest, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """
    Confirm a hold when the traveler returns from the payment page.

    The provider webhook confirms the same hold; whichever arrives second
    receives outcome already_finalized with status 200.
    """
    hold_id = parse_id(request.hold_id, "booking")
    result = await PaymentService(db).confirm_on_payment_success(
        booking_type=request.booking_type,
        payment_intent_id=request.payment_intent_id,
        hold_id=hold_id,
        payment_method=request.payment_method,
        payment_metadata=request.payment_metadata,
    )

    response_data = ConfirmationResponse(
        outcome=result.outcome,
        previous_status=result.previous_status,
        hold=hold_to_schema(result.hold),
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/fail", response_model=Hold)
async def record_payment_failure(
    request: RecordPaymentFailureRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Record a failed payment attempt; the hold stays pending until its deadline."""
    hold = await PaymentService(db).record_payment_failure(
        request.booking_type,
        request.payment_intent_id,
        request.error,
    )
    return JSONResponse(status_code=200, content=hold_to_schema(hold).model_dump(mode="json"))


@router.post("/refund", response_model=Hold)
async def mark_refunded(request: RefundRequest, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Mark a confirmed hold as refunded."""
    hold = await PaymentService(db).mark_refunded(request.booking_type, request.payment_intent_id)
    return JSONResponse(status_code=200, content=hold_to_schema(hold).model_dump(mode="json"))


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    db: AsyncSession = DB_DEPENDENCY,
    stripe_signature: str | None = SIGNATURE_HEADER
) -> JSONResponse:
    """
    Receive payment-provider events.

    Redelivered events are acknowledged without side effects. A store
    outage answers 503 so the provider retries the delivery.
    """
    payload = await request.body()

    if settings.stripe_webhook_secret:
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                stripe_signature or "",
                settings.stripe_webhook_secret,
                settings.stripe_webhook_tolerance_seconds,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Webhook signature verification failed", extra={"error": str(e)})
            raise ValidationError(detail="Invalid webhook signature") from e
    else:
        logger.warning("Webhook signature not verified, no webhook secret configured")

    try:
        event = json.loads(payload)
    except ValueError as e:
        raise ValidationError(detail="Invalid webhook payload") from e
    if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
        raise ValidationError(detail="Webhook event must carry an id and a type")

    result = await WebhookService(db).process_event(event)

    response_data = WebhookAck(received=True, event_id=result.event_id, status=result.status)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
