"""Unit tests for payment webhook processing."""

import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from tripavail.models.booking import BookingType, HoldStatus, PaymentStatus
from tripavail.models.payment_webhook import PaymentWebhookRecord
from tripavail.services.hold_service import HoldService
from tripavail.services.payment_service import PaymentService
from tripavail.services.webhook_service import WebhookService


@pytest_asyncio.fixture
async def paying_hold(session_factory, schedule, now):
    async with session_factory() as db:
        hold = await HoldService(db).request_tour_hold(schedule.id, "traveler_1", 1, now=now)
    async with session_factory() as db:
        return await PaymentService(db).start_payment(BookingType.TOUR, hold.id, "pi_123", now=now)


def succeeded_event(event_id, hold, with_metadata=True):
    metadata = {"booking_type": "tour", "booking_id": str(hold.id)} if with_metadata else {}
    return {
        "id": event_id,
        "type": "payment_intent.succeeded",
        "data": {
            "object": {
                "id": "pi_123",
                "amount_received": hold.total_price_amount,
                "currency": "usd",
                "payment_method_types": ["card"],
                "metadata": metadata,
            }
        },
    }


async def process(session_factory, event, now):
    async with session_factory() as db:
        return await WebhookService(db).process_event(event, now=now)


async def load_hold(session_factory, hold_id):
    async with session_factory() as db:
        return await HoldService(db).get_hold(BookingType.TOUR, hold_id)


async def load_record(session_factory, event_id):
    async with session_factory() as db:
        record = await WebhookService(db).get_record(event_id)
        await db.commit()
    return record


class TestPaymentSucceeded:
    @pytest.mark.asyncio
    async def test_confirms_hold_and_records_event(self, session_factory, paying_hold, now):
        paid_at = now + timedelta(minutes=2)

        result = await process(session_factory, succeeded_event("evt_1", paying_hold), paid_at)

        assert result.status == "processed"
        hold = await load_hold(session_factory, paying_hold.id)
        assert hold.status == HoldStatus.CONFIRMED.value
        assert hold.payment_method == "card"
        assert hold.payment_metadata["stripe_event_id"] == "evt_1"

        record = await load_record(session_factory, "evt_1")
        assert record.processed
        assert record.processed_at == paid_at
        assert record.booking_id == str(paying_hold.id)
        assert record.error_message is None

    @pytest.mark.asyncio
    async def test_resolves_hold_from_payment_intent_without_metadata(self, session_factory, paying_hold, now):
        result = await process(session_factory, succeeded_event("evt_1", paying_hold, with_metadata=False), now)

        assert result.status == "processed"
        assert (await load_hold(session_factory, paying_hold.id)).status == HoldStatus.CONFIRMED.value

    @pytest.mark.asyncio
    async def test_duplicate_delivery_has_no_second_effect(self, session_factory, paying_hold, now):
        event = succeeded_event("evt_1", paying_hold)

        first = await process(session_factory, event, now + timedelta(minutes=1))
        second = await process(session_factory, event, now + timedelta(minutes=2))

        assert first.status == "processed"
        assert second.status == "duplicate"
        hold = await load_hold(session_factory, paying_hold.id)
        assert hold.paid_at == now + timedelta(minutes=1)

        async with session_factory() as db:
            count = (await db.execute(select(func.count(PaymentWebhookRecord.id)))).scalar_one()
            await db.commit()
        assert count == 1

    @pytest.mark.asyncio
    async def test_confirmation_after_browser_return_is_already_finalized(self, session_factory, paying_hold, now):
        async with session_factory() as db:
            await PaymentService(db).confirm_on_payment_success(
                BookingType.TOUR, "pi_123", paying_hold.id, now=now + timedelta(minutes=1)
            )

        result = await process(session_factory, succeeded_event("evt_1", paying_hold), now + timedelta(minutes=2))

        assert result.status == "processed"
        hold = await load_hold(session_factory, paying_hold.id)
        assert hold.paid_at == now + timedelta(minutes=1)

    @pytest.mark.asyncio
    async def test_concurrent_browser_return_and_webhook_confirm_once(self, session_factory, paying_hold, now):
        paid_at = now + timedelta(minutes=1)

        async def browser_return():
            async with session_factory() as db:
                return await PaymentService(db).confirm_on_payment_success(
                    BookingType.TOUR, "pi_123", paying_hold.id, now=paid_at
                )

        confirmation, webhook = await asyncio.gather(
            browser_return(),
            process(session_factory, succeeded_event("evt_1", paying_hold), paid_at),
        )

        assert webhook.status == "processed"
        assert confirmation.hold.status == HoldStatus.CONFIRMED.value
        assert (await load_hold(session_factory, paying_hold.id)).status == HoldStatus.CONFIRMED.value

    @pytest.mark.asyncio
    async def test_payment_after_expiry_closes_event_with_error(self, session_factory, paying_hold):
        late = paying_hold.expires_at + timedelta(minutes=1)

        result = await process(session_factory, succeeded_event("evt_late", paying_hold), late)

        assert result.status == "failed"
        assert result.error == "Booking hold has expired. Please book again."
        record = await load_record(session_factory, "evt_late")
        assert record.processed
        assert record.error_message == result.error
        assert (await load_hold(session_factory, paying_hold.id)).status == HoldStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_unknown_payment_intent_closes_event_with_error(self, session_factory, paying_hold, now):
        event = succeeded_event("evt_orphan", paying_hold, with_metadata=False)
        event["data"]["object"]["id"] = "pi_orphan"

        result = await process(session_factory, event, now)

        assert result.status == "failed"
        assert result.error == "Booking not found for this payment"


    @pytest.mark.asyncio
    async def test_event_without_payment_intent_is_closed_with_error(self, session_factory, now):
        event = {"id": "evt_bad", "type": "payment_intent.succeeded", "data": {"object": {"metadata": {}}}}

        result = await process(session_factory, event, now)
        redelivery = await process(session_factory, event, now)

        assert result.status == "failed"
        assert result.error == "Event does not identify a payment"
        record = await load_record(session_factory, "evt_bad")
        assert record.processed
        assert record.error_message == result.error
        assert redelivery.status == "duplicate"


class TestOtherEvents:
    @pytest.mark.asyncio
    async def test_payment_failed_keeps_hold_pending(self, session_factory, paying_hold, now):
        event = {
            "id": "evt_fail",
            "type": "payment_intent.payment_failed",
            "data": {
                "object": {
                    "id": "pi_123",
                    "last_payment_error": {"message": "Your card was declined."},
                    "metadata": {"booking_type": "tour", "booking_id": str(paying_hold.id)},
                }
            },
        }

        result = await process(session_factory, event, now)

        assert result.status == "processed"
        hold = await load_hold(session_factory, paying_hold.id)
        assert hold.status == HoldStatus.PENDING.value
        assert hold.payment_status == PaymentStatus.FAILED.value
        assert hold.payment_error == "Your card was declined."

    @pytest.mark.asyncio
    async def test_charge_refunded(self, session_factory, paying_hold, now):
        await process(session_factory, succeeded_event("evt_1", paying_hold), now)
        event = {
            "id": "evt_refund",
            "type": "charge.refunded",
            "data": {"object": {"id": "ch_1", "payment_intent": "pi_123", "metadata": {}}},
        }

        result = await process(session_factory, event, now + timedelta(days=1))

        assert result.status == "processed"
        assert (await load_hold(session_factory, paying_hold.id)).status == HoldStatus.REFUNDED.value

    @pytest.mark.asyncio
    async def test_unhandled_event_type_is_ignored(self, session_factory, now):
        event = {"id": "evt_other", "type": "customer.created", "data": {"object": {"id": "cus_1"}}}

        result = await process(session_factory, event, now)

        assert result.status == "ignored"
        assert (await load_record(session_factory, "evt_other")).processed
