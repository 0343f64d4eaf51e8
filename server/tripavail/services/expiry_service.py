"""Expiry sweeper: idempotent pending-to-expired transition of lapsed holds."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.database import async_session_factory, utcnow
from ..core.observability import metrics_collector
from ..models.booking import HOLD_MODELS, BookingType, HoldStatus

logger = logging.getLogger(__name__)

EXPIRY_REASON = "hold_deadline_passed"


@dataclass
class HoldTransitionRecord:
    """A state change for the notification sink."""

    booking_type: str
    hold_id: str
    old_status: str
    new_status: str
    reason: str


@dataclass
class SweepResult:
    """Outcome of one sweep. Handled failures are reported here, never raised."""

    success: bool
    timestamp: datetime
    expired_count: int = 0
    expired_by_type: dict[str, int] = field(default_factory=dict)
    failed_types: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    transitions: list[HoldTransitionRecord] = field(default_factory=list)
    error: str | None = None

    @property
    def partial(self) -> bool:
        return self.success and bool(self.failed_types)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "expired_count": self.expired_count,
            "expired_by_type": dict(self.expired_by_type),
            "failed_types": list(self.failed_types),
            "errors": dict(self.errors),
            "error": self.error,
            "transitions": [vars(t) for t in self.transitions],
            "timestamp": self.timestamp,
        }


class ExpirySweeper:
    """
    Transition pending holds past their deadline to expired.

    Each booking type is swept in its own session and transaction with a
    single predicate-scoped UPDATE, so rows already swept never match
    again and overlapping sweeps are safe. The sweeper keeps no state
    between invocations.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self.session_factory = session_factory or async_session_factory

    async def expire_pending_holds(
        self,
        now: datetime | None = None,
        booking_types: list[BookingType] | None = None
    ) -> SweepResult:
        """
        Expire every pending hold with expires_at <= now.

        Args:
            now: Reference time, defaults to the current UTC time
            booking_types: Restrict the sweep, defaults to every booking type

        Returns:
            SweepResult; success is False only when every booking type failed
        """
        now = now or utcnow()
        started = time.perf_counter()
        types = booking_types or list(HOLD_MODELS)
        result = SweepResult(success=True, timestamp=now)

        for booking_type in types:
            type_label = BookingType(booking_type).value
            try:
                hold_ids = await self._expire_type(BookingType(booking_type), now)
            except SQLAlchemyError as e:
                result.failed_types.append(type_label)
                result.errors[type_label] = str(e)
                logger.error(
                    "Expiry sweep failed for booking type",
                    extra={"booking_type": type_label, "error": str(e)}
                )
                continue

            result.expired_by_type[type_label] = len(hold_ids)
            result.expired_count += len(hold_ids)
            result.transitions.extend(
                HoldTransitionRecord(
                    booking_type=type_label,
                    hold_id=hold_id,
                    old_status=HoldStatus.PENDING.value,
                    new_status=HoldStatus.EXPIRED.value,
                    reason=EXPIRY_REASON,
                )
                for hold_id in hold_ids
            )
            metrics_collector.record_holds_expired(type_label, len(hold_ids))

        if types and len(result.failed_types) == len(types):
            result.success = False
            result.error = "Expiry sweep failed for every booking type: " + "; ".join(
                f"{t}: {result.errors[t]}" for t in result.failed_types
            )

        metrics_collector.observe_sweep_duration(time.perf_counter() - started)
        summary = {
            "expired_count": result.expired_count,
            "expired_by_type": result.expired_by_type,
            "failed_types": result.failed_types,
            "swept_at": now.isoformat(),
        }
        if not result.success:
            logger.error("Expiry sweep failed", extra={**summary, "error": result.error})
        elif result.partial:
            logger.warning("Expiry sweep completed partially", extra=summary)
        elif result.expired_count:
            logger.info("Expiry sweep completed", extra=summary)
        else:
            logger.debug("Expiry sweep found nothing to expire", extra=summary)

        return result

    async def _expire_type(self, booking_type: BookingType, now: datetime) -> list[str]:
        model = HOLD_MODELS[booking_type]
        stmt = (
            update(model)
            .where(model.status == HoldStatus.PENDING.value, model.expires_at <= now)
            .values(status=HoldStatus.EXPIRED.value)
            .returning(model.id)
            .execution_options(synchronize_session=False)
        )
        async with self.session_factory() as session:
            try:
                rows = await session.execute(stmt)
                hold_ids = [str(hold_id) for hold_id in rows.scalars()]
                await session.commit()
            except SQLAlchemyError:
                await session.rollback()
                raise
        return hold_ids


async def expire_pending_holds(now: datetime | None = None) -> SweepResult:
    """Single idempotent entry point for schedulers."""
    return await ExpirySweeper().expire_pending_holds(now)
