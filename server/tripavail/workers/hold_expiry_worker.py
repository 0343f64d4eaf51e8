"""Background worker that runs the hold expiry sweep."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config import settings
from ..services.expiry_service import ExpirySweeper, SweepResult
from .base import BaseWorker

logger = logging.getLogger(__name__)


class HoldExpiryWorker(BaseWorker):
    """
    In-process scheduler for the expiry sweeper.

    Holds no hold state of its own: every iteration is one call to the
    sweeper's idempotent entry point, so a missed or overlapping tick
    is harmless.
    """

    def __init__(
        self,
        interval_seconds: Optional[int] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    ):
        """
        Initialize the hold expiry worker.

        Args:
            interval_seconds: Seconds between sweeps, defaults to HOLD_SWEEP_INTERVAL_SECONDS
            session_factory: Session factory handed to the sweeper
        """
        super().__init__(
            name="HoldExpiry",
            interval_seconds=interval_seconds or settings.hold_sweep_interval_seconds
        )
        self.sweeper = ExpirySweeper(session_factory)
        self.last_result: Optional[SweepResult] = None

    async def process(self) -> None:
        """Run one expiry sweep."""
        result = await self.sweeper.expire_pending_holds()
        self.last_result = result

        if not result.success:
            logger.error(
                "Hold expiry sweep failed",
                extra={"error": result.error, "worker": self.name}
            )
        elif result.failed_types:
            logger.warning(
                "Hold expiry sweep partially failed; failed types retry next cycle",
                extra={
                    "failed_types": result.failed_types,
                    "expired_count": result.expired_count,
                    "worker": self.name
                }
            )
        elif result.expired_count > 0:
            logger.info(
                f"Expired {result.expired_count} holds",
                extra={
                    "expired_count": result.expired_count,
                    "expired_by_type": result.expired_by_type,
                    "timestamp": result.timestamp.isoformat(),
                    "worker": self.name
                }
            )
