"""Base class for periodic in-process jobs."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class BaseWorker(ABC):
    """
    Calls process() every interval_seconds until stopped.

    Subclasses must make process() safe to repeat: a tick that fails is
    retried on the next one, and consecutive failures back off up to
    max_backoff_factor intervals.
    """

    max_backoff_factor = 4

    def __init__(self, name: str, interval_seconds: int = 60):
        self.name = name
        self.interval_seconds = interval_seconds
        self.consecutive_failures = 0
        self.last_error: Optional[str] = None
        self._stop: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @abstractmethod
    async def process(self) -> None:
        """One tick of the job."""

    async def run_once(self) -> bool:
        """Run a single tick, recording its outcome. Returns False if it raised."""
        started = time.perf_counter()
        try:
            await self.process()
        except Exception as e:
            self.consecutive_failures += 1
            self.last_error = str(e)
            logger.error(
                f"{self.name} tick failed",
                exc_info=True,
                extra={"worker": self.name, "consecutive_failures": self.consecutive_failures}
            )
            return False

        self.consecutive_failures = 0
        self.last_error = None
        logger.debug(
            f"{self.name} tick completed",
            extra={"worker": self.name, "duration_seconds": round(time.perf_counter() - started, 3)}
        )
        return True

    def next_delay(self) -> float:
        factor = min(2 ** self.consecutive_failures, self.max_backoff_factor)
        return float(self.interval_seconds * factor)

    async def start(self) -> None:
        if self.running:
            logger.warning(f"{self.name} worker is already running")
            return

        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name=f"worker:{self.name}")
        logger.info(f"{self.name} worker started, every {self.interval_seconds}s")

    async def stop(self) -> None:
        """Signal the loop and wait for the current tick to finish."""
        if not self.running:
            return

        self._stop.set()
        await self._task
        self._task = None
        logger.info(f"{self.name} worker stopped")

    async def _loop(self) -> None:
        while not self._stop.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.next_delay())
            except asyncio.TimeoutError:
                continue
