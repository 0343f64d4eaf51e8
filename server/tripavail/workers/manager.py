"""Worker manager for coordinating background tasks."""

import asyncio
import logging
from typing import Dict

from ..core.config import settings
from .base import BaseWorker
from .hold_expiry_worker import HoldExpiryWorker

logger = logging.getLogger(__name__)


class WorkerManager:
    """
    Manages background workers for the application.

    Coordinates starting, stopping, and monitoring of all background workers.
    """

    def __init__(self, enable_hold_sweep: bool | None = None):
        """
        Initialize the worker manager.

        Args:
            enable_hold_sweep: Register the expiry sweep worker, defaults to HOLD_SWEEP_ENABLED
        """
        self.workers: Dict[str, BaseWorker] = {}
        self._setup_workers(settings.hold_sweep_enabled if enable_hold_sweep is None else enable_hold_sweep)

    def _setup_workers(self, enable_hold_sweep: bool) -> None:
        """Initialize all workers."""
        if enable_hold_sweep:
            self.workers["hold_expiry"] = HoldExpiryWorker()
        else:
            logger.info("Hold expiry worker disabled; an external scheduler must call the sweep job")

        logger.info(f"Initialized {len(self.workers)} workers")

    async def start_all(self) -> None:
        """Start all workers."""
        for name, worker in self.workers.items():
            await worker.start()
            logger.info(f"Started worker: {name}")

    async def stop_all(self) -> None:
        """Stop all workers gracefully."""
        logger.info("Stopping all workers")

        running = {name: worker for name, worker in self.workers.items() if worker.running}
        results = await asyncio.gather(*(w.stop() for w in running.values()), return_exceptions=True)

        for name, result in zip(running, results):
            if isinstance(result, Exception):
                logger.error(f"Error stopping worker {name}: {result!s}")
            else:
                logger.info(f"Stopped worker: {name}")

    def get_worker(self, name: str) -> BaseWorker:
        """
        Get a specific worker by name.

        Raises:
            KeyError: If worker not found
        """
        return self.workers[name]

    def get_worker_status(self) -> Dict[str, bool]:
        """Running status per worker name."""
        return {name: worker.running for name, worker in self.workers.items()}


# Global worker manager instance
worker_manager = WorkerManager()
