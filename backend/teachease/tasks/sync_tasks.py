"""
Background auto-sync.

Every interval the task pushes pending writes and then pulls the cloud state.
A failed round is logged and dropped; the next interval simply tries again.
"""

import asyncio
import logging
from typing import Optional

from teachease.services.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


class AutoSyncTask:
    """Periodic push-then-pull loop."""

    def __init__(self, orchestrator: SyncOrchestrator, interval_seconds: float = 60):
        self.orchestrator = orchestrator
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._shutdown_event = asyncio.Event()
        self.completed_rounds = 0
        self.failed_rounds = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        logger.info(f"Starting auto-sync every {self.interval_seconds}s")
        self._shutdown_event = asyncio.Event()
        self._task = asyncio.create_task(self._sync_loop())

    async def stop(self) -> None:
        if not self._task:
            return
        logger.info("Stopping auto-sync")
        self._shutdown_event.set()
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def run_once(self) -> bool:
        """Run one push-then-pull round; returns False if it failed."""
        try:
            await self.orchestrator.sync_all()
            await self.orchestrator.fetch_all()
        except Exception as e:
            self.failed_rounds += 1
            logger.warning(f"Auto-sync round failed, retrying next interval: {e}")
            return False
        self.completed_rounds += 1
        return True

    async def _sync_loop(self) -> None:
        while not self._shutdown_event.is_set():
            # Wait first: the interval starts when auto-sync is switched on
            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(),
                    timeout=self.interval_seconds
                )
                break  # Shutdown event was set
            except asyncio.TimeoutError:
                pass

            await self.run_once()

        logger.info("Auto-sync loop stopped")
