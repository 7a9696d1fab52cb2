"""Sync Coordinator — single-flight synchronization passes and the periodic job.

Invariants:
    - One lock serializes every sync write path: passes, receipts, resets
    - stop() takes effect between windows, never inside one
    - A failed pass is logged; the next scheduled pass resumes from the
      committed cursor

Design Decisions:
    - Periodic job is an asyncio task owned by the FastAPI lifespan:
      single-process deployment, no external scheduler
"""

import asyncio
import logging

from marketsync.core.errors import MarketSyncError, SyncInProgressError
from marketsync.services.event_synchronizer import EventSynchronizer, SyncResult

logger = logging.getLogger(__name__)


class SyncCoordinator:

    def __init__(self, synchronizer: EventSynchronizer):
        self.synchronizer = synchronizer
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self.last_result: SyncResult | None = None
        self.last_error: str | None = None

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def _should_stop(self) -> bool:
        return self._stop_event.is_set()

    async def run_pass(self, wait: bool = True) -> SyncResult:
        """Run one pass; with wait=False a busy lock raises SyncInProgressError."""
        if not wait and self._lock.locked():
            raise SyncInProgressError()
        async with self._lock:
            try:
                result = await self.synchronizer.sync_since(should_stop=self._should_stop)
            except MarketSyncError as e:
                self.last_error = e.code
                raise
            self.last_result = result
            self.last_error = None
            return result

    async def run_forever(self, interval_seconds: float) -> None:
        logger.info(f"Periodic sync every {interval_seconds}s")
        while not self._stop_event.is_set():
            try:
                await self.run_pass()
            except MarketSyncError as e:
                logger.error(
                    f"Sync pass failed: {e.message}",
                    extra={"error_code": e.code},
                )
            except Exception:
                logger.exception("Sync pass crashed")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("Periodic sync stopped")

    async def apply_receipt(self, tx_hash: str, wait: bool = True) -> SyncResult:
        """Apply one transaction under the lock; wait=False refuses if a pass runs."""
        if not wait and self._lock.locked():
            raise SyncInProgressError()
        async with self._lock:
            return await self.synchronizer.apply_receipt(tx_hash)

    async def reset_cursor(self, block_number: int) -> None:
        """Operator rollback; waits for any running pass to finish first."""
        async with self._lock:
            await self.synchronizer.reset_cursor(block_number)

    def stop(self) -> None:
        self._stop_event.set()
