"""
Queue Flusher — re-drives pending voicemails through the delivery engine.

Runs as a background task inside the FastAPI lifespan, and on demand via
POST /v1/pending/flush or scripts/flush_pending.py.

Flow:
    Store scan (delivered = false) → engine.deliver(..., is_retry=True)
    → delivered: mark_delivered(id)
    → failed:    log, leave the record for the next cycle

There is no attempt counter or backoff: a voicemail keeps being retried
every cycle until its recipient links an account.
"""
from __future__ import annotations

import asyncio
import structlog
from typing import Optional

from core.engine import DeliveryEngine
from database.store_base import BaseVoicemailStore
from models.errors import StorageError

logger = structlog.get_logger()


class QueueFlusher:
    """
    Periodically flushes the pending-voicemail queue.

    Usage:
        flusher = QueueFlusher(store, engine, interval_s=300)
        await flusher.start()      # background loop
        stats = await flusher.flush_pending()   # single cycle
        await flusher.stop()
    """

    def __init__(self, store: BaseVoicemailStore, engine: DeliveryEngine, interval_s: int = 300):
        self.store = store
        self.engine = engine
        self.interval_s = interval_s
        self._running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start the flush loop as a background task."""
        self._running = True
        self._task = asyncio.create_task(self._flush_loop(), name="queue_flusher")
        logger.info("queue_flusher_started", interval_s=self.interval_s)

    async def stop(self) -> None:
        """Gracefully stop the flusher."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("queue_flusher_stopped")

    async def _flush_loop(self) -> None:
        while self._running:
            try:
                await self.flush_pending()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("flush_cycle_error", error=str(e))

            await asyncio.sleep(self.interval_s)

    async def flush_pending(self) -> dict[str, int]:
        """
        Single flush cycle over a fresh scan of undelivered voicemails.

        A storage error while iterating ends the scan early; a storage error
        for one record is counted and the scan moves on.

        Returns counts: {"scanned": N, "delivered": N, "failed": N, "errors": N}
        """
        stats = {"scanned": 0, "delivered": 0, "failed": 0, "errors": 0}

        try:
            async for voicemail_id, voicemail in self.store.query_undelivered():
                stats["scanned"] += 1
                try:
                    outcome = await self.engine.deliver(
                        voicemail.from_number, voicemail.to_number, voicemail.audio_url,
                        is_retry=True,
                    )
                    if not outcome.is_delivered:
                        stats["failed"] += 1
                        logger.info("pending_voicemail_not_delivered",
                                    voicemail_id=voicemail_id,
                                    to_number=voicemail.to_number,
                                    reason=outcome.reason,
                                    retryable=outcome.error.retryable)
                        continue

                    await self.store.mark_delivered(voicemail_id)
                    stats["delivered"] += 1
                    logger.info("pending_voicemail_delivered",
                                voicemail_id=voicemail_id, to_number=voicemail.to_number)

                except StorageError as e:
                    stats["errors"] += 1
                    logger.error("pending_voicemail_storage_error",
                                 voicemail_id=voicemail_id, error=str(e))

        except StorageError as e:
            stats["errors"] += 1
            logger.error("pending_voicemail_scan_failed", error=str(e), **stats)
            return stats

        if stats["scanned"] > 0:
            logger.info("flush_cycle_complete", **stats)
        return stats
