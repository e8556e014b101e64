"""Warmup scheduler.

Primes the roster and image caches at startup and then on a fixed interval.
Warmup is advisory: a failed run is logged and the service keeps serving with
whatever is cached, falling back to on-demand fetches.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from figsync.images import ImageProxy
from figsync.models import (
    AnyPerson,
    ClearCachesOutcome,
    PersonKind,
    WarmupOutcome,
    WarmupStats,
    WarmupStatus,
)
from figsync.synchronizer import ReferenceDataSynchronizer

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WarmupScheduler:
    """Runs the warmup sequence once at start and then every ``interval_s``.

    Attributes:
        interval_s: Seconds between periodic runs.
        image_preload_limit: Max number of images preloaded per run.
    """

    def __init__(
        self,
        synchronizer: ReferenceDataSynchronizer,
        images: ImageProxy,
        interval_s: float = 12 * 3600.0,
        image_preload_limit: int = 50,
        image_batch_size: int = 5,
        image_pause_s: float = 0.1,
        now: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._sync = synchronizer
        self._images = images
        self.interval_s = interval_s
        self.image_preload_limit = image_preload_limit
        self._image_batch_size = image_batch_size
        self._image_pause_s = image_pause_s
        self._now = now
        self._sleep = sleep

        self.is_warmed_up = False
        self.last_warmup_at: Optional[datetime] = None
        self.stats = WarmupStats()
        self.runs = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        """Whether the periodic task is alive."""
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Warmup sequence
    # ------------------------------------------------------------------

    async def run_once(self) -> bool:
        """Run the full warmup sequence.

        Returns:
            True on success, False if any step raised (the error is logged).
        """
        started = time.monotonic()
        self.runs += 1
        logger.info("Warming up FIG data cache...")

        try:
            people: list[AnyPerson] = []
            for kind in PersonKind:
                roster = await self._sync.get_roster(kind)
                setattr(self.stats, kind.value, len(roster))
                logger.info("Cached %d %s", len(roster), kind.value)
                people.extend(roster)

            await self._preload_images(people)
        except Exception:
            logger.exception("FIG data warmup failed")
            return False

        self.is_warmed_up = True
        self.last_warmup_at = self._now()
        logger.info(
            "FIG data warmup completed in %dms",
            int((time.monotonic() - started) * 1000),
        )
        return True

    async def _preload_images(self, people: list[AnyPerson]) -> None:
        """Preload images for the first ``image_preload_limit`` people."""
        external_ids = [p.id for p in people if p.id and p.id.strip()]
        external_ids = external_ids[: self.image_preload_limit]
        if not external_ids:
            logger.info("No FIG IDs found for image preloading")
            return

        self.stats.images = await self._images.preload(
            external_ids,
            batch_size=self._image_batch_size,
            pause_s=self._image_pause_s,
        )

    # ------------------------------------------------------------------
    # Periodic task
    # ------------------------------------------------------------------

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await self._sleep(self.interval_s)

    def start(self) -> None:
        """Start the background task (first run happens immediately)."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="fig-warmup")
        logger.info("Warmup scheduler started (interval %.0fs)", self.interval_s)

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Warmup scheduler stopped")

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    async def trigger(self) -> WarmupOutcome:
        """Run the warmup sequence now and report how it went."""
        started = time.monotonic()
        success = await self.run_once()
        return WarmupOutcome(
            message="Manual warmup completed" if success else "Manual warmup failed",
            success=success,
            stats=self.stats.model_copy(deep=True),
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def status(self) -> WarmupStatus:
        return WarmupStatus(
            is_warmed_up=self.is_warmed_up,
            last_warmup_at=self.last_warmup_at,
            running=self.running,
            interval_s=self.interval_s,
            stats=self.stats.model_copy(deep=True),
        )

    def clear_all_caches(self) -> ClearCachesOutcome:
        """Clear every roster and image cache and reset warmup state."""
        self._sync.invalidate_all()
        self._images.clear()

        self.is_warmed_up = False
        self.last_warmup_at = None
        self.stats = WarmupStats()

        logger.info("All FIG caches cleared, warmup status reset")
        return ClearCachesOutcome(
            message="All caches cleared successfully",
            cleared_at=self._now(),
        )
