"""Registry image cache and preloader.

Images are cached one blob per external identifier, under their own key
family and with a longer TTL than rosters.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from figsync.cache import TTLCache
from figsync.errors import FigSyncError, ValidationError
from figsync.models import ImageData, ImagePreloadStats

logger = logging.getLogger(__name__)

IMAGE_KEY_PREFIX = "fig-image-"


class ImageSource(Protocol):
    async def fetch_image(self, external_id: str) -> ImageData: ...


class ImageProxy:
    """Serves registry images from cache, fetching on a miss."""

    def __init__(
        self,
        client: ImageSource,
        cache: TTLCache,
        image_ttl_s: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._cache = cache
        self.image_ttl_s = image_ttl_s
        self._sleep = sleep

    @staticmethod
    def _key(external_id: str) -> str:
        return f"{IMAGE_KEY_PREFIX}{external_id}"

    async def get_image(self, external_id: str) -> ImageData:
        """Return the image for ``external_id``.

        Raises:
            ValidationError: If the id is blank.
            UpstreamError: Any image fetch failure from the client.
        """
        clean_id = (external_id or "").strip()
        if not clean_id:
            raise ValidationError("FIG ID is required")

        key = self._key(clean_id)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Returning cached image for FIG ID %s", clean_id)
            return cached

        logger.info("Fetching image from FIG for ID %s", clean_id)
        image = await self._client.fetch_image(clean_id)
        self._cache.set(key, image, self.image_ttl_s)
        logger.info(
            "Cached image for FIG ID %s (%d bytes)", clean_id, image.content_length
        )
        return image

    def is_cached(self, external_id: str) -> bool:
        return self._key(external_id.strip()) in self._cache

    @property
    def cached_count(self) -> int:
        return len(self._cache.keys(IMAGE_KEY_PREFIX))

    async def preload(
        self,
        external_ids: Sequence[str],
        batch_size: int = 5,
        pause_s: float = 0.1,
    ) -> ImagePreloadStats:
        """Warm the image cache for ``external_ids``.

        Each batch is fetched concurrently, with a pause between batches to
        avoid bursting the image host. Failures are logged and counted.
        """
        logger.info("Preloading %d images", len(external_ids))
        stats = ImagePreloadStats()

        async def _load(external_id: str) -> bool:
            try:
                await self.get_image(external_id)
                return True
            except FigSyncError as exc:
                logger.warning(
                    "Failed to preload image for FIG ID %s: %s", external_id, exc.message
                )
                return False

        for start in range(0, len(external_ids), batch_size):
            batch = external_ids[start:start + batch_size]
            results = await asyncio.gather(*(_load(i) for i in batch))
            stats.success += sum(1 for ok in results if ok)
            stats.failed += sum(1 for ok in results if not ok)

            if start + batch_size < len(external_ids):
                await self._sleep(pause_s)

        logger.info(
            "Image preload completed: %d success, %d failed",
            stats.success,
            stats.failed,
        )
        return stats

    def clear(self, external_id: Optional[str] = None) -> int:
        """Clear one cached image, or the whole image family."""
        if external_id:
            removed = 1 if self._cache.delete(self._key(external_id.strip())) else 0
            logger.info("Cleared image cache for FIG ID %s", external_id)
            return removed
        removed = self._cache.delete_prefix(IMAGE_KEY_PREFIX)
        logger.info("Cleared %d cached images", removed)
        return removed
