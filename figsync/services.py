"""Explicit construction of the service graph.

Every component is built here and handed to its dependants; nothing is a
module-level singleton.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from figsync.cache import TTLCache
from figsync.config import FigSyncSettings
from figsync.eligibility import RuleEngine
from figsync.images import ImageProxy
from figsync.local_store import LocalOverrideStore
from figsync.merge import RosterMergeService
from figsync.registry_client import RegistryClient
from figsync.synchronizer import ReferenceDataSynchronizer
from figsync.warmup import WarmupScheduler


@dataclass
class Services:
    """All long-lived components of one running service."""

    settings: FigSyncSettings
    client: RegistryClient
    cache: TTLCache
    synchronizer: ReferenceDataSynchronizer
    images: ImageProxy
    store: LocalOverrideStore
    merge: RosterMergeService
    rules: RuleEngine
    warmup: WarmupScheduler

    async def aclose(self) -> None:
        await self.warmup.stop()
        await self.client.aclose()
        await self.store.dispose()


def build_services(
    settings: FigSyncSettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    engine: Optional[AsyncEngine] = None,
    cache: Optional[TTLCache] = None,
) -> Services:
    """Build the service graph from settings.

    Args:
        settings: Service settings.
        transport: Optional httpx transport for the registry client.
        engine: Optional async engine for the local store.
        cache: Optional cache (e.g. one with a fake clock).
    """
    if cache is None:
        cache = TTLCache()
    client = RegistryClient(settings, transport=transport)
    synchronizer = ReferenceDataSynchronizer(
        client,
        cache,
        roster_ttl_s=settings.roster_cache_ttl_s,
        image_base_url=settings.image_base_url,
    )
    images = ImageProxy(client, cache, image_ttl_s=settings.image_cache_ttl_s)
    store = LocalOverrideStore(
        engine or create_async_engine(settings.database_url, echo=False)
    )
    return Services(
        settings=settings,
        client=client,
        cache=cache,
        synchronizer=synchronizer,
        images=images,
        store=store,
        merge=RosterMergeService(synchronizer, store),
        rules=RuleEngine(),
        warmup=WarmupScheduler(
            synchronizer,
            images,
            interval_s=settings.warmup_interval_s,
            image_preload_limit=settings.image_preload_limit,
            image_batch_size=settings.image_preload_batch_size,
            image_pause_s=settings.image_preload_pause_s,
        ),
    )
