"""Reference-data synchronizer.

Keeps the athlete, coach and judge rosters cached. A roster is always fetched
and cached whole; country filtering happens in memory on top of the full
roster so upstream load does not grow with the number of countries queried.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Optional, Protocol

from figsync.cache import TTLCache
from figsync.ingest import transform_roster
from figsync.models import AnyPerson, CacheStats, PersonKind, RosterCacheInfo

logger = logging.getLogger(__name__)

ROSTER_KEYS: dict[PersonKind, str] = {
    PersonKind.ATHLETES: "fig-athletes",
    PersonKind.COACHES: "fig-coaches",
    PersonKind.JUDGES: "fig-judges",
}


class RosterSource(Protocol):
    """Anything that can fetch a raw roster (the registry client, or a fake)."""

    async def fetch(self, kind: PersonKind) -> list[Any]: ...


class ReferenceDataSynchronizer:
    """Cache-or-fetch access to the registry rosters.

    Args:
        client: Roster source, normally a ``RegistryClient``.
        cache: Shared TTL cache.
        roster_ttl_s: Lifetime of a cached roster.
        image_base_url: Prefix used to derive image URLs at ingestion.
        today: Date provider for age derivation.
    """

    def __init__(
        self,
        client: RosterSource,
        cache: TTLCache,
        roster_ttl_s: float,
        image_base_url: str,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._cache = cache
        self.roster_ttl_s = roster_ttl_s
        self._image_base_url = image_base_url
        self._today = today

    async def get_roster(self, kind: PersonKind) -> list[AnyPerson]:
        """Return the full roster of ``kind``, fetching it on a cache miss.

        Upstream errors propagate unchanged and nothing is cached for them.
        Two concurrent misses may both fetch; the later write wins.
        """
        key = ROSTER_KEYS[kind]
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Returning cached FIG %s", kind.value)
            return list(cached)

        raw = await self._client.fetch(kind)
        roster = transform_roster(kind, raw, self._today(), self._image_base_url)

        self._cache.set(key, roster, self.roster_ttl_s)
        logger.info("Cached %d %s from FIG registry", len(roster), kind.value)
        return list(roster)

    async def get_roster_by_country(
        self, kind: PersonKind, country: str
    ) -> list[AnyPerson]:
        """Return the roster of ``kind`` filtered by country, case-insensitively."""
        wanted = country.strip().upper()
        roster = await self.get_roster(kind)
        return [person for person in roster if person.country.upper() == wanted]

    async def get_one(self, kind: PersonKind, external_id: str) -> Optional[AnyPerson]:
        """Return the person with ``external_id``, or None."""
        roster = await self.get_roster(kind)
        for person in roster:
            if person.id == external_id:
                return person
        return None

    def invalidate(self, kind: PersonKind) -> None:
        """Drop the cached roster of ``kind``."""
        self._cache.delete(ROSTER_KEYS[kind])
        logger.info("FIG %s cache cleared", kind.value)

    def invalidate_all(self) -> None:
        """Drop every cached roster."""
        for kind in PersonKind:
            self.invalidate(kind)

    def cached_count(self, kind: PersonKind) -> int:
        """Number of people in the cached roster of ``kind`` (0 if not cached)."""
        cached = self._cache.get(ROSTER_KEYS[kind])
        return len(cached) if cached is not None else 0

    def cache_stats(self) -> CacheStats:
        """Describe the cache state of every roster."""
        rosters = []
        for kind, key in ROSTER_KEYS.items():
            cached = self._cache.get(key)
            rosters.append(
                RosterCacheInfo(
                    kind=kind,
                    cached=cached is not None,
                    size=len(cached) if cached is not None else None,
                    expires_in_s=self._cache.expires_in(key),
                )
            )
        return CacheStats(rosters=rosters, roster_ttl_s=self.roster_ttl_s)
