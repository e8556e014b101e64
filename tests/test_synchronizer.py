"""Tests for the reference-data synchronizer."""

import pytest
from pydantic import ValidationError

from conftest import IMAGE_BASE, TODAY, FakeRegistry, raw_athlete, raw_judge

from figsync.cache import TTLCache
from figsync.errors import RateLimited, UpstreamTimeout
from figsync.models import PersonKind
from figsync.synchronizer import ROSTER_KEYS, ReferenceDataSynchronizer


@pytest.mark.asyncio
async def test_second_call_within_ttl_hits_cache(synchronizer, registry):
    first = await synchronizer.get_roster(PersonKind.ATHLETES)
    second = await synchronizer.get_roster(PersonKind.ATHLETES)

    assert registry.calls[PersonKind.ATHLETES] == 1
    assert [p.id for p in first] == [p.id for p in second] == ["A1", "A2", "A3"]


@pytest.mark.asyncio
async def test_expired_roster_is_fetched_again(synchronizer, registry, clock):
    await synchronizer.get_roster(PersonKind.COACHES)
    clock.advance(3599)
    await synchronizer.get_roster(PersonKind.COACHES)
    assert registry.calls[PersonKind.COACHES] == 1

    clock.advance(1)
    await synchronizer.get_roster(PersonKind.COACHES)
    assert registry.calls[PersonKind.COACHES] == 2


@pytest.mark.asyncio
async def test_returned_roster_is_a_copy(synchronizer):
    roster = await synchronizer.get_roster(PersonKind.ATHLETES)
    roster.clear()
    assert len(await synchronizer.get_roster(PersonKind.ATHLETES)) == 3


@pytest.mark.asyncio
async def test_country_filter_is_case_insensitive_and_shares_one_fetch(
    synchronizer, registry
):
    usa = await synchronizer.get_roster_by_country(PersonKind.ATHLETES, "usa")
    bra = await synchronizer.get_roster_by_country(PersonKind.ATHLETES, " BRA ")
    none = await synchronizer.get_roster_by_country(PersonKind.ATHLETES, "ZZZ")

    assert sorted(p.id for p in usa) == ["A2", "A3"]
    assert [p.id for p in bra] == ["A1"]
    assert none == []
    assert registry.calls[PersonKind.ATHLETES] == 1


@pytest.mark.asyncio
async def test_timeout_propagates_and_caches_nothing():
    cache = TTLCache()
    registry = FakeRegistry({
        PersonKind.JUDGES: UpstreamTimeout("FIG registry timeout fetching judges"),
    })
    sync = ReferenceDataSynchronizer(registry, cache, 3600, IMAGE_BASE, lambda: TODAY)

    with pytest.raises(UpstreamTimeout):
        await sync.get_roster(PersonKind.JUDGES)

    assert ROSTER_KEYS[PersonKind.JUDGES] not in cache
    assert cache.get("fig-judges") is None
    assert sync.cached_count(PersonKind.JUDGES) == 0


@pytest.mark.asyncio
async def test_country_path_propagates_upstream_errors():
    registry = FakeRegistry({PersonKind.ATHLETES: RateLimited("slow down")})
    sync = ReferenceDataSynchronizer(registry, TTLCache(), 3600, IMAGE_BASE, lambda: TODAY)

    with pytest.raises(RateLimited):
        await sync.get_roster_by_country(PersonKind.ATHLETES, "USA")
    assert registry.calls[PersonKind.ATHLETES] == 1


@pytest.mark.asyncio
async def test_empty_ids_never_reach_the_cached_roster(cache):
    registry = FakeRegistry({
        PersonKind.ATHLETES: [raw_athlete(""), raw_athlete("A1")],
        PersonKind.JUDGES: [raw_judge(""), raw_judge("  ")],
    })
    sync = ReferenceDataSynchronizer(registry, cache, 3600, IMAGE_BASE, lambda: TODAY)

    assert [p.id for p in await sync.get_roster(PersonKind.ATHLETES)] == ["A1"]
    assert await sync.get_roster(PersonKind.JUDGES) == []
    # an empty roster is still a cached roster
    assert ROSTER_KEYS[PersonKind.JUDGES] in cache


@pytest.mark.asyncio
async def test_get_one(synchronizer):
    person = await synchronizer.get_one(PersonKind.ATHLETES, "A2")
    assert person is not None and person.first_name == "John"
    assert await synchronizer.get_one(PersonKind.ATHLETES, "missing") is None


@pytest.mark.asyncio
async def test_invalidate_forces_refetch(synchronizer, registry):
    await synchronizer.get_roster(PersonKind.ATHLETES)
    await synchronizer.get_roster(PersonKind.JUDGES)

    synchronizer.invalidate(PersonKind.ATHLETES)
    await synchronizer.get_roster(PersonKind.ATHLETES)
    await synchronizer.get_roster(PersonKind.JUDGES)
    assert registry.calls[PersonKind.ATHLETES] == 2
    assert registry.calls[PersonKind.JUDGES] == 1

    synchronizer.invalidate_all()
    await synchronizer.get_roster(PersonKind.JUDGES)
    assert registry.calls[PersonKind.JUDGES] == 2


@pytest.mark.asyncio
async def test_cache_stats(synchronizer, clock):
    await synchronizer.get_roster(PersonKind.ATHLETES)
    clock.advance(600)

    stats = synchronizer.cache_stats()
    by_kind = {info.kind: info for info in stats.rosters}

    assert stats.roster_ttl_s == 3600
    assert by_kind[PersonKind.ATHLETES].cached is True
    assert by_kind[PersonKind.ATHLETES].size == 3
    assert by_kind[PersonKind.ATHLETES].expires_in_s == 3000
    assert by_kind[PersonKind.COACHES].cached is False
    assert by_kind[PersonKind.COACHES].size is None


@pytest.mark.asyncio
async def test_cached_records_cannot_be_modified(synchronizer):
    roster = await synchronizer.get_roster(PersonKind.ATHLETES)

    with pytest.raises(ValidationError):
        roster[0].first_name = "Changed"

    again = await synchronizer.get_roster(PersonKind.ATHLETES)
    assert again[0].first_name == "Ana"
