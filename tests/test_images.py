"""Tests for the image cache and preloader."""

import pytest

from conftest import FakeImageSource, RecordingSleep

from figsync.errors import ImageNotFound, ValidationError
from figsync.images import ImageProxy


@pytest.fixture
def source() -> FakeImageSource:
    return FakeImageSource(missing=("404a", "404b"))


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def images(source, cache, sleep) -> ImageProxy:
    return ImageProxy(source, cache, image_ttl_s=86400, sleep=sleep)


@pytest.mark.asyncio
async def test_image_is_fetched_once_then_cached(images, source):
    first = await images.get_image("101")
    second = await images.get_image(" 101 ")
    assert first == second
    assert source.requested == ["101"]
    assert images.is_cached("101")
    assert images.cached_count == 1


@pytest.mark.asyncio
async def test_image_expires_with_its_own_ttl(images, source, clock):
    await images.get_image("101")
    clock.advance(86400)
    await images.get_image("101")
    assert source.requested == ["101", "101"]


@pytest.mark.asyncio
async def test_blank_id_is_rejected(images, source):
    with pytest.raises(ValidationError):
        await images.get_image("  ")
    assert source.requested == []


@pytest.mark.asyncio
async def test_missing_image_is_not_cached(images):
    with pytest.raises(ImageNotFound):
        await images.get_image("404a")
    assert not images.is_cached("404a")


@pytest.mark.asyncio
async def test_preload_runs_in_batches_with_pauses_between(images, source, sleep):
    ids = [str(i) for i in range(12)]
    stats = await images.preload(ids, batch_size=5, pause_s=0.25)

    assert stats.success == 12
    assert stats.failed == 0
    assert sorted(source.requested, key=int) == ids
    # three batches, pauses only between them
    assert sleep.delays == [0.25, 0.25]


@pytest.mark.asyncio
async def test_preload_counts_failures_without_raising(images, sleep):
    stats = await images.preload(["1", "404a", "2", "404b"], batch_size=5)
    assert stats.success == 2
    assert stats.failed == 2
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_preload_skips_fetch_for_cached_images(images, source):
    await images.get_image("1")
    await images.preload(["1", "2"])
    assert source.requested == ["1", "2"]


@pytest.mark.asyncio
async def test_clear_one_or_all(images, cache):
    await images.preload(["1", "2", "3"])
    cache.set("fig-athletes", [], ttl_s=100)

    assert images.clear("2") == 1
    assert not images.is_cached("2")
    assert images.clear() == 2
    assert images.cached_count == 0
    assert "fig-athletes" in cache
