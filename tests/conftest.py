"""Shared fixtures: fake registry, fake clock, in-memory local store."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from figsync.cache import TTLCache
from figsync.config import FigSyncSettings
from figsync.errors import ImageNotFound
from figsync.local_store import LocalOverrideStore
from figsync.models import ImageData, PersonKind
from figsync.synchronizer import ReferenceDataSynchronizer

TODAY = date(2024, 6, 15)
IMAGE_BASE = "http://registry.test/asset.php?id=bpic_"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SteppingNow:
    """Datetime provider that moves forward one second per call."""

    def __init__(self, start: datetime = datetime(2024, 6, 15, 12, 0, 0)) -> None:
        self._next = start

    def __call__(self) -> datetime:
        value = self._next
        self._next += timedelta(seconds=1)
        return value


class FakeRegistry:
    """Call-counting stand-in for ``RegistryClient``.

    A roster entry may be an exception instance, which is raised on fetch.
    """

    def __init__(self, rosters: Optional[dict[PersonKind, Union[list, Exception]]] = None):
        self.rosters: dict[PersonKind, Union[list, Exception]] = rosters or {}
        self.calls: dict[PersonKind, int] = {kind: 0 for kind in PersonKind}

    async def fetch(self, kind: PersonKind) -> list[Any]:
        self.calls[kind] += 1
        await asyncio.sleep(0)
        roster = self.rosters.get(kind, [])
        if isinstance(roster, Exception):
            raise roster
        return list(roster)


class FakeImageSource:
    """Stand-in for the image half of ``RegistryClient``."""

    def __init__(self, missing: tuple[str, ...] = ()) -> None:
        self.missing = set(missing)
        self.requested: list[str] = []

    async def fetch_image(self, external_id: str) -> ImageData:
        self.requested.append(external_id)
        await asyncio.sleep(0)
        if external_id in self.missing:
            raise ImageNotFound(f"Image not found for FIG ID {external_id}")
        body = f"img-{external_id}".encode()
        return ImageData(
            data=body,
            content_type="image/jpeg",
            content_length=len(body),
            last_modified="Mon, 01 Jan 2024 00:00:00 GMT",
        )


class RecordingSleep:
    """Async sleep replacement that only records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def raw_athlete(gymnastid: str, **overrides: Any) -> dict[str, Any]:
    entry = {
        "gymnastid": gymnastid,
        "idgymnastlicense": f"LIC-{gymnastid}",
        "discipline": "AER",
        "validto": "2025-12-31 00:00:00",
        "licensestatus": "Active",
        "preferredfirstname": "Ana",
        "preferredlastname": "Silva",
        "birth": "2008-03-10 00:00:00",
        "gender": "female",
        "country": "bra",
    }
    entry.update(overrides)
    return entry


def raw_coach(coach_id: str, **overrides: Any) -> dict[str, Any]:
    entry = {
        "id": coach_id,
        "discipline": "AER",
        "preferredfirstname": "Carlos",
        "preferredlastname": "Lopez",
        "gender": "male",
        "country": "mex",
        "level": "L2",
    }
    entry.update(overrides)
    return entry


def raw_judge(judge_id: str, **overrides: Any) -> dict[str, Any]:
    entry = {
        "id": judge_id,
        "discipline": "AER",
        "preferredfirstname": "Julia",
        "preferredlastname": "Brown",
        "birth": "1975-09-01",
        "gender": "female",
        "country": "can",
        "category": "2",
    }
    entry.update(overrides)
    return entry


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> FigSyncSettings:
    return FigSyncSettings(
        registry_base_url="http://registry.test/api",
        image_base_url=IMAGE_BASE,
        request_timeout_s=2.0,
        image_preload_pause_s=0.0,
        warmup_enabled=False,
        database_url="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(clock=clock)


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry({
        PersonKind.ATHLETES: [
            raw_athlete("A1"),
            raw_athlete("A2", preferredfirstname="John", gender="male", country="usa"),
            raw_athlete("A3", country="USA"),
        ],
        PersonKind.COACHES: [raw_coach("C1")],
        PersonKind.JUDGES: [raw_judge("J1")],
    })


@pytest.fixture
def synchronizer(registry: FakeRegistry, cache: TTLCache) -> ReferenceDataSynchronizer:
    return ReferenceDataSynchronizer(
        registry,
        cache,
        roster_ttl_s=3600,
        image_base_url=IMAGE_BASE,
        today=lambda: TODAY,
    )


def memory_engine():
    return create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )


@pytest_asyncio.fixture
async def store():
    local_store = LocalOverrideStore(memory_engine(), now=SteppingNow())
    await local_store.create_schema()
    yield local_store
    await local_store.dispose()
