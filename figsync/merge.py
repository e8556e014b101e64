"""Roster merge service.

Combines registry rosters with local override rows. Registry data always wins
over a local row sharing the same external identifier.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from figsync import derive
from figsync.errors import DuplicatePerson, PersonNotFound
from figsync.local_store import LocalOverrideStore, LocalPerson
from figsync.models import (
    AnyPerson,
    AthleteRecord,
    CoachRecord,
    Gender,
    JudgeRecord,
    LocalPersonCreate,
    LocalPersonUpdate,
    PersonKind,
)
from figsync.synchronizer import ReferenceDataSynchronizer

logger = logging.getLogger(__name__)


class RosterMergeService:
    """Registry + local override view of every roster.

    Args:
        synchronizer: Registry roster access.
        store: Local override store.
        today: Date provider for age derivation of local athletes.
    """

    def __init__(
        self,
        synchronizer: ReferenceDataSynchronizer,
        store: LocalOverrideStore,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._sync = synchronizer
        self._store = store
        self._today = today

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_all(
        self, kind: PersonKind, country: Optional[str] = None
    ) -> list[AnyPerson]:
        """List registry and local persons of ``kind``, optionally by country.

        Registry entries are inserted first; a local entry is only added when
        its external id is not already present.
        """
        if country:
            external = await self._sync.get_roster_by_country(kind, country)
        else:
            external = await self._sync.get_roster(kind)

        merged: dict[str, AnyPerson] = {}
        for person in external:
            merged[person.id] = person

        shadowed = 0
        for person in await self._local_roster(kind, country):
            if person.id in merged:
                shadowed += 1
                continue
            merged[person.id] = person

        if shadowed:
            logger.debug(
                "%d local %s shadowed by registry records", shadowed, kind.value
            )
        return list(merged.values())

    async def find_one(self, kind: PersonKind, external_id: str) -> Optional[AnyPerson]:
        """Find a person by external id: registry first, then the local store."""
        person = await self._sync.get_one(kind, external_id)
        if person is not None:
            return person

        row = await self._store.find_by_external_id(kind, external_id)
        return self._from_local(row) if row is not None else None

    async def get_one(self, kind: PersonKind, external_id: str) -> AnyPerson:
        """Like ``find_one`` but raises ``PersonNotFound`` when absent."""
        person = await self.find_one(kind, external_id)
        if person is None:
            raise PersonNotFound(
                f"{kind.value[:-1].capitalize()} with FIG ID {external_id} not found"
            )
        return person

    async def _local_roster(
        self, kind: PersonKind, country: Optional[str]
    ) -> list[AnyPerson]:
        """Local persons of ``kind``, one per external id (most recent wins)."""
        rows = await self._store.list_people(kind, country)
        latest: dict[str, LocalPerson] = {}
        for row in rows:
            if not row.external_id or not row.external_id.strip():
                continue
            current = latest.get(row.external_id)
            if current is None or row.created_at > current.created_at:
                latest[row.external_id] = row
        return [self._from_local(row) for row in latest.values()]

    # ------------------------------------------------------------------
    # Local CRUD
    # ------------------------------------------------------------------

    async def create_local(self, kind: PersonKind, data: LocalPersonCreate) -> AnyPerson:
        """Create a local override person.

        Raises:
            DuplicatePerson: If the registry or the local store already has
                the external id.
        """
        if await self.find_one(kind, data.external_id) is not None:
            raise DuplicatePerson(
                f"{kind.value[:-1].capitalize()} with FIG ID {data.external_id} already exists"
            )
        row = await self._store.create(kind, data)
        return self._from_local(row)

    async def update_local(self, local_id: str, changes: LocalPersonUpdate) -> AnyPerson:
        row = await self._store.update(local_id, changes)
        if row is None:
            raise PersonNotFound(f"Local person with ID {local_id} not found")
        return self._from_local(row)

    async def delete_local(self, local_id: str) -> None:
        if not await self._store.delete(local_id):
            raise PersonNotFound(f"Local person with ID {local_id} not found")

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def _from_local(self, row: LocalPerson) -> AnyPerson:
        """Convert a local row, deriving fields the same way ingestion does."""
        common = {
            "id": row.external_id,
            "first_name": row.first_name,
            "last_name": row.last_name,
            "full_name": row.full_name,
            "gender": Gender(row.gender),
            "country": row.country.upper(),
            "discipline": row.discipline or "AER",
            "image_url": row.image_url,
            "club": row.club,
            "is_local": True,
            "local_id": row.id,
        }
        kind = PersonKind(row.kind)

        if kind == PersonKind.ATHLETES:
            birth = row.date_of_birth
            today = self._today()
            age = derive.competition_year_age(birth, today) if birth else None
            return AthleteRecord(
                **common,
                date_of_birth=birth,
                license_valid=False,  # local athletes hold no registry license
                license_expiry_date=None,
                age=age,
                display_age=derive.display_age(birth, today) if birth else None,
                category=derive.category_from_age(age) if age is not None else None,
            )

        if kind == PersonKind.COACHES:
            level = row.level or ""
            return CoachRecord(
                **common,
                level=level,
                level_description=row.level_description
                or derive.coach_level_description(level),
            )

        code = row.category or ""
        return JudgeRecord(
            **common,
            date_of_birth=row.date_of_birth,
            category_code=code,
            category_description=row.category_description
            or derive.judge_category_description(code),
        )
