"""Local override store.

Relational table of persons entered by hand because the FIG registry does not
(yet) know them. Rows carry their own locally generated id; the registry id is
kept in ``external_id`` and is the only link to registry data.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import Boolean, Column, Date, DateTime, String, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from figsync.models import LocalPersonCreate, LocalPersonUpdate, PersonKind

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class LocalPerson(Base):
    """A locally entered athlete, coach or judge."""

    __tablename__ = "local_people"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    kind = Column(String(16), nullable=False, index=True)
    external_id = Column(String(64), nullable=False, index=True)

    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    full_name = Column(String(257), nullable=False)
    gender = Column(String(8), nullable=False)
    country = Column(String(3), nullable=False, index=True)
    discipline = Column(String(8), nullable=False, default="AER")
    club = Column(String(128), nullable=True)
    image_url = Column(String(512), nullable=True)

    # Athletes and judges
    date_of_birth = Column(Date, nullable=True)
    # Coaches
    level = Column(String(64), nullable=True)
    level_description = Column(String(256), nullable=True)
    # Judges
    category = Column(String(16), nullable=True)
    category_description = Column(String(128), nullable=True)

    is_local = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return f"<LocalPerson {self.kind} {self.external_id} {self.full_name!r}>"


class LocalOverrideStore:
    """Async CRUD over the ``local_people`` table.

    Args:
        engine: Async SQLAlchemy engine.
        now: Timestamp provider for created/updated columns.
    """

    def __init__(
        self, engine: AsyncEngine, now: Callable[[], datetime] = _utcnow
    ) -> None:
        self._engine = engine
        self._sessions = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._now = now

    async def create_schema(self) -> None:
        """Create the table if it does not exist."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    async def create(self, kind: PersonKind, data: LocalPersonCreate) -> LocalPerson:
        """Insert a local person of ``kind``."""
        now = self._now()
        person = LocalPerson(
            id=str(uuid.uuid4()),
            kind=kind.value,
            external_id=data.external_id,
            first_name=data.first_name,
            last_name=data.last_name,
            full_name=f"{data.first_name} {data.last_name}",
            gender=data.gender.value,
            country=data.country,
            discipline=data.discipline,
            club=data.club,
            date_of_birth=data.date_of_birth,
            level=data.level,
            level_description=data.level_description,
            category=data.category,
            category_description=data.category_description,
            is_local=True,
            created_at=now,
            updated_at=now,
        )
        async with self._sessions() as session:
            session.add(person)
            await session.commit()
        logger.info(
            "Created local %s: %s (%s)", kind.value, person.full_name, person.external_id
        )
        return person

    async def get(self, local_id: str) -> Optional[LocalPerson]:
        async with self._sessions() as session:
            return await session.get(LocalPerson, local_id)

    async def update(
        self, local_id: str, changes: LocalPersonUpdate
    ) -> Optional[LocalPerson]:
        """Apply a partial update; returns None if the row does not exist."""
        async with self._sessions() as session:
            person = await session.get(LocalPerson, local_id)
            if person is None:
                return None

            for field, value in changes.model_dump(exclude_unset=True).items():
                if field == "gender" and value is not None:
                    value = value.value if hasattr(value, "value") else value
                setattr(person, field, value)

            person.full_name = f"{person.first_name} {person.last_name}"
            person.updated_at = self._now()
            await session.commit()

        logger.info("Updated local person %s (%s)", person.full_name, person.external_id)
        return person

    async def delete(self, local_id: str) -> bool:
        """Delete a row; returns False if it did not exist."""
        async with self._sessions() as session:
            person = await session.get(LocalPerson, local_id)
            if person is None:
                return False
            await session.delete(person)
            await session.commit()
        logger.info("Deleted local person %s (%s)", person.full_name, person.external_id)
        return True

    async def list_people(
        self, kind: PersonKind, country: Optional[str] = None
    ) -> list[LocalPerson]:
        """Return local persons of ``kind``, newest first."""
        stmt = select(LocalPerson).where(
            LocalPerson.kind == kind.value, LocalPerson.is_local.is_(True)
        )
        if country:
            stmt = stmt.where(func.upper(LocalPerson.country) == country.strip().upper())
        stmt = stmt.order_by(LocalPerson.created_at.desc())

        async with self._sessions() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def find_by_external_id(
        self, kind: PersonKind, external_id: str
    ) -> Optional[LocalPerson]:
        """Return the most recently created local person with ``external_id``."""
        stmt = (
            select(LocalPerson)
            .where(
                LocalPerson.kind == kind.value,
                LocalPerson.external_id == external_id,
            )
            .order_by(LocalPerson.created_at.desc())
            .limit(1)
        )
        async with self._sessions() as session:
            result = await session.execute(stmt)
            return result.scalars().first()
