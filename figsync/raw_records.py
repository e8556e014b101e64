"""Raw FIG registry record schema.

The registry returns loosely-typed JSON arrays. This module is the only place
the registry's field names are read; everything downstream works with the
dataclasses below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Union

logger = logging.getLogger(__name__)

# Counters for observability
_counters: dict[str, int] = {
    "athletes_parsed": 0,
    "athletes_skipped": 0,
    "athletes_dropped": 0,
    "coaches_parsed": 0,
    "coaches_skipped": 0,
    "coaches_dropped": 0,
    "judges_parsed": 0,
    "judges_skipped": 0,
    "judges_dropped": 0,
}


def get_ingest_counters() -> dict[str, int]:
    """Return a copy of ingestion diagnostic counters."""
    return dict(_counters)


def count(kind: str, outcome: str, amount: int = 1) -> None:
    """Increment the counter for ``kind`` and ``outcome``."""
    _counters[f"{kind}_{outcome}"] = _counters.get(f"{kind}_{outcome}", 0) + amount


def _text(entry: dict[str, Any], key: str) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    return str(value).strip()


# ---------------------------------------------------------------------------
# Athletes (athletes.php?function=searchLicenses)
# ---------------------------------------------------------------------------

@dataclass
class RawAthlete:
    """A gymnast license entry as returned by the registry."""

    gymnastid: str
    idgymnastlicense: str
    discipline: str
    validto: str
    licensestatus: str
    preferredfirstname: str
    preferredlastname: str
    birth: str
    gender: str
    country: str

    @property
    def external_id(self) -> str:
        return self.gymnastid

    @classmethod
    def from_dict(cls, entry: dict[str, Any]) -> RawAthlete:
        return cls(
            gymnastid=_text(entry, "gymnastid"),
            idgymnastlicense=_text(entry, "idgymnastlicense"),
            discipline=_text(entry, "discipline") or "AER",
            validto=_text(entry, "validto"),
            licensestatus=_text(entry, "licensestatus"),
            preferredfirstname=_text(entry, "preferredfirstname"),
            preferredlastname=_text(entry, "preferredlastname"),
            birth=_text(entry, "birth"),
            gender=_text(entry, "gender"),
            country=_text(entry, "country"),
        )


# ---------------------------------------------------------------------------
# Coaches (coaches.php?function=searchAcademic)
# ---------------------------------------------------------------------------

@dataclass
class RawCoach:
    """An academy coach entry as returned by the registry."""

    id: str
    discipline: str
    preferredfirstname: str
    preferredlastname: str
    gender: str
    country: str
    level: str

    @property
    def external_id(self) -> str:
        return self.id

    @classmethod
    def from_dict(cls, entry: dict[str, Any]) -> RawCoach:
        return cls(
            id=_text(entry, "id"),
            discipline=_text(entry, "discipline") or "AER",
            preferredfirstname=_text(entry, "preferredfirstname"),
            preferredlastname=_text(entry, "preferredlastname"),
            gender=_text(entry, "gender"),
            country=_text(entry, "country"),
            level=_text(entry, "level"),
        )


# ---------------------------------------------------------------------------
# Judges (judges.php?function=searchJudges)
# ---------------------------------------------------------------------------

@dataclass
class RawJudge:
    """A brevet judge entry as returned by the registry."""

    id: str
    discipline: str
    preferredfirstname: str
    preferredlastname: str
    birth: str
    gender: str
    country: str
    category: str

    @property
    def external_id(self) -> str:
        return self.id

    @classmethod
    def from_dict(cls, entry: dict[str, Any]) -> RawJudge:
        return cls(
            id=_text(entry, "id"),
            discipline=_text(entry, "discipline") or "AER",
            preferredfirstname=_text(entry, "preferredfirstname"),
            preferredlastname=_text(entry, "preferredlastname"),
            birth=_text(entry, "birth"),
            gender=_text(entry, "gender"),
            country=_text(entry, "country"),
            category=_text(entry, "category"),
        )


RawRecord = Union[RawAthlete, RawCoach, RawJudge]

_SCHEMAS: dict[str, type] = {
    "athletes": RawAthlete,
    "coaches": RawCoach,
    "judges": RawJudge,
}


def parse_raw_records(kind: str, items: Iterable[Any]) -> list[RawRecord]:
    """Parse registry JSON entries into raw records of ``kind``.

    Entries that are not JSON objects are skipped and counted.

    Args:
        kind: ``"athletes"``, ``"coaches"`` or ``"judges"``.
        items: The decoded JSON array.

    Returns:
        One raw record per well-formed entry, in registry order.
    """
    schema = _SCHEMAS[kind]
    records: list[RawRecord] = []
    for entry in items:
        if not isinstance(entry, dict):
            logger.warning("Skipping non-object %s entry: %r", kind, entry)
            count(kind, "skipped")
            continue
        records.append(schema.from_dict(entry))
    count(kind, "parsed", len(records))
    return records
