"""Ingestion transform: raw registry records -> person records.

All derived fields (full name, age, category, image URL, license validity)
are computed here and nowhere else for registry data.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional

from figsync import derive
from figsync.models import (
    AnyPerson,
    AthleteRecord,
    CoachRecord,
    Gender,
    JudgeRecord,
    PersonKind,
)
from figsync.raw_records import (
    RawAthlete,
    RawCoach,
    RawJudge,
    RawRecord,
    count,
    parse_raw_records,
)

logger = logging.getLogger(__name__)


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse the date part of a registry timestamp, or None if unusable."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def parse_gender(value: str) -> Gender:
    """Registry genders are ``male``/``female``; anything else is FEMALE."""
    return Gender.MALE if value.strip().lower() in ("male", "m") else Gender.FEMALE


def image_url_for(external_id: str, image_base_url: str) -> str:
    """Return the deterministic registry image URL for a person."""
    return f"{image_base_url}{external_id.strip()}"


def _common(raw: RawRecord, image_base_url: str) -> dict[str, Any]:
    first = raw.preferredfirstname
    last = raw.preferredlastname
    return {
        "id": raw.external_id,
        "first_name": first,
        "last_name": last,
        "full_name": f"{first} {last}".strip(),
        "gender": parse_gender(raw.gender),
        "country": raw.country.upper(),
        "discipline": raw.discipline,
        "image_url": image_url_for(raw.external_id, image_base_url),
    }


def athlete_from_raw(
    raw: RawAthlete, today: date, image_base_url: str
) -> AthleteRecord:
    """Build an athlete record, deriving ages, category and license state."""
    birth = parse_date(raw.birth)
    expiry = parse_date(raw.validto)
    age = derive.competition_year_age(birth, today) if birth else None
    return AthleteRecord(
        **_common(raw, image_base_url),
        date_of_birth=birth,
        license_valid=expiry is not None and expiry > today,
        license_expiry_date=expiry,
        age=age,
        display_age=derive.display_age(birth, today) if birth else None,
        category=derive.category_from_age(age) if age is not None else None,
    )


def coach_from_raw(raw: RawCoach, image_base_url: str) -> CoachRecord:
    """Build a coach record with a readable level description."""
    return CoachRecord(
        **_common(raw, image_base_url),
        level=raw.level,
        level_description=derive.coach_level_description(raw.level),
    )


def judge_from_raw(raw: RawJudge, image_base_url: str) -> JudgeRecord:
    """Build a judge record with a readable category description."""
    return JudgeRecord(
        **_common(raw, image_base_url),
        date_of_birth=parse_date(raw.birth),
        category_code=raw.category,
        category_description=derive.judge_category_description(raw.category),
    )


def to_person(
    kind: PersonKind, raw: RawRecord, today: date, image_base_url: str
) -> Optional[AnyPerson]:
    """Transform one raw record.

    Returns:
        The person record, or None when the external identifier is empty.
    """
    if not raw.external_id:
        return None
    if kind == PersonKind.ATHLETES:
        return athlete_from_raw(raw, today, image_base_url)
    if kind == PersonKind.COACHES:
        return coach_from_raw(raw, image_base_url)
    return judge_from_raw(raw, image_base_url)


def transform_roster(
    kind: PersonKind,
    items: Iterable[Any],
    today: date,
    image_base_url: str,
) -> list[AnyPerson]:
    """Parse and transform a full registry array of ``kind``.

    Records without an external identifier are dropped.
    """
    people: list[AnyPerson] = []
    dropped = 0
    for raw in parse_raw_records(kind.value, items):
        person = to_person(kind, raw, today, image_base_url)
        if person is None:
            dropped += 1
            continue
        people.append(person)

    if dropped:
        count(kind.value, "dropped", dropped)
        logger.warning(
            "Dropped %d %s without an external id", dropped, kind.value
        )
    return people
