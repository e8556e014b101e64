"""Age, category and choreography-type derivation.

Pure functions used wherever an age, category or choreography type is
derived from person data.

There are two age computations:

* ``competition_year_age``: current year minus birth year. Category
  eligibility is defined by year of birth, so this is the only age used to
  assign a category.
* ``display_age``: the usual day-aware age, for display only.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Sequence

from figsync.errors import InvalidGroupSize
from figsync.models import Category, ChoreographyType, Gender

# Inclusive age bounds per category
AGE_LIMITS: dict[Category, tuple[int, int]] = {
    Category.YOUTH: (0, 14),
    Category.JUNIOR: (15, 17),
    Category.SENIOR: (18, 100),
}

VALID_GROUP_SIZES: tuple[int, ...] = (1, 2, 3, 5, 8)

_TYPE_BY_SIZE: dict[int, ChoreographyType] = {
    2: ChoreographyType.MXP,
    3: ChoreographyType.TRIO,
    5: ChoreographyType.GRP,
    8: ChoreographyType.DNCE,
}

COACH_LEVELS: dict[str, str] = {
    "L1": "Level 1",
    "L2": "Level 2",
    "L3": "Level 3",
    "LHB": "High Performance",
    "LBR": "Brevet",
}


# ---------------------------------------------------------------------------
# Ages
# ---------------------------------------------------------------------------

def competition_year_age(date_of_birth: date, today: Optional[date] = None) -> int:
    """Return the age a person turns during the current calendar year.

    Args:
        date_of_birth: Birth date.
        today: Reference date, defaults to ``date.today()``.

    Returns:
        ``today.year - date_of_birth.year``, regardless of month and day.
    """
    today = today or date.today()
    return today.year - date_of_birth.year


def display_age(date_of_birth: date, today: Optional[date] = None) -> int:
    """Return the day-aware age (birthday already passed or not).

    Not to be used for category assignment.
    """
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def category_from_age(age: int) -> Category:
    """Map a competition-year age to its category.

    Args:
        age: Competition-year age.

    Returns:
        YOUTH up to 14, JUNIOR from 15 to 17, SENIOR from 18.
    """
    if age <= AGE_LIMITS[Category.YOUTH][1]:
        return Category.YOUTH
    if age <= AGE_LIMITS[Category.JUNIOR][1]:
        return Category.JUNIOR
    return Category.SENIOR


def is_age_in_category(age: int, category: Category) -> bool:
    """Return True if ``age`` falls within the bounds of ``category``."""
    low, high = AGE_LIMITS[category]
    return low <= age <= high


def category_for_group(
    dates_of_birth: Iterable[date], today: Optional[date] = None
) -> Category:
    """Return the category of a group, decided by its oldest member.

    Raises:
        InvalidGroupSize: If no birth dates are given.
    """
    births = list(dates_of_birth)
    if not births:
        raise InvalidGroupSize("Cannot derive a category for an empty group")
    oldest = max(competition_year_age(d, today) for d in births)
    return category_from_age(oldest)


# ---------------------------------------------------------------------------
# Choreography
# ---------------------------------------------------------------------------

def type_from_group(size: int, genders: Sequence[Gender]) -> ChoreographyType:
    """Map a group size to its choreography type.

    Args:
        size: Number of gymnasts in the choreography.
        genders: Member genders; only consulted for individuals.

    Returns:
        The choreography type for the size.

    Raises:
        InvalidGroupSize: For any size outside 1, 2, 3, 5, 8.
    """
    if size == 1:
        if any(Gender(g) == Gender.MALE for g in genders):
            return ChoreographyType.MIND
        return ChoreographyType.WIND

    choreography_type = _TYPE_BY_SIZE.get(size)
    if choreography_type is None:
        raise InvalidGroupSize(
            f"Invalid gymnast count: {size}. Must be one of "
            f"{', '.join(str(s) for s in VALID_GROUP_SIZES)}."
        )
    return choreography_type


def choreography_name(surnames: Iterable[str]) -> str:
    """Build a choreography name from surnames in the order given."""
    return "-".join(surname.strip().upper() for surname in surnames)


# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------

def coach_level_description(level: str) -> str:
    """Describe a comma-separated list of coach level codes.

    Unknown codes are passed through unchanged.
    """
    codes = [code.strip() for code in level.split(",") if code.strip()]
    return ", ".join(COACH_LEVELS.get(code, code) for code in codes)


def judge_category_description(code: str) -> str:
    """Describe a judge brevet category code (``"3"`` -> ``"Category 3"``)."""
    code = code.strip()
    if not code:
        return ""
    if code.isdigit():
        return f"Category {code}"
    return code
